"""Pydantic models for legacyvault.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from legacyvault.config.defaults import (
    DEFAULT_HOME,
    OFF_LEDGER_SHARES,
    ON_LEDGER_SHARES,
    THRESHOLD,
    TOTAL_SHARES,
)


class SharingConfig(BaseModel):
    """Threshold sharing layout for the symmetric key."""

    total_shares: int = Field(default=TOTAL_SHARES, description="Shares produced per split", ge=2)
    threshold: int = Field(default=THRESHOLD, description="Shares needed to rebuild the key", ge=2)
    on_ledger_shares: int = Field(
        default=ON_LEDGER_SHARES,
        description="Shares wrapped for the beneficiary and stored on the vault",
        ge=1,
    )
    prime: int | None = Field(
        default=None,
        description="Custom prime field modulus (default: 2047-bit Sophie Germain prime)",
    )

    @model_validator(mode="after")
    def _check_layout(self) -> "SharingConfig":
        if self.total_shares < self.threshold:
            raise ValueError("total_shares must be >= threshold")
        if self.on_ledger_shares > self.total_shares - OFF_LEDGER_SHARES:
            raise ValueError(
                f"on_ledger_shares must leave {OFF_LEDGER_SHARES} shares off-ledger "
                f"(got {self.on_ledger_shares} of {self.total_shares})"
            )
        if 1 + self.on_ledger_shares < self.threshold:
            raise ValueError("heir share plus on-ledger shares must reach the threshold")
        return self


class LedgerConfig(BaseModel):
    """Vault ledger persistence configuration."""

    db_path: str = Field(
        default=f"{DEFAULT_HOME}/ledger.db",
        description="SQLite database path (':memory:' for a transient ledger)",
    )
    required_share_records: int | None = Field(
        default=None,
        description="Share records a vault must carry (default: sharing.on_ledger_shares)",
        ge=1,
    )


class BlobStoreConfig(BaseModel):
    """Blob store configuration."""

    backend: Literal["memory", "file"] = Field(default="file", description="Blob store backend")
    path: str = Field(default=f"{DEFAULT_HOME}/blobs", description="Directory for the file backend")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", description="Root log level"
    )


class LegacyVaultConfig(BaseModel):
    """Root configuration schema for LegacyVault."""

    sharing: SharingConfig = Field(default_factory=SharingConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    blobs: BlobStoreConfig = Field(default_factory=BlobStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def required_share_records(self) -> int:
        """Number of wrapped share records a new vault must carry."""
        if self.ledger.required_share_records is not None:
            return self.ledger.required_share_records
        return self.sharing.on_ledger_shares

    @model_validator(mode="after")
    def _check_share_records(self) -> "LegacyVaultConfig":
        required = self.ledger.required_share_records
        if required is not None and required != self.sharing.on_ledger_shares:
            raise ValueError(
                f"ledger.required_share_records ({required}) must match "
                f"sharing.on_ledger_shares ({self.sharing.on_ledger_shares})"
            )
        return self

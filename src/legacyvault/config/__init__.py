"""Configuration models, constants and YAML loading."""

from .loader import ConfigError, load_config, save_config
from .schema import (
    BlobStoreConfig,
    LedgerConfig,
    LegacyVaultConfig,
    LoggingConfig,
    SharingConfig,
)

__all__ = [
    "BlobStoreConfig",
    "ConfigError",
    "LedgerConfig",
    "LegacyVaultConfig",
    "LoggingConfig",
    "SharingConfig",
    "load_config",
    "save_config",
]

"""Tests for configuration loading and validation."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import ValidationError

from legacyvault.config.loader import ConfigError, load_config, save_config
from legacyvault.config.schema import LegacyVaultConfig, SharingConfig


def test_default_config():
    """Test that default config has expected values."""
    config = LegacyVaultConfig()

    assert config.sharing.total_shares == 5
    assert config.sharing.threshold == 3
    assert config.sharing.on_ledger_shares == 3
    assert config.sharing.prime is None

    assert config.ledger.db_path.endswith("ledger.db")
    assert config.required_share_records == 3

    assert config.blobs.backend == "file"
    assert config.logging.level == "WARNING"


def test_load_config_nonexistent_returns_defaults():
    """Test that loading a nonexistent config returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / "nonexistent.yaml")
        assert config.sharing.threshold == 3


def test_load_config_empty_file_returns_defaults():
    """Test that an empty config file returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.yaml"
        config_path.write_text("")

        config = load_config(config_path)
        assert config.sharing.total_shares == 5


def test_load_config_partial_override():
    """Test that partial config overrides only specified values."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "partial.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump({"ledger": {"db_path": ":memory:"}, "logging": {"level": "DEBUG"}}, f)

        config = load_config(config_path)

        # Overridden values
        assert config.ledger.db_path == ":memory:"
        assert config.logging.level == "DEBUG"

        # Default values
        assert config.blobs.backend == "file"
        assert config.sharing.threshold == 3


def test_load_config_invalid_yaml():
    """Test that invalid YAML raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "invalid.yaml"
        config_path.write_text("sharing: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(config_path)


def test_load_config_invalid_values():
    """Test that an inconsistent sharing layout raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "bad.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump({"sharing": {"total_shares": 3, "threshold": 4}}, f)

        with pytest.raises(ConfigError, match="validation failed"):
            load_config(config_path)


def test_load_config_unknown_backend():
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "bad.yaml"
        config_path.write_text("blobs:\n  backend: s3\n")

        with pytest.raises(ConfigError):
            load_config(config_path)


def test_save_and_load_roundtrip():
    """Test that a saved config loads back unchanged."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nested" / "legacyvault.yaml"
        config = LegacyVaultConfig.model_validate(
            {"blobs": {"backend": "memory"}, "ledger": {"required_share_records": 3}}
        )

        save_config(config, config_path)
        assert load_config(config_path) == config


class TestSharingConfig:
    def test_larger_layout(self):
        sharing = SharingConfig(total_shares=7, threshold=4, on_ledger_shares=5)
        assert sharing.on_ledger_shares == 5

    def test_threshold_above_total(self):
        with pytest.raises(ValidationError, match="total_shares must be >= threshold"):
            SharingConfig(total_shares=3, threshold=4, on_ledger_shares=1)

    def test_too_many_on_ledger_shares(self):
        with pytest.raises(ValidationError, match="off-ledger"):
            SharingConfig(total_shares=5, threshold=3, on_ledger_shares=4)

    def test_heir_cannot_reach_threshold(self):
        with pytest.raises(ValidationError, match="reach the threshold"):
            SharingConfig(total_shares=7, threshold=5, on_ledger_shares=3)

    def test_required_share_records_follows_layout(self):
        config = LegacyVaultConfig.model_validate(
            {
                "sharing": {"total_shares": 7, "threshold": 4, "on_ledger_shares": 5},
                "ledger": {"required_share_records": 5},
            }
        )
        assert config.required_share_records == 5

    def test_required_share_records_must_match_layout(self):
        with pytest.raises(ValidationError, match="must match"):
            LegacyVaultConfig.model_validate({"ledger": {"required_share_records": 2}})

    def test_mismatched_share_records_in_file(self, tmp_path):
        config_path = tmp_path / "mismatch.yaml"
        config_path.write_text("ledger:\n  required_share_records: 4\n")

        with pytest.raises(ConfigError, match="validation failed"):
            load_config(config_path)

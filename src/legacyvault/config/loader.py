"""Configuration loading and validation."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from legacyvault.config.defaults import DEFAULT_HOME
from legacyvault.config.schema import LegacyVaultConfig

DEFAULT_CONFIG_PATH = Path(DEFAULT_HOME).expanduser() / "legacyvault.yaml"


class ConfigError(Exception):
    """Configuration loading or validation error."""


def load_config(path: Path | str | None = None) -> LegacyVaultConfig:
    """Load and validate LegacyVault configuration from a YAML file.

    Args:
        path: Path to config file. If None, tries default location.
              If file doesn't exist, returns default config.

    Returns:
        Validated configuration object

    Raises:
        ConfigError: If config file exists but is invalid
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)

    # Zero-config mode: if file doesn't exist, use all defaults
    if not path.exists():
        return LegacyVaultConfig()

    try:
        with open(path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return LegacyVaultConfig()

        return LegacyVaultConfig(**config_data)

    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    except (OSError, TypeError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def save_config(config: LegacyVaultConfig, path: Path | str | None = None) -> None:
    """Save configuration to a YAML file.

    Args:
        config: Configuration object to save
        path: Destination path. If None, uses default location.
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)

"""Client configuration helpers."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .constants import (
    CONFIG_ENV_VAR,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_ENDPOINT_SUFFIX,
    DEFAULT_LOCK_TIMEOUT,
    DEVICE_FILE,
)
from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".dysk" / "config.yaml"

# Environment variable -> config key
ENV_OVERRIDES = {
    "AZURE_STORAGE_ACCOUNT": "account_name",
    "AZURE_STORAGE_KEY": "account_key",
    "DYSK_DEVICE": "device_path",
}


@dataclass
class ClientConfig:
    """Configuration for a dysk client."""

    account_name: str = ""
    account_key: str = ""
    device_path: str = DEVICE_FILE
    command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT
    lock_path: Optional[str] = None
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX
    storage_provider: str = "azure"  # "azure" or "fs"
    storage_root: Optional[str] = None

    def require_credentials(self) -> None:
        """Raise ConfigError unless a storage account name and key are set."""
        missing = [k for k in ("account_name", "account_key") if not getattr(self, k)]
        if missing:
            raise ConfigError(
                f"Missing storage credentials: {', '.join(missing)}. "
                f"Set them in the config file or via AZURE_STORAGE_ACCOUNT/AZURE_STORAGE_KEY"
            )


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


def load_client_config(path: Optional[Path] = None) -> ClientConfig:
    """Load client configuration from YAML, then apply environment overrides.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid YAML or has unknown keys
    """
    cfg_path = Path(path) if path else default_config_path()

    data = {}
    if cfg_path.exists():
        try:
            data = yaml.safe_load(cfg_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {cfg_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {cfg_path} must contain a mapping")

    known = {f.name for f in fields(ClientConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {cfg_path}: {', '.join(unknown)}")

    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[key] = value

    for key in ("command_timeout", "lock_timeout"):
        if data.get(key) is not None:
            try:
                data[key] = float(data[key])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be a number: {data[key]!r}") from e

    return ClientConfig(**data)

"""Configuration loading for randomfs-cli.

Settings are resolved from, lowest to highest precedence:

1. Built-in defaults
2. YAML config file ($RANDOMFS_CONFIG, else <user config dir>/randomfs/config.yaml)
3. Environment variables (RANDOMFS_IPFS, RANDOMFS_DATA, RANDOMFS_CACHE)
4. Global command line options

The result is an explicit :class:`EngineConfig` handed to the engine
constructor; nothing downstream reads the environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "randomfs"
CONFIG_FILE_ENV = "RANDOMFS_CONFIG"

DEFAULT_IPFS_ENDPOINT = "http://localhost:5001"
DEFAULT_DATA_DIRECTORY = "./data"
DEFAULT_CACHE_SIZE = 500 * 1024 * 1024

# env var -> EngineConfig field
ENV_VARS = {
    "RANDOMFS_IPFS": "ipfs_endpoint",
    "RANDOMFS_DATA": "data_directory",
    "RANDOMFS_CACHE": "cache_size_bytes",
}


class EngineConfig(BaseModel):
    """Settings passed through to the storage engine constructor."""

    ipfs_endpoint: str = DEFAULT_IPFS_ENDPOINT
    data_directory: Path = Path(DEFAULT_DATA_DIRECTORY)
    cache_size_bytes: int = Field(default=DEFAULT_CACHE_SIZE, gt=0)
    backend: str = "local"


@dataclass
class Settings:
    """Resolved settings for one invocation."""

    engine: EngineConfig
    verbose: bool = False


def default_config_path() -> Path:
    """Location of the user's config file."""
    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override)
    return Path(platformdirs.user_config_dir(APP_NAME)) / "config.yaml"


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read the YAML config file.

    A missing file is an empty config. A file that exists but cannot be read
    or parsed is an error.

    Raises:
        ConfigError: If the file is unreadable or not a YAML mapping
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.debug("Loaded config from %s", path)
    return data


def load_settings(
    ipfs_endpoint: Optional[str] = None,
    data_directory: Optional[Path] = None,
    cache_size_bytes: Optional[int] = None,
    verbose: Optional[bool] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Resolve settings from file, environment and explicit overrides.

    Args:
        ipfs_endpoint: Command line override
        data_directory: Command line override
        cache_size_bytes: Command line override
        verbose: Command line override
        config_path: Config file to read (default: :func:`default_config_path`)

    Returns:
        Settings for this invocation

    Raises:
        ConfigError: If any source supplies an invalid value
    """
    path = config_path or default_config_path()
    values = load_config_file(path)
    file_verbose = values.pop("verbose", False)

    for env_var, field in ENV_VARS.items():
        if env_var in os.environ:
            values[field] = os.environ[env_var]

    overrides = {
        "ipfs_endpoint": ipfs_endpoint,
        "data_directory": data_directory,
        "cache_size_bytes": cache_size_bytes,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        engine = EngineConfig(**values)
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid configuration: {e}")

    return Settings(
        engine=engine,
        verbose=bool(file_verbose) if verbose is None else verbose,
    )

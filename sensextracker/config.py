"""Configuration loading for the Sensex Options Tracker.

Settings live in ``~/.config/sensextracker/config.toml``. Set
``SENSEXTRACKER_HOME`` to use another directory.
"""

import copy
import logging
import os
from pathlib import Path

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "market": {
        "refresh_interval": 10,
        "source_timeout": 5,
        "sources": ["rapidapi", "yahoo"],
    },
    "rapidapi": {
        "api_key": "",
    },
    "storage": {
        "db_path": "",
    },
}


def get_config_dir() -> Path:
    """Get the configuration directory."""
    override = os.environ.get("SENSEXTRACKER_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "sensextracker"


def get_config_path() -> Path:
    """Get the config file path."""
    return get_config_dir() / "config.toml"


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config() -> dict:
    """Load configuration merged over the defaults.

    A missing or unreadable file yields the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = get_config_path()

    if not config_path.exists():
        return config

    try:
        return _merge(config, toml.load(config_path))
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return config


def save_config(config: dict) -> Path:
    """Write configuration to the config file.

    Returns:
        Path of the written file.
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        toml.dump(config, f)
    return config_path


def get_db_path(config: dict) -> Path:
    """Get the database path from config, defaulting to the config dir."""
    configured = config.get("storage", {}).get("db_path")
    if configured:
        return Path(configured).expanduser()
    return get_config_dir() / "tracker.db"

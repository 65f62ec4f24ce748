"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML file (e.g. ~/.simplecache/config.yaml), a .env
file, and environment variables, and builds the immutable CacheSettings an
engine is constructed with.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from simplecache.domain.exceptions import InvalidArgumentError
from simplecache.domain.models.common import CacheSettings

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".simplecache"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "SIMPLECACHE_"

DEFAULT_BASE_DIR = "cache"
INFINITE_TTL_WORDS = ("infinite", "none", "never", "")

# --- Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


def load_configuration(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    reload: bool = False,
) -> None:
    """Loads configuration from a YAML file and a .env file.

    Priority order (highest to lowest), applied by get_config:
    1. Environment Variables (SIMPLECACHE_CACHE_BASE_DIR, ...)
    2. .env file (never overrides variables already set)
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file (DEFAULT_CONFIG_FILE if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
        reload: Re-read the sources even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not reload:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file (medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
        else:
            logger.debug(f".env file at {dotenv_path} was empty or unreadable.")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment variables (highest priority) are read lazily by get_config
    _loaded = True
    logger.info("Configuration loading process completed.")


def _env_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    """Converts env var strings to bool/int/float where they look like one."""
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _lookup(config: Dict[str, Any], key: str) -> Any:
    """Finds 'a.b.c' either as a flat key or by walking nested mappings."""
    if key in config:
        return config[key]
    node: Any = config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(key)
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """Gets a configuration value by dotted key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (SIMPLECACHE_ + key upper-cased, dots as underscores)
    3. Loaded YAML config
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    try:
        return _lookup(_config, key)
    except KeyError:
        logger.debug(f"Config key '{key}' not found. Returning default: {default}")
        return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def parse_ttl(value: Any) -> Optional[float]:
    """Parses a configured TTL; 'infinite'/'none'/'never' or None mean no expiry.

    Raises:
        InvalidArgumentError: If the value is not a number of seconds.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid configured TTL: {value!r}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in INFINITE_TTL_WORDS:
            return None
        try:
            return float(text)
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid configured TTL: {value!r}") from e
    raise InvalidArgumentError(f"Invalid configured TTL: {value!r}")


def parse_probability(value: Any) -> float:
    """Parses a configured probability such as cache.gc_probability.

    Raises:
        InvalidArgumentError: If the value is not a number.
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid configured probability: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid configured probability: {value!r}") from e


def get_cache_settings(**overrides: Any) -> CacheSettings:
    """Builds immutable engine settings from configuration.

    Args:
        **overrides: Explicit values (e.g. from CLI flags) for default_ttl,
            base_dir, init_dir or gc_probability. None values are ignored.
    """
    values = {
        "default_ttl": parse_ttl(get_config("cache.default_ttl")),
        "base_dir": Path(str(get_config("cache.base_dir", DEFAULT_BASE_DIR))),
        "init_dir": str(get_config("cache.init_dir", "") or ""),
        "gc_probability": parse_probability(get_config("cache.gc_probability", 0.0)),
    }
    for name, value in overrides.items():
        if name not in values:
            raise TypeError(f"Unknown cache setting: {name}")
        if value is None:
            continue
        if name == "default_ttl":
            value = parse_ttl(value)
        elif name == "base_dir":
            value = Path(value)
        elif name == "gc_probability":
            value = parse_probability(value)
        values[name] = value
    settings = CacheSettings(**values)
    logger.debug(f"Cache settings resolved: {settings}")
    return settings


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Sets configuration values that override every other source."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clears all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")

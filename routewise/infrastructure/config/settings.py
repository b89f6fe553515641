"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML configuration file (~/.routewise/config.yaml),
a .env file and environment variables. Nested YAML sections are flattened to
dotted keys, so ``retry: {max_retries: 5}`` is read as ``retry.max_retries``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv

from routewise.infrastructure.cache.caching_service import CacheConfig
from routewise.infrastructure.maps.google_api import DEFAULT_BASE_URL, DEFAULT_ROADS_BASE_URL
from routewise.infrastructure.resilience.api_retry import RetryConfig
from routewise.infrastructure.resilience.rate_limiter import RateLimiterConfig

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".routewise"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "ROUTEWISE_"
API_KEY_ENV = "GOOGLE_MAPS_API_KEY"

_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Defaults passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    config_file = Path(config_file)
    if config_file.is_file():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
        else:
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; existing environment variables take precedence
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
        else:
            logger.debug(f"No variables loaded from {dotenv_path}")

    # 3. Environment variables are read on demand in get_config
    _loaded = True
    logger.debug("Configuration loading process completed.")


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _coerce(value: Any) -> Any:
    """Converts 'true'/'false' and numeric strings to their Python values."""
    if not isinstance(value, str):
        return value
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None, coerce: bool = True) -> Any:
    """Get a configuration value by dotted key.

    Priority:
    1. Test configuration
    2. ROUTEWISE_<KEY> environment variable (dots become underscores)
    3. <KEY> environment variable
    4. YAML config
    5. Default value

    With ``coerce=False`` string values are returned exactly as written.
    """
    if key in _test_config:
        return _test_config[key]

    convert = _coerce if coerce else (lambda value: value)
    env_key = key.upper().replace(".", "_")
    for name in (f"{ENV_PREFIX}{env_key}", env_key):
        if name in os.environ:
            return convert(os.environ[name])

    if key in _config:
        return convert(_config[key])

    return default


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Overrides configuration values (highest priority) until cleared."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# --- Convenience Functions ---

def get_api_key() -> Optional[str]:
    """The Google Maps API key (GOOGLE_MAPS_API_KEY, then google.api_key)."""
    key = get_config(API_KEY_ENV, coerce=False) or get_config("google.api_key", coerce=False)
    return str(key) if key else None


def _status_codes(value: Any) -> Tuple[int, ...]:
    if isinstance(value, str):
        value = [part for part in value.replace(" ", "").split(",") if part]
    return tuple(int(code) for code in value)


def get_cache_config() -> CacheConfig:
    defaults = CacheConfig()
    return CacheConfig(
        default_ttl_ms=int(get_config("cache.default_ttl_ms", defaults.default_ttl_ms)),
        max_entries=int(get_config("cache.max_entries", defaults.max_entries)),
        enable_stats=bool(get_config("cache.enable_stats", defaults.enable_stats)),
    )


def is_cache_enabled() -> bool:
    return bool(get_config("cache.enabled", True))


def get_retry_config() -> RetryConfig:
    defaults = RetryConfig()
    max_delay_ms = get_config("retry.max_delay_ms", defaults.max_delay_ms)
    return RetryConfig(
        base_ms=int(get_config("retry.base_ms", defaults.base_ms)),
        factor=float(get_config("retry.factor", defaults.factor)),
        max_retries=int(get_config("retry.max_retries", defaults.max_retries)),
        max_delay_ms=None if max_delay_ms is None else int(max_delay_ms),
        retryable_status_codes=_status_codes(
            get_config("retry.retryable_status_codes", defaults.retryable_status_codes)
        ),
        retry_on_network_error=bool(get_config("retry.retry_on_network_error", defaults.retry_on_network_error)),
    )


def get_rate_limiter_config() -> RateLimiterConfig:
    defaults = RateLimiterConfig()
    return RateLimiterConfig(
        capacity=int(get_config("rate_limiter.capacity", defaults.capacity)),
        refill_rate=int(get_config("rate_limiter.refill_rate", defaults.refill_rate)),
        refill_interval_ms=int(get_config("rate_limiter.refill_interval_ms", defaults.refill_interval_ms)),
        allow_burst=bool(get_config("rate_limiter.allow_burst", defaults.allow_burst)),
    )


def get_timeout_ms() -> int:
    return int(get_config("client.timeout_ms", 30000))


def get_base_url() -> str:
    return str(get_config("client.base_url", DEFAULT_BASE_URL))


def get_roads_base_url() -> str:
    return str(get_config("client.roads_base_url", DEFAULT_ROADS_BASE_URL))

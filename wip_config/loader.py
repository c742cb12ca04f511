"""
Configuration Loader (``wip_config.loader``).

Responsibility
--------------
Loads the engine configuration YAML file and parses it into a frozen
``EngineConfig``.  Keys absent from the file keep their defaults, so an
override file only needs the values it changes.

Architecture position
---------------------
**Config layer**.  Depends on ``wip_kernel.exceptions`` for its error
type; has no dependency on engines, selectors or services.

Invariants enforced
-------------------
* ``transaction_limit`` is a positive integer.
* ``cache.ttl_seconds`` is a positive integer.
* ``cache.key_prefix`` is a non-empty string.
* ``excluded_cost_categories`` is a list of strings (may be empty).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigurationError`` naming the offending field.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from wip_config.schema import (
    DEFAULT_CACHE_KEY_PREFIX,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_EXCLUDED_COST_CATEGORIES,
    DEFAULT_TRANSACTION_LIMIT,
    CacheConfig,
    EngineConfig,
)
from wip_kernel.exceptions import ConfigurationError
from wip_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("<root>", "top level must be a mapping")
    return data


def _positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; "true" is not a row cap.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(field_name, f"must be a positive integer, got {value!r}")
    return value


def parse_cache(data: dict[str, Any] | None) -> CacheConfig:
    """Parse a CacheConfig from the ``cache`` section."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("cache", "must be a mapping")

    prefix = data.get("key_prefix", DEFAULT_CACHE_KEY_PREFIX)
    if not isinstance(prefix, str) or not prefix.strip():
        raise ConfigurationError("cache.key_prefix", "must be a non-empty string")

    return CacheConfig(
        ttl_seconds=_positive_int(
            data.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS), "cache.ttl_seconds"
        ),
        key_prefix=prefix,
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse an ``EngineConfig`` from a dict.

    Raises:
        ConfigurationError: if any value is invalid.
    """
    categories = data.get("excluded_cost_categories", list(DEFAULT_EXCLUDED_COST_CATEGORIES))
    if categories is None:
        categories = []
    if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
        raise ConfigurationError("excluded_cost_categories", "must be a list of strings")

    return EngineConfig(
        transaction_limit=_positive_int(
            data.get("transaction_limit", DEFAULT_TRANSACTION_LIMIT), "transaction_limit"
        ),
        excluded_cost_categories=tuple(categories),
        cache=parse_cache(data.get("cache")),
    )


def load_engine_config(path: Path | str | None = None) -> EngineConfig:
    """
    Load and validate the engine configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged ``defaults.yaml``.

    Returns:
        A frozen EngineConfig.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(config_path))
    logger.info(
        "engine_config_loaded",
        extra={
            "path": str(config_path),
            "transaction_limit": config.transaction_limit,
            "cache_ttl_seconds": config.cache.ttl_seconds,
        },
    )
    return config

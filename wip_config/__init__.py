"""
wip_config -- engine configuration.

Responsibility:
    Provides the runtime configuration of the WIP engines: the scan row
    cap, the excluded-cost employee categories and the cache settings.
    ``get_engine_config()`` is the entrypoint for services;
    ``load_engine_config(path)`` loads an explicit file (tests, tooling).

Architecture position:
    Configuration -- sits above ``wip_kernel`` and below ``wip_services``.
    Engines never import from here; services pass the values they need.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ConfigurationError`` -- a value fails validation.
"""

from __future__ import annotations

from functools import lru_cache

from wip_config.loader import DEFAULT_CONFIG_PATH, load_engine_config
from wip_config.schema import CacheConfig, EngineConfig


@lru_cache(maxsize=1)
def get_engine_config() -> EngineConfig:
    """Return the packaged default configuration, loaded once per process."""
    return load_engine_config(DEFAULT_CONFIG_PATH)


__all__ = [
    "CacheConfig",
    "EngineConfig",
    "DEFAULT_CONFIG_PATH",
    "get_engine_config",
    "load_engine_config",
]

"""
Configuration schema (``wip_config.schema``).

Frozen dataclasses describing the engine configuration.  Instances are
produced by ``wip_config.loader``; callers never construct them from raw
files themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_TRANSACTION_LIMIT = 50_000
DEFAULT_EXCLUDED_COST_CATEGORIES = ("CARL",)
DEFAULT_CACHE_TTL_SECONDS = 600
DEFAULT_CACHE_KEY_PREFIX = "wip"


@dataclass(frozen=True)
class CacheConfig:
    """Result cache settings."""

    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    key_prefix: str = DEFAULT_CACHE_KEY_PREFIX


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine configuration.

    Attributes:
        transaction_limit: Row cap applied to every transaction scan.
        excluded_cost_categories: Employee categories whose cost is zeroed.
        cache: Result cache settings.
    """

    transaction_limit: int = DEFAULT_TRANSACTION_LIMIT
    excluded_cost_categories: tuple[str, ...] = DEFAULT_EXCLUDED_COST_CATEGORIES
    cache: CacheConfig = field(default_factory=CacheConfig)

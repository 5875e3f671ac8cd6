"""Cache backends for aggregated pull request data."""

from .base import CacheStore
from .redis_store import RedisCacheStore
from .sqlite_store import SqliteCacheStore

__all__ = ["CacheStore", "RedisCacheStore", "SqliteCacheStore"]

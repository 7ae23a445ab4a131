"""Cache store connection (Redis single node or cluster)."""

from arbfinder.cache.redis_client import CacheStore, RedisConnection, is_cluster_host

__all__ = [
    "CacheStore",
    "RedisConnection",
    "is_cluster_host",
]

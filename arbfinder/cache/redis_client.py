"""
Redis connection handle for the odds cache.

The client is created lazily on first use and reused afterwards. Whether to
talk to a single node or a cluster is decided once, from the configured host:
ElastiCache cluster configuration endpoints ("clustercfg") or an explicit
``cluster`` flag select cluster mode.
"""

from typing import Any, Optional, Protocol, Union

import structlog
from redis.asyncio import Redis
from redis.asyncio.cluster import RedisCluster
from redis.exceptions import RedisClusterException, RedisError

from config.settings import RedisSettings
from arbfinder.errors import CacheUnavailable

logger = structlog.get_logger()


class CacheStore(Protocol):
    """Minimal key -> string store with per-write expiry."""

    async def get(self, key: str) -> Optional[Union[str, bytes]]:
        ...

    async def set(self, key: str, value: Union[str, bytes], ex: Optional[int] = None) -> Any:
        ...


def is_cluster_host(host: str) -> bool:
    """ElastiCache cluster-mode configuration endpoints contain 'clustercfg'."""
    return "clustercfg" in (host or "").lower()


class RedisConnection:
    """
    Explicitly owned, lazily connected Redis client.

    Implements CacheStore; redis errors surface as CacheUnavailable.

    Usage:
        conn = RedisConnection(settings.redis)
        await conn.set("k", "v", ex=900)
        value = await conn.get("k")
        await conn.close()
    """

    def __init__(self, config: RedisSettings):
        self.config = config
        self.logger = logger.bind(component="redis")
        self._client: Optional[Union[Redis, RedisCluster]] = None

    @property
    def cluster_mode(self) -> bool:
        return self.config.cluster or is_cluster_host(self.config.host)

    @property
    def client(self) -> Union[Redis, RedisCluster]:
        """The underlying client, created on first access."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Union[Redis, RedisCluster]:
        if self.cluster_mode:
            self.logger.info(
                "Creating Redis cluster client",
                host=self.config.host,
                port=self.config.port,
            )
            return RedisCluster(
                host=self.config.host,
                port=self.config.port,
                ssl=self.config.ssl,
                **self._timeouts(),
            )

        if self.config.host:
            self.logger.info(
                "Creating Redis client",
                host=self.config.host,
                port=self.config.port,
            )
            return Redis(
                host=self.config.host,
                port=self.config.port,
                ssl=self.config.ssl,
                **self._timeouts(),
            )

        self.logger.info("Creating Redis client", url=self.config.url)
        return Redis.from_url(self.config.url, **self._timeouts())

    def _timeouts(self) -> dict:
        return {
            "socket_connect_timeout": self.config.socket_connect_timeout,
            "socket_timeout": self.config.socket_timeout,
        }

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self.client.get(key)
        except (RedisError, RedisClusterException, OSError) as e:
            raise CacheUnavailable(f"GET failed: {e}") from e

    async def set(self, key: str, value: Union[str, bytes], ex: Optional[int] = None) -> Any:
        try:
            return await self.client.set(key, value, ex=ex)
        except (RedisError, RedisClusterException, OSError) as e:
            raise CacheUnavailable(f"SET failed: {e}") from e

    async def close(self) -> None:
        """Close the connection; the next access reconnects."""
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            self.logger.warning("Error closing Redis client", error=str(e))
        finally:
            self._client = None

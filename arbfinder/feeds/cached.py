"""
Read-through cache in front of The Odds API.

The upstream quota is small, so identical requests within the TTL are
served from the cache store. The cache is an optimization only: if the
store is down, reads count as misses and writes are skipped, and the
upstream payload is still returned.

No single-flight: concurrent misses on the same key may both go upstream.
That is fine for idempotent reads and last-writer-wins cache writes.
"""

from typing import Any, Optional
from urllib.parse import urlencode

import orjson
import structlog

from arbfinder.cache.redis_client import CacheStore
from arbfinder.feeds.odds_api import OddsAPIClient

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 900  # 15 minutes


class CachedMarketFetcher:
    """
    Cache-backed access to upstream market data.

    Usage:
        fetcher = CachedMarketFetcher(client, RedisConnection(settings.redis))
        events = await fetcher.fetch("/sports/basketball_nba/odds", {"regions": "us"})
    """

    def __init__(
        self,
        client: OddsAPIClient,
        store: CacheStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = "odds:",
    ):
        self.client = client
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.logger = logger.bind(component="cached_fetcher")

        # Stats
        self._hits = 0
        self._misses = 0
        self._cache_errors = 0

    def build_cache_key(self, path: str, params: Optional[dict] = None) -> str:
        """
        Deterministic key: full upstream URL plus sorted query params.

        The API key is part of the params; keys never leave the process.
        """
        full_params = self.client.request_params(params)
        query = urlencode(sorted((str(k), str(v)) for k, v in full_params.items()))
        return f"{self.key_prefix}{self.client.url_for(path)}?{query}"

    async def fetch(self, path: str, params: Optional[dict] = None) -> Any:
        """
        Return the upstream JSON for path/params, from cache when possible.

        Raises:
            UpstreamFetchError: on a miss, when the upstream call fails
        """
        key = self.build_cache_key(path, params)

        cached = await self._read(key, path)
        if cached is not None:
            self._hits += 1
            self.logger.debug("Cache HIT", path=path)
            return cached

        self._misses += 1
        self.logger.debug("Cache MISS", path=path)

        data = await self.client.get_json(path, params)

        await self._write(key, path, data)
        return data

    async def _read(self, key: str, path: str) -> Any:
        try:
            raw = await self.store.get(key)
        except Exception as e:
            self._cache_errors += 1
            self.logger.warning("Cache get failed", path=path, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._cache_errors += 1
            self.logger.warning("Discarding corrupt cache entry", path=path, error=str(e))
            return None

    async def _write(self, key: str, path: str, data: Any) -> None:
        try:
            await self.store.set(key, orjson.dumps(data), ex=self.ttl_seconds)
        except Exception as e:
            self._cache_errors += 1
            self.logger.warning("Cache set failed", path=path, error=str(e))

    def get_metrics(self) -> dict:
        """Get cache hit/miss metrics."""
        lookups = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
            "cache_errors": self._cache_errors,
        }

"""Forecast lookup — cache-aside read path with stale-data fallback.

Order of resolution for one coordinate:
  1. Walk the cache layers in priority order. A hit on a trusted layer (the
     fast cache) is returned as-is; a hit on an untrusted layer (the durable
     cache) is returned only if fresh, otherwise kept as a fallback.
  2. On a full miss, fetch from upstream and write the result to every layer
     (best-effort, failures are logged and dropped).
  3. If upstream fails, serve the stale fallback if there is one.
  4. Otherwise raise UpstreamUnavailable.

A fresh durable hit is NOT copied into the fast cache; only upstream fetches
populate it.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from weatherapi.errors import UpstreamError, UpstreamUnavailable
from weatherapi.schemas import CachedForecast, Coordinate, ForecastResult
from weatherapi.services.cache import CacheLayer

logger = logging.getLogger(__name__)

FRESHNESS_SECONDS = 3600
UPSTREAM_TIMEOUT_SECONDS = 10.0


class ForecastProvider(Protocol):
    async def fetch_forecast(self, coordinate: Coordinate) -> CachedForecast: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForecastLookup:
    """Resolves a coordinate to a classified forecast through the cache layers."""

    def __init__(
        self,
        layers: list[CacheLayer],
        provider: ForecastProvider,
        freshness_seconds: float = FRESHNESS_SECONDS,
        upstream_timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.layers = list(layers)
        self.provider = provider
        self.freshness_seconds = freshness_seconds
        self.upstream_timeout = upstream_timeout
        self.clock = clock

    async def lookup(self, coordinate: Coordinate) -> ForecastResult:
        key = coordinate.normalized()
        stale: CachedForecast | None = None

        for layer in self.layers:
            cached = await self._read(layer, key)
            if cached is None:
                continue
            if layer.trusted or cached.is_fresh(self.freshness_seconds, self.clock()):
                logger.info("Lookup HIT | layer=%s | key=%s", layer.name, key.cache_key)
                return ForecastResult.from_cached(cached)
            if stale is None:
                stale = cached

        try:
            fresh = await asyncio.wait_for(
                self.provider.fetch_forecast(key), timeout=self.upstream_timeout,
            )
        except Exception as e:
            return self._fallback(key, stale, e)

        await self._write_back(key, fresh)
        logger.info("Lookup FETCH | key=%s", key.cache_key)
        return ForecastResult.from_cached(fresh)

    def _fallback(self, key: Coordinate, stale: CachedForecast | None, error: Exception) -> ForecastResult:
        """Serve stale data after an upstream failure, or raise UpstreamUnavailable."""
        if isinstance(error, asyncio.TimeoutError):
            detail = f"upstream timed out after {self.upstream_timeout}s"
        elif isinstance(error, UpstreamError):
            detail = str(error) or "upstream failed"
        else:
            detail = f"unexpected upstream error: {type(error).__name__}: {error}"

        if stale is not None:
            logger.warning(
                "Upstream failed, serving stale data | key=%s | age=%ds | %s",
                key.cache_key, int(stale.age(self.clock())), detail[:200],
            )
            return ForecastResult.from_cached(stale)
        logger.error("Upstream failed, no cached data | key=%s | %s", key.cache_key, detail[:200])
        raise UpstreamUnavailable(detail) from error

    async def _read(self, layer: CacheLayer, key: Coordinate) -> CachedForecast | None:
        try:
            return await layer.get(key)
        except Exception as e:
            logger.debug("Cache read failed | layer=%s | %s", layer.name, str(e)[:100])
            return None

    async def _write_back(self, key: Coordinate, forecast: CachedForecast):
        for layer in self.layers:
            try:
                await layer.put(key, forecast, layer.ttl)
            except Exception as e:
                logger.warning("Cache write failed | layer=%s | key=%s | %s", layer.name, key.cache_key, str(e)[:100])

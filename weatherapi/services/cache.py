"""Cache layers for the forecast lookup.

Every layer exposes the same two coroutines, ``get(coordinate)`` and
``put(coordinate, forecast, ttl)``, and is keyed by the coordinate rounded to
6 decimals. Layers:

  - RedisCache: fast tier, physical expiry via SETEX (1h default)
  - MemoryCache: in-process fast tier (cachetools.TTLCache), no Redis needed
  - DurableCache: SQL table, append-only, never expires

Graceful degradation: a layer whose backend is unavailable at startup still
constructs and simply misses on every read.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timezone

from cachetools import TTLCache
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from weatherapi.models import ForecastRecord
from weatherapi.schemas import CachedForecast, Coordinate

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600  # 1h


class CacheLayer(ABC):
    """One tier of the forecast cache.

    ``trusted`` layers are believed fresh on a hit; untrusted hits are checked
    against the freshness window by the caller.
    """

    name: str = "cache"
    trusted: bool = False
    ttl: int | None = None

    @abstractmethod
    async def get(self, coordinate: Coordinate) -> CachedForecast | None:
        """Read the entry for ``coordinate``. Returns None on miss."""

    @abstractmethod
    async def put(self, coordinate: Coordinate, forecast: CachedForecast, ttl: int | None = None):
        """Store ``forecast`` under ``coordinate``. May raise on backend failure."""


def _decode(payload: str | bytes | None, layer: str, key: str) -> CachedForecast | None:
    if not payload:
        return None
    try:
        return CachedForecast.model_validate_json(payload)
    except ValidationError as e:
        logger.debug("%s decode error | key=%s | %s", layer, key, str(e)[:100])
        return None


class RedisCache(CacheLayer):
    """Fast tier backed by Redis."""

    name = "redis"
    trusted = True

    def __init__(self, redis_url: str, ttl: int = DEFAULT_TTL, client=None):
        self.redis_url = redis_url
        self.ttl = ttl
        self._redis = client
        self._available = client is not None

    @property
    def available(self) -> bool:
        return self._available

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
            )
            await self._redis.ping()
            self._available = True
            return True
        except Exception as e:
            logger.warning("Redis connection failed — fast cache disabled: %s", str(e)[:100])
            self._redis = None
            self._available = False
            return False

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._available = False

    async def get(self, coordinate: Coordinate) -> CachedForecast | None:
        if not (self._available and self._redis):
            return None
        key = coordinate.cache_key
        try:
            data = await self._redis.get(key)
        except Exception as e:
            logger.debug("Redis GET error: %s", str(e)[:100])
            return None
        return _decode(data, self.name, key)

    async def put(self, coordinate: Coordinate, forecast: CachedForecast, ttl: int | None = None):
        if not (self._available and self._redis):
            return
        key = coordinate.cache_key
        ttl = ttl or self.ttl
        await self._redis.setex(key, ttl, forecast.model_dump_json())
        logger.info("Cache SET (Redis) | key=%s | ttl=%ds", key, ttl)


class MemoryCache(CacheLayer):
    """In-process fast tier. Expiry is fixed at construction; ``put`` ignores ``ttl``."""

    name = "memory"
    trusted = True

    def __init__(self, ttl: int = DEFAULT_TTL, maxsize: int = 1024):
        self.ttl = ttl
        self._store: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    async def get(self, coordinate: Coordinate) -> CachedForecast | None:
        key = coordinate.cache_key
        return _decode(self._store.get(key), self.name, key)

    async def put(self, coordinate: Coordinate, forecast: CachedForecast, ttl: int | None = None):
        self._store[coordinate.cache_key] = forecast.model_dump_json()


class DurableCache(CacheLayer):
    """Durable tier backed by the ``weather_cache`` table.

    Writes always INSERT, so one coordinate accumulates rows over time and
    reads pick the newest. ``ttl`` is ignored; freshness is the caller's job.
    """

    name = "durable"
    trusted = False

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None):
        self._session_factory = session_factory

    @property
    def available(self) -> bool:
        return self._session_factory is not None

    async def get(self, coordinate: Coordinate) -> CachedForecast | None:
        if self._session_factory is None:
            return None

        coord = coordinate.normalized()
        stmt = (
            select(ForecastRecord)
            .where(
                ForecastRecord.latitude == coord.latitude,
                ForecastRecord.longitude == coord.longitude,
            )
            .order_by(ForecastRecord.timestamp.desc(), ForecastRecord.id.desc())
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except Exception as e:
            logger.debug("Durable GET error: %s", str(e)[:100])
            return None

        if row is None:
            return None

        timestamp = row.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return CachedForecast(
            coordinate=coord,
            forecast=row.forecast,
            temp_c=row.temp_c,
            temp_f=row.temp_f,
            timestamp=timestamp,
        )

    async def put(self, coordinate: Coordinate, forecast: CachedForecast, ttl: int | None = None):
        if self._session_factory is None:
            return

        coord = coordinate.normalized()
        timestamp = forecast.timestamp
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc)

        async with self._session_factory() as session:
            session.add(ForecastRecord(
                latitude=coord.latitude,
                longitude=coord.longitude,
                forecast=forecast.forecast,
                temp_c=forecast.temp_c,
                temp_f=forecast.temp_f,
                timestamp=timestamp,
            ))
            await session.commit()
        logger.info("Cache INSERT (durable) | key=%s", coord.cache_key)

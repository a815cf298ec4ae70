"""Tests for the cache layers: memory, Redis (faked) and durable (in-memory SQLite)."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from weatherapi.models import ForecastRecord
from weatherapi.schemas import Coordinate
from weatherapi.services.cache import DurableCache, MemoryCache, RedisCache

from tests.stubs import BrokenRedis, FakeRedis


class TestCacheKey:
    def test_key_format(self, coordinate):
        assert coordinate.cache_key == "weather:40.712800:-74.006000"

    def test_near_identical_coordinates_collide(self):
        a = Coordinate(latitude=40.71280001, longitude=-74.00600004)
        b = Coordinate(latitude=40.7128, longitude=-74.006)
        assert a.cache_key == b.cache_key
        assert a.normalized() == b.normalized()

    def test_seventh_decimal_difference_collides(self):
        a = Coordinate(latitude=1.0000001, longitude=2.0)
        b = Coordinate(latitude=1.0000002, longitude=2.0)
        assert a.cache_key == b.cache_key

    def test_sixth_decimal_difference_does_not_collide(self):
        a = Coordinate(latitude=1.000001, longitude=2.0)
        b = Coordinate(latitude=1.000002, longitude=2.0)
        assert a.cache_key != b.cache_key

    def test_negative_zero_folds(self):
        assert Coordinate(latitude=-0.0, longitude=-0.00000001).cache_key == "weather:0.000000:0.000000"

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            Coordinate(latitude=91, longitude=0)
        with pytest.raises(ValueError):
            Coordinate(latitude=0, longitude=-180.5)


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_set_and_get(self, coordinate, make_forecast):
        cache = MemoryCache()
        stored = make_forecast()
        await cache.put(coordinate, stored)
        result = await cache.get(coordinate)
        assert result == stored
        assert result is not stored

    @pytest.mark.asyncio
    async def test_get_miss(self, coordinate):
        assert await MemoryCache().get(coordinate) is None

    @pytest.mark.asyncio
    async def test_overwrite(self, coordinate, make_forecast):
        cache = MemoryCache()
        await cache.put(coordinate, make_forecast(forecast="Rain"))
        await cache.put(coordinate, make_forecast(forecast="Snow"))
        assert (await cache.get(coordinate)).forecast == "Snow"

    @pytest.mark.asyncio
    async def test_trusted(self):
        assert MemoryCache.trusted is True


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_round_trip(self, coordinate, make_forecast):
        fake = FakeRedis()
        cache = RedisCache("redis://unused", client=fake)
        stored = make_forecast(forecast="Chance Showers", temp_c=12.25, temp_f=54.05)

        await cache.put(coordinate, stored)
        result = await cache.get(coordinate)

        assert result.forecast == "Chance Showers"
        assert result.temp_c == 12.25
        assert result.temp_f == 54.05
        assert result.timestamp == stored.timestamp
        assert coordinate.cache_key in fake.store

    @pytest.mark.asyncio
    async def test_put_uses_ttl(self, coordinate, make_forecast):
        fake = FakeRedis()
        cache = RedisCache("redis://unused", ttl=3600, client=fake)
        await cache.put(coordinate, make_forecast())
        assert fake.ttls[coordinate.cache_key] == 3600

        await cache.put(coordinate, make_forecast(), ttl=60)
        assert fake.ttls[coordinate.cache_key] == 60

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_miss(self, coordinate):
        fake = FakeRedis()
        fake.store[coordinate.cache_key] = "{not json"
        cache = RedisCache("redis://unused", client=fake)
        assert await cache.get(coordinate) is None

    @pytest.mark.asyncio
    async def test_connection_error_is_miss(self, coordinate):
        cache = RedisCache("redis://unused", client=BrokenRedis())
        assert await cache.get(coordinate) is None

    @pytest.mark.asyncio
    async def test_write_error_propagates(self, coordinate, make_forecast):
        cache = RedisCache("redis://unused", client=BrokenRedis())
        with pytest.raises(ConnectionError):
            await cache.put(coordinate, make_forecast())

    @pytest.mark.asyncio
    async def test_unconnected_always_misses(self, coordinate, make_forecast):
        cache = RedisCache("redis://unused")
        assert cache.available is False
        await cache.put(coordinate, make_forecast())
        assert await cache.get(coordinate) is None

    @pytest.mark.asyncio
    async def test_connect_failure_degrades(self, coordinate):
        cache = RedisCache("redis://127.0.0.1:1/0")
        assert await cache.connect() is False
        assert cache.available is False
        assert await cache.get(coordinate) is None

    @pytest.mark.asyncio
    async def test_disconnect(self):
        cache = RedisCache("redis://unused", client=FakeRedis())
        await cache.disconnect()
        assert cache.available is False


class TestDurableCache:
    @pytest.mark.asyncio
    async def test_round_trip(self, session_factory, coordinate, make_forecast):
        cache = DurableCache(session_factory)
        stored = make_forecast(forecast="Sunny", temp_c=30.0, temp_f=86.0)

        await cache.put(coordinate, stored)
        result = await cache.get(coordinate)

        assert result.forecast == "Sunny"
        assert result.temp_c == 30.0
        assert result.temp_f == 86.0
        assert result.timestamp.tzinfo is not None
        assert abs((result.timestamp - stored.timestamp).total_seconds()) < 1

    @pytest.mark.asyncio
    async def test_miss(self, session_factory, coordinate):
        assert await DurableCache(session_factory).get(coordinate) is None

    @pytest.mark.asyncio
    async def test_most_recent_row_wins(self, session_factory, coordinate, make_forecast):
        cache = DurableCache(session_factory)
        await cache.put(coordinate, make_forecast(forecast="Old", age_minutes=120))
        await cache.put(coordinate, make_forecast(forecast="New", age_minutes=1))
        await cache.put(coordinate, make_forecast(forecast="Middle", age_minutes=60))

        result = await cache.get(coordinate)
        assert result.forecast == "New"

    @pytest.mark.asyncio
    async def test_insert_only(self, session_factory, coordinate, make_forecast):
        cache = DurableCache(session_factory)
        for _ in range(3):
            await cache.put(coordinate, make_forecast())

        async with session_factory() as session:
            count = (await session.execute(select(func.count(ForecastRecord.id)))).scalar_one()
        assert count == 3

    @pytest.mark.asyncio
    async def test_exact_key_match(self, session_factory, make_forecast):
        cache = DurableCache(session_factory)
        here = Coordinate(latitude=40.7128, longitude=-74.006)
        nearby = Coordinate(latitude=40.712801, longitude=-74.006)

        await cache.put(here, make_forecast(coordinate=here))
        assert await cache.get(nearby) is None
        assert await cache.get(Coordinate(latitude=40.71280004, longitude=-74.006)) is not None

    @pytest.mark.asyncio
    async def test_keeps_stale_rows(self, session_factory, coordinate, make_forecast):
        cache = DurableCache(session_factory)
        await cache.put(coordinate, make_forecast(age_minutes=60 * 24 * 30))
        result = await cache.get(coordinate)
        assert result is not None
        assert not result.is_fresh(3600)

    @pytest.mark.asyncio
    async def test_unavailable_always_misses(self, coordinate, make_forecast):
        cache = DurableCache(None)
        assert cache.available is False
        await cache.put(coordinate, make_forecast())
        assert await cache.get(coordinate) is None

    @pytest.mark.asyncio
    async def test_ignores_ttl(self, session_factory, coordinate, make_forecast):
        cache = DurableCache(session_factory)
        await cache.put(coordinate, make_forecast(), ttl=1)
        assert await cache.get(coordinate) is not None


class TestFreshness:
    def test_fresh_within_hour(self, make_forecast):
        assert make_forecast(age_minutes=59).is_fresh(3600)

    def test_stale_after_hour(self, make_forecast):
        assert not make_forecast(age_minutes=61).is_fresh(3600)

    def test_naive_timestamp_read_as_utc(self, make_forecast):
        now = datetime.now(timezone.utc)
        naive = make_forecast().model_copy(
            update={"timestamp": (now - timedelta(minutes=30)).replace(tzinfo=None)},
        )
        assert 1790 < naive.age(now) < 1810

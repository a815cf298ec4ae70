"""Shared test fixtures and configuration."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

from weatherapi.database import create_engine, create_session_factory, init_db
from weatherapi.errors import UpstreamError
from weatherapi.schemas import CachedForecast, Coordinate

NYC = Coordinate(latitude=40.7128, longitude=-74.0060)


# ═══════════════ FIXTURES ═══════════════


@pytest.fixture
def coordinate():
    return NYC


@pytest.fixture
def make_forecast():
    """Factory for CachedForecast values, ``age_minutes`` old."""

    def _make(
        forecast: str = "Partly Cloudy",
        temp_c: float = 22.5,
        temp_f: float = 72.5,
        age_minutes: float = 0,
        coordinate: Coordinate = NYC,
    ) -> CachedForecast:
        return CachedForecast(
            coordinate=coordinate.normalized(),
            forecast=forecast,
            temp_c=temp_c,
            temp_f=temp_f,
            timestamp=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
        )

    return _make


@pytest.fixture
def upstream_error():
    return UpstreamError("NWS points API returned status: 503")


@pytest.fixture
async def session_factory():
    """In-memory SQLite database with the schema created."""
    engine = create_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    assert await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def sample_points_response():
    """Sample NWS /points response (trimmed)."""
    return {
        "properties": {
            "gridId": "OKX",
            "gridX": 33,
            "gridY": 35,
            "forecast": "https://api.weather.gov/gridpoints/OKX/33,35/forecast",
            "forecastHourly": "https://api.weather.gov/gridpoints/OKX/33,35/forecast/hourly",
        },
    }


@pytest.fixture
def sample_forecast_response():
    """Sample NWS gridpoint forecast response (trimmed)."""
    return {
        "properties": {
            "updated": "2024-01-15T10:00:00+00:00",
            "periods": [
                {
                    "number": 1,
                    "name": "Today",
                    "isDaytime": True,
                    "temperature": 86,
                    "temperatureUnit": "F",
                    "shortForecast": "Sunny",
                },
                {
                    "number": 2,
                    "name": "Tonight",
                    "isDaytime": False,
                    "temperature": 68,
                    "temperatureUnit": "F",
                    "shortForecast": "Mostly Clear",
                },
            ],
        },
    }


@pytest.fixture
async def file_session_factory(tmp_path):
    """File-backed SQLite database with one connection per session, for concurrent tests."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'weather_cache.db'}")
    assert await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()

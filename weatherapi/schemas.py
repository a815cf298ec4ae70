"""Pydantic models for coordinates, cached forecasts and API responses.

Split into: cache-side types (stored by the cache layers) and response types
(what the HTTP layer returns).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from weatherapi.services.classifier import classify

TemperatureBand = Literal["hot", "cold", "moderate"]

KEY_PRECISION = 6


def _normalize_axis(value: float) -> float:
    # "%.6f" text form, with -0.0 folded into 0.0
    return float(f"{value:.{KEY_PRECISION}f}") + 0.0


# ═══════════════ CACHE-SIDE TYPES ═══════════════

class Coordinate(BaseModel):
    """A latitude/longitude pair, the only key shape the caches know."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def normalized(self) -> Coordinate:
        """Round both axes to the cache-key precision."""
        return Coordinate(
            latitude=_normalize_axis(self.latitude),
            longitude=_normalize_axis(self.longitude),
        )

    @property
    def cache_key(self) -> str:
        """Deterministic key; coordinates equal at 6 decimals share one entry."""
        c = self.normalized()
        return f"weather:{c.latitude:.{KEY_PRECISION}f}:{c.longitude:.{KEY_PRECISION}f}"


class CachedForecast(BaseModel):
    """A forecast as captured from upstream and stored by each cache layer."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    forecast: str
    temp_c: float
    temp_f: float
    timestamp: datetime

    def age(self, now: datetime | None = None) -> float:
        """Seconds since capture. Naive timestamps are read as UTC."""
        now = now or datetime.now(timezone.utc)
        captured = self.timestamp
        if captured.tzinfo is None:
            captured = captured.replace(tzinfo=timezone.utc)
        return (now - captured).total_seconds()

    def is_fresh(self, max_age_seconds: float, now: datetime | None = None) -> bool:
        return self.age(now) < max_age_seconds


# ═══════════════ API RESPONSES ═══════════════

class ForecastResult(BaseModel):
    """Response body of GET /weather."""

    forecast: str = Field(examples=["Partly Cloudy"])
    temperature: TemperatureBand = Field(examples=["moderate"])
    temperature_c: float = Field(examples=[22.5])
    temperature_f: float = Field(examples=[72.5])

    @classmethod
    def from_cached(cls, cached: CachedForecast) -> ForecastResult:
        return cls(
            forecast=cached.forecast,
            temperature=classify(cached.temp_c),
            temperature_c=cached.temp_c,
            temperature_f=cached.temp_f,
        )


class ErrorResponse(BaseModel):
    error: str = Field(examples=["Invalid latitude parameter"])
    details: str | None = Field(default=None, examples=["Latitude must be between -90 and 90"])


class HealthResponse(BaseModel):
    status: str = Field(examples=["healthy"])
    timestamp: str = Field(examples=["2024-01-15T10:30:00Z"])

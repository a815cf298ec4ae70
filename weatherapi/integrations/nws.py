"""National Weather Service API integration.

Docs: https://www.weather.gov/documentation/services-web-api

Two chained requests per forecast:
  1. /points/{lat},{lon}  → properties.forecast (URL of the gridpoint forecast)
  2. <forecast URL>       → properties.periods (first period = current forecast)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from weatherapi.errors import UpstreamError
from weatherapi.schemas import CachedForecast, Coordinate

logger = logging.getLogger(__name__)

BASE_URL = "https://api.weather.gov"
DEFAULT_USER_AGENT = "weather-api (support@weather-api.example.com)"


def _properties(data: dict[str, Any], step: str) -> dict[str, Any]:
    props = data.get("properties") or {}
    if not isinstance(props, dict):
        raise UpstreamError(f"unexpected {step} properties shape")
    return props


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32) * 5 / 9


def celsius_to_fahrenheit(temp_c: float) -> float:
    return temp_c * 9 / 5 + 32


class NWSClient:
    """Async client for the NWS forecast API."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/geo+json",
        }

    async def fetch_forecast(self, coordinate: Coordinate) -> CachedForecast:
        """Fetch the current forecast period for ``coordinate``.

        Raises UpstreamError on network failure, timeout, non-200 status or a
        payload without a forecast URL / periods.
        """
        points_url = f"{self.base_url}/points/{coordinate.latitude:.4f},{coordinate.longitude:.4f}"

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
                points = await self._get_json(client, points_url, "points")
                forecast_url = _properties(points, "points").get("forecast")
                if not isinstance(forecast_url, str) or not forecast_url:
                    raise UpstreamError("no forecast URL found in points response")

                forecast = await self._get_json(client, forecast_url, "forecast")
        except httpx.TimeoutException as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("NWS timeout | %dms | key=%s", elapsed_ms, coordinate.cache_key)
            raise UpstreamError(f"NWS request timed out: {e}") from e
        except httpx.HTTPError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("NWS error | %dms | %s", elapsed_ms, str(e)[:200])
            raise UpstreamError(f"NWS request failed: {e}") from e

        periods = _properties(forecast, "forecast").get("periods") or []
        if not isinstance(periods, list):
            raise UpstreamError("forecast periods is not a list")
        if not periods:
            raise UpstreamError("no forecast periods found")
        if not isinstance(periods[0], dict):
            raise UpstreamError("unexpected forecast period shape")

        result = self._parse_period(coordinate, periods[0])
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "NWS OK | %dms | key=%s | forecast=%s",
            elapsed_ms, coordinate.cache_key, result.forecast[:40],
        )
        return result

    async def _get_json(self, client: httpx.AsyncClient, url: str, step: str) -> dict[str, Any]:
        resp = await client.get(url)
        if resp.status_code != 200:
            logger.warning("NWS %s | status=%d | url=%s", step, resp.status_code, url)
            raise UpstreamError(f"NWS {step} API returned status: {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"failed to decode {step} response: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamError(f"unexpected {step} response shape")
        return data

    def _parse_period(self, coordinate: Coordinate, period: dict) -> CachedForecast:
        short_forecast = period.get("shortForecast") or ""
        if not isinstance(short_forecast, str):
            raise UpstreamError("forecast period has a non-text shortForecast")

        try:
            temperature = float(period["temperature"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError("forecast period has no usable temperature") from e

        unit = str(period.get("temperatureUnit") or "F").upper()
        if unit == "C":
            temp_c = temperature
            temp_f = celsius_to_fahrenheit(temperature)
        else:
            temp_c = fahrenheit_to_celsius(temperature)
            temp_f = temperature

        try:
            return CachedForecast(
                coordinate=coordinate,
                forecast=short_forecast,
                temp_c=temp_c,
                temp_f=temp_f,
                timestamp=datetime.now(timezone.utc),
            )
        except ValidationError as e:
            raise UpstreamError(f"invalid forecast period: {e.error_count()} error(s)") from e

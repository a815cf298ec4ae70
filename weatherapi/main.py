"""Weather API — FastAPI application entry point.

Provides GET /weather (forecast + temperature band for a coordinate) and
GET /health. Interactive docs at /docs.
"""

import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from weatherapi import __version__
from weatherapi.config import settings
from weatherapi.database import close_db, create_engine, create_session_factory, init_db
from weatherapi.errors import InvalidRequest, UpstreamUnavailable
from weatherapi.integrations.nws import NWSClient
from weatherapi.schemas import Coordinate, ErrorResponse, ForecastResult, HealthResponse
from weatherapi.services.cache import CacheLayer, DurableCache, MemoryCache, RedisCache
from weatherapi.services.lookup import ForecastLookup

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("weatherapi")


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Weather API starting | fast_cache=%s", settings.fast_cache_backend)

    # Durable cache (graceful degradation if the database is unavailable)
    engine = create_engine(settings.database_url)
    db_ok = await init_db(engine)
    durable = DurableCache(create_session_factory(engine) if db_ok else None)
    logger.info("Database: %s", "connected" if db_ok else "unavailable (durable cache disabled)")

    # Fast cache (graceful degradation if Redis is unavailable)
    redis_cache = None
    if settings.use_redis:
        redis_cache = RedisCache(settings.redis_url, ttl=settings.cache_ttl_seconds)
        redis_ok = await redis_cache.connect()
        logger.info("Redis: %s", "connected" if redis_ok else "unavailable (fast cache disabled)")
        fast: CacheLayer = redis_cache
    else:
        fast = MemoryCache(ttl=settings.cache_ttl_seconds)

    app.state.lookup = ForecastLookup(
        layers=[fast, durable],
        provider=NWSClient(
            base_url=settings.nws_base_url,
            user_agent=settings.nws_user_agent,
            timeout=settings.upstream_timeout_seconds,
        ),
        freshness_seconds=settings.freshness_seconds,
        upstream_timeout=settings.upstream_timeout_seconds,
    )

    yield

    if redis_cache is not None:
        await redis_cache.disconnect()
    await close_db(engine)
    logger.info("Weather API shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="Weather API",
    description=(
        "A weather service that provides forecasted weather based on latitude and "
        "longitude coordinates using the National Weather Service API."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def get_lookup(request: Request) -> ForecastLookup:
    """FastAPI dependency: the lookup service built in the lifespan."""
    return request.app.state.lookup


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=exc.error, details=exc.details).model_dump(),
    )


@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
    logger.error("Weather lookup failed | path=%s | %s", request.url.path, exc.detail[:300])
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Failed to get weather data", details=exc.detail).model_dump(),
    )


def _parse_axis(raw: str | None, name: str, example: str) -> float:
    if raw is None or raw == "":
        raise InvalidRequest(
            f"Missing {name} parameter",
            f"{name.capitalize()} is required (e.g., {name[:3]}={example})",
        )
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        raise InvalidRequest(
            f"Invalid {name} parameter",
            f"{name.capitalize()} must be a valid float number",
        )
    return value


# ═══════════════ ENDPOINTS ═══════════════

@app.get(
    "/weather",
    response_model=ForecastResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["weather"],
    summary="Get weather forecast",
)
async def get_weather(
    lat: str | None = Query(None, description="Latitude coordinate (-90 to 90)", examples=["40.7128"]),
    lon: str | None = Query(None, description="Longitude coordinate (-180 to 180)", examples=["-74.0060"]),
    lookup: ForecastLookup = Depends(get_lookup),
):
    """Returns the short forecast and temperature characterization for the coordinate."""
    latitude = _parse_axis(lat, "latitude", "40.7128")
    longitude = _parse_axis(lon, "longitude", "-74.0060")

    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise InvalidRequest(
            "Invalid coordinates",
            "Latitude must be between -90 and 90, Longitude between -180 and 180",
        )

    return await lookup.lookup(Coordinate(latitude=latitude, longitude=longitude))


@app.get("/health", response_model=HealthResponse, tags=["health"], summary="Health check")
async def health():
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )


def run():
    """Console entry point, serves the app with uvicorn."""
    import uvicorn

    uvicorn.run("weatherapi.main:app", host=settings.host, port=settings.port)

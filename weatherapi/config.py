"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Fast cache
    redis_url: str = "redis://localhost:6379"
    fast_cache_backend: str = "redis"           # redis | memory

    # Durable cache
    database_url: str = "sqlite+aiosqlite:///./weather_cache.db"

    # Upstream (National Weather Service)
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "weather-api (support@weather-api.example.com)"
    upstream_timeout_seconds: float = 10.0

    # Cache timing (seconds)
    cache_ttl_seconds: int = 3600               # fast-cache physical expiry
    freshness_seconds: int = 3600               # read-time freshness window

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origins: str = "*"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def use_redis(self) -> bool:
        return self.fast_cache_backend.lower() != "memory"

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",")]


settings = Settings()

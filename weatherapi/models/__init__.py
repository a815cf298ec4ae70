"""SQLAlchemy ORM models."""

from weatherapi.models.base import Base
from weatherapi.models.forecast_record import ForecastRecord

__all__ = ["Base", "ForecastRecord"]

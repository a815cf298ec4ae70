"""ForecastRecord model — durable, append-only forecast cache."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from weatherapi.models.base import Base


class ForecastRecord(Base):
    """One captured forecast. Rows are only ever inserted, never updated."""

    __tablename__ = "weather_cache"
    __table_args__ = (
        Index("ix_weather_cache_location_time", "latitude", "longitude", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    forecast: Mapped[str] = mapped_column(Text, nullable=False, default="")
    temp_c: Mapped[float] = mapped_column(Float, nullable=False)
    temp_f: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

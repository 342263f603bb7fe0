"""SQLAlchemy database models for the record store.

The record store is owned by the wider application; these models describe
the subset of its schema this engine reads and appends to.

Design approach:
- String primary keys so deterministic ids (uuid5) can be upserted
- Generic JSON column for sustainability features (portable across SQLite/PostgreSQL)
- Timezone-aware timestamps; SQLite drops the offset so the repository
  re-attaches UTC on read
- Composite indexes for the "latest per destination" queries
- One capacity override row per destination, keyed by destination id
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ecocapacity.models.enums import AlertLevel, AlertType, SensitivityLevel, Severity


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base class for all database models."""


class DestinationRecord(Base):
    """Destination row.

    Attributes:
        id: Destination identifier
        name: Display name
        location: Region or locality
        max_capacity: Physical visitor ceiling
        current_occupancy: Visitors currently on site
        ecological_sensitivity: Sensitivity tier
        is_active: Whether the destination accepts visitors
        latitude / longitude: Coordinates used for weather lookups
        sustainability_features: JSON document of SustainabilityFeatures
    """

    __tablename__ = "destinations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_occupancy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ecological_sensitivity: Mapped[SensitivityLevel] = mapped_column(
        Enum(SensitivityLevel, name="sensitivity_level", values_callable=_enum_values),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    sustainability_features: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<DestinationRecord(id={self.id!r}, name={self.name!r})>"


class WeatherObservationRecord(Base):
    """Classified weather observation row (append/upsert only)."""

    __tablename__ = "weather_observations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    destination_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False
    )
    temperature: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False)
    precipitation_intensity: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    alert_level: Mapped[AlertLevel] = mapped_column(
        Enum(AlertLevel, name="alert_level", values_callable=_enum_values),
        nullable=False,
        default=AlertLevel.NONE,
    )
    alert_message: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    alert_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)

    __table_args__ = (
        Index("ix_weather_observations_destination_recorded", "destination_id", "recorded_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<WeatherObservationRecord(destination_id={self.destination_id!r}, "
            f"alert_level={self.alert_level})>"
        )


class AlertRecord(Base):
    """Persisted alert row.

    Weather alerts carry the id of the observation that raised them, so a newer
    observation can retire them.
    """

    __tablename__ = "alerts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[AlertType] = mapped_column(
        Enum(AlertType, name="alert_type", values_callable=_enum_values), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(String(1024), nullable=False)
    severity: Mapped[Severity] = mapped_column(
        Enum(Severity, name="alert_severity", values_callable=_enum_values), nullable=False
    )
    destination_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("destinations.id", ondelete="SET NULL"), nullable=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    observation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_alerts_active_timestamp", "is_active", "timestamp"),
        Index("ix_alerts_destination_observation", "destination_id", "observation_id"),
    )

    def __repr__(self) -> str:
        return f"<AlertRecord(id={self.id!r}, type={self.type}, severity={self.severity})>"


class OccupancySampleRecord(Base):
    """Occupancy history row, written whenever occupancy changes."""

    __tablename__ = "occupancy_samples"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    destination_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False
    )
    occupancy: Mapped[int] = mapped_column(Integer, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_occupancy_samples_destination_recorded", "destination_id", "recorded_at"),
    )


class CapacityOverrideRecord(Base):
    """Operator capacity override, at most one per destination."""

    __tablename__ = "capacity_overrides"

    destination_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("destinations.id", ondelete="CASCADE"), primary_key=True
    )
    multiplier: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(String(512), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CapacityOverrideRecord(destination_id={self.destination_id!r}, "
            f"multiplier={self.multiplier})>"
        )

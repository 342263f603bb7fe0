"""Repository over the relational record store.

This module provides the collaborator interface the engine consumes:
destination reads, latest weather observations, active alerts, occupancy
history, and append/upsert writes, using SQLAlchemy 2.x query builder patterns.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ecocapacity.exceptions import (
    AlertNotFoundError,
    DestinationNotFoundError,
    InvalidDestinationError,
)
from ecocapacity.models.db import (
    AlertRecord,
    CapacityOverrideRecord,
    DestinationRecord,
    OccupancySampleRecord,
    WeatherObservationRecord,
)
from ecocapacity.models.domain import (
    Alert,
    CapacityOverride,
    Destination,
    OccupancySample,
    WeatherObservation,
)
from ecocapacity.models.enums import AlertType
from ecocapacity.validation.destination import DestinationValidator, parse_destinations

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    """Re-attach UTC to timestamps the backend returned without an offset."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _utc(value: datetime) -> datetime:
    """Normalise to UTC before writing; naive values are taken as UTC."""
    return _aware(value).astimezone(UTC)


def _destination_record_to_dict(row: DestinationRecord) -> dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "location": row.location,
        "max_capacity": row.max_capacity,
        "current_occupancy": row.current_occupancy,
        "ecological_sensitivity": row.ecological_sensitivity,
        "is_active": row.is_active,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "sustainability_features": row.sustainability_features,
    }


def _observation_from_row(row: WeatherObservationRecord) -> WeatherObservation:
    return WeatherObservation(
        id=row.id,
        destination_id=row.destination_id,
        temperature=row.temperature,
        humidity=row.humidity,
        wind_speed=row.wind_speed,
        precipitation_intensity=row.precipitation_intensity,
        recorded_at=_aware(row.recorded_at),
        alert_level=row.alert_level,
        alert_message=row.alert_message,
        alert_reason=row.alert_reason,
    )


def _alert_from_row(row: AlertRecord) -> Alert:
    return Alert(
        id=row.id,
        type=row.type,
        title=row.title,
        message=row.message,
        severity=row.severity,
        destination_id=row.destination_id,
        timestamp=_aware(row.timestamp),
        is_active=row.is_active,
    )


def _observation_to_row(observation: WeatherObservation) -> WeatherObservationRecord:
    data = observation.model_dump()
    data["recorded_at"] = _utc(observation.recorded_at)
    return WeatherObservationRecord(**data)


def _override_from_row(row: CapacityOverrideRecord) -> CapacityOverride:
    return CapacityOverride(
        destination_id=row.destination_id,
        multiplier=row.multiplier,
        reason=row.reason,
        expires_at=_aware(row.expires_at) if row.expires_at is not None else None,
        created_at=_aware(row.created_at),
    )


def _alert_to_row(alert: Alert) -> AlertRecord:
    if alert.computed:
        msg = f"Computed alert {alert.id} must not be persisted"
        raise ValueError(msg)
    data = alert.model_dump(exclude={"computed"})
    data["timestamp"] = _utc(alert.timestamp)
    return AlertRecord(**data)


class Repository:
    """Repository for destinations, weather observations, alerts and occupancy.

    Writes are append/upsert only: observations and alerts are merged on their
    primary key, so replaying a write with the same id stores the same row.

    Attributes:
        engine: SQLAlchemy engine for database connections
    """

    def __init__(self, engine: Engine, validator: DestinationValidator | None = None):
        """Initialize repository with SQLAlchemy engine.

        Args:
            engine: SQLAlchemy engine configured for the record store
            validator: Destination validator (default: DestinationValidator())
        """
        self.engine = engine
        self.validator = validator or DestinationValidator()
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        """Create a new SQLAlchemy session.

        Returns:
            New SQLAlchemy Session instance
        """
        return self._session_factory()

    # Destinations

    def fetch_destination_records(self, active_only: bool = True) -> list[dict[str, Any]]:
        """Raw destination rows as dicts, ordered by id, before validation."""
        stmt = select(DestinationRecord).order_by(DestinationRecord.id)
        if active_only:
            stmt = stmt.where(DestinationRecord.is_active.is_(True))
        with self.session() as session:
            return [_destination_record_to_dict(row) for row in session.scalars(stmt)]

    def fetch_destinations(self, active_only: bool = True) -> list[Destination]:
        """Valid destinations, ordered by id. Malformed rows are logged and skipped."""
        destinations, errors = parse_destinations(
            self.fetch_destination_records(active_only), self.validator
        )
        for error in errors:
            logger.warning(f"Skipping destination {error.destination_id}: {error.message}")
        return destinations

    def fetch_destination(self, destination_id: str) -> Destination:
        """Single destination by id.

        Raises:
            DestinationNotFoundError: If no row has this id
            InvalidDestinationError: If the row fails validation
        """
        with self.session() as session:
            row = session.get(DestinationRecord, destination_id)
            if row is None:
                raise DestinationNotFoundError(destination_id)
            record = _destination_record_to_dict(row)

        errors = self.validator.validate(record)
        if errors:
            raise InvalidDestinationError(destination_id, errors)
        return Destination.model_validate(record)

    def upsert_destination(self, destination: Destination) -> None:
        data = destination.model_dump(mode="json", exclude={"sustainability_features"})
        data["ecological_sensitivity"] = destination.ecological_sensitivity
        data["sustainability_features"] = (
            destination.sustainability_features.model_dump(mode="json")
            if destination.sustainability_features
            else None
        )
        with self.session() as session, session.begin():
            session.merge(DestinationRecord(**data))
        logger.debug(f"Upserted destination {destination.id}")

    # Weather observations

    def fetch_latest_weather_observation(self, destination_id: str) -> WeatherObservation | None:
        stmt = (
            select(WeatherObservationRecord)
            .where(WeatherObservationRecord.destination_id == destination_id)
            .order_by(WeatherObservationRecord.recorded_at.desc(), WeatherObservationRecord.id)
            .limit(1)
        )
        with self.session() as session:
            row = session.scalars(stmt).first()
            return _observation_from_row(row) if row is not None else None

    def fetch_latest_weather_observations(self) -> dict[str, WeatherObservation]:
        """Latest observation per destination, keyed by destination id."""
        latest = (
            select(
                WeatherObservationRecord.destination_id,
                func.max(WeatherObservationRecord.recorded_at).label("recorded_at"),
            )
            .group_by(WeatherObservationRecord.destination_id)
            .subquery()
        )
        stmt = (
            select(WeatherObservationRecord)
            .join(
                latest,
                (WeatherObservationRecord.destination_id == latest.c.destination_id)
                & (WeatherObservationRecord.recorded_at == latest.c.recorded_at),
            )
            .order_by(WeatherObservationRecord.destination_id, WeatherObservationRecord.id)
        )
        observations: dict[str, WeatherObservation] = {}
        with self.session() as session:
            for row in session.scalars(stmt):
                observations.setdefault(row.destination_id, _observation_from_row(row))
        return observations

    def append_weather_observation(self, observation: WeatherObservation) -> None:
        with self.session() as session, session.begin():
            session.merge(_observation_to_row(observation))

    def save_weather_evaluation(
        self, observation: WeatherObservation, alert: Alert | None = None
    ) -> None:
        """Persist an observation and its weather alert in one transaction.

        Either both rows are written or neither is. When the observation is
        the destination's latest, weather alerts raised by earlier observations
        are deactivated in the same transaction, so only the current weather
        can keep an alert active. Replaying an older observation stores its
        alert inactive.
        """
        with self.session() as session, session.begin():
            superseded = session.scalar(
                select(func.count())
                .select_from(WeatherObservationRecord)
                .where(
                    WeatherObservationRecord.destination_id == observation.destination_id,
                    WeatherObservationRecord.recorded_at > _utc(observation.recorded_at),
                )
            )
            session.merge(_observation_to_row(observation))
            if alert is not None:
                row = _alert_to_row(alert)
                row.observation_id = observation.id
                row.is_active = alert.is_active and not superseded
                session.merge(row)

            retired = 0
            if not superseded:
                retired = session.execute(
                    update(AlertRecord)
                    .where(
                        AlertRecord.destination_id == observation.destination_id,
                        AlertRecord.type == AlertType.WEATHER,
                        AlertRecord.is_active.is_(True),
                        AlertRecord.observation_id.is_not(None),
                        AlertRecord.observation_id != observation.id,
                    )
                    .values(is_active=False)
                    .execution_options(synchronize_session=False)
                ).rowcount

        logger.debug(
            f"Saved weather evaluation {observation.id} for {observation.destination_id} "
            f"(alert={'yes' if alert else 'no'}, retired={retired})"
        )

    # Alerts

    def fetch_active_alerts(self) -> list[Alert]:
        stmt = (
            select(AlertRecord)
            .where(AlertRecord.is_active.is_(True))
            .order_by(AlertRecord.timestamp.desc(), AlertRecord.id)
        )
        with self.session() as session:
            return [_alert_from_row(row) for row in session.scalars(stmt)]

    def append_alert(self, alert: Alert) -> None:
        with self.session() as session, session.begin():
            session.merge(_alert_to_row(alert))

    def deactivate_alert(self, alert_id: str) -> None:
        """Mark a persisted alert inactive.

        Raises:
            AlertNotFoundError: If no persisted alert has this id
        """
        with self.session() as session, session.begin():
            row = session.get(AlertRecord, alert_id)
            if row is None:
                raise AlertNotFoundError(alert_id)
            row.is_active = False

    # Capacity overrides

    def set_capacity_override(self, override: CapacityOverride) -> None:
        """Store the override for its destination, replacing any existing one.

        Raises:
            DestinationNotFoundError: If no destination has this id
        """
        with self.session() as session, session.begin():
            if session.get(DestinationRecord, override.destination_id) is None:
                raise DestinationNotFoundError(override.destination_id)
            session.merge(
                CapacityOverrideRecord(
                    destination_id=override.destination_id,
                    multiplier=override.multiplier,
                    reason=override.reason,
                    expires_at=_utc(override.expires_at) if override.expires_at else None,
                    created_at=_utc(override.created_at),
                )
            )
        logger.info(
            f"Capacity override for {override.destination_id} set to {override.multiplier}: "
            f"{override.reason}"
        )

    def fetch_capacity_override(self, destination_id: str) -> CapacityOverride | None:
        """Stored override for the destination, expired or not."""
        with self.session() as session:
            row = session.get(CapacityOverrideRecord, destination_id)
            return _override_from_row(row) if row is not None else None

    def clear_capacity_override(self, destination_id: str) -> bool:
        """Remove the destination's override. Returns False when there was none."""
        with self.session() as session, session.begin():
            row = session.get(CapacityOverrideRecord, destination_id)
            if row is None:
                return False
            session.delete(row)
        logger.info(f"Capacity override for {destination_id} cleared")
        return True

    # Occupancy

    def record_occupancy(self, destination_id: str, occupancy: int, at: datetime) -> None:
        """Set current occupancy and append it to the occupancy history.

        Raises:
            DestinationNotFoundError: If no row has this id
        """
        if occupancy < 0:
            msg = f"Occupancy must be non-negative, got {occupancy}"
            raise ValueError(msg)

        with self.session() as session, session.begin():
            row = session.get(DestinationRecord, destination_id)
            if row is None:
                raise DestinationNotFoundError(destination_id)
            row.current_occupancy = occupancy
            session.add(
                OccupancySampleRecord(
                    destination_id=destination_id, occupancy=occupancy, recorded_at=_utc(at)
                )
            )

    def fetch_occupancy_history(
        self, destination_id: str, since: datetime
    ) -> list[OccupancySample]:
        """Occupancy samples recorded at or after ``since``, oldest first."""
        stmt = (
            select(OccupancySampleRecord)
            .where(
                OccupancySampleRecord.destination_id == destination_id,
                OccupancySampleRecord.recorded_at >= _utc(since),
            )
            .order_by(OccupancySampleRecord.recorded_at, OccupancySampleRecord.id)
        )
        with self.session() as session:
            return [
                OccupancySample(
                    destination_id=row.destination_id,
                    occupancy=row.occupancy,
                    recorded_at=_aware(row.recorded_at),
                )
                for row in session.scalars(stmt)
            ]

"""Shared builders for test destinations, observations and alerts."""

from datetime import UTC, datetime, timedelta

from ecocapacity.models.domain import (
    Alert,
    CapacityOverride,
    Destination,
    OccupancySample,
    SustainabilityFeatures,
    WeatherObservation,
)
from ecocapacity.models.enums import AlertLevel, AlertType, SensitivityLevel, Severity

# Mid-October: outside every default season window
NOW = datetime(2026, 10, 15, 12, 0, tzinfo=UTC)


def make_destination(
    destination_id: str = "dest-1",
    *,
    max_capacity: int = 1000,
    current_occupancy: int = 0,
    sensitivity: SensitivityLevel = SensitivityLevel.LOW,
    is_active: bool = True,
    features: SustainabilityFeatures | None = None,
    latitude: float | None = 10.0,
    longitude: float | None = 20.0,
    name: str | None = None,
) -> Destination:
    return Destination(
        id=destination_id,
        name=name or destination_id.replace("-", " ").title(),
        location="Testland",
        max_capacity=max_capacity,
        current_occupancy=current_occupancy,
        ecological_sensitivity=sensitivity,
        is_active=is_active,
        latitude=latitude,
        longitude=longitude,
        sustainability_features=features,
    )


def make_observation(
    destination_id: str = "dest-1",
    *,
    level: AlertLevel = AlertLevel.NONE,
    recorded_at: datetime = NOW,
    message: str | None = None,
    observation_id: str | None = None,
) -> WeatherObservation:
    return WeatherObservation(
        id=observation_id or f"obs-{destination_id}-{recorded_at:%Y%m%d%H%M}",
        destination_id=destination_id,
        temperature=20.0,
        humidity=50.0,
        wind_speed=3.0,
        precipitation_intensity=0.0,
        recorded_at=recorded_at,
        alert_level=level,
        alert_message=message,
    )


def make_alert(
    alert_id: str,
    *,
    title: str = "Heavy Rain Warning",
    message: str = "Trails closed",
    severity: Severity = Severity.HIGH,
    destination_id: str | None = "dest-1",
    alert_type: AlertType = AlertType.WEATHER,
    timestamp: datetime = NOW,
    is_active: bool = True,
) -> Alert:
    return Alert(
        id=alert_id,
        type=alert_type,
        title=title,
        message=message,
        severity=severity,
        destination_id=destination_id,
        timestamp=timestamp,
        is_active=is_active,
    )


def make_samples(
    destination_id: str, occupancies: list[int], *, end: datetime = NOW, hours_apart: int = 24
) -> list[OccupancySample]:
    """Samples ending at ``end``, oldest first."""
    count = len(occupancies)
    return [
        OccupancySample(
            destination_id=destination_id,
            occupancy=occupancy,
            recorded_at=end - timedelta(hours=hours_apart * (count - 1 - i)),
        )
        for i, occupancy in enumerate(occupancies)
    ]


def make_override(
    destination_id: str = "dest-1",
    *,
    multiplier: float = 0.5,
    reason: str = "Trail repairs",
    expires_at: datetime | None = None,
    created_at: datetime = NOW,
) -> CapacityOverride:
    return CapacityOverride(
        destination_id=destination_id,
        multiplier=multiplier,
        reason=reason,
        expires_at=expires_at,
        created_at=created_at,
    )

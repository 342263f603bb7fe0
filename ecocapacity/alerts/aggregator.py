"""Alert aggregation: merge, deduplicate and priority-sort.

Three sources feed the operator alert list:

1. Computed alerts, synthesised from utilization of adjusted capacity and
   never stored. Their id is derived from the destination, so recomputing
   yields the same identity and nothing needs cleaning up.
2. Weather-derived alerts, built from the latest observation per destination
   with the same title and message the ingest step persists, so the two
   collapse during deduplication.
3. Persisted alerts that are still active.

Alerts sharing (title, message, destination_id, type) collapse to the most
recent; equal timestamps keep the entry that came first in the merged input.
The result is sorted critical first, newest first within a severity, then by
id, so identical inputs always produce an identical list.
"""

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime

from ecocapacity.config import DEFAULT_ALERT_CONFIG, AlertConfig
from ecocapacity.models.domain import Alert, DynamicCapacityResult, WeatherObservation
from ecocapacity.models.enums import AlertLevel, AlertType, Severity

COMPUTED_ALERT_PREFIX = "eco-capacity-"

# Namespace for deterministic weather observation and alert ids
WEATHER_ID_NAMESPACE = uuid.UUID("5d6c1f7e-2b8a-4c0e-9f1d-3a7b6e2c4d90")


def computed_alert_id(destination_id: str) -> str:
    return f"{COMPUTED_ALERT_PREFIX}{destination_id}"


def weather_alert_id(observation: WeatherObservation) -> str:
    """Deterministic id of the weather alert raised by an observation."""
    return str(uuid.uuid5(WEATHER_ID_NAMESPACE, f"alert:{observation.id}"))


def weather_alert_title(destination_name: str) -> str:
    return f"Weather Alert - {destination_name}"


def build_weather_alert(observation: WeatherObservation, destination_name: str) -> Alert | None:
    """Weather alert for an observation, or None when its level is none.

    Used both by the ingest step (to persist) and by the aggregator (to
    derive), so the two produce identical dedup keys.
    """
    if observation.alert_level is AlertLevel.NONE:
        return None
    message = observation.alert_message or (
        f"{observation.alert_level.value.capitalize()} weather conditions"
    )
    return Alert(
        id=weather_alert_id(observation),
        type=AlertType.WEATHER,
        title=weather_alert_title(destination_name),
        message=message,
        severity=observation.alert_level.to_severity(),
        destination_id=observation.destination_id,
        timestamp=observation.recorded_at,
    )


def classify_utilization(
    utilization: float, config: AlertConfig = DEFAULT_ALERT_CONFIG
) -> Severity | None:
    """Severity for a utilization ratio, None below the high threshold."""
    if utilization > config.critical_utilization:
        return Severity.CRITICAL
    if utilization > config.high_utilization:
        return Severity.HIGH
    return None


def synthesize_capacity_alert(
    result: DynamicCapacityResult,
    occupancy: int,
    destination_name: str,
    as_of: datetime,
    config: AlertConfig = DEFAULT_ALERT_CONFIG,
) -> Alert | None:
    """Computed ecological alert for one destination, if utilization warrants it."""
    utilization = result.utilization(occupancy)
    severity = classify_utilization(utilization, config)
    if severity is None:
        return None

    if result.adjusted_capacity == 0:
        message = (
            f"{destination_name} has {occupancy} visitors but its adjusted capacity is 0. "
            f"{result.display_message}."
        )
    else:
        message = (
            f"{destination_name} is at {utilization:.0%} of its adjusted capacity "
            f"({occupancy}/{result.adjusted_capacity}). {result.display_message}."
        )

    return Alert(
        id=computed_alert_id(result.destination_id),
        type=AlertType.ECOLOGICAL,
        title=f"Ecological Capacity Alert - {destination_name}",
        message=message,
        severity=severity,
        destination_id=result.destination_id,
        timestamp=as_of,
        computed=True,
    )


def deduplicate(alerts: Iterable[Alert]) -> list[Alert]:
    """Keep the most recent alert per dedup key, first seen wins ties."""
    kept: dict[tuple, Alert] = {}
    for alert in alerts:
        current = kept.get(alert.dedup_key)
        if current is None or alert.timestamp > current.timestamp:
            kept[alert.dedup_key] = alert
    return list(kept.values())


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Severity rank ascending (critical first), newest first, then id."""
    by_id = sorted(alerts, key=lambda a: a.id)
    by_time = sorted(by_id, key=lambda a: a.timestamp, reverse=True)
    return sorted(by_time, key=lambda a: a.severity.rank)


def aggregate_alerts(
    persisted: Iterable[Alert],
    capacity_results: Iterable[DynamicCapacityResult],
    occupancy: Mapping[str, int],
    *,
    as_of: datetime,
    weather_observations: Iterable[WeatherObservation] = (),
    destination_names: Mapping[str, str] | None = None,
    config: AlertConfig = DEFAULT_ALERT_CONFIG,
) -> list[Alert]:
    """Merge persisted, weather-derived and computed alerts into one list.

    Pure function: identical inputs produce an identical list.

    Args:
        persisted: Alerts read from the record store (inactive ones are ignored)
        capacity_results: Current dynamic capacity per destination
        occupancy: Current occupancy per destination id (missing means 0)
        as_of: Timestamp stamped on computed alerts
        weather_observations: Latest observation per destination
        destination_names: Display names per destination id (default: the id)
        config: Utilization thresholds for computed alerts

    Returns:
        Deduplicated alerts, critical first then newest first
    """
    names = destination_names or {}

    merged: list[Alert] = [alert for alert in persisted if alert.is_active]

    for observation in weather_observations:
        name = names.get(observation.destination_id, observation.destination_id)
        alert = build_weather_alert(observation, name)
        if alert is not None:
            merged.append(alert)

    for result in capacity_results:
        name = names.get(result.destination_id, result.destination_id)
        alert = synthesize_capacity_alert(
            result, occupancy.get(result.destination_id, 0), name, as_of, config
        )
        if alert is not None:
            merged.append(alert)

    return sort_alerts(deduplicate(merged))

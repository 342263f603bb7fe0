"""Alert aggregation."""

from ecocapacity.alerts.aggregator import (
    aggregate_alerts,
    build_weather_alert,
    computed_alert_id,
    synthesize_capacity_alert,
)

__all__ = [
    "aggregate_alerts",
    "build_weather_alert",
    "computed_alert_id",
    "synthesize_capacity_alert",
]

"""Alert service: aggregated alert reads and operator alert writes."""

import logging
import uuid
from datetime import UTC, datetime

from ecocapacity.alerts.aggregator import aggregate_alerts
from ecocapacity.config import DEFAULT_ALERT_CONFIG, AlertConfig
from ecocapacity.models.domain import Alert, Destination
from ecocapacity.models.enums import AlertType, Severity
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.capacity import CapacityService

logger = logging.getLogger(__name__)


class AlertService:
    """Operator alert list and alert lifecycle.

    Attributes:
        repository: Record store
        capacity_service: Source of dynamic capacity for computed alerts
        config: Utilization thresholds for computed alerts
    """

    def __init__(
        self,
        repository: Repository,
        capacity_service: CapacityService,
        config: AlertConfig = DEFAULT_ALERT_CONFIG,
    ):
        self.repository = repository
        self.capacity_service = capacity_service
        self.config = config

    def aggregate(
        self, destinations: list[Destination], as_of: datetime | None = None
    ) -> list[Alert]:
        """Aggregate alerts for an already-fetched destination snapshot."""
        as_of = as_of or datetime.now(UTC)
        capacity_map = self.capacity_service.get_capacity_map(destinations, as_of)
        observations = self.repository.fetch_latest_weather_observations()

        return aggregate_alerts(
            self.repository.fetch_active_alerts(),
            capacity_map.values(),
            {d.id: d.current_occupancy for d in destinations},
            as_of=as_of,
            weather_observations=[
                observations[d.id] for d in destinations if d.id in observations
            ],
            destination_names={d.id: d.name for d in destinations},
            config=self.config,
        )

    def get_aggregated_alerts(self, as_of: datetime | None = None) -> list[Alert]:
        """Deduplicated, priority-sorted alerts across all active destinations."""
        return self.aggregate(self.repository.fetch_destinations(active_only=True), as_of)

    def create_alert(
        self,
        *,
        type: AlertType,
        title: str,
        message: str,
        severity: Severity,
        destination_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> Alert:
        """Persist an operator-raised alert."""
        if destination_id is not None:
            self.repository.fetch_destination(destination_id)

        alert = Alert(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            message=message,
            severity=severity,
            destination_id=destination_id,
            timestamp=timestamp or datetime.now(UTC),
        )
        self.repository.append_alert(alert)
        logger.info(f"Created {severity.value} {type.value} alert {alert.id}")
        return alert

    def deactivate_alert(self, alert_id: str) -> None:
        self.repository.deactivate_alert(alert_id)
        logger.info(f"Deactivated alert {alert_id}")

"""State snapshot orchestrator - coordinates validation, capacity, alerts and scoring.

A snapshot is what an observer re-pulls after every change event: all
destinations with their dynamic capacity and sustainability score, plus the
aggregated alert list. Destinations that fail validation or evaluation are
left out and reported; everyone else is still evaluated.
"""

import logging
import time
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from ecocapacity.models.domain import (
    Alert,
    Destination,
    DynamicCapacityResult,
    SustainabilityScore,
)
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.alerts import AlertService
from ecocapacity.services.capacity import CapacityService
from ecocapacity.services.sustainability import SustainabilityService
from ecocapacity.validation.destination import parse_destinations

logger = logging.getLogger(__name__)


class DestinationState(BaseModel):
    """One destination with its derived state."""

    destination: Destination
    capacity: DynamicCapacityResult
    sustainability: SustainabilityScore


class SnapshotError(BaseModel):
    """A destination excluded from the snapshot."""

    destination_id: str | None
    message: str


class StateSnapshot(BaseModel):
    """Full current state served to observers."""

    generated_at: datetime
    destinations: list[DestinationState] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    errors: list[SnapshotError] = Field(default_factory=list)


class SnapshotOrchestrator:
    """Builds StateSnapshots: validate -> capacity -> score -> aggregate alerts."""

    def __init__(
        self,
        repository: Repository,
        capacity_service: CapacityService,
        alert_service: AlertService,
        sustainability_service: SustainabilityService,
    ):
        self.repository = repository
        self.capacity_service = capacity_service
        self.alert_service = alert_service
        self.sustainability_service = sustainability_service

    def build_snapshot(self, now: datetime | None = None) -> StateSnapshot:
        """Assemble the current state of every active destination.

        Pipeline:
        1. Read raw destination records and validate them
        2. Compute dynamic capacity and sustainability score per destination
        3. Aggregate persisted, weather-derived and computed alerts

        Args:
            now: Evaluation time (default: current UTC time)

        Returns:
            StateSnapshot, with excluded destinations listed in ``errors``
        """
        start_time = time.time()
        now = now or datetime.now(UTC)

        records = self.repository.fetch_destination_records(active_only=True)
        destinations, validation_errors = parse_destinations(records, self.repository.validator)
        errors = [
            SnapshotError(destination_id=e.destination_id, message=e.message)
            for e in validation_errors
        ]

        states: list[DestinationState] = []
        for destination in destinations:
            try:
                states.append(
                    DestinationState(
                        destination=destination,
                        capacity=self.capacity_service.get_dynamic_capacity(destination, now),
                        sustainability=self.sustainability_service.score(destination),
                    )
                )
            except ValueError as e:
                logger.warning(f"Excluded {destination.id} from snapshot: {e}")
                errors.append(SnapshotError(destination_id=destination.id, message=str(e)))

        alerts = self.alert_service.aggregate([state.destination for state in states], now)

        logger.info(
            f"Built snapshot in {time.time() - start_time:.2f}s: {len(states)} destinations, "
            f"{len(alerts)} alerts, {len(errors)} excluded"
        )
        return StateSnapshot(generated_at=now, destinations=states, alerts=alerts, errors=errors)

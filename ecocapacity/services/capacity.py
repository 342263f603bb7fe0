"""Capacity service: wires the policy engine to the record store."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from ecocapacity.exceptions import InvalidOverrideError
from ecocapacity.models.domain import CapacityOverride, Destination, DynamicCapacityResult
from ecocapacity.policy.engine import BookingDecision, CapacityPolicyEngine
from ecocapacity.repositories.repository import Repository

logger = logging.getLogger(__name__)


class CapacityService:
    """Dynamic capacity for stored destinations.

    Fetches the latest weather observation, the trailing occupancy window and
    any operator override for a destination and hands them to the engine.
    """

    def __init__(self, repository: Repository, engine: CapacityPolicyEngine):
        self.repository = repository
        self.engine = engine

    def get_dynamic_capacity(
        self, destination: Destination, now: datetime | None = None
    ) -> DynamicCapacityResult:
        now = now or datetime.now(UTC)
        window_days = self.engine.config.infrastructure.window_days
        observation = self.repository.fetch_latest_weather_observation(destination.id)
        history = self.repository.fetch_occupancy_history(
            destination.id, since=now - timedelta(days=window_days)
        )
        return self.engine.get_dynamic_capacity(
            destination,
            observation=observation,
            on_date=now.date(),
            occupancy_history=history,
            override=self.repository.fetch_capacity_override(destination.id),
            now=now,
        )

    async def get_dynamic_capacity_async(
        self, destination: Destination, now: datetime | None = None
    ) -> DynamicCapacityResult:
        """Same as get_dynamic_capacity, run on a worker thread."""
        return await asyncio.to_thread(self.get_dynamic_capacity, destination, now)

    def get_capacity_map(
        self, destinations: list[Destination], now: datetime | None = None
    ) -> dict[str, DynamicCapacityResult]:
        """Dynamic capacity for each destination, keyed by id."""
        now = now or datetime.now(UTC)
        return {d.id: self.get_dynamic_capacity(d, now) for d in destinations}

    def check_booking(
        self, destination: Destination, group_size: int, now: datetime | None = None
    ) -> BookingDecision:
        result = self.get_dynamic_capacity(destination, now)
        decision = self.engine.is_booking_allowed(destination, group_size, result)
        if not decision.allowed:
            logger.info(f"Booking of {group_size} refused for {destination.id}: {decision.reason}")
        return decision

    def set_override(
        self,
        destination: Destination,
        multiplier: float,
        reason: str,
        expires_at: datetime | None = None,
        now: datetime | None = None,
    ) -> DynamicCapacityResult:
        """Store an operator override and return the capacity it produces.

        Raises:
            InvalidOverrideError: If ``expires_at`` is not after ``now``
        """
        now = now or datetime.now(UTC)
        if expires_at is not None and expires_at <= now:
            msg = f"Override for {destination.id} expires at {expires_at}, before {now}"
            raise InvalidOverrideError(msg)

        self.repository.set_capacity_override(
            CapacityOverride(
                destination_id=destination.id,
                multiplier=multiplier,
                reason=reason,
                expires_at=expires_at,
                created_at=now,
            )
        )
        return self.get_dynamic_capacity(destination, now)

    def clear_override(
        self, destination: Destination, now: datetime | None = None
    ) -> DynamicCapacityResult:
        if not self.repository.clear_capacity_override(destination.id):
            logger.info(f"No capacity override to clear for {destination.id}")
        return self.get_dynamic_capacity(destination, now)

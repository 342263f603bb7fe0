"""Capacity policy engine.

Turns a destination's static sensitivity tier plus its latest weather
observation, the calendar date and its occupancy history into an adjusted
visitor ceiling:

    base     = max_capacity x tier multiplier
    adjusted = round_half_up(base x weather x season x infrastructure x override),
               clamped to [0, max_capacity]

An operator override contributes its multiplier until it expires.

Every factor is in (0, 1] and none of them increases with sensitivity, so
for fixed inputs a stricter tier never gets a larger ceiling.

The engine is constructed explicitly from a PolicyConfig and holds no
mutable state; one instance can serve concurrent requests.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from ecocapacity.calculators.infrastructure import calculate_infrastructure_factor
from ecocapacity.calculators.rounding import clamp, round_half_up
from ecocapacity.calculators.season import calculate_season_factor
from ecocapacity.config import DEFAULT_POLICY_CONFIG, PolicyConfig, TierPolicy
from ecocapacity.models.domain import (
    ActiveFactors,
    CapacityOverride,
    Destination,
    DynamicCapacityResult,
    OccupancySample,
    WeatherObservation,
)
from ecocapacity.models.enums import AlertLevel, CapacityFactor, SensitivityLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingDecision:
    """Outcome of a booking check.

    Attributes:
        allowed: Whether the group may book
        reason: Why the booking was refused (None when allowed)
        requires_permit: Tier requires a special permit
        requires_eco_briefing: Tier requires an ecological briefing
    """

    allowed: bool
    reason: str | None = None
    requires_permit: bool = False
    requires_eco_briefing: bool = False


class CapacityPolicyEngine:
    """Computes static and dynamic capacity for destinations.

    Attributes:
        config: Policy configuration (tier table, weather factors, season windows,
            infrastructure policy)
    """

    def __init__(self, config: PolicyConfig = DEFAULT_POLICY_CONFIG):
        self.config = config

    def get_policy(self, sensitivity: SensitivityLevel) -> TierPolicy:
        """Static tier policy lookup."""
        return self.config.tiers[sensitivity]

    def base_capacity(self, destination: Destination) -> float:
        policy = self.get_policy(destination.ecological_sensitivity)
        return destination.max_capacity * policy.capacity_multiplier

    def get_adjusted_capacity(self, destination: Destination) -> int:
        """Static-tier capacity only, ignoring weather, season and load.

        Degraded-accuracy fallback for callers that cannot supply the dynamic
        inputs. ``get_dynamic_capacity`` is the source of truth.
        """
        base = round_half_up(self.base_capacity(destination))
        return int(clamp(base, 0, destination.max_capacity))

    def weather_factor(self, observation: WeatherObservation | None) -> float:
        if observation is None:
            return 1.0
        return self.config.weather_factors.get(observation.alert_level, 1.0)

    def get_dynamic_capacity(
        self,
        destination: Destination,
        *,
        observation: WeatherObservation | None = None,
        on_date: date | None = None,
        occupancy_history: Iterable[OccupancySample] = (),
        override: CapacityOverride | None = None,
        now: datetime | None = None,
    ) -> DynamicCapacityResult:
        """Adjusted capacity from tier, weather, season, sustained load and override.

        Args:
            destination: Destination to evaluate
            observation: Latest weather observation for the destination, if any
            on_date: Calendar date for season windows (default: ``now``'s date)
            occupancy_history: Occupancy samples for the infrastructure factor
            override: Operator capacity override, ignored once expired
            now: Evaluation time (default: current UTC time)

        Returns:
            DynamicCapacityResult with factors, flags and display message

        Raises:
            ValueError: If the observation or override belongs to another destination
        """
        if observation is not None and observation.destination_id != destination.id:
            msg = (
                f"Observation {observation.id} belongs to {observation.destination_id}, "
                f"not {destination.id}"
            )
            raise ValueError(msg)
        if override is not None and override.destination_id != destination.id:
            msg = f"Override for {override.destination_id} does not apply to {destination.id}"
            raise ValueError(msg)

        now = now or datetime.now(UTC)
        on_date = on_date or now.date()
        if override is not None and not override.applies_at(now):
            logger.debug(
                f"Ignoring capacity override for {destination.id}, expired {override.expires_at}"
            )
            override = None
        override_factor = override.multiplier if override is not None else 1.0

        base = self.base_capacity(destination)
        weather = self.weather_factor(observation)
        season = calculate_season_factor(destination, on_date, self.config)
        infrastructure = calculate_infrastructure_factor(
            base, occupancy_history, now, self.config.infrastructure
        )

        adjusted = int(
            clamp(
                round_half_up(base * weather * season.factor * infrastructure * override_factor),
                0,
                destination.max_capacity,
            )
        )

        logger.debug(
            f"Capacity for {destination.id}: base={base:.1f} weather={weather} "
            f"season={season.factor} infrastructure={infrastructure} "
            f"override={override_factor} -> {adjusted}"
        )

        factors = {
            CapacityFactor.WEATHER: weather,
            CapacityFactor.SEASON: season.factor,
            CapacityFactor.INFRASTRUCTURE: infrastructure,
            CapacityFactor.OVERRIDE: override_factor,
        }
        active = {name: value for name, value in factors.items() if value < 1.0}
        # min() keeps the first of equal values, so enum order breaks ties
        binding = min(active, key=active.__getitem__) if active else None

        if binding is CapacityFactor.WEATHER:
            level = observation.alert_level.value if observation else AlertLevel.NONE.value
            message = f"Capacity reduced to {adjusted} due to {level} weather alert"
        elif binding is CapacityFactor.SEASON:
            message = f"Capacity reduced to {adjusted} during {season.window.name.lower()}"
        elif binding is CapacityFactor.INFRASTRUCTURE:
            message = f"Capacity reduced to {adjusted} due to sustained infrastructure strain"
        elif binding is CapacityFactor.OVERRIDE and override is not None:
            message = f"Capacity reduced to {adjusted} by operator override: {override.reason}"
        else:
            message = (
                f"Standard capacity of {adjusted} for "
                f"{destination.ecological_sensitivity.value} sensitivity"
            )

        return DynamicCapacityResult(
            destination_id=destination.id,
            base_capacity=int(clamp(round_half_up(base), 0, destination.max_capacity)),
            adjusted_capacity=adjusted,
            available_spots=max(0, adjusted - destination.current_occupancy),
            weather_factor=weather,
            season_factor=season.factor,
            infrastructure_factor=infrastructure,
            override_factor=override_factor,
            active_factors=ActiveFactors(
                weather=CapacityFactor.WEATHER in active,
                season=CapacityFactor.SEASON in active,
                infrastructure=CapacityFactor.INFRASTRUCTURE in active,
                override=CapacityFactor.OVERRIDE in active,
            ),
            binding_factor=binding,
            display_message=message,
        )

    def is_booking_allowed(
        self,
        destination: Destination,
        group_size: int,
        result: DynamicCapacityResult | None = None,
    ) -> BookingDecision:
        """Check a group booking against available spots and tier restrictions.

        Args:
            destination: Destination being booked
            group_size: Number of visitors in the group
            result: Dynamic capacity for the destination; the static tier
                capacity is used when omitted

        Returns:
            BookingDecision
        """
        policy = self.get_policy(destination.ecological_sensitivity)
        if result is not None:
            available = result.available_spots
        else:
            capacity = self.get_adjusted_capacity(destination)
            available = max(0, capacity - destination.current_occupancy)

        if group_size > available:
            reason = (
                f"Booking exceeds the available spots ({available}) adjusted for "
                f"{destination.ecological_sensitivity.value} ecological sensitivity."
            )
            allowed = False
        elif destination.ecological_sensitivity is SensitivityLevel.CRITICAL:
            reason = policy.booking_restriction_message
            allowed = False
        else:
            reason = None
            allowed = True

        return BookingDecision(
            allowed=allowed,
            reason=reason,
            requires_permit=policy.requires_permit,
            requires_eco_briefing=policy.requires_eco_briefing,
        )

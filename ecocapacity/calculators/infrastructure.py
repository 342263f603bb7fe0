"""Sustained-load (infrastructure wear) capacity factor."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from ecocapacity.config import InfrastructureConfig
from ecocapacity.models.domain import OccupancySample


def calculate_infrastructure_factor(
    base_capacity: float,
    occupancy_history: Iterable[OccupancySample],
    now: datetime,
    config: InfrastructureConfig,
) -> float:
    """Reduced factor when occupancy stayed above the strain threshold.

    Only samples inside the trailing window ``(now - window_days, now]`` are
    considered. Strain applies when the window holds at least ``min_samples``
    samples and every one of them exceeds ``strain_threshold x base_capacity``.
    A sparse history therefore never triggers the factor.

    Args:
        base_capacity: Static tier capacity (before dynamic factors)
        occupancy_history: Occupancy samples for the destination, any order
        now: Evaluation time (timezone-aware)
        config: Infrastructure policy

    Returns:
        ``config.factor`` when strained, else 1.0
    """
    window_start = now - timedelta(days=config.window_days)
    recent = [s for s in occupancy_history if window_start < s.recorded_at <= now]

    if len(recent) < config.min_samples:
        return 1.0

    strain_level = config.strain_threshold * base_capacity
    if all(sample.occupancy > strain_level for sample in recent):
        return config.factor
    return 1.0

"""Seasonal capacity factor.

Calendar windows are compared on (month, day) so they repeat every year and
may wrap the year end. A window applies to a destination when its tier is at
least the window's ``min_sensitivity``; since stricter tiers see a superset of
windows, the season factor never increases with sensitivity.
"""

from dataclasses import dataclass
from datetime import date

from ecocapacity.config import PolicyConfig, SeasonMode, SeasonWindow
from ecocapacity.models.domain import Destination


@dataclass(frozen=True)
class SeasonFactor:
    """Season multiplier and the window that produced it (None when neutral)."""

    factor: float = 1.0
    window: SeasonWindow | None = None

    @property
    def active(self) -> bool:
        return self.factor < 1.0


def in_window(on_date: date, window: SeasonWindow) -> bool:
    """True when ``on_date`` falls inside the window (inclusive, wrap-aware)."""
    day = (on_date.month, on_date.day)
    start = (window.start_month, window.start_day)
    end = (window.end_month, window.end_day)
    if start <= end:
        return start <= day <= end
    return day >= start or day <= end


def window_applies(on_date: date, window: SeasonWindow) -> bool:
    """Whether the window's factor applies on ``on_date``, honouring its mode."""
    inside = in_window(on_date, window)
    return inside if window.mode is SeasonMode.INSIDE else not inside


def windows_for(destination: Destination, config: PolicyConfig) -> list[SeasonWindow]:
    """Windows configured for the destination, falling back to the tier defaults."""
    windows = config.destination_season_windows.get(destination.id, config.season_windows)
    return [
        window
        for window in windows
        if destination.ecological_sensitivity.rank >= window.min_sensitivity.rank
    ]


def calculate_season_factor(
    destination: Destination,
    on_date: date,
    config: PolicyConfig,
) -> SeasonFactor:
    """Smallest factor among the windows that apply on ``on_date``.

    Args:
        destination: Destination being evaluated
        on_date: Calendar date of the evaluation
        config: Policy configuration holding default and per-destination windows

    Returns:
        SeasonFactor, neutral (1.0) when no window applies
    """
    applicable = [w for w in windows_for(destination, config) if window_applies(on_date, w)]
    if not applicable:
        return SeasonFactor()

    binding = min(applicable, key=lambda w: w.factor)
    return SeasonFactor(factor=binding.factor, window=binding)

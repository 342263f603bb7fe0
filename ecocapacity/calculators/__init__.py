"""Pure calculators for weather, capacity factors and sustainability.

All calculators are stateless and testable without a database.
"""

from ecocapacity.calculators.infrastructure import calculate_infrastructure_factor
from ecocapacity.calculators.rounding import clamp, round_half_up
from ecocapacity.calculators.season import SeasonFactor, calculate_season_factor
from ecocapacity.calculators.sustainability import (
    calculate_carbon_offset,
    calculate_sustainability_score,
    find_low_impact_alternatives,
)
from ecocapacity.calculators.weather import (
    WeatherClassification,
    build_alert_message,
    classify_reading,
)

__all__ = [
    "classify_reading",
    "build_alert_message",
    "WeatherClassification",
    "calculate_season_factor",
    "SeasonFactor",
    "calculate_infrastructure_factor",
    "calculate_sustainability_score",
    "calculate_carbon_offset",
    "find_low_impact_alternatives",
    "round_half_up",
    "clamp",
]

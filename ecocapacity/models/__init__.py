"""Domain models for the capacity and alerting engine."""

from ecocapacity.models.domain import (
    ActiveFactors,
    Alert,
    CarbonOffset,
    Destination,
    DynamicCapacityResult,
    OccupancySample,
    SustainabilityFeatures,
    SustainabilityScore,
    WeatherObservation,
    WeatherReading,
)
from ecocapacity.models.events import ChangeEvent

__all__ = [
    "Destination",
    "SustainabilityFeatures",
    "WeatherReading",
    "WeatherObservation",
    "OccupancySample",
    "ActiveFactors",
    "DynamicCapacityResult",
    "Alert",
    "SustainabilityScore",
    "CarbonOffset",
    "ChangeEvent",
]

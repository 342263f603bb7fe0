"""Weather classification against configured threshold tables.

Each metric (wind speed, precipitation intensity, temperature) is compared
against its own table and the observation takes the worst level triggered by
any single metric. Levels are never summed across metrics.
"""

from dataclasses import dataclass, field

from ecocapacity.config import DEFAULT_WEATHER_THRESHOLDS, WeatherThresholdConfig
from ecocapacity.models.domain import WeatherReading
from ecocapacity.models.enums import AlertLevel


@dataclass(frozen=True)
class WeatherClassification:
    """Outcome of classifying one reading.

    Attributes:
        level: Worst alert level triggered by any metric
        reasons: One human readable reason per metric that triggered a level
    """

    level: AlertLevel
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def reason(self) -> str | None:
        return ", ".join(self.reasons) if self.reasons else None


def _level_above(value: float, table: dict[AlertLevel, float]) -> AlertLevel:
    """Highest level whose threshold ``value`` strictly exceeds."""
    triggered = [level for level, threshold in table.items() if value > threshold]
    return max(triggered, key=lambda level: level.rank, default=AlertLevel.NONE)


def _level_below(value: float, table: dict[AlertLevel, float]) -> AlertLevel:
    """Highest level whose threshold ``value`` strictly undercuts."""
    triggered = [level for level, threshold in table.items() if value < threshold]
    return max(triggered, key=lambda level: level.rank, default=AlertLevel.NONE)


def classify_wind(wind_speed: float, thresholds: WeatherThresholdConfig) -> AlertLevel:
    return _level_above(wind_speed, thresholds.wind_speed_ms)


def classify_precipitation(intensity: float, thresholds: WeatherThresholdConfig) -> AlertLevel:
    return _level_above(intensity, thresholds.precipitation_mm_h)


def classify_temperature(temperature: float, thresholds: WeatherThresholdConfig) -> AlertLevel:
    heat = _level_above(temperature, thresholds.heat_c)
    cold = _level_below(temperature, thresholds.cold_c)
    return max(heat, cold, key=lambda level: level.rank)


def classify_reading(
    reading: WeatherReading,
    thresholds: WeatherThresholdConfig = DEFAULT_WEATHER_THRESHOLDS,
) -> WeatherClassification:
    """Classify a reading as the worst of its three per-metric levels.

    Args:
        reading: Raw weather reading
        thresholds: Threshold tables (default: DEFAULT_WEATHER_THRESHOLDS)

    Returns:
        WeatherClassification with the worst level and the reasons behind it
    """
    wind = classify_wind(reading.wind_speed, thresholds)
    rain = classify_precipitation(reading.precipitation_intensity, thresholds)
    temperature = classify_temperature(reading.temperature, thresholds)

    reasons: list[str] = []
    if temperature is not AlertLevel.NONE:
        if reading.temperature > min(thresholds.heat_c.values(), default=float("inf")):
            reasons.append("Extreme heat warning")
        else:
            reasons.append("Freezing temperature alert")
    if wind is not AlertLevel.NONE:
        reasons.append("High wind warning")
    if rain is not AlertLevel.NONE:
        reasons.append("Heavy precipitation warning")

    level = max(wind, rain, temperature, key=lambda level: level.rank)
    return WeatherClassification(level=level, reasons=tuple(reasons))


def build_alert_message(
    reading: WeatherReading, classification: WeatherClassification
) -> str | None:
    """Human readable alert message, or None when nothing triggered."""
    if classification.level is AlertLevel.NONE:
        return None
    return (
        f"{classification.reason}. Current: {reading.temperature:.1f}°C, "
        f"wind {reading.wind_speed:.1f} m/s, "
        f"precipitation {reading.precipitation_intensity:.1f} mm/h."
    )

"""Configuration and constants for the Eco Capacity Engine.

This module defines all operator policy, thresholds, and deployment
configuration for the capacity, alerting and notification subsystems.

Includes configuration for:
- Capacity policy per sensitivity tier (PolicyConfig with POLICY_ prefix)
- Weather classification thresholds (WeatherThresholdConfig with WEATHER_ prefix)
- Weather ingest batching (IngestConfig with INGEST_ prefix)
- Weather provider connection (ProviderConfig with PROVIDER_ prefix)
- Sustainability scoring weights (SustainabilityConfig with SUSTAINABILITY_ prefix)
- Change notifier and observer reconnects (NotifierConfig with NOTIFIER_ prefix)
- Database connection (DatabaseSettings with DB_ prefix)
- HTTP API server (ApiServerConfig with API_ prefix)

Configuration can be overridden via:
1. Environment variables (e.g., POLICY_WEATHER_FACTORS='{"high": 0.6}', INGEST_MAX_WORKERS=4)
2. .env file in the current directory
3. Default values in code
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecocapacity.models.enums import AlertLevel, SensitivityLevel


@dataclass(frozen=True)
class PhysicalConstants:
    """Fixed conversion factors used by the scorers.

    These are NOT configurable.
    """

    SECONDS_PER_DAY: int = 86_400
    KG_CO2_PER_VISITOR_DAY: float = 15.0
    RENEWABLE_ENERGY_CO2_FACTOR: float = 0.7
    OFFSET_COST_PER_KG_CO2: float = 0.5


# Module-level singleton for physical constants
CONSTANTS = PhysicalConstants()


class TierPolicy(BaseModel):
    """Policy attached to one ecological sensitivity tier.

    Attributes:
        capacity_multiplier: Fraction of the physical maximum allowed for the tier
        requires_permit: Whether visitors need a special permit
        requires_eco_briefing: Whether visitors must attend an ecological briefing
        booking_restriction_message: Message shown when bookings are restricted
    """

    model_config = ConfigDict(frozen=True)

    capacity_multiplier: float = Field(gt=0, le=1)
    requires_permit: bool = False
    requires_eco_briefing: bool = False
    booking_restriction_message: str | None = None


def _default_tier_policies() -> dict[SensitivityLevel, TierPolicy]:
    return {
        SensitivityLevel.LOW: TierPolicy(capacity_multiplier=1.0),
        SensitivityLevel.MEDIUM: TierPolicy(
            capacity_multiplier=0.85,
            requires_eco_briefing=True,
            booking_restriction_message="Please review ecological guidelines before visiting.",
        ),
        SensitivityLevel.HIGH: TierPolicy(
            capacity_multiplier=0.65,
            requires_permit=True,
            requires_eco_briefing=True,
            booking_restriction_message=(
                "This is a high-sensitivity area. Special permits are required for entry."
            ),
        ),
        SensitivityLevel.CRITICAL: TierPolicy(
            capacity_multiplier=0.40,
            requires_permit=True,
            requires_eco_briefing=True,
            booking_restriction_message=(
                "Access is strictly limited to authorized research and conservation personnel only."
            ),
        ),
    }


class SeasonMode(str, Enum):
    """Which side of a calendar window the season factor applies to.

    INSIDE narrows capacity during the window (monsoon, breeding season).
    OUTSIDE narrows capacity everywhere except the window (off-season staffing).
    """

    INSIDE = "inside"
    OUTSIDE = "outside"


class SeasonWindow(BaseModel):
    """An ecologically sensitive calendar window.

    Windows are inclusive on both ends and may wrap the year end
    (e.g. 1 Dec - 28 Feb).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    start_month: int = Field(ge=1, le=12)
    start_day: int = Field(ge=1, le=31)
    end_month: int = Field(ge=1, le=12)
    end_day: int = Field(ge=1, le=31)
    factor: float = Field(gt=0, le=1, description="Capacity factor while the window applies")
    min_sensitivity: SensitivityLevel = Field(
        default=SensitivityLevel.LOW,
        description="Window applies to this tier and every stricter tier",
    )
    mode: SeasonMode = SeasonMode.INSIDE


def _default_season_windows() -> list[SeasonWindow]:
    return [
        SeasonWindow(
            name="Monsoon season",
            start_month=6,
            start_day=1,
            end_month=8,
            end_day=31,
            factor=0.80,
            min_sensitivity=SensitivityLevel.HIGH,
        ),
        SeasonWindow(
            name="Breeding season",
            start_month=3,
            start_day=15,
            end_month=5,
            end_day=31,
            factor=0.85,
            min_sensitivity=SensitivityLevel.CRITICAL,
        ),
    ]


class InfrastructureConfig(BaseModel):
    """Sustained-load (infrastructure wear) policy.

    Attributes:
        strain_threshold: Occupancy fraction of base capacity considered straining
        window_days: Length of the trailing window inspected
        min_samples: Minimum occupancy samples in the window before strain can apply
        factor: Capacity factor applied while strain persists
    """

    model_config = ConfigDict(frozen=True)

    strain_threshold: float = Field(default=0.80, gt=0, le=1)
    window_days: int = Field(default=7, ge=1)
    min_samples: int = Field(default=3, ge=1)
    factor: float = Field(default=0.90, gt=0, le=1)


class PolicyConfig(BaseSettings):
    """Capacity policy configuration.

    Can be overridden via environment variables with POLICY_ prefix
    (complex values as JSON):
    - POLICY_TIERS
    - POLICY_WEATHER_FACTORS
    - POLICY_SEASON_WINDOWS
    - POLICY_DESTINATION_SEASON_WINDOWS
    - POLICY_INFRASTRUCTURE

    The illustrative multipliers are deployment policy, not mechanism: the only
    structural rule enforced here is that multipliers strictly decrease from
    low to critical so the tier ordering of adjusted capacity holds.
    """

    model_config = SettingsConfigDict(
        env_prefix="POLICY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    tiers: dict[SensitivityLevel, TierPolicy] = Field(default_factory=_default_tier_policies)
    weather_factors: dict[AlertLevel, float] = Field(
        default_factory=lambda: {
            AlertLevel.MEDIUM: 0.85,
            AlertLevel.HIGH: 0.65,
            AlertLevel.CRITICAL: 0.40,
        },
        description="Capacity factor per weather alert level (levels absent here are neutral)",
    )
    season_windows: list[SeasonWindow] = Field(default_factory=_default_season_windows)
    destination_season_windows: dict[str, list[SeasonWindow]] = Field(
        default_factory=dict,
        description="Per-destination windows; replace the tier defaults for that destination",
    )
    infrastructure: InfrastructureConfig = Field(default_factory=InfrastructureConfig)

    @field_validator("weather_factors")
    @classmethod
    def factors_in_range(cls, v: dict[AlertLevel, float]) -> dict[AlertLevel, float]:
        for level, factor in v.items():
            if not 0 < factor <= 1:
                msg = f"Weather factor for {level.value} must be in (0, 1], got {factor}"
                raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def tiers_strictly_decreasing(self) -> "PolicyConfig":
        missing = [level.value for level in SensitivityLevel if level not in self.tiers]
        if missing:
            msg = f"Missing tier policies: {', '.join(missing)}"
            raise ValueError(msg)

        multipliers = [
            self.tiers[level].capacity_multiplier for level in SensitivityLevel.ordered()
        ]
        if any(later >= earlier for earlier, later in zip(multipliers, multipliers[1:])):
            msg = f"Capacity multipliers must strictly decrease low→critical, got {multipliers}"
            raise ValueError(msg)
        return self


DEFAULT_POLICY_CONFIG = PolicyConfig()


class WeatherThresholdConfig(BaseSettings):
    """Weather classification thresholds.

    Three independent tables; each maps an alert level to the reading that
    triggers it. Levels missing from a table are never triggered by that metric.

    Can be overridden via environment variables with WEATHER_ prefix (JSON):
    - WEATHER_WIND_SPEED_MS: level -> wind speed (m/s) that must be exceeded
    - WEATHER_PRECIPITATION_MM_H: level -> precipitation intensity (mm/h) that must be exceeded
    - WEATHER_HEAT_C: level -> temperature (°C) that must be exceeded
    - WEATHER_COLD_C: level -> temperature (°C) that must be undercut
    """

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    wind_speed_ms: dict[AlertLevel, float] = Field(
        default_factory=lambda: {
            AlertLevel.LOW: 8.0,
            AlertLevel.MEDIUM: 10.0,
            AlertLevel.HIGH: 15.0,
            AlertLevel.CRITICAL: 20.0,
        }
    )
    precipitation_mm_h: dict[AlertLevel, float] = Field(
        default_factory=lambda: {
            AlertLevel.LOW: 2.5,
            AlertLevel.MEDIUM: 7.6,
            AlertLevel.HIGH: 25.0,
            AlertLevel.CRITICAL: 50.0,
        }
    )
    heat_c: dict[AlertLevel, float] = Field(
        default_factory=lambda: {
            AlertLevel.MEDIUM: 35.0,
            AlertLevel.HIGH: 40.0,
            AlertLevel.CRITICAL: 45.0,
        }
    )
    cold_c: dict[AlertLevel, float] = Field(
        default_factory=lambda: {
            AlertLevel.MEDIUM: 2.0,
            AlertLevel.HIGH: 0.0,
            AlertLevel.CRITICAL: -10.0,
        }
    )

    @field_validator("wind_speed_ms", "precipitation_mm_h", "heat_c", "cold_c")
    @classmethod
    def no_none_level(cls, v: dict[AlertLevel, float]) -> dict[AlertLevel, float]:
        if AlertLevel.NONE in v:
            msg = "Threshold tables cannot define a 'none' level"
            raise ValueError(msg)
        return v


DEFAULT_WEATHER_THRESHOLDS = WeatherThresholdConfig()


class AlertConfig(BaseSettings):
    """Utilization thresholds for computed ecological alerts."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    critical_utilization: float = Field(default=0.85, gt=0)
    high_utilization: float = Field(default=0.70, gt=0)

    @model_validator(mode="after")
    def ordered(self) -> "AlertConfig":
        if self.high_utilization >= self.critical_utilization:
            msg = "high_utilization must be below critical_utilization"
            raise ValueError(msg)
        return self


DEFAULT_ALERT_CONFIG = AlertConfig()


class IngestConfig(BaseSettings):
    """Weather ingest batch configuration.

    Attributes:
        max_workers: Destinations fetched concurrently
        destination_timeout_seconds: Time allowed for one fetch-classify-persist sequence
        interval_seconds: Period of the background monitor loop (0 disables the timer)
    """

    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    max_workers: int = Field(default=8, ge=1, le=64)
    destination_timeout_seconds: float = Field(default=20.0, gt=0)
    interval_seconds: int = Field(default=21_600, ge=0, description="Default every 6 hours")


class ProviderConfig(BaseSettings):
    """External weather provider (Tomorrow.io realtime API shape)."""

    model_config = SettingsConfigDict(
        env_prefix="PROVIDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = Field(default="https://api.tomorrow.io/v4/weather")
    api_key: str = Field(default="", description="Provider API key")
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip())


class SustainabilityConfig(BaseSettings):
    """Weights and thresholds for sustainability scoring.

    Weights must sum to 1.0 so the overall score stays on the 0-100 scale.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUSTAINABILITY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    carbon_weight: float = Field(default=0.40, ge=0, le=1)
    community_weight: float = Field(default=0.25, ge=0, le=1)
    wildlife_weight: float = Field(default=0.20, ge=0, le=1)
    certification_weight: float = Field(default=0.15, ge=0, le=1)
    alternative_max_utilization: float = Field(
        default=0.70, gt=0, description="Alternatives must be below this utilization"
    )

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "SustainabilityConfig":
        total = (
            self.carbon_weight
            + self.community_weight
            + self.wildlife_weight
            + self.certification_weight
        )
        if abs(total - 1.0) > 1e-6:
            msg = f"Sustainability weights must sum to 1.0, got {total:.3f}"
            raise ValueError(msg)
        return self


DEFAULT_SUSTAINABILITY_CONFIG = SustainabilityConfig()


class NotifierConfig(BaseSettings):
    """Change notifier (server) and observer reconnect configuration.

    Can be overridden via environment variables with NOTIFIER_ prefix:
    - NOTIFIER_SUBSCRIBER_QUEUE_SIZE: events buffered per observer before the oldest is dropped
    - NOTIFIER_HEARTBEAT_INTERVAL_SECONDS: server keepalive period
    - NOTIFIER_HEARTBEAT_TIMEOUT_SECONDS: observer liveness timeout
    - NOTIFIER_INITIAL_RETRY_DELAY_SECONDS, NOTIFIER_MAX_RETRY_DELAY_SECONDS,
      NOTIFIER_BACKOFF_MULTIPLIER: observer reconnect backoff
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFIER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    subscriber_queue_size: int = Field(default=64, ge=1)
    heartbeat_interval_seconds: float = Field(default=15.0, gt=0)
    heartbeat_timeout_seconds: float = Field(default=45.0, gt=0)
    initial_retry_delay_seconds: float = Field(default=1.0, gt=0)
    max_retry_delay_seconds: float = Field(default=30.0, gt=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)

    @model_validator(mode="after")
    def heartbeat_outlives_interval(self) -> "NotifierConfig":
        if self.heartbeat_timeout_seconds <= self.heartbeat_interval_seconds:
            msg = "heartbeat_timeout_seconds must exceed heartbeat_interval_seconds"
            raise ValueError(msg)
        return self


class DatabaseSettings(BaseSettings):
    """Database connection configuration.

    Environment variables:
    - DB_URL: SQLAlchemy URL (default: sqlite:///ecocapacity.db)
    - DB_ECHO: Log SQL statements (default: false)
    - DB_CREATE_SCHEMA: Create tables at startup (default: true)
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="sqlite:///ecocapacity.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Enable SQLAlchemy query logging")
    create_schema: bool = Field(default=True, description="Create tables on startup")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class ApiServerConfig(BaseSettings):
    """Configuration for the HTTP API server.

    Can be overridden via environment variables with API_ prefix:
    - API_HOST (default: 0.0.0.0)
    - API_PORT (default: 8085)
    - API_MONITOR_ENABLED: Run the background weather monitor (default: true)
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8085, ge=1, le=65535, description="Port for the API server")
    monitor_enabled: bool = Field(
        default=True, description="Run the background weather monitor loop"
    )
    trace_header: str = Field(default="x-request-id", description="Inbound tracing header")

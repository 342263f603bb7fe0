"""Core domain models for the capacity and alerting engine.

These models represent the business entities as immutable value objects,
separate from the SQLAlchemy row models in ``ecocapacity.models.db``.
Field names are snake_case; the API serialises them unchanged.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ecocapacity.models.enums import (
    AlertLevel,
    AlertType,
    CapacityFactor,
    ImpactCategory,
    SensitivityLevel,
    Severity,
    WasteManagementLevel,
)


class SustainabilityFeatures(BaseModel):
    """Optional sustainability attributes advertised by a destination.

    Attributes:
        waste_management_level: Waste-management tier
        wildlife_protection_program: Destination runs a wildlife protection programme
        has_renewable_energy: Destination runs on renewable energy
        certifications: Eco certifications held (e.g. "GSTC", "Green Key")
        local_employment_ratio: Share of staff employed locally (0-1), None if unknown
        community_fund_share: Share of revenue paid into a community fund (0-1), None if unknown
    """

    model_config = ConfigDict(frozen=True)

    waste_management_level: WasteManagementLevel = WasteManagementLevel.BASIC
    wildlife_protection_program: bool = False
    has_renewable_energy: bool = False
    certifications: tuple[str, ...] = ()
    local_employment_ratio: float | None = Field(default=None, ge=0, le=1)
    community_fund_share: float | None = Field(default=None, ge=0, le=1)


class Destination(BaseModel):
    """A visitor destination as read from the record store.

    ``current_occupancy`` may transiently exceed ``max_capacity``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Destination ID")
    name: str = Field(min_length=1, description="Destination name")
    location: str = Field(default="", description="Region or locality")
    max_capacity: int = Field(gt=0, description="Physical visitor ceiling")
    current_occupancy: int = Field(ge=0, description="Visitors currently on site")
    ecological_sensitivity: SensitivityLevel
    is_active: bool = True
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    sustainability_features: SustainabilityFeatures | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class WeatherReading(BaseModel):
    """Raw weather reading for one location, as returned by a provider."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(description="Air temperature (°C)")
    humidity: float = Field(ge=0, le=100, description="Relative humidity (%)")
    wind_speed: float = Field(ge=0, description="Wind speed (m/s)")
    precipitation_intensity: float = Field(ge=0, description="Precipitation intensity (mm/h)")
    recorded_at: datetime = Field(description="Time the reading was taken")


class WeatherObservation(BaseModel):
    """A classified, persisted weather reading for a destination.

    Created by the ingest step and immutable once written. The newest
    observation per destination is the one the policy engine consumes.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    destination_id: str
    temperature: float
    humidity: float
    wind_speed: float
    precipitation_intensity: float
    recorded_at: datetime
    alert_level: AlertLevel = AlertLevel.NONE
    alert_message: str | None = None
    alert_reason: str | None = None


class OccupancySample(BaseModel):
    """One point of a destination's occupancy history."""

    model_config = ConfigDict(frozen=True)

    destination_id: str
    occupancy: int = Field(ge=0)
    recorded_at: datetime


class CapacityOverride(BaseModel):
    """Operator-set multiplier on a destination's dynamic capacity.

    Attributes:
        destination_id: Destination the override applies to
        multiplier: Factor in (0, 1] multiplied into adjusted capacity
        reason: Operator-supplied reason, shown in the display message
        expires_at: Time the override lapses, None to hold until cleared
        created_at: Time the override was set
    """

    model_config = ConfigDict(frozen=True)

    destination_id: str = Field(min_length=1)
    multiplier: float = Field(gt=0, le=1)
    reason: str = Field(min_length=1)
    expires_at: datetime | None = None
    created_at: datetime

    def applies_at(self, now: datetime) -> bool:
        return self.expires_at is None or now < self.expires_at


class ActiveFactors(BaseModel):
    """Which dynamic multipliers deviated from neutral."""

    model_config = ConfigDict(frozen=True)

    weather: bool = False
    season: bool = False
    infrastructure: bool = False
    override: bool = False

    @property
    def any_active(self) -> bool:
        return self.weather or self.season or self.infrastructure or self.override


class DynamicCapacityResult(BaseModel):
    """Adjusted capacity for a destination. Computed on demand, never persisted.

    Attributes:
        destination_id: Destination the result belongs to
        base_capacity: Static tier capacity (max_capacity x tier multiplier)
        adjusted_capacity: Dynamic ceiling, 0 <= adjusted_capacity <= max_capacity
        available_spots: Remaining headroom under the adjusted ceiling
        weather_factor: Weather multiplier applied (1.0 when neutral)
        season_factor: Seasonal multiplier applied (1.0 when neutral)
        infrastructure_factor: Sustained-load multiplier applied (1.0 when neutral)
        override_factor: Operator override multiplier applied (1.0 when none applies)
        active_factors: Flags for each multiplier below 1.0
        binding_factor: Most restrictive active factor, None when none active
        display_message: Human readable description of the binding constraint
    """

    model_config = ConfigDict(frozen=True)

    destination_id: str
    base_capacity: int = Field(ge=0)
    adjusted_capacity: int = Field(ge=0)
    available_spots: int = Field(ge=0)
    weather_factor: float = 1.0
    season_factor: float = 1.0
    infrastructure_factor: float = 1.0
    override_factor: float = 1.0
    active_factors: ActiveFactors = Field(default_factory=ActiveFactors)
    binding_factor: CapacityFactor | None = None
    display_message: str

    def utilization(self, occupancy: int) -> float:
        """Occupancy as a fraction of adjusted capacity.

        A zero ceiling with visitors on site is infinitely over capacity;
        a zero ceiling with nobody on site is idle.
        """
        if self.adjusted_capacity == 0:
            return float("inf") if occupancy > 0 else 0.0
        return occupancy / self.adjusted_capacity


class Alert(BaseModel):
    """An operator-facing alert.

    Persisted alerts are created by operators or the ingest step. Computed
    alerts are synthesised at read time (``computed=True``) and carry an id
    derived from destination and kind, so recomputation yields the same identity.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: AlertType
    title: str
    message: str
    severity: Severity
    destination_id: str | None = None
    timestamp: datetime
    is_active: bool = True
    computed: bool = False

    @property
    def dedup_key(self) -> tuple[str, str, str | None, AlertType]:
        return (self.title, self.message, self.destination_id, self.type)


class SustainabilityScore(BaseModel):
    """Composite sustainability score for a destination (all sub-scores 0-100)."""

    model_config = ConfigDict(frozen=True)

    destination_id: str
    overall_score: int = Field(ge=0, le=100)
    carbon_score: float = Field(ge=0, le=100)
    community_score: float = Field(ge=0, le=100)
    wildlife_score: float = Field(ge=0, le=100)
    certification_score: float = Field(ge=0, le=100)
    estimated_co2_kg: float = Field(ge=0, description="Estimated daily CO2 of current visitors")
    impact_category: ImpactCategory


class CarbonOffset(BaseModel):
    """Estimated emissions and offset cost for a visiting group."""

    model_config = ConfigDict(frozen=True)

    estimated_co2_kg: float
    offset_cost: int
    offset_projects: tuple[str, ...]

"""Enumerations shared by domain models, database rows and the API.

Ordered enums expose ``rank`` so comparisons never depend on string order.
"""

from enum import Enum


class SensitivityLevel(str, Enum):
    """Static ecological fragility tier of a destination."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def ordered(cls) -> list["SensitivityLevel"]:
        """Tiers from least to most sensitive."""
        return [cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]

    @property
    def rank(self) -> int:
        """0 for low up to 3 for critical."""
        return SensitivityLevel.ordered().index(self)


class AlertLevel(str, Enum):
    """Weather-derived alert level of an observation."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """0 for none up to 4 for critical."""
        return list(AlertLevel).index(self)

    def to_severity(self) -> "Severity":
        if self is AlertLevel.NONE:
            msg = "Alert level 'none' has no severity"
            raise ValueError(msg)
        return Severity(self.value)


class Severity(str, Enum):
    """Alert severity. Total order: critical > high > medium > low."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, critical first (0) and low last (3)."""
        return list(Severity).index(self)


class AlertType(str, Enum):
    """Types of alerts."""

    CAPACITY = "capacity"
    WEATHER = "weather"
    EMERGENCY = "emergency"
    MAINTENANCE = "maintenance"
    ECOLOGICAL = "ecological"


class WasteManagementLevel(str, Enum):
    """Waste-management tier advertised by a destination."""

    BASIC = "basic"
    ADVANCED = "advanced"
    CERTIFIED = "certified"


class ImpactCategory(str, Enum):
    """Sustainability profile shown next to a destination."""

    COMMUNITY_FRIENDLY = "community-friendly"
    WILDLIFE_SAFE = "wildlife-safe"
    LOW_CARBON = "low-carbon"


class CapacityFactor(str, Enum):
    """Dynamic factors that can bind adjusted capacity, in tie-break priority order."""

    WEATHER = "weather"
    SEASON = "season"
    INFRASTRUCTURE = "infrastructure"
    OVERRIDE = "override"


class EventType(str, Enum):
    """Change notifications pushed to connected observers."""

    WEATHER_UPDATE_AVAILABLE = "weather_update_available"
    CAPACITY_UPDATE = "capacity_update"
    WEATHER_UPDATE = "weather_update"
    CONNECTION_ESTABLISHED = "connection_established"


class ConnectionState(str, Enum):
    """Observer-side connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"
    RECONNECTING = "reconnecting"


class IngestFailureKind(str, Enum):
    """Why one destination dropped out of a weather ingest batch."""

    PROVIDER = "provider"
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    STORAGE = "storage"
    INTERNAL = "internal"

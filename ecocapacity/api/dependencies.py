"""Application context shared by the API routers.

One AppContext is built per process and stored on ``app.state``; routers
reach it through the ``get_context`` dependency.
"""

from dataclasses import dataclass

from fastapi import Request

from ecocapacity.clients.weather_provider import WeatherProviderClient
from ecocapacity.config import (
    DEFAULT_ALERT_CONFIG,
    DEFAULT_POLICY_CONFIG,
    DEFAULT_SUSTAINABILITY_CONFIG,
    DEFAULT_WEATHER_THRESHOLDS,
    AlertConfig,
    IngestConfig,
    NotifierConfig,
    PolicyConfig,
    SustainabilityConfig,
    WeatherThresholdConfig,
)
from ecocapacity.monitor import WeatherMonitor
from ecocapacity.notifier.broadcaster import Broadcaster
from ecocapacity.orchestrator import SnapshotOrchestrator
from ecocapacity.policy.engine import CapacityPolicyEngine
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.alerts import AlertService
from ecocapacity.services.capacity import CapacityService
from ecocapacity.services.sustainability import SustainabilityService
from ecocapacity.services.weather_ingest import WeatherIngestService


@dataclass
class AppContext:
    repository: Repository
    capacity_service: CapacityService
    alert_service: AlertService
    sustainability_service: SustainabilityService
    orchestrator: SnapshotOrchestrator
    broadcaster: Broadcaster
    monitor: WeatherMonitor


def build_context(
    repository: Repository,
    provider: WeatherProviderClient,
    *,
    policy_config: PolicyConfig = DEFAULT_POLICY_CONFIG,
    thresholds: WeatherThresholdConfig = DEFAULT_WEATHER_THRESHOLDS,
    alert_config: AlertConfig = DEFAULT_ALERT_CONFIG,
    sustainability_config: SustainabilityConfig = DEFAULT_SUSTAINABILITY_CONFIG,
    ingest_config: IngestConfig | None = None,
    notifier_config: NotifierConfig | None = None,
) -> AppContext:
    """Wire services around one repository and provider client."""
    ingest_config = ingest_config or IngestConfig()
    capacity_service = CapacityService(repository, CapacityPolicyEngine(policy_config))
    alert_service = AlertService(repository, capacity_service, alert_config)
    sustainability_service = SustainabilityService(
        repository, capacity_service, sustainability_config
    )
    broadcaster = Broadcaster(notifier_config)
    ingest_service = WeatherIngestService(repository, provider, thresholds, ingest_config)

    return AppContext(
        repository=repository,
        capacity_service=capacity_service,
        alert_service=alert_service,
        sustainability_service=sustainability_service,
        orchestrator=SnapshotOrchestrator(
            repository, capacity_service, alert_service, sustainability_service
        ),
        broadcaster=broadcaster,
        monitor=WeatherMonitor(repository, ingest_service, broadcaster, ingest_config),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context

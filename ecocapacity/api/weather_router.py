"""Weather endpoints: on-demand checks outside the monitor's schedule."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ecocapacity.api.dependencies import AppContext, get_context
from ecocapacity.models.domain import WeatherObservation
from ecocapacity.models.enums import IngestFailureKind

router = APIRouter(prefix="/weather")


class FailureSummary(BaseModel):
    destination_id: str
    reason: str
    kind: IngestFailureKind
    last_good_at: datetime | None = None


class CheckSummary(BaseModel):
    """Outcome of a full weather check."""

    succeeded: int
    failed: int
    alerts_raised: int
    observations: list[WeatherObservation]
    failures: list[FailureSummary]


@router.post("/check", response_model=CheckSummary)
def check_all(context: AppContext = Depends(get_context)) -> CheckSummary:
    """Ingest fresh readings for every active destination.

    Destinations whose provider call fails are reported in ``failures``;
    the rest are still stored.
    """
    result = context.monitor.check_now()
    return CheckSummary(
        succeeded=result.succeeded,
        failed=result.failed,
        alerts_raised=result.alerts_raised,
        observations=result.observations,
        failures=[
            FailureSummary(
                destination_id=f.destination_id,
                reason=f.reason,
                kind=f.kind,
                last_good_at=f.last_good_at,
            )
            for f in result.failures
        ],
    )


@router.post("/check/{destination_id}", response_model=WeatherObservation)
def check_destination(
    destination_id: str, context: AppContext = Depends(get_context)
) -> WeatherObservation:
    return context.monitor.check_destination(destination_id)

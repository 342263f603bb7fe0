"""Alert endpoints: the aggregated operator list and alert lifecycle."""

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from ecocapacity.api.dependencies import AppContext, get_context
from ecocapacity.models.domain import Alert
from ecocapacity.models.enums import AlertType, Severity

router = APIRouter(prefix="/alerts")


class AlertCreateRequest(BaseModel):
    """Request body for raising an operator alert."""

    type: AlertType
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    severity: Severity
    destination_id: str | None = None
    timestamp: datetime | None = None


@router.get("", response_model=list[Alert])
def list_alerts(context: AppContext = Depends(get_context)) -> list[Alert]:
    """Deduplicated alerts, critical first then newest first.

    Includes alerts synthesized from current utilization and the latest
    weather observations alongside persisted ones.
    """
    return context.alert_service.get_aggregated_alerts()


@router.post("", response_model=Alert, status_code=status.HTTP_201_CREATED)
def create_alert(
    request: AlertCreateRequest, context: AppContext = Depends(get_context)
) -> Alert:
    return context.alert_service.create_alert(
        type=request.type,
        title=request.title,
        message=request.message,
        severity=request.severity,
        destination_id=request.destination_id,
        timestamp=request.timestamp,
    )


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_alert(alert_id: str, context: AppContext = Depends(get_context)) -> Response:
    context.alert_service.deactivate_alert(alert_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

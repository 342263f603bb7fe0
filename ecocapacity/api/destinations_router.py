"""Destination endpoints: capacity, overrides, occupancy, sustainability and alternatives."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import AwareDatetime, BaseModel, Field

from ecocapacity.api.dependencies import AppContext, get_context
from ecocapacity.calculators.sustainability import calculate_carbon_offset
from ecocapacity.models.domain import (
    CarbonOffset,
    Destination,
    DynamicCapacityResult,
    SustainabilityScore,
)
from ecocapacity.models.enums import EventType
from ecocapacity.orchestrator import StateSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()


class OccupancyUpdate(BaseModel):
    """Request body for an occupancy report."""

    occupancy: int = Field(..., ge=0, description="Visitors currently on site")


class CapacityOverrideRequest(BaseModel):
    """Request body for an operator capacity override."""

    multiplier: float = Field(..., gt=0, le=1, description="Factor applied to capacity")
    reason: str = Field(..., min_length=1)
    expires_at: AwareDatetime | None = Field(
        default=None, description="When the override lapses; held until cleared if omitted"
    )


class BookingCheck(BaseModel):
    allowed: bool
    reason: str | None = None
    requires_permit: bool = False
    requires_eco_briefing: bool = False


@router.get("/destinations", response_model=list[Destination])
def list_destinations(
    active_only: bool = True, context: AppContext = Depends(get_context)
) -> list[Destination]:
    return context.repository.fetch_destinations(active_only=active_only)


@router.get("/destinations/{destination_id}/capacity", response_model=DynamicCapacityResult)
async def get_capacity(
    destination_id: str, context: AppContext = Depends(get_context)
) -> DynamicCapacityResult:
    """Dynamic capacity of one destination right now."""
    destination = context.repository.fetch_destination(destination_id)
    return await context.capacity_service.get_dynamic_capacity_async(destination)


@router.get("/destinations/{destination_id}/booking", response_model=BookingCheck)
def check_booking(
    destination_id: str,
    group_size: int = Query(..., ge=1),
    context: AppContext = Depends(get_context),
) -> BookingCheck:
    destination = context.repository.fetch_destination(destination_id)
    decision = context.capacity_service.check_booking(destination, group_size)
    return BookingCheck(
        allowed=decision.allowed,
        reason=decision.reason,
        requires_permit=decision.requires_permit,
        requires_eco_briefing=decision.requires_eco_briefing,
    )


@router.put("/destinations/{destination_id}/occupancy", response_model=DynamicCapacityResult)
def update_occupancy(
    destination_id: str,
    update: OccupancyUpdate,
    context: AppContext = Depends(get_context),
) -> DynamicCapacityResult:
    """Record a new occupancy reading and notify observers.

    Returns the destination's dynamic capacity after the update.
    """
    now = datetime.now(UTC)
    context.repository.record_occupancy(destination_id, update.occupancy, now)
    destination = context.repository.fetch_destination(destination_id)
    result = context.capacity_service.get_dynamic_capacity(destination, now)

    context.broadcaster.publish_type(EventType.CAPACITY_UPDATE, destination_id)
    logger.info(f"Occupancy of {destination_id} set to {update.occupancy}")
    return result


@router.put(
    "/destinations/{destination_id}/capacity-override", response_model=DynamicCapacityResult
)
def set_capacity_override(
    destination_id: str,
    request: CapacityOverrideRequest,
    context: AppContext = Depends(get_context),
) -> DynamicCapacityResult:
    """Set or replace the operator override and notify observers."""
    destination = context.repository.fetch_destination(destination_id)
    result = context.capacity_service.set_override(
        destination, request.multiplier, request.reason, request.expires_at
    )
    context.broadcaster.publish_type(EventType.CAPACITY_UPDATE, destination_id)
    return result


@router.delete(
    "/destinations/{destination_id}/capacity-override", status_code=status.HTTP_204_NO_CONTENT
)
def clear_capacity_override(
    destination_id: str, context: AppContext = Depends(get_context)
) -> Response:
    destination = context.repository.fetch_destination(destination_id)
    context.capacity_service.clear_override(destination)
    context.broadcaster.publish_type(EventType.CAPACITY_UPDATE, destination_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/destinations/{destination_id}/sustainability", response_model=SustainabilityScore
)
def get_sustainability(
    destination_id: str, context: AppContext = Depends(get_context)
) -> SustainabilityScore:
    destination = context.repository.fetch_destination(destination_id)
    return context.sustainability_service.score(destination)


@router.get("/destinations/{destination_id}/carbon-offset", response_model=CarbonOffset)
def get_carbon_offset(
    destination_id: str,
    group_size: int = Query(1, ge=1),
    context: AppContext = Depends(get_context),
) -> CarbonOffset:
    destination = context.repository.fetch_destination(destination_id)
    return calculate_carbon_offset(destination, group_size)


@router.get("/destinations/{destination_id}/alternatives", response_model=list[Destination])
def get_alternatives(
    destination_id: str,
    k: int = Query(2, ge=0, le=20),
    context: AppContext = Depends(get_context),
) -> list[Destination]:
    """Lower-impact destinations with headroom, best first."""
    reference = context.repository.fetch_destination(destination_id)
    return context.sustainability_service.find_alternatives(reference, k)


@router.get("/snapshot", response_model=StateSnapshot)
def get_snapshot(context: AppContext = Depends(get_context)) -> StateSnapshot:
    """Everything an observer needs after a change event."""
    return context.orchestrator.build_snapshot()

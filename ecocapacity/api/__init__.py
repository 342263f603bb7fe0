"""HTTP API for the eco capacity engine.

Follows the APIRouter pattern: each feature has its own router module,
assembled here into a single FastAPI app.

Endpoints:
    GET    /health                               - Health check for ECS monitoring
    GET    /destinations                         - Validated destinations
    GET    /destinations/{id}/capacity           - Dynamic capacity
    GET    /destinations/{id}/booking            - Booking check for a group size
    PUT    /destinations/{id}/occupancy          - Report occupancy (publishes capacity_update)
    GET    /destinations/{id}/sustainability     - Sustainability score
    GET    /destinations/{id}/carbon-offset      - Carbon offset for a group
    GET    /destinations/{id}/alternatives       - Lower-impact alternatives
    GET    /snapshot                             - Full state for observers
    GET    /alerts                               - Aggregated alert list
    POST   /alerts                               - Raise an operator alert
    DELETE /alerts/{id}                          - Deactivate an alert
    POST   /weather/check                        - Weather check for all destinations
    POST   /weather/check/{id}                   - Weather check for one destination
    GET    /events                               - Server-sent change events
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ecocapacity.api.alerts_router import router as alerts_router
from ecocapacity.api.dependencies import AppContext
from ecocapacity.api.destinations_router import router as destinations_router
from ecocapacity.api.events_router import router as events_router
from ecocapacity.api.health_router import router as health_router
from ecocapacity.api.weather_router import router as weather_router
from ecocapacity.common.tracing import DEFAULT_TRACE_HEADER, TraceIdMiddleware
from ecocapacity.exceptions import (
    AlertNotFoundError,
    DestinationNotFoundError,
    InvalidDestinationError,
    InvalidOverrideError,
    WeatherProviderError,
)

logger = logging.getLogger(__name__)


def _error_handler(status_code: int):
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.warning(f"{type(exc).__name__}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(
    context: AppContext,
    *,
    trace_header: str = DEFAULT_TRACE_HEADER,
    start_monitor: bool = False,
) -> FastAPI:
    """Assemble the API around an application context.

    Args:
        context: Services shared by every request
        trace_header: Inbound request id header echoed on responses
        start_monitor: Run the periodic weather monitor for the app's lifetime
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        context.broadcaster.bind_loop(asyncio.get_running_loop())
        if start_monitor:
            context.monitor.start()
        try:
            yield
        finally:
            context.monitor.stop()

    app = FastAPI(title="Eco Capacity API", lifespan=lifespan)
    app.state.context = context
    app.add_middleware(TraceIdMiddleware, header=trace_header)

    app.add_exception_handler(DestinationNotFoundError, _error_handler(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(AlertNotFoundError, _error_handler(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(
        InvalidDestinationError, _error_handler(status.HTTP_422_UNPROCESSABLE_ENTITY)
    )
    app.add_exception_handler(
        InvalidOverrideError, _error_handler(status.HTTP_422_UNPROCESSABLE_ENTITY)
    )
    app.add_exception_handler(WeatherProviderError, _error_handler(status.HTTP_502_BAD_GATEWAY))
    app.add_exception_handler(TimeoutError, _error_handler(status.HTTP_504_GATEWAY_TIMEOUT))

    app.include_router(health_router)
    app.include_router(destinations_router)
    app.include_router(alerts_router)
    app.include_router(weather_router)
    app.include_router(events_router)

    return app

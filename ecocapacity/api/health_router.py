"""Health check router."""

from fastapi import APIRouter, Depends

from ecocapacity.api.dependencies import AppContext, get_context

router = APIRouter()


@router.get("/health")
async def health(context: AppContext = Depends(get_context)):
    """Return health status for ECS health checks."""
    return {
        "status": "ok",
        "subscribers": context.broadcaster.subscriber_count,
        "monitor_running": context.monitor.running,
    }

"""Server-sent change events.

Observers hold ``GET /events`` open and re-pull state (``GET /snapshot``)
whenever an event arrives. Events carry no state themselves.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ecocapacity.api.dependencies import AppContext, get_context

router = APIRouter()


@router.get("/events")
async def events(request: Request, context: AppContext = Depends(get_context)):
    broadcaster = context.broadcaster
    subscription = broadcaster.subscribe()

    async def frames():
        try:
            async for frame in broadcaster.stream(subscription):
                if await request.is_disconnected():
                    break
                yield frame
        finally:
            broadcaster.unsubscribe(subscription)

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

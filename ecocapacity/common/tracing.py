"""Request tracing for the HTTP API.

Inbound requests may carry a request id header (``x-request-id`` by default,
configurable via API_TRACE_HEADER). The middleware stores it, or a freshly
generated id, in a context variable for the duration of the request so log
records and the response can carry the same id.
"""

import contextvars
import uuid
from logging import getLogger

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

logger = getLogger(__name__)

DEFAULT_TRACE_HEADER = "x-request-id"

# Context variables for request-scoped tracing data
ctx_trace_id: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="")
ctx_request: contextvars.ContextVar[dict | None] = contextvars.ContextVar("request", default=None)
ctx_response: contextvars.ContextVar[dict | None] = contextvars.ContextVar(
    "response", default=None
)


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Middleware to extract and propagate request trace ids.

    Echoes the trace id back on the response so callers can correlate
    their request with server logs.
    """

    def __init__(self, app: ASGIApp, header: str = DEFAULT_TRACE_HEADER):
        super().__init__(app)
        self.header = header

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(self.header) or uuid.uuid4().hex
        ctx_trace_id.set(trace_id)
        ctx_request.set({"url": str(request.url), "method": request.method})

        response = await call_next(request)
        ctx_response.set({"status_code": response.status_code})
        response.headers[self.header] = trace_id
        return response

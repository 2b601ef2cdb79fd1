import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

TRACE_ID_CTX_VAR: ContextVar[str] = ContextVar("trace_id", default="")

logger = logging.getLogger("healthcare_pro")


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Attach a trace_id to every request and response.

    The id is kept in a context variable so log records and error envelopes
    emitted while the request is handled carry the same value. A caller-supplied
    ``x-trace-id`` header is reused when present.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
        TRACE_ID_CTX_VAR.set(trace_id)
        request.state.trace_id = trace_id
        started = time.perf_counter()

        response = await call_next(request)

        # Propagate trace id to client; header names are case-insensitive
        response.headers["x-trace-id"] = trace_id
        logger.info({
            "event": "request_completed",
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
        })
        return response

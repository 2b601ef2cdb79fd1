import logging
from enum import Enum
from typing import Any, Optional

from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from healthcare_pro.middleware.tracing import TRACE_ID_CTX_VAR

logger = logging.getLogger("healthcare_pro")


# ---- Domain error taxonomy ----

class HealthCareError(Exception):
    """Base class for errors the API turns into an error envelope."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(HealthCareError):
    """Bad, empty, oversized or inappropriate input. Raised before any network call."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class EmergencyDetected(HealthCareError):
    """Not a failure: the input matched an emergency phrase and analysis is short-circuited."""


class ApiErrorKind(str, Enum):
    NOT_CONFIGURED = "NotConfigured"
    INVALID_KEY = "InvalidKey"
    RATE_LIMITED = "RateLimited"
    UNAUTHORIZED = "Unauthorized"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    NETWORK = "Network"
    UNKNOWN = "Unknown"


API_ERROR_MESSAGES = {
    ApiErrorKind.NOT_CONFIGURED: "LLM API key not configured. Please add GROQ_API_KEY to your .env file.",
    ApiErrorKind.INVALID_KEY: "Invalid API Key. Please verify your Groq API key at https://console.groq.com/",
    ApiErrorKind.RATE_LIMITED: "LLM rate limit exceeded. Please wait a moment and try again.",
    ApiErrorKind.UNAUTHORIZED: "LLM authentication failed. Please verify your API key is correct.",
    ApiErrorKind.SERVICE_UNAVAILABLE: "LLM service temporarily unavailable. Please try again in a moment.",
    ApiErrorKind.NETWORK: "Network error connecting to the LLM service. Please check your internet connection.",
    ApiErrorKind.UNKNOWN: "Unexpected response from the LLM service. Please try again.",
}

# Retryable kinds are surfaced as 503/429; configuration problems are terminal for the action.
API_ERROR_STATUS = {
    ApiErrorKind.NOT_CONFIGURED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ApiErrorKind.INVALID_KEY: status.HTTP_502_BAD_GATEWAY,
    ApiErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ApiErrorKind.UNAUTHORIZED: status.HTTP_502_BAD_GATEWAY,
    ApiErrorKind.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ApiErrorKind.NETWORK: status.HTTP_504_GATEWAY_TIMEOUT,
    ApiErrorKind.UNKNOWN: status.HTTP_502_BAD_GATEWAY,
}


class ApiError(HealthCareError):
    """Failure talking to the LLM endpoint."""

    def __init__(self, kind: ApiErrorKind, message: Optional[str] = None, details: Any = None):
        super().__init__(message or API_ERROR_MESSAGES[kind], details)
        self.kind = kind
        self.status_code = API_ERROR_STATUS[kind]

    @property
    def retryable(self) -> bool:
        return self.kind in (ApiErrorKind.RATE_LIMITED, ApiErrorKind.NETWORK, ApiErrorKind.SERVICE_UNAVAILABLE)


class ParseError(HealthCareError):
    """No usable JSON object could be recovered from a model response."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, stage: str, message: Optional[str] = None):
        super().__init__(message or f"Could not read a JSON analysis from the model response (stage: {stage})", {"stage": stage})
        self.stage = stage


class ContentRefusedError(HealthCareError):
    """The model answered with an explicit ``error`` field instead of an analysis."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PersistenceError(HealthCareError):
    """Writing to or reading from the data store failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class RowNotFoundError(PersistenceError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransitionError(HealthCareError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move workflow from '{current}' to '{target}'",
            {"current": current, "target": target},
        )
        self.current = current
        self.target = target


# ---- Error envelope ----

def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        429: "TOO_MANY_REQUESTS",
        500: "INTERNAL_SERVER_ERROR",
        502: "BAD_GATEWAY",
        503: "SERVICE_UNAVAILABLE",
        504: "GATEWAY_TIMEOUT",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def _trace_id(request: Request) -> str:
    return TRACE_ID_CTX_VAR.get() or getattr(request.state, "trace_id", "")


async def handle_http_exception(request: Request, exc: HTTPException):
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    body = {"code": status_to_code(exc.status_code), "message": message, "trace_id": _trace_id(request)}
    if detail is not None:
        body["details"] = detail
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def handle_domain_exception(request: Request, exc: HealthCareError):
    logger.warning({"event": "domain_error", "type": type(exc).__name__, "message": exc.message})
    body = {
        "code": status_to_code(exc.status_code),
        "message": exc.message,
        "details": exc.details,
        "trace_id": _trace_id(request),
    }
    if isinstance(exc, ApiError):
        body["kind"] = exc.kind.value
    return JSONResponse(status_code=exc.status_code, content=body)


async def handle_rate_limit_exceeded(request: Request, exc: RateLimitExceeded):
    body = {
        "code": "TOO_MANY_REQUESTS",
        "message": "Rate limit exceeded",
        "details": str(exc.detail),
        "trace_id": _trace_id(request),
    }
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=body)


async def handle_unhandled_exception(request: Request, exc: Exception):
    logger.exception({"event": "unhandled_error", "path": request.url.path})
    body = {
        "code": "INTERNAL_SERVER_ERROR",
        "message": "An unexpected error occurred",
        "details": str(exc),
        "trace_id": _trace_id(request),
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from healthcare_pro import config

limiter = Limiter(key_func=get_remote_address, default_limits=[])


def user_rate_key(request: Request) -> str:
    """Return a per-user key when available; otherwise fall back to IP.

    Routes set request.state.user_id after resolving the current user.
    """
    uid = getattr(request.state, "user_id", None)
    if uid:
        return str(uid)
    return get_remote_address(request)


def llm_limit() -> str:
    # Read per request so tests and operators can change it without a restart
    return config.LLM_RATE_LIMIT


def reset_limiter() -> None:
    """Clear all counters. Used by the test suite between tests."""
    limiter.reset()

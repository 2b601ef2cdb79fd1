# healthcare_pro/app.py
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from healthcare_pro import config
from healthcare_pro.middleware.rate_limit import limiter
from healthcare_pro.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware
from healthcare_pro.models import init_db
from healthcare_pro.routes import (
    auth_routes,
    mood_routes,
    preferences_routes,
    prescription_routes,
    profile_routes,
    reports_routes,
    symptoms_routes,
)
from healthcare_pro.services.input_validator import get_rules
from healthcare_pro.services.llm_client import LLMClient
from healthcare_pro.utils.exceptions import (
    HealthCareError,
    handle_domain_exception,
    handle_http_exception,
    handle_rate_limit_exceeded,
    handle_unhandled_exception,
)


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "function": record.funcName,
            "trace_id": TRACE_ID_CTX_VAR.get() or None,
            "message": record.getMessage(),
        }
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("healthcare_pro")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()

# --- app & router setup ---
app = FastAPI(title="HealthCare Pro Backend", version="0.1.0")
router = APIRouter(prefix="/api")

app.add_middleware(TracingMiddleware)

# ---- Rate limiting (slowapi) ----
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Error envelope ----
app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(HealthCareError, handle_domain_exception)
app.add_exception_handler(RateLimitExceeded, handle_rate_limit_exceeded)
app.add_exception_handler(Exception, handle_unhandled_exception)


@app.on_event("startup")
def _init_db():
    init_db()
    # Fail at startup rather than on the first symptom check if the rules file is broken
    get_rules()
    logger.info({"event": "startup", "llm_configured": LLMClient().configured})


@router.get("/health")
def health():
    return {"status": "ok", "llm_configured": LLMClient().configured}


app.include_router(router)
app.include_router(auth_routes.router)
app.include_router(profile_routes.router)
app.include_router(symptoms_routes.router)
app.include_router(prescription_routes.router)
app.include_router(prescription_routes.medications_router)
app.include_router(mood_routes.router)
app.include_router(reports_routes.router)
app.include_router(preferences_routes.router)

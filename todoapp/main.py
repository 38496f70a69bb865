# PURPOSE: FastAPI application: routers, middleware, error handlers, health checks and metrics.

from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, status, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from . import db_models  # noqa: F401 (registers tables on Base.metadata)
from .api.errors import register_exception_handlers
from .api.v1.router import api_router
from .config import settings
from .db import Base, engine
from .logging_utils import setup_logging
from .rate_limit import limiter, _rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    setup_logging(settings.LOG_LEVEL)
    if settings.DB_AUTO_CREATE:
        # Alembic (upgrade head) is the normal path; this is for scratch databases
        Base.metadata.create_all(bind=engine)
    logger.info("startup env=%s timezone=%s mail=%s", settings.APP_ENV, settings.TIMEZONE, bool(settings.SMTP_HOST))
    yield


tags_metadata = [
    {"name": "auth", "description": "Registration with email OTP, login, profile, password reset."},
    {"name": "tasks", "description": "Tasks: CRUD, bucket views, counts, trash and bulk operations."},
    {"name": "lists", "description": "User-defined lists that group tasks by name."},
]

app = FastAPI(
    title="TodoApp API",
    version="1.0.0",
    description=(
        "Versioned JSON API exposed under /api/v1. "
        "Use OAuth2 password flow to obtain a Bearer token and access protected endpoints."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "ok"}


app.include_router(api_router)

# Unified error handlers
register_exception_handlers(app)

# Rate limiting (global middleware + handler)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    req_id = incoming or uuid.uuid4().hex
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logging.getLogger("todoapp.request").info(
        "method=%s path=%s status=%s duration_ms=%s request_id=%s",
        request.method,
        request.url.path,
        getattr(response, "status_code", "-"),
        duration_ms,
        req_id,
    )
    return response


# --- Security: CORS and security headers ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", settings.REQUEST_ID_HEADER],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    # Basic hardening headers
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    path = request.url.path
    if settings.SECURITY_CSP and not (path.startswith("/docs") or path.startswith("/redoc")):
        # Swagger/ReDoc pull scripts from a CDN; everything else is plain JSON
        response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
    if settings.SECURITY_ENABLE_HSTS:
        # 6 months + preload; adjust as needed in prod
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains; preload")
    return response


# --- Observability: liveness, readiness, metrics ---

@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)

"""
api/main.py -- FastAPI application entry point for the blog API.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- lets the browser frontend (FRONTEND_URL) call the API
  3. SlowAPIMiddleware     -- enforces RATE_LIMIT globally and per-route limits

Lifespan opens the database engine and the two stores on startup and
disposes of the engine on shutdown.

Every error leaves through one of the exception handlers below and is shaped
as {"success": false, "message": ..., "errors": [...]?}.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.posts import router as posts_router
from auth.store import UserStore, UserValidationError
from core.config import get_settings
from core.db import create_db_engine
from posts.store import PostStore

_settings = get_settings()

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("blog.api")

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    One Engine (one connection pool) is shared by both stores. The stores
    create missing tables on construction.
    """
    logger.info("Blog API starting up (environment=%s)", _settings.environment)
    app.state.started_at = time.monotonic()
    app.state.engine = create_db_engine(_settings.database_url)
    app.state.user_store = UserStore(app.state.engine)
    app.state.post_store = PostStore(app.state.engine)
    logger.info("Database initialized")

    yield

    app.state.engine.dispose()
    logger.info("Blog API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Blog API",
    description="Blog platform with JWT auth, admin-managed posts and draft/published visibility.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_url],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(posts_router, prefix="/api", tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, errors: list[str] | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, errors=errors).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429; Retry-After tells clients how many seconds to wait."""
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error(429, "Too many requests. Please try again later.", headers={"Retry-After": str(retry_after)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 listing every failing field, e.g. "body.title: String should have at least 3 characters"."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        errors.append(f"{loc}: {err.get('msg', 'invalid')}")
    return _error(400, "Validation error", errors=errors)


@app.exception_handler(UserValidationError)
async def user_validation_handler(request: Request, exc: UserValidationError) -> JSONResponse:
    return _error(400, "Validation error", errors=exc.errors)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique-constraint violations that no route translated itself."""
    logger.info("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error(409, "Resource already exists")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Shape every HTTPException (ours and Starlette's routing 404/405) as the error envelope.

    Registered for the Starlette base class so unmatched routes are covered
    too, not only fastapi.HTTPException raised by handlers.
    """
    message = str(exc.detail)
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    return _error(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ---------------------------------------------------------------------------
# Health and index
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Report liveness and database connectivity. 503 when the database is unreachable."""
    database = "connected"
    try:
        request.app.state.user_store.ping()
    except SQLAlchemyError as exc:
        logger.error("Health check database probe failed: %s", exc)
        database = "disconnected"
    healthy = database == "connected"
    body = HealthResponse(
        success=healthy,
        status="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        environment=_settings.environment,
        database=database,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())


@app.get("/", include_in_schema=False)
async def index() -> dict:
    return {
        "success": True,
        "message": "Blog Platform API",
        "version": API_VERSION,
        "endpoints": {"health": "/api/health", "auth": "/api/auth", "posts": "/api/posts"},
    }

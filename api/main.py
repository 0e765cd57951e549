"""
api/main.py -- FastAPI application entry point for the VSS platform API.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests      -- method, path, status, latency, client on every response
  2. CORSMiddleware    -- CORS headers for the configured dashboard origins
  3. security_headers  -- nosniff / frame / referrer / HSTS headers
  4. admission_gate    -- fixed-window quota on Settings.api_prefix (429 + Retry-After)

Authentication is not middleware: protected routes declare
Depends(get_current_claims), so public routes (/health, /api/login) need no
exemption list.

Lifespan builds the user store, the TokenService (the only holder of the
signing secret) and the AdmissionGate from Settings, and closes the store on
shutdown. The gate's limits MemoryStorage expires elapsed keys on its own.
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
from fastapi.responses import JSONResponse
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.admission import AdmissionGate, Rejected
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.status import router as status_router
from api.routes.users import router as users_router
from auth.errors import StoreFailure
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import APP_VERSION, get_settings

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vss.api")

_STARTED_AT = time.monotonic()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("VSS platform API %s starting up (environment=%s)", APP_VERSION, settings.environment)
    app.state.user_store = UserStore(settings.database_url)
    app.state.tokens = TokenService(settings.secret_key, lifetime_seconds=settings.token_expire_seconds)
    app.state.admission = AdmissionGate.from_rate(settings.api_rate_limit)
    logger.info(
        "Admission gate: %d requests per %ds on %s*",
        app.state.admission.limit,
        app.state.admission.window_seconds,
        settings.api_prefix,
    )
    if not app.state.user_store.has_users():
        logger.warning("No users exist yet -- create one with `python main.py create-user <username>`")

    yield

    app.state.user_store.close()
    logger.info("VSS platform API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VSS Platform API",
    description="Very Secretive Software INC -- enterprise platform for secure data management.",
    version=APP_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette puts the most recently registered middleware outermost. Register
# innermost first: admission_gate -> security_headers -> CORS -> log_requests.
# ---------------------------------------------------------------------------


def _rate_limit_headers(limit: int, remaining: int, reset: int) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(limit),
        "RateLimit-Remaining": str(remaining),
        "RateLimit-Reset": str(reset),
    }


def _is_gated(path: str) -> bool:
    """True for paths under the API prefix, including the bare prefix without its slash."""
    prefix = _settings.api_prefix
    return path == prefix.rstrip("/") or path.startswith(prefix)


@app.middleware("http")
async def admission_gate(request: Request, call_next):
    """Count every request under the API prefix; answer 429 once the window quota is spent.

    Runs before routing and authentication, so unauthenticated floods are
    throttled too. Paths outside the prefix (/health) are never counted.
    """
    if not _is_gated(request.url.path):
        return await call_next(request)

    gate: AdmissionGate = request.app.state.admission
    decision = gate.admit(get_remote_address(request))
    if isinstance(decision, Rejected):
        response = JSONResponse(
            status_code=429,
            content=ErrorResponse(
                error=ErrorDetail(
                    code="rate_limited",
                    message="Too many requests from this IP, please try again later.",
                )
            ).model_dump(exclude_none=True),
        )
        response.headers.update(_rate_limit_headers(decision.limit, 0, decision.retry_after))
        response.headers["Retry-After"] = str(decision.retry_after)
        return response

    response = await call_next(request)
    response.headers.update(_rate_limit_headers(decision.limit, decision.remaining, decision.reset_after))
    return response


_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Retry-After", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
    max_age=3600,
)


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
app.include_router(status_router, prefix="/api", tags=["Status"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope. None of them echo
# exception text for server-side failures -- that goes to the log only.
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for HTTPException from routes/dependencies and for router 404/405.

    Registered on Starlette's base class so unmatched routes land here too.
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    if exc.status_code == 404:
        error = ErrorDetail(code="not_found", message="The requested resource was not found.")
    else:
        error = ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=error).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with field locations and messages -- never the submitted values."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=problems,
            )
        ).model_dump(),
    )


@app.exception_handler(StoreFailure)
async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    """User store errors: detail (with chained DB cause) to the log, generic 500 to the client."""
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="Internal server error."),
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.

    Starlette runs this handler in ServerErrorMiddleware, outside every
    @app.middleware layer, so the security headers are set here directly.
    CORS headers are not: a cross-origin browser sees an opaque failure.
    """
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="Something went wrong on our end.",
            )
        ).model_dump(exclude_none=True),
        headers=_SECURITY_HEADERS,
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Outside the /api/ prefix: never rate limited, never authenticated, so load
# balancers and monitors are not throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return liveness, server time, version, and process uptime in seconds."""
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=APP_VERSION,
        uptime=round(time.monotonic() - _STARTED_AT, 3),
    )

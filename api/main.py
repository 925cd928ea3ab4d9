"""
api/main.py -- FastAPI application entry point for the catalog auth service.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for the catalog front-end origins
  2. log_requests   -- one log line per request with latency

Lifespan builds the stores, the token service and the auth service from
Settings and hangs them on app.state; routes and dependencies read them from
there. Settings are loaded at import time, so a missing token secret or TTL
stops the process before it serves anything.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError
from auth.service import AuthService
from auth.sessions import SessionRegistry
from auth.store import PrincipalStore
from auth.tokens import TokenService
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("catalog.api")

_settings = get_settings()

# Generic messages per status class. Used when an HTTPException carries no
# useful detail (e.g. Starlette's routing 404/405).
_STATUS_MESSAGES = {
    400: "Bad Request: The request is missing a required parameter.",
    401: "Unauthorized: Authentication failed.",
    403: "Forbidden: You do not have permission to access this resource.",
    404: "Not Found: The requested resource was not found on the server.",
    405: "Method Not Allowed.",
}
_INTERNAL_ERROR_MESSAGE = "An unexpected error occurred."


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth stack on startup and dispose of the DB engines on shutdown."""
    logger.info("Catalog auth API starting up")
    app.state.principal_store = PrincipalStore(_settings.database_url)
    app.state.session_registry = SessionRegistry(_settings.database_url)
    app.state.token_service = TokenService(_settings.token_config())
    app.state.auth_service = AuthService(
        app.state.principal_store,
        app.state.session_registry,
        app.state.token_service,
    )
    logger.info("Auth initialized (db=%s)", app.state.principal_store.engine.url.render_as_string(hide_password=True))

    yield

    app.state.session_registry.close()
    app.state.principal_store.close()
    logger.info("Catalog auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Catalog Auth API",
    description="Registration, login, token refresh and logout for the content catalog.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope:
#   {"success": false, "code": <status>, "error": <machine code>, "message": <text>}
# ---------------------------------------------------------------------------


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=status_code, error=error, message=message).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return _error(exc.status_code, exc.error_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with the first failing field. Input values are not echoed back."""
    errors = exc.errors()
    message = "Request validation failed."
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Request validation failed: {location}: {first.get('msg', 'invalid value')}"
    return _error(400, "validation_error", message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = _STATUS_MESSAGES.get(exc.status_code, str(exc.detail))
    return _error(exc.status_code, f"http_{exc.status_code}", message)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only. The client receives a fixed
    message so store or driver diagnostics never leak.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", _INTERNAL_ERROR_MESSAGE)


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)

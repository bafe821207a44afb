"""
api/main.py -- FastAPI application entry point for AuthGate.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- echoes the request origin, credentials allowed, so a
                       browser frontend on another port can carry the cookie
  2. log_requests   -- one INFO line per request with latency

Lifespan handles startup (store connection with retry, service wiring) and
shutdown (engine disposal) symmetrically.
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
from starlette.exceptions import HTTPException

from api.errors import error_response
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.system import router as system_router
from auth.cookies import CookiePolicy
from auth.errors import AuthGateError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import SigningKey, TokenService
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if _settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")

# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire the auth core onto app.state for the life of the server.

    Startup order matters:
      1. Store first -- UserStore.connect() retries with fixed backoff and
         raises StoreUnavailableError when it gives up, which aborts startup.
         The server must not accept traffic against an unreachable store.
      2. Hasher -- builds its dummy hash on construction, so the first
         unknown-user login is not slower than later ones.
      3. Tokens, cookie policy, and the service that composes them.
    """
    settings = get_settings()
    logger.info("AuthGate API starting up")

    user_store = UserStore.connect(
        settings.database_url,
        attempts=settings.db_connect_attempts,
        backoff_seconds=settings.db_connect_backoff_seconds,
    )
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenService(SigningKey.from_settings(settings))
    cookie_policy = CookiePolicy(
        name=settings.session_cookie_name,
        max_age=settings.token_ttl_seconds,
        secure=settings.secure_cookies,
    )

    app.state.user_store = user_store
    app.state.tokens = tokens
    app.state.cookie_policy = cookie_policy
    app.state.auth = AuthService(user_store, hasher, tokens, cookie_policy)
    logger.info("Auth initialized (token_ttl=%ss, cookie=%s)", settings.token_ttl_seconds, cookie_policy.name)

    yield

    app.state.user_store.close()
    logger.info("AuthGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AuthGate API",
    description="Account registration, password login, and cookie-based session tokens.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=_settings.cors_allow_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Authorization"],
    expose_headers=["Content-Length"],
    max_age=_settings.cors_max_age,
)

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
app.include_router(system_router, prefix="/api", tags=["Session"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthGateError)
async def auth_error_handler(request: Request, exc: AuthGateError) -> JSONResponse:
    """Render internal auth/store errors through the single mapping in api/errors.py."""
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 when the request body fails validation.

    Only field locations and messages are echoed back. Pydantic's error dicts
    also carry the offending input, which for this API may be a password.
    """
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


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404, 405, ...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. Public -- load balancers probe it.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and credential store status."""
    store: UserStore = request.app.state.user_store
    return HealthResponse(
        version=__version__,
        components={
            "app": "ok",
            "database": "ok" if store.ping() else "error",
        },
    )

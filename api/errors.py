"""
api/errors.py -- The single mapping from internal errors to HTTP responses.

Internal code raises precise auth.errors types so logs can say exactly what
went wrong. This module is the one place those types become status codes and
client-visible text, and it is deliberately lossy:

  - every AuthenticationError (missing cookie, bad signature, expired token)
    renders as the same 401 "Unauthorized." body;
  - unknown username and wrong password (InvalidCredentialsError) render as
    the same 401 "Invalid username or password." body;
  - a duplicate username and a store outage during registration both render
    as the same 400 "Could not create user." body;
  - store failures elsewhere never expose driver messages.

ValidationError is the exception: its message is user-correctable, so it is
returned as-is.
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse
from auth.errors import (
    AuthenticationError,
    AuthGateError,
    InvalidCredentialsError,
    RegistrationError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger("authgate.api")

# (status, code, message). Order matters: subclasses before their parents.
# message=None means "use str(exc)".
_ERROR_MAP: list[tuple[type[AuthGateError], int, str, str | None]] = [
    (ValidationError, 422, "validation_error", None),
    (InvalidCredentialsError, 401, "bad_credentials", "Invalid username or password."),
    (AuthenticationError, 401, "unauthorized", "Unauthorized."),
    (RegistrationError, 400, "registration_failed", "Could not create user."),
    (StoreError, 503, "service_unavailable", "Service temporarily unavailable."),
]

_INTERNAL = (500, "internal_error", "An unexpected error occurred.")


def map_error(exc: AuthGateError) -> tuple[int, ErrorDetail]:
    """Return (status_code, public error payload) for an internal error."""
    for exc_type, status, code, message in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return status, ErrorDetail(code=code, message=message if message is not None else str(exc))
    status, code, message = _INTERNAL
    return status, ErrorDetail(code=code, message=message)


def error_response(exc: AuthGateError) -> JSONResponse:
    """Render an internal error as the standard ErrorResponse envelope.

    5xx outcomes are logged with the original exception; 4xx outcomes are
    expected traffic and only logged at DEBUG.
    """
    status, detail = map_error(exc)
    if status >= 500:
        logger.error("%s mapped to %d: %s", exc.__class__.__name__, status, exc, exc_info=exc)
    else:
        logger.debug("%s mapped to %d: %s", exc.__class__.__name__, status, exc)
    response = JSONResponse(status_code=status, content=ErrorResponse(error=detail).model_dump(exclude_none=True))
    if status == 401:
        response.headers["Cache-Control"] = "no-store"
    return response

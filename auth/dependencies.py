"""
auth/dependencies.py -- Session gate as FastAPI Depends() helpers.

Per-request state machine:
  no "token" cookie               -> AuthenticationError (401)
  cookie present, verify() fails  -> AuthenticationError (401)
  cookie present, verify() passes -> admit; request.state.user_id is set

Missing, unparseable, tampered, and expired tokens all raise the same
AuthenticationError, and api/errors.py renders every AuthenticationError
with one body, so the client cannot tell which check failed.

Mount on a whole router to protect every route in it:
    router = APIRouter(dependencies=[Depends(require_session)])

Handlers that need the identity declare it as well:
    async def route(user_id: int = Depends(require_session)): ...
FastAPI caches a dependency within one request, so the token is verified
once even when both the router and the handler depend on it.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.cookies import CookiePolicy
from auth.errors import AuthenticationError
from auth.tokens import TokenService

logger = logging.getLogger("authgate.auth")


def require_session(request: Request) -> int:
    """Admit the request if its session cookie holds a valid token; return the user id."""
    tokens: TokenService = request.app.state.tokens
    cookies: CookiePolicy = request.app.state.cookie_policy

    token = request.cookies.get(cookies.name)
    if not token:
        logger.debug("Session gate: no %s cookie on %s", cookies.name, request.url.path)
        raise AuthenticationError("missing session cookie")

    verified = tokens.verify(token)
    if not verified.valid:
        logger.debug("Session gate: rejected token on %s", request.url.path)
        raise AuthenticationError("invalid session token")

    request.state.user_id = verified.user_id
    return verified.user_id

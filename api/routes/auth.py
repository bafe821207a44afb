"""
api/routes/auth.py -- Registration and session endpoints.

Routes:
  POST /api/register  -- create an account
  POST /api/login     -- password login; sets the HTTP-only session cookie
  POST /api/logout    -- expires the session cookie

All three are public. register and login are plain `def` handlers on purpose:
they run bcrypt, and FastAPI executes sync handlers in its threadpool so the
event loop keeps serving other requests while a hash is computed.

Errors are not handled here. AuthService raises auth.errors types and the
exception handler in api/main.py renders them through api/errors.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import CredentialsRequest, MessageResponse
from auth.cookies import write_cookie
from auth.service import AuthService

router = APIRouter()


@router.post("/register", response_model=MessageResponse)
def register(request: Request, body: CredentialsRequest) -> MessageResponse:
    """Create an account. Duplicate usernames fail with the generic creation error."""
    service: AuthService = request.app.state.auth
    service.register(body.username, body.password)
    return MessageResponse(message="Registration successful")


@router.post("/login", response_model=MessageResponse)
def login(request: Request, body: CredentialsRequest) -> JSONResponse:
    """Authenticate with username and password; set the session cookie.

    Wrong password and unknown username produce the same 401 body.
    """
    service: AuthService = request.app.state.auth
    session = service.login(body.username, body.password)
    resp = JSONResponse(content=MessageResponse(message="Login successful").model_dump())
    write_cookie(resp, session.cookie)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request) -> JSONResponse:
    """Expire the session cookie. The token itself stays valid until it expires."""
    service: AuthService = request.app.state.auth
    resp = JSONResponse(content=MessageResponse(message="Logout successful").model_dump())
    write_cookie(resp, service.logout())
    return resp

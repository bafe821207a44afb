"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /api/register and POST /api/login.

    Only presence and non-emptiness are checked here. Length limits and the
    whitespace-only username rule live in AuthService so they also apply to
    the CLI. Passwords are never stripped.
    """

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Success acknowledgment for register, login, and logout."""

    model_config = ConfigDict(frozen=True)

    message: str


class MeResponse(BaseModel):
    """Response for GET /api/me -- the identity admitted by the session gate."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str


class BackendStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    cpu_percent: float
    memory_total_mb: int
    memory_used_mb: int
    memory_percent: float
    threads: int
    process_rss_mb: int


class SystemStatsResponse(BaseModel):
    """Response for GET /api/system-stats.

    database is passed through from UserStore.stats(); its keys depend on
    whether the store is reachable.
    """

    model_config = ConfigDict(frozen=True)

    backend: BackendStats
    database: dict
    timestamp: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)

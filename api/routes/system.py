"""
api/routes/system.py -- Session-protected endpoints.

Routes:
  GET /api/me            -- identity admitted by the session gate
  GET /api/system-stats  -- host, process, and credential store metrics

The whole router is gated by require_session. Handlers that need the user id
also depend on it; FastAPI reuses the cached result instead of verifying twice.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends, Request

from api.models import BackendStats, MeResponse, SystemStatsResponse
from auth.dependencies import require_session
from auth.errors import AuthenticationError
from auth.store import UserStore

router = APIRouter(dependencies=[Depends(require_session)])

_MB = 1024 * 1024


@router.get("/me", response_model=MeResponse)
def me(request: Request, user_id: int = Depends(require_session)) -> MeResponse:
    """Return the authenticated user's id and username."""
    store: UserStore = request.app.state.user_store
    user = store.get_by_id(user_id)
    if user is None:
        # Valid signature for an id the store no longer knows.
        raise AuthenticationError("token subject not found")
    return MeResponse(user_id=user.id, username=user.username)


@router.get("/system-stats", response_model=SystemStatsResponse)
def system_stats(request: Request) -> SystemStatsResponse:
    """Report host memory/CPU, this process, and the store's connection pool.

    cpu_percent(interval=None) compares against the previous call, so the
    first request after startup reports 0.0.
    """
    store: UserStore = request.app.state.user_store
    vm = psutil.virtual_memory()
    process = psutil.Process()
    backend = BackendStats(
        cpu_percent=psutil.cpu_percent(interval=None),
        memory_total_mb=vm.total // _MB,
        memory_used_mb=vm.used // _MB,
        memory_percent=vm.percent,
        threads=threading.active_count(),
        process_rss_mb=process.memory_info().rss // _MB,
    )
    return SystemStatsResponse(
        backend=backend,
        database=store.stats(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

from __future__ import annotations

from fastapi import APIRouter, Request

from ..errors import SnapshotError
from ..services.snapshot import save_sessions
from .errors import error_response
from .sessions import get_session_store

router = APIRouter(prefix="/admin/sessions", tags=["Admin"])


@router.get("")
def sessions_summary(request: Request):
    store = get_session_store(request)
    return {"Count": len(store), "LifetimeSeconds": int(store.lifetime.total_seconds())}


@router.post("/sweep")
def sessions_sweep(request: Request):
    evicted = get_session_store(request).sweep()
    return {"Evicted": evicted}


@router.post("/checkpoint")
async def sessions_checkpoint(request: Request):
    saver = getattr(request.app.state, "snapshot_saver", None)
    if saver is None:
        return error_response("No snapshot path is configured", 409, code="SessionKeeper.SnapshotDisabled")
    try:
        saved = await save_sessions(get_session_store(request), saver)
    except (SnapshotError, OSError) as exc:
        return error_response(f"Checkpoint failed: {exc}", 500, code="SessionKeeper.CheckpointFailed")
    return {"Saved": saved}

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from ..errors import SessionStateError
from ..middleware import SESSION_ID_STATE_KEY, SESSION_STORE_STATE_KEY
from ..services.sessions import Session, SessionStore
from ..services.snapshot import format_timestamp

router = APIRouter(prefix="/session", tags=["Session"])


def get_session_id(request: Request) -> str:
    """Return the session id assigned to ``request`` by SessionMiddleware."""
    session_id = getattr(request.state, SESSION_ID_STATE_KEY, None)
    if session_id is None:
        raise SessionStateError("The session id was not found in the request state")
    return session_id


def get_session_store(request: Request) -> SessionStore:
    store = getattr(request.state, SESSION_STORE_STATE_KEY, None)
    if store is None:
        raise SessionStateError("No session store is attached to the request state")
    return store


def get_session(request: Request) -> Session | None:
    return get_session_store(request).get_session(get_session_id(request))


def get_or_create_session(request: Request) -> Session:
    return get_session_store(request).get_or_create(get_session_id(request))


def delete_session(request: Request) -> None:
    get_session_store(request).delete_session(get_session_id(request))


async def require_session(request: Request) -> Session:
    return get_or_create_session(request)


def _describe(session_id: str, session: Session | None) -> dict[str, Any]:
    return {
        "Id": session_id,
        "Active": session is not None,
        "Expires": format_timestamp(session.expires) if session else None,
        "Data": dict(session.data) if session else None,
    }


@router.get("")
def session_get(request: Request):
    return _describe(get_session_id(request), get_session(request))


@router.delete("")
def session_delete(request: Request):
    delete_session(request)
    return {"Id": get_session_id(request), "Active": False}


@router.put("/data/{key}")
def session_data_put(key: str, value: Any = Body(...), session: Session = Depends(require_session)):
    session.data[key] = value
    return _describe(session.id, session)


@router.delete("/data/{key}")
def session_data_delete(key: str, request: Request):
    session = get_session(request)
    if session is not None:
        session.data.pop(key, None)
    return _describe(get_session_id(request), session)

"""Plugging SessionKeeper into an existing FastAPI application.

Run with:  uvicorn examples.embed_in_app:app --reload
"""

from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import Depends, FastAPI, Request

from sessionkeeper import SessionMiddleware, SessionStore
from sessionkeeper.api.sessions import delete_session, get_session, require_session
from sessionkeeper.services.sessions import Session
from sessionkeeper.services.snapshot import file_restorer, file_saver, restore_sessions, save_sessions

SNAPSHOT = "sessions.json"

store = SessionStore(lifetime=timedelta(hours=8))


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await restore_sessions(store, file_restorer(SNAPSHOT))
    except FileNotFoundError:
        pass
    yield
    await save_sessions(store, file_saver(SNAPSHOT))


app = FastAPI(lifespan=lifespan)
app.add_middleware(SessionMiddleware, store=store)


@app.get("/visits")
def visits(session: Session = Depends(require_session)):
    session.data["visits"] = session.data.get("visits", 0) + 1
    return {"visits": session.data["visits"]}


@app.get("/whoami")
def whoami(request: Request):
    session = get_session(request)
    return {"user": session.data.get("user") if session else None}


@app.post("/logout")
def logout(request: Request):
    delete_session(request)
    return {"ok": True}

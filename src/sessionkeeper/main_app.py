import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request

from .api.admin import router as admin_router
from .api.errors import error_response
from .api.sessions import router as session_router
from .config import ensure_directories, settings
from .errors import SessionStateError
from .middleware import RequestLoggingMiddleware, SessionMiddleware
from .services.cookies import SessionCookieCodec
from .services.sessions import SessionStore
from .services.snapshot import (
    Restorer,
    Saver,
    SnapshotCheckpointer,
    file_restorer,
    file_saver,
    restore_sessions,
    save_sessions,
)


def create_store() -> SessionStore:
    return SessionStore(lifetime=settings.lifetime, codec=SessionCookieCodec(settings.cookie_name))


def create_app(
    store: SessionStore | None = None,
    restorer: Restorer | None = None,
    saver: Saver | None = None,
    admin_enabled: bool | None = None,
) -> FastAPI:
    store = store or create_store()
    if settings.snapshot_path:
        restore_path = settings.snapshot_path if os.path.exists(settings.snapshot_path) else None
        restorer = restorer or (file_restorer(restore_path) if restore_path else None)
        saver = saver or file_saver(settings.snapshot_path)
    if admin_enabled is None:
        admin_enabled = settings.admin_enabled

    logger = structlog.get_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # A failed restore aborts startup rather than serving a partial table.
        if restorer is not None:
            await restore_sessions(store, restorer)
            logger.info("sessions_restored", count=len(store))
        checkpointer = None
        if saver is not None:
            checkpointer = SnapshotCheckpointer(store, saver, settings.checkpoint_interval)
            checkpointer.start()
        try:
            yield
        finally:
            if checkpointer is not None:
                try:
                    await checkpointer.stop()
                finally:
                    await save_sessions(store, saver)
                    logger.info("sessions_saved", count=len(store))

    app = FastAPI(
        title="SessionKeeper",
        version="0.1.0",
        description="Cookie-keyed in-memory session management with durable snapshots.",
        openapi_tags=[
            {"name": "Session", "description": "Current client session"},
            {"name": "Admin", "description": "Session table maintenance"},
        ],
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        lifespan=lifespan,
    )
    app.state.session_store = store
    app.state.snapshot_saver = saver

    ensure_directories()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, structlog.processors.JSONRenderer()])
    app.add_middleware(RequestLoggingMiddleware)
    # Added last so it wraps the logging middleware and the session id is known when logging.
    app.add_middleware(SessionMiddleware, store=store)

    @app.exception_handler(SessionStateError)
    async def session_state_error(request: Request, exc: SessionStateError):
        return error_response(str(exc), 500, code="SessionKeeper.InvalidState")

    app.include_router(session_router)
    if admin_enabled:
        app.include_router(admin_router)

    return app

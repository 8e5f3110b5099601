"""Session and request logging middleware."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .services.sessions import SessionStore

SESSION_ID_STATE_KEY = "session_id"
SESSION_STORE_STATE_KEY = "session_store"


class SessionMiddleware(BaseHTTPMiddleware):
    """Assigns every request a session id and refreshes the session cookie.

    The id is exposed to handlers as ``request.state.session_id``; the
    session itself is only created when a handler asks for it.
    """

    def __init__(self, app, store: SessionStore):
        super().__init__(app)
        self.store = store

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with self.store.reserve_id(request.headers) as session_id:
            setattr(request.state, SESSION_ID_STATE_KEY, session_id)
            setattr(request.state, SESSION_STORE_STATE_KEY, self.store)
            expires = self.store.touch(session_id)
            # Handler errors propagate; no cookie is written for them.
            response = await call_next(request)

        is_secure = request.url.scheme == "https"
        cookie = self.store.codec.build_cookie(session_id, expires, is_secure, now=self.store.clock())
        response.headers.append("set-cookie", cookie)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Structured request logging tagged with request and session ids."""

    def __init__(self, app):
        super().__init__(app)
        self.logger = structlog.get_logger()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        session_id = getattr(request.state, SESSION_ID_STATE_KEY, None)
        start_time = time.time()

        with structlog.contextvars.bound_contextvars(request_id=request_id, session_id=session_id):
            self.logger.info(
                "request_start",
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else None,
            )

            try:
                response = await call_next(request)
            except Exception as e:
                self.logger.error(
                    "request_error",
                    method=request.method,
                    path=request.url.path,
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                    error=str(e),
                )
                raise

            self.logger.info(
                "request_complete",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
            return response

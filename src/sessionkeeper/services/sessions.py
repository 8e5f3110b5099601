from __future__ import annotations

import copy
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from starlette.datastructures import Headers

from .cookies import SessionCookieCodec
from .identifiers import generate_session_id

DEFAULT_LIFETIME = timedelta(hours=36)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    id: str
    expires: datetime
    data: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return self.expires < now


class SessionStore:
    """In-memory table of live sessions.

    Every read and write happens under a single lock. Expired sessions are
    evicted lazily whenever a session is looked up.
    """

    def __init__(
        self,
        lifetime: timedelta = DEFAULT_LIFETIME,
        codec: SessionCookieCodec | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.lifetime = lifetime
        self.codec = codec or SessionCookieCodec()
        self.clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        # ids handed to in-flight requests that have not created a session yet
        self._reserved: set[str] = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _is_taken(self, session_id: str) -> bool:
        return session_id in self._sessions or session_id in self._reserved

    def _sweep_locked(self, now: datetime) -> int:
        expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def resolve_or_create_id(self, headers: Headers | Mapping[str, str]) -> str:
        """Return the id carried by the request cookie, or a fresh unused one.

        A fresh id is not held for the caller; use ``reserve_id`` when it must
        stay unique until the session is created.
        """
        session_id = self.codec.extract_session_id(headers)
        if session_id is not None:
            return session_id
        with self._lock:
            return generate_session_id(self._is_taken)

    @contextmanager
    def reserve_id(self, headers: Headers | Mapping[str, str]) -> Iterator[str]:
        """Resolve the request's session id, holding a fresh id for the duration of the block."""
        session_id = self.codec.extract_session_id(headers)
        if session_id is not None:
            yield session_id
            return
        with self._lock:
            session_id = generate_session_id(self._is_taken)
            self._reserved.add(session_id)
        try:
            yield session_id
        finally:
            with self._lock:
                self._reserved.discard(session_id)

    def get_session(self, session_id: str) -> Session | None:
        with self._lock:
            self._sweep_locked(self.clock())
            return self._sessions.get(session_id)

    def create_session(self, session_id: str) -> Session:
        """Start a session for ``session_id``, replacing any existing one."""
        with self._lock:
            session = Session(id=session_id, expires=self.clock() + self.lifetime)
            self._sessions[session_id] = session
            return session

    def get_or_create(self, session_id: str) -> Session:
        """Return the live session for ``session_id``, creating it if there is none."""
        with self._lock:
            now = self.clock()
            self._sweep_locked(now)
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(id=session_id, expires=now + self.lifetime)
                self._sessions[session_id] = session
            return session

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def touch(self, session_id: str) -> datetime:
        """Refresh the expiry of a live session and return the new value.

        For an unknown or expired id the would-be expiry is returned and
        nothing is stored.
        """
        with self._lock:
            now = self.clock()
            expires = now + self.lifetime
            session = self._sessions.get(session_id)
            if session is not None and not session.is_expired(now):
                session.expires = expires
            return expires

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self.clock())

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def snapshot(self) -> list[Session]:
        with self._lock:
            return [copy.deepcopy(s) for s in self._sessions.values()]

    def replace_all(self, sessions: Iterable[Session]) -> None:
        table = {s.id: s for s in sessions}
        with self._lock:
            self._sessions = table

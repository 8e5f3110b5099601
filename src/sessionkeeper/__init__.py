"""Cookie-keyed in-memory HTTP sessions for FastAPI/Starlette applications."""

from .errors import (
    SessionKeeperError,
    SessionStateError,
    SnapshotError,
    SnapshotFormatError,
    SnapshotSchemaError,
)
from .middleware import SessionMiddleware
from .services.cookies import SessionCookieCodec
from .services.identifiers import generate_session_id
from .services.sessions import Session, SessionStore
from .services.snapshot import deserialize, restore_sessions, save_sessions, serialize

__all__ = [
    "Session",
    "SessionCookieCodec",
    "SessionKeeperError",
    "SessionMiddleware",
    "SessionStateError",
    "SessionStore",
    "SnapshotError",
    "SnapshotFormatError",
    "SnapshotSchemaError",
    "deserialize",
    "generate_session_id",
    "restore_sessions",
    "save_sessions",
    "serialize",
]

__version__ = "0.1.0"

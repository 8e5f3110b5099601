"""Exception types raised by the session core."""

from __future__ import annotations


class SessionKeeperError(Exception):
    """Base class for all session manager errors."""


class SessionStateError(SessionKeeperError, RuntimeError):
    """A session id was requested for a request that never passed through SessionMiddleware."""


class SnapshotError(SessionKeeperError, ValueError):
    """A session snapshot could not be produced or consumed."""


class SnapshotFormatError(SnapshotError):
    """Snapshot text is not well-formed JSON of the expected shape."""


class SnapshotSchemaError(SnapshotError):
    """A snapshot entry is missing a required field or carries an invalid value."""

"""Durable JSON snapshots of the session table."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Iterable
from datetime import datetime, timezone
from typing import Any, Callable

import anyio
from jsonschema import Draft7Validator, ValidationError

from ..errors import SnapshotError, SnapshotFormatError, SnapshotSchemaError
from .sessions import Session, SessionStore

logger = logging.getLogger(__name__)

Restorer = Callable[[], Awaitable[str]]
Saver = Callable[[str], Awaitable[None]]

SNAPSHOT_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "expires": {"type": "string"},
            "data": {"type": "object"},
        },
        "required": ["id", "expires", "data"],
    },
}


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; values without an offset are taken as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def serialize(sessions: Iterable[Session]) -> str:
    document = {
        s.id: {"id": s.id, "expires": format_timestamp(s.expires), "data": s.data}
        for s in sessions
    }
    try:
        return json.dumps(document, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Session data is not JSON-serializable: {exc}") from exc


def deserialize(text: str | bytes) -> list[Session]:
    try:
        document: Any = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SnapshotFormatError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise SnapshotFormatError("Snapshot must be a JSON object keyed by session id")

    try:
        Draft7Validator(SNAPSHOT_SCHEMA).validate(document)
    except ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path)
        raise SnapshotSchemaError(f"Invalid snapshot entry at '{path}': {exc.message}") from exc

    sessions = []
    for key, entry in document.items():
        if entry["id"] != key:
            raise SnapshotSchemaError(f"Snapshot entry '{key}' carries mismatched id '{entry['id']}'")
        try:
            expires = parse_timestamp(entry["expires"])
        except ValueError as exc:
            raise SnapshotSchemaError(f"Snapshot entry '{key}' has unparseable expires: {entry['expires']!r}") from exc
        sessions.append(Session(id=entry["id"], expires=expires, data=dict(entry["data"])))
    return sessions


def dump_store(store: SessionStore) -> str:
    return serialize(store.snapshot())


def load_store(store: SessionStore, text: str | bytes) -> int:
    """Replace the store contents with the sessions in ``text``.

    The table is only swapped once the whole snapshot parsed, so a bad
    snapshot leaves the store untouched.
    """
    sessions = deserialize(text)
    store.replace_all(sessions)
    return len(sessions)


async def restore_sessions(store: SessionStore, restorer: Restorer) -> int:
    text = await restorer()
    count = load_store(store, text)
    logger.info(f"Restored {count} sessions from snapshot")
    return count


async def save_sessions(store: SessionStore, saver: Saver) -> int:
    sessions = store.snapshot()
    await saver(serialize(sessions))
    logger.info(f"Saved {len(sessions)} sessions to snapshot")
    return len(sessions)


def file_restorer(path: str | os.PathLike[str]) -> Restorer:
    async def restore() -> str:
        return await anyio.Path(path).read_text(encoding="utf-8")

    return restore


def file_saver(path: str | os.PathLike[str]) -> Saver:
    async def save(text: str) -> None:
        target = anyio.Path(path)
        await target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        await tmp.write_text(text, encoding="utf-8")
        await tmp.replace(target)

    return save


class SnapshotCheckpointer:
    """Periodically saves the session table in the background."""

    def __init__(self, store: SessionStore, saver: Saver, interval: float) -> None:
        self.store = store
        self.saver = saver
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await save_sessions(self.store, self.saver)
            except Exception:
                # Savers are caller supplied; one failed save must not end the loop.
                logger.exception("Session checkpoint failed")

    def start(self) -> None:
        if self._task is None and self.interval > 0:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Session checkpoint task had failed")

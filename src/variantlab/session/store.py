"""Session storage backends.

A SessionStore maps a namespace ("grid", "bridge", "filters") to one JSON
object holding that feature's whole session. SqliteSessionStore survives
process restarts; FallbackSessionStore degrades to memory when the primary
backend fails, surfacing a one-time warning instead of an error.
"""

from __future__ import annotations

import copy
import json
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from variantlab.errors import StorageUnavailableError
from variantlab.observability.logging import get_logger

if TYPE_CHECKING:
    from pydantic import BaseModel

log = get_logger(__name__)

NAMESPACES = ("grid", "bridge", "filters")

ModelT = TypeVar("ModelT", bound="BaseModel")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS sessions (
    namespace  TEXT PRIMARY KEY,
    data       JSON NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
);
"""


@runtime_checkable
class SessionStore(Protocol):
    """Key-value storage for feature sessions."""

    def get(self, namespace: str) -> dict[str, Any] | None:
        """Return the stored object, or None if absent."""
        ...

    def set(self, namespace: str, data: dict[str, Any]) -> None:
        """Store (create or overwrite) the object for ``namespace``."""
        ...

    def clear(self, namespace: str) -> None:
        """Delete the object for ``namespace`` if present."""
        ...


class MemorySessionStore:
    """In-process store; contents last as long as the object."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def get(self, namespace: str) -> dict[str, Any] | None:
        data = self._data.get(namespace)
        return copy.deepcopy(data) if data is not None else None

    def set(self, namespace: str, data: dict[str, Any]) -> None:
        self._data[namespace] = copy.deepcopy(data)

    def clear(self, namespace: str) -> None:
        self._data.pop(namespace, None)


class SqliteSessionStore:
    """SQLite-backed store, one row per namespace with a JSON payload.

    Every sqlite failure surfaces as StorageUnavailableError.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        try:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self._db_path, isolation_level=None)
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError("sqlite", f"{self._db_path}: {e}") from e

    @property
    def db_path(self) -> str:
        return self._db_path

    def get(self, namespace: str) -> dict[str, Any] | None:
        try:
            row = self._conn.execute(
                "SELECT data FROM sessions WHERE namespace = ?", (namespace,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailableError("sqlite", str(e)) from e
        if row is None:
            return None
        try:
            data = json.loads(row[0])
        except ValueError:
            log.warning("session_payload_corrupt", namespace=namespace)
            return None
        return data if isinstance(data, dict) else None

    def set(self, namespace: str, data: dict[str, Any]) -> None:
        try:
            self._conn.execute(
                "INSERT INTO sessions (namespace, data) VALUES (?, ?) "
                "ON CONFLICT(namespace) DO UPDATE SET data = excluded.data, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%f','now')",
                (namespace, json.dumps(data)),
            )
        except sqlite3.Error as e:
            raise StorageUnavailableError("sqlite", str(e)) from e

    def clear(self, namespace: str) -> None:
        try:
            self._conn.execute("DELETE FROM sessions WHERE namespace = ?", (namespace,))
        except sqlite3.Error as e:
            raise StorageUnavailableError("sqlite", str(e)) from e

    def close(self) -> None:
        self._conn.close()


class FallbackSessionStore:
    """Wrap a primary store, switching permanently to memory on failure.

    The first failure logs a warning and arms a one-shot message available
    from :meth:`storage_warning`; the failed operation is then replayed on
    the memory store so callers never see the error.
    """

    def __init__(self, primary: SessionStore, *, warning: str | None = None) -> None:
        self._primary = primary
        self._memory = MemorySessionStore()
        self._active: SessionStore = primary
        self._warning = warning
        self.using_memory_fallback = False

    @classmethod
    def memory_only(cls, reason: str) -> FallbackSessionStore:
        """A store that starts out degraded (the primary could not be opened)."""
        store = cls(MemorySessionStore())
        store._degrade(reason)
        return store

    def storage_warning(self) -> str | None:
        """Return the pending degradation warning once, then None."""
        warning, self._warning = self._warning, None
        return warning

    def _degrade(self, reason: str) -> None:
        self._active = self._memory
        self.using_memory_fallback = True
        self._warning = (
            f"Session storage unavailable ({reason}); "
            "progress will be kept in memory for this run only."
        )
        log.warning("storage_fallback_engaged", reason=reason)

    def get(self, namespace: str) -> dict[str, Any] | None:
        try:
            return self._active.get(namespace)
        except StorageUnavailableError as e:
            self._degrade(e.reason)
            return self._memory.get(namespace)

    def set(self, namespace: str, data: dict[str, Any]) -> None:
        try:
            self._active.set(namespace, data)
        except StorageUnavailableError as e:
            self._degrade(e.reason)
            self._memory.set(namespace, data)

    def clear(self, namespace: str) -> None:
        try:
            self._active.clear(namespace)
        except StorageUnavailableError as e:
            self._degrade(e.reason)
            self._memory.clear(namespace)


def open_session_store(path: str | Path | None = None) -> FallbackSessionStore:
    """Open the SQLite store at ``path`` (memory only when None).

    Never raises: a path that cannot be opened yields a degraded store.
    """
    if path is None:
        return FallbackSessionStore(MemorySessionStore())
    try:
        primary = SqliteSessionStore(path)
    except StorageUnavailableError as e:
        return FallbackSessionStore.memory_only(e.reason)
    log.debug("session_store_opened", path=str(path))
    return FallbackSessionStore(primary)


def load_session(store: SessionStore, namespace: str, model: type[ModelT]) -> ModelT | None:
    """Load and validate a stored session.

    A payload that no longer validates is dropped with a warning.
    """
    data = store.get(namespace)
    if data is None:
        return None
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        log.warning("session_discarded", namespace=namespace, errors=e.error_count())
        store.clear(namespace)
        return None


def save_session(store: SessionStore, namespace: str, session: BaseModel) -> None:
    store.set(namespace, session.model_dump(mode="json"))

"""Key-value storage backends for per-browser form state.

Every backend stores opaque strings under string keys. ``NamespacedStorage``
scopes a shared backend to one browser session so sessions never see each
other's keys.
"""

import logging
import sqlite3
import threading
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class StorageBackend:
    def available(self) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def get_item(self, key: str) -> str | None:  # pragma: no cover - interface
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def remove_item(self, key: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class MemoryStorage(StorageBackend):
    items: dict[str, str] = field(default_factory=dict)

    def available(self) -> bool:
        return True

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class SQLiteStorage(StorageBackend):
    """Durable storage in a single SQLite table.

    Writes are committed before returning, so a completed ``set_item`` is
    visible to any later ``get_item``, including after a restart.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS local_storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(path, check_same_thread=False)
        self._conn.executescript(self.SCHEMA)
        self._conn.commit()
        logger.info("Opened form state store at %s", path)

    def available(self) -> bool:
        return self._conn is not None

    def get_item(self, key: str) -> str | None:
        if self._conn is None:
            return None
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        if self._conn is None:
            return
        with self._lock:
            self._conn.execute(
                """INSERT INTO local_storage (key, value, updated_at)
                VALUES (?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value, updated_at = excluded.updated_at""",
                (key, value),
            )
            self._conn.commit()

    def remove_item(self, key: str) -> None:
        if self._conn is None:
            return
        with self._lock:
            self._conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            self._conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


@dataclass
class NamespacedStorage(StorageBackend):
    """Prefix every key with a namespace on top of a shared backend."""
    backend: StorageBackend
    namespace: str

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def available(self) -> bool:
        return self.backend.available()

    def get_item(self, key: str) -> str | None:
        return self.backend.get_item(self._key(key))

    def set_item(self, key: str, value: str) -> None:
        self.backend.set_item(self._key(key), value)

    def remove_item(self, key: str) -> None:
        self.backend.remove_item(self._key(key))

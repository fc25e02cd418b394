"""Key-value stores backing the persistence gateway.

A store knows nothing about applications, users or actions: it maps opaque
string keys to a :class:`StoredItem`. Namespacing lives in
:mod:`actionflow.state.gateway`.

Expiry timestamps are unix epoch milliseconds. Items past their expiry read as
absent; they are removed lazily.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Protocol

from actionflow.core.errors import StoreError

logger = logging.getLogger(__name__)

Number = int | float


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class StoredItem:
    string_value: str | None = None
    number_value: Number | None = None
    expire: int | None = None

    def is_expired(self, at_ms: int) -> bool:
        return self.expire is not None and self.expire < at_ms


class KeyValueStore(Protocol):
    """The operations the gateway needs from a physical store."""

    def get(self, key: str) -> StoredItem | None: ...

    def put_string(self, key: str, value: str, expire: int | None = None) -> None: ...

    def put_number(
        self,
        key: str,
        value: Number,
        expire: int | None = None,
        only_if_absent: bool = False,
    ) -> bool: ...

    def increment(self, key: str, by: Number = 1) -> Number: ...

    def set_expiry(self, key: str, expire_at: int) -> bool: ...

    def delete_prefix(self, prefix: str) -> int: ...

    def close(self) -> None: ...


@dataclass
class InMemoryStore:
    """Process-local store. Useful for tests and single-process tooling."""

    clock: Callable[[], int] = now_ms
    _items: dict[str, StoredItem] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _live_unlocked(self, key: str) -> StoredItem | None:
        item = self._items.get(key)
        if item is not None and item.is_expired(self.clock()):
            del self._items[key]
            return None
        return item

    def get(self, key: str) -> StoredItem | None:
        with self._lock:
            return self._live_unlocked(key)

    def put_string(self, key: str, value: str, expire: int | None = None) -> None:
        with self._lock:
            self._items[key] = StoredItem(string_value=value, expire=expire)

    def put_number(
        self,
        key: str,
        value: Number,
        expire: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        with self._lock:
            if only_if_absent and self._live_unlocked(key) is not None:
                return False
            self._items[key] = StoredItem(number_value=value, expire=expire)
            return True

    def increment(self, key: str, by: Number = 1) -> Number:
        with self._lock:
            item = self._live_unlocked(key) or StoredItem()
            updated = replace(item, number_value=(item.number_value or 0) + by)
            self._items[key] = updated
            assert updated.number_value is not None
            return updated.number_value

    def set_expiry(self, key: str, expire_at: int) -> bool:
        with self._lock:
            item = self._live_unlocked(key)
            if item is None:
                return False
            self._items[key] = replace(item, expire=expire_at)
            return True

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefix)]
            for k in doomed:
                del self._items[k]
            return len(doomed)

    def close(self) -> None:
        pass


_SCHEMA = """
    CREATE TABLE IF NOT EXISTS application_state (
        id            TEXT PRIMARY KEY,
        string_value  TEXT,
        number_value  NUMERIC,
        expire        INTEGER
    )
"""

_INCREMENT_SQL = """
    INSERT INTO application_state (id, number_value) VALUES (:id, :by)
    ON CONFLICT(id) DO UPDATE SET
        number_value = CASE
            WHEN expire IS NOT NULL AND expire < :now THEN excluded.number_value
            ELSE COALESCE(number_value, 0) + excluded.number_value
        END,
        string_value = CASE
            WHEN expire IS NOT NULL AND expire < :now THEN NULL
            ELSE string_value
        END,
        expire = CASE
            WHEN expire IS NOT NULL AND expire < :now THEN NULL
            ELSE expire
        END
    RETURNING number_value
"""

_PUT_NUMBER_IF_ABSENT_SQL = """
    INSERT INTO application_state (id, string_value, number_value, expire)
    VALUES (:id, NULL, :value, :expire)
    ON CONFLICT(id) DO UPDATE SET
        string_value = NULL,
        number_value = excluded.number_value,
        expire = excluded.expire
    WHERE expire IS NOT NULL AND expire < :now
"""


class SqliteStore:
    """Durable store on a single sqlite table.

    One connection is shared between threads and serialised with a lock.
    ``increment`` is a single upsert statement, so it stays atomic across
    processes sharing the same database file.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        timeout_seconds: float = 5.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.path = str(path)
        self.clock = clock
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, timeout=timeout_seconds, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_SCHEMA)

        logger.info(f"Sqlite store initialized at: {self.path}")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get(self, key: str) -> StoredItem | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT string_value, number_value, expire FROM application_state WHERE id = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        item = StoredItem(
            string_value=row["string_value"],
            number_value=row["number_value"],
            expire=row["expire"],
        )
        if item.is_expired(self.clock()):
            return None
        return item

    def put_string(self, key: str, value: str, expire: int | None = None) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO application_state (id, string_value, number_value, expire) "
                "VALUES (?, ?, NULL, ?)",
                (key, value, expire),
            )

    def put_number(
        self,
        key: str,
        value: Number,
        expire: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        with self._lock, self._conn:
            if only_if_absent:
                cursor = self._conn.execute(
                    _PUT_NUMBER_IF_ABSENT_SQL,
                    {"id": key, "value": value, "expire": expire, "now": self.clock()},
                )
                return cursor.rowcount > 0
            self._conn.execute(
                "INSERT OR REPLACE INTO application_state (id, string_value, number_value, expire) "
                "VALUES (?, NULL, ?, ?)",
                (key, value, expire),
            )
            return True

    def increment(self, key: str, by: Number = 1) -> Number:
        try:
            with self._lock, self._conn:
                rows = self._conn.execute(
                    _INCREMENT_SQL, {"id": key, "by": by, "now": self.clock()}
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to increment {key} by {by}.") from e
        return rows[0]["number_value"]

    def set_expiry(self, key: str, expire_at: int) -> bool:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "UPDATE application_state SET expire = ? "
                "WHERE id = ? AND (expire IS NULL OR expire >= ?)",
                (expire_at, key, self.clock()),
            )
            return cursor.rowcount > 0

    def delete_prefix(self, prefix: str) -> int:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "DELETE FROM application_state WHERE substr(id, 1, ?) = ?",
                (len(prefix), prefix),
            )
            return cursor.rowcount

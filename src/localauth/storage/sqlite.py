"""SQLite-backed key-value store.

All keys live in a single SQLite database, by default
``~/.local/share/localauth/store.db``.  Unlike the JSON-file store,
:meth:`SQLiteStore.compare_and_set` holds a write lock on the database for
the whole read-compare-write, so it stays atomic when several processes
share the file.
"""

import sqlite3
from pathlib import Path

from localauth.core.exceptions import StorageError
from localauth.storage.interfaces import KeyValueStore

DEFAULT_PATH = Path.home() / ".local" / "share" / "localauth" / "store.db"


class SQLiteStore(KeyValueStore):
    """SQLite-backed string store.

    Schema::

        CREATE TABLE kv (
            key   TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )

    WAL journal mode is enabled for better concurrent read performance.
    Every backend failure is raised as
    :class:`~localauth.core.exceptions.StorageError`.

    Args:
        path: Path to the SQLite database file.  Defaults to
            ``~/.local/share/localauth/store.db``.
    """

    def __init__(self, path: Path | None = None):
        self._path = path or DEFAULT_PATH
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open {self._path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly where needed.
        conn = sqlite3.connect(str(self._path), timeout=5, isolation_level=None)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> str | None:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM kv WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read {key!r}: {e}") from e
        return row[0] if row is not None else None

    def set_item(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    (key, value),
                )
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot remove {key!r}: {e}") from e

    def compare_and_set(
        self, key: str, expected: str | None, value: str
    ) -> bool:
        try:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    row = conn.execute(
                        "SELECT value FROM kv WHERE key = ?", (key,)
                    ).fetchone()
                    current = row[0] if row is not None else None
                    if current != expected:
                        conn.execute("ROLLBACK")
                        return False
                    conn.execute(
                        "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                        (key, value),
                    )
                    conn.execute("COMMIT")
                    return True
                except sqlite3.Error:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot update {key!r}: {e}") from e

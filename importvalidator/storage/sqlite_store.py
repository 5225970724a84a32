"""SQLite-backed persistent cache store.

Holds the document cache, the existence cache, per-file scan state and the
last processing statistics so they survive process restarts. Each thread
gets its own connection; WAL mode is used when the filesystem supports it.
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger("importvalidator.storage.sqlite_store")

DEFAULT_DB_NAME = "cache.db"


class SQLiteStore:
    """Thread-safe SQLite storage with per-thread connections."""

    def __init__(self, db_path: Path):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._local = threading.local()
        self._connections: Set[sqlite3.Connection] = set()
        self._conn_lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn

        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        try:
            try:
                mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()
                if mode and mode[0].upper() != "WAL":
                    logger.debug("WAL mode not available for %s", self._db_path)
            except sqlite3.OperationalError:
                logger.debug("Failed to set WAL mode, using default")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.row_factory = sqlite3.Row
        except Exception:
            conn.close()
            raise

        with self._conn_lock:
            self._connections.add(conn)
        self._local.conn = conn
        logger.debug(
            "Opened SQLite connection for thread %s", threading.current_thread().name
        )
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements inside an IMMEDIATE transaction.

        Yields:
            sqlite3.Connection: The database connection within a transaction.
        """
        conn = self._get_conn()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def _init_db(self) -> None:
        """Create tables. Subclasses override."""

    def close_all(self) -> None:
        """Close all tracked SQLite connections."""
        with self._conn_lock:
            conns = list(self._connections)
            self._connections.clear()
        for conn in conns:
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.debug("Error closing SQLite connection: %s", e)
        self._local = threading.local()

    @property
    def db_path(self) -> Path:
        return self._db_path


class CacheStore(SQLiteStore):
    """Namespaced key-value store of JSON values stamped with a timestamp.

    Namespaces in use: ``documents``, ``existence``, ``files`` and
    ``stats``. Expiry is decided by readers; the store never evicts.
    """

    def _init_db(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
                """
            )

    def get(self, namespace: str, key: str) -> Optional[Tuple[Any, int]]:
        """Fetch a value and its timestamp.

        Returns:
            Optional[Tuple[Any, int]]: ``(value, timestamp)`` or None.
        """
        row = (
            self._get_conn()
            .execute(
                "SELECT value, timestamp FROM cache_entries WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
            .fetchone()
        )
        if row is None:
            return None
        try:
            return json.loads(row["value"]), int(row["timestamp"])
        except json.JSONDecodeError as e:
            logger.warning("Dropping corrupt cache entry %s/%s: %s", namespace, key, e)
            self.delete(namespace, key)
            return None

    def set(self, namespace: str, key: str, value: Any, timestamp: int) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (namespace, key, value, timestamp) "
                "VALUES (?, ?, ?, ?)",
                (namespace, key, payload, int(timestamp)),
            )

    def delete(self, namespace: str, key: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                "DELETE FROM cache_entries WHERE namespace = ? AND key = ?",
                (namespace, key),
            )

    def items(self, namespace: str) -> List[Tuple[str, Any, int]]:
        """Return every ``(key, value, timestamp)`` row of a namespace."""
        rows = (
            self._get_conn()
            .execute(
                "SELECT key, value, timestamp FROM cache_entries WHERE namespace = ? "
                "ORDER BY key",
                (namespace,),
            )
            .fetchall()
        )
        result = []
        for row in rows:
            try:
                result.append((row["key"], json.loads(row["value"]), int(row["timestamp"])))
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt cache entry %s/%s", namespace, row["key"])
        return result

    def clear(self, namespace: Optional[str] = None) -> None:
        """Delete one namespace, or everything when ``namespace`` is None."""
        with self.transaction() as conn:
            if namespace is None:
                conn.execute("DELETE FROM cache_entries")
            else:
                conn.execute("DELETE FROM cache_entries WHERE namespace = ?", (namespace,))
        logger.debug("Cleared cache namespace %s", namespace or "<all>")

    @classmethod
    def in_directory(cls, cache_dir: Path) -> "CacheStore":
        return cls(Path(cache_dir) / DEFAULT_DB_NAME)

"""
AuthorFeed Database Connection Management
=========================================

SQLite connection pool and transaction management.

Connections are opened up front; when every pooled connection is checked out
an overflow connection is opened and closed again on release.
"""

import sqlite3
import threading
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, Any, Dict
from queue import Queue, Empty, Full

logger = logging.getLogger(__name__)

TABLES = ("authors", "categories", "articles", "article_categories")

CONNECTION_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


class DatabaseConnection:
    """Thread-safe pool of SQLite connections to one database file."""

    def __init__(
        self,
        db_path: str = "data/authorfeed.db",
        pool_size: int = 5,
        acquire_timeout: float = 10.0,
    ):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Number of pooled connections
            acquire_timeout: Seconds to wait for a pooled connection before opening an overflow one
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.acquire_timeout = acquire_timeout
        self.pool: Queue = Queue(maxsize=pool_size)
        self.lock = threading.Lock()
        self._total_connections = 0

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(pool_size):
            self.pool.put(self._open())

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
        for pragma in CONNECTION_PRAGMAS:
            conn.execute(pragma)
        conn.row_factory = sqlite3.Row

        with self.lock:
            self._total_connections += 1
            opened = self._total_connections

        logger.debug(f"Opened database connection #{opened} to {self.db_path}")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        started = time.monotonic()

        try:
            conn = self.pool.get(timeout=self.acquire_timeout)
        except Empty:
            logger.warning(
                f"All {self.pool_size} pooled connections busy, opening an overflow connection"
            )
            return self._open()

        waited = time.monotonic() - started
        if waited > 1.0:
            logger.warning(f"Waited {waited:.2f}s for a database connection")
        return conn

    def _release(self, conn: sqlite3.Connection) -> None:
        try:
            self.pool.put_nowait(conn)
        except Full:
            conn.close()
            with self.lock:
                self._total_connections -= 1

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Check a connection out of the pool for the duration of the block.

        Usage:
            with db_manager.get_connection() as conn:
                rows = conn.execute("SELECT * FROM authors").fetchall()
        """
        conn = self._acquire()

        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database error on {self.db_path}: {e}")
            try:
                conn.rollback()
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run the block in one write transaction.

        Commits when the block completes, rolls back when it raises.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO articles ...")
                conn.execute("INSERT INTO article_categories ...")
        """
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException as e:
                conn.rollback()
                logger.warning(f"Transaction rolled back: {e!r}")
                raise
            conn.commit()

    def get_database_info(self) -> Dict[str, Any]:
        """Database size, per-table row counts and pool usage."""
        with self.get_connection() as conn:
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]

            existing = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
            table_counts = {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                if table in existing else 0
                for table in TABLES
            }

        return {
            'database_size_mb': page_count * page_size / (1024 * 1024),
            'table_counts': table_counts,
            'connection_pool_size': self.pool.qsize(),
            'total_connections': self._total_connections,
        }

    def close_all_connections(self) -> None:
        """Close every idle pooled connection."""
        logger.info(f"Closing database connections to {self.db_path}")

        while True:
            try:
                conn = self.pool.get_nowait()
            except Empty:
                break
            conn.close()
            with self.lock:
                self._total_connections -= 1


_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(db_path: str = "data/authorfeed.db", pool_size: int = 5) -> DatabaseConnection:
    """Get the shared database manager instance.

    Args:
        db_path: Path to database file, used on first call only
        pool_size: Pool size, used on first call only

    Returns:
        Database connection manager instance
    """
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseConnection(db_path, pool_size=pool_size)

    return _db_manager

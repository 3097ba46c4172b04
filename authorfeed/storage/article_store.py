"""
Article Store
=============

Persistence facade for authors, categories, articles and their links, plus
the read-path queries.

Every primitive runs on its own pooled connection and commits, unless the
store was obtained from ``transaction()``, in which case all calls share one
transaction that commits or rolls back as a unit.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Generator, List, Optional

from ..database.connection import DatabaseConnection, TABLES
from ..database.models import Author, StoredArticle, SyncStatus
from ..utils.logging import get_storage_logger
from ..utils.exceptions import PersistenceError, ErrorCode


def _to_db_time(value: datetime) -> str:
    return value.isoformat()


def _from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ArticleStore:
    """Storage facade over the AuthorFeed SQLite schema."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        conn: Optional[sqlite3.Connection] = None,
    ):
        """Initialize article store.

        Args:
            db_connection: Database connection manager
            conn: Connection of an open transaction to bind this store to
        """
        self.db = db_connection
        self._conn = conn
        self.logger = get_storage_logger()

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        if self._conn is not None:
            yield self._conn
            return

        with self.db.get_connection() as conn:
            yield conn
            conn.commit()

    @contextmanager
    def transaction(self) -> Generator["ArticleStore", None, None]:
        """Yield a store whose operations share a single transaction.

        Usage:
            with store.transaction() as tx:
                article_id = tx.insert_article(...)
                tx.link_article_category(article_id, category_id)
        """
        if self._conn is not None:
            yield self
            return

        try:
            with self.db.transaction() as conn:
                yield ArticleStore(self.db, conn=conn)
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Transaction failed: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

    # Authors

    def find_author_by_username(self, username: str) -> Optional[int]:
        """Return the id of the author with this username, or None."""
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT id FROM authors WHERE username = ?", (username,)
                ).fetchone()
                return row["id"] if row else None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to look up author {username!r}: {e}") from e

    def get_author(self, username: str) -> Optional[Author]:
        """Return the full author record, or None."""
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT id, username, sync_status, last_sync_at FROM authors WHERE username = ?",
                    (username,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to get author {username!r}: {e}") from e

        if row is None:
            return None

        return Author(
            id=row["id"],
            username=row["username"],
            sync_status=SyncStatus(row["sync_status"]),
            last_sync_at=_from_db_time(row["last_sync_at"]),
        )

    def create_author(self, username: str) -> int:
        """Create an author with sync status 'success' and no sync time.

        Raises:
            PersistenceError: If the author already exists or the insert fails
        """
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO authors (username, sync_status) VALUES (?, ?)",
                    (username, SyncStatus.SUCCESS.value),
                )
                author_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise PersistenceError(
                f"Author {username!r} already exists: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            ) from e
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to create author {username!r}: {e}") from e

        self.logger.info(f"Created author {username} (id={author_id})")
        return author_id

    def touch_author_sync(self, author_id: int, timestamp: datetime) -> None:
        """Record a completed sync for the author."""
        try:
            with self._connection() as conn:
                conn.execute(
                    "UPDATE authors SET last_sync_at = ?, sync_status = ? WHERE id = ?",
                    (_to_db_time(timestamp), SyncStatus.SUCCESS.value, author_id),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to update sync time for author {author_id}: {e}") from e

    # Articles

    def find_article_by_guid(self, guid: str) -> Optional[int]:
        """Return the id of the article with this guid, or None."""
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT id FROM articles WHERE guid = ?", (guid,)
                ).fetchone()
                return row["id"] if row else None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to look up article {guid!r}: {e}") from e

    def update_article(self, article_id: int, title: str, last_updated: datetime) -> None:
        """Update the mutable fields of an existing article."""
        try:
            with self._connection() as conn:
                conn.execute(
                    "UPDATE articles SET title = ?, last_updated_at = ? WHERE id = ?",
                    (title, _to_db_time(last_updated), article_id),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to update article {article_id}: {e}") from e

    def insert_article(
        self,
        guid: str,
        author_id: int,
        title: str,
        link: str,
        published_at: datetime,
        last_updated: datetime,
    ) -> int:
        """Insert a new article and return its id.

        Raises:
            PersistenceError: If the guid already exists or the insert fails
        """
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO articles (guid, author_id, title, link, published_at, last_updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (guid, author_id, title, link, _to_db_time(published_at), _to_db_time(last_updated)),
                )
                return cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise PersistenceError(
                f"Failed to insert article {guid!r}: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            ) from e
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to insert article {guid!r}: {e}") from e

    # Categories

    def find_or_create_category(self, name: str) -> int:
        """Return the id of the named category, creating it on first sight."""
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT id FROM categories WHERE name = ?", (name,)
                ).fetchone()
                if row:
                    return row["id"]

                conn.execute("INSERT OR IGNORE INTO categories (name) VALUES (?)", (name,))
                row = conn.execute(
                    "SELECT id FROM categories WHERE name = ?", (name,)
                ).fetchone()
                return row["id"]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to resolve category {name!r}: {e}") from e

    def link_article_category(self, article_id: int, category_id: int) -> None:
        """Associate an article with a category; an existing link is left as is."""
        try:
            with self._connection() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO article_categories (article_id, category_id) VALUES (?, ?)",
                    (article_id, category_id),
                )
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to link article {article_id} to category {category_id}: {e}"
            ) from e

    # Read path

    def list_stored_articles(self) -> List[StoredArticle]:
        """All stored articles, most recently published first.

        Each article carries its author's username and its category names,
        de-duplicated and sorted.
        """
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    """
                    SELECT a.id, a.guid, a.title, a.link, a.published_at, a.last_updated_at,
                           au.username AS creator, c.name AS category
                    FROM articles a
                    JOIN authors au ON a.author_id = au.id
                    LEFT JOIN article_categories ac ON ac.article_id = a.id
                    LEFT JOIN categories c ON c.id = ac.category_id
                    ORDER BY a.published_at DESC, a.id DESC, c.name
                    """
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list stored articles: {e}") from e

        grouped: Dict[int, dict] = {}
        for row in rows:
            entry = grouped.get(row["id"])
            if entry is None:
                entry = grouped[row["id"]] = {
                    "guid": row["guid"],
                    "title": row["title"],
                    "link": row["link"],
                    "published_at": _from_db_time(row["published_at"]),
                    "last_updated_at": _from_db_time(row["last_updated_at"]),
                    "creator": row["creator"],
                    "categories": [],
                }
            name = row["category"]
            if name is not None and name not in entry["categories"]:
                entry["categories"].append(name)

        return [StoredArticle(**entry) for entry in grouped.values()]

    def list_distinct_category_names(self) -> List[str]:
        """All category names, distinct, in ascending order."""
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT DISTINCT name FROM categories ORDER BY name"
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to list categories: {e}") from e

        return [row["name"] for row in rows]

    def count_rows(self, table: str) -> int:
        """Row count of one of the schema's tables."""
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")

        try:
            with self._connection() as conn:
                return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to count rows in {table}: {e}") from e

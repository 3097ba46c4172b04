"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for AuthorFeed tests.

- Per-test SQLite database files (a pooled ``:memory:`` database would give
  every connection its own empty database)
- RSS feed builders producing the author feed dialect
- A static fetcher standing in for HTTP
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_TEST_ROOT = Path(tempfile.gettempdir()) / "authorfeed_tests"
os.environ["AUTHORFEED_DATABASE__PATH"] = str(_TEST_ROOT / "authorfeed_test.db")
os.environ["AUTHORFEED_LOGGING__FILE_PATH"] = str(_TEST_ROOT / "authorfeed_test.log")
os.environ["AUTHORFEED_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["AUTHORFEED_DEBUG"] = "true"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh database with the full schema."""
    from authorfeed.database.schema import DatabaseSchema

    path = tmp_path / "authorfeed.db"
    DatabaseSchema(str(path)).create_tables()
    return str(path)


@pytest.fixture
def db_connection(db_path):
    """Create a database connection manager for testing."""
    from authorfeed.database.connection import DatabaseConnection

    connection = DatabaseConnection(db_path, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def article_store(db_connection):
    """Article store over the test database."""
    from authorfeed.storage.article_store import ArticleStore

    return ArticleStore(db_connection)


# ============================================================================
# Feed Fixtures
# ============================================================================

FEED_NAMESPACES = (
    'xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:atom="http://www.w3.org/2005/Atom" '
    'xmlns:content="http://purl.org/rss/1.0/modules/content/"'
)


def rss_item(
    guid: Optional[str] = "g1",
    title: Optional[str] = "T1",
    link: Optional[str] = None,
    categories: Iterable[str] = (),
    creator: Optional[str] = "jdoe",
    pub_date: Optional[str] = "Tue, 02 Jan 2024 10:00:00 GMT",
    updated: Optional[str] = "2024-01-03T10:00:00.000Z",
    content: Optional[str] = "<p>Body</p>",
) -> str:
    """Render one feed item the way the author feed does."""
    parts = ["<item>"]

    if title is not None:
        parts.append(f"<title><![CDATA[{title}]]></title>")
    if link is not None or guid is not None:
        parts.append(f"<link>{link or f'https://medium.com/p/{guid}'}</link>")
    if guid is not None:
        parts.append(f'<guid isPermaLink="false">{guid}</guid>')
    for category in categories:
        parts.append(f"<category><![CDATA[{category}]]></category>")
    if creator is not None:
        parts.append(f"<dc:creator><![CDATA[{creator}]]></dc:creator>")
    if pub_date is not None:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if updated is not None:
        parts.append(f"<atom:updated>{updated}</atom:updated>")
    if content is not None:
        parts.append(f"<content:encoded><![CDATA[{content}]]></content:encoded>")

    parts.append("</item>")
    return "".join(parts)


def rss_feed(items: Sequence[str], title: str = "Stories by jdoe") -> bytes:
    """Wrap rendered items into a complete RSS 2.0 document."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0" {FEED_NAMESPACES}>'
        "<channel>"
        f"<title><![CDATA[{title}]]></title>"
        "<link>https://medium.com/@jdoe</link>"
        f"{''.join(items)}"
        "</channel>"
        "</rss>"
    ).encode("utf-8")


@pytest.fixture
def make_item():
    """Factory for rendered feed items."""
    return rss_item


@pytest.fixture
def make_feed():
    """Factory for complete feed documents."""
    return rss_feed


@pytest.fixture
def sample_feed():
    """Feed with three articles, newest first."""
    return rss_feed([
        rss_item(
            guid="https://medium.com/p/a3",
            title="Scaling Go services",
            categories=["go", "backend"],
            pub_date="Wed, 10 Jan 2024 09:00:00 GMT",
            updated="2024-01-10T09:30:00.000Z",
        ),
        rss_item(
            guid="https://medium.com/p/a2",
            title="Writing a tokenizer",
            categories=["compilers"],
            pub_date="Fri, 05 Jan 2024 12:00:00 GMT",
            updated="2024-01-05T12:00:00.000Z",
        ),
        rss_item(
            guid="https://medium.com/p/a1",
            title="Hello, world",
            categories=[],
            pub_date="Mon, 01 Jan 2024 08:00:00 GMT",
            updated="2024-01-01T08:00:00.000Z",
        ),
    ])


# ============================================================================
# Service Fixtures
# ============================================================================


class StaticFetcher:
    """Fetcher returning a fixed body, or raising a fixed error."""

    def __init__(self, body: Optional[bytes] = None, error: Optional[Exception] = None):
        self.body = body
        self.error = error
        self.calls = []

    async def fetch(self, username: str, deadline: Optional[float] = None) -> bytes:
        self.calls.append(username)
        if self.error is not None:
            raise self.error
        return self.body


@pytest.fixture
def make_service(article_store):
    """Factory for an ingestion service over the test store.

    Usage:
        def test_ingest(make_service, sample_feed):
            service = make_service(body=sample_feed)
    """
    from authorfeed.services.ingestion_service import IngestionService

    def factory(body: Optional[bytes] = None, error: Optional[Exception] = None, **kwargs):
        return IngestionService(article_store, StaticFetcher(body, error), **kwargs)

    return factory

"""
Ingestion Service
=================

Orchestrates one author's feed ingestion: fetch, parse, normalize, then
idempotent persistence of every article with its categories. Also exposes
the read-path queries over the stored articles.

Flow:
1. Fetch and parse the feed (failures abort before anything is written)
2. Normalize items, skipping the ones that fail
3. Resolve or create the author
4. Upsert each article and its category links, one transaction per article
5. Record the sync completion time
"""

from datetime import datetime, timezone
from typing import List, Optional

from ..config.settings import AuthorFeedSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Article, IngestionResult, StoredArticlesPage
from ..processing.feed_fetcher import FeedFetcher
from ..processing.feed_parser import FeedParser
from ..processing.normalizer import ArticleNormalizer
from ..storage.article_store import ArticleStore
from ..utils.logging import get_ingestion_logger, PerformanceLogger
from ..utils.exceptions import AuthorFeedError, ValidationError, ErrorCode, handle_exception
from ..utils.validators import UsernameValidator


class IngestionService:
    """Feed ingestion and stored-article queries for a single store."""

    def __init__(
        self,
        store: ArticleStore,
        fetcher: FeedFetcher,
        parser: Optional[FeedParser] = None,
        normalizer: Optional[ArticleNormalizer] = None,
        default_username: str = "parth-sinha",
        default_limit: int = 10,
    ):
        """Initialize ingestion service.

        Args:
            store: Article store to persist into
            fetcher: Feed fetcher
            parser: Feed parser (a fresh one when omitted)
            normalizer: Article normalizer (a fresh one when omitted)
            default_username: Author ingested when none is given
            default_limit: Number of articles returned when no limit is given
        """
        self.store = store
        self.fetcher = fetcher
        self.parser = parser or FeedParser()
        self.normalizer = normalizer or ArticleNormalizer()
        self.default_username = default_username
        self.default_limit = default_limit

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AuthorFeedSettings] = None,
        db_connection: Optional[DatabaseConnection] = None,
    ) -> "IngestionService":
        """Build a service wired from configuration."""
        settings = settings or get_settings()

        if db_connection is None:
            db_connection = DatabaseConnection(
                settings.database.path, pool_size=settings.database.pool_size
            )

        fetcher = FeedFetcher(
            url_template=settings.feed.url_template,
            timeout=settings.feed.request_timeout,
            user_agent=settings.feed.user_agent,
        )

        return cls(
            store=ArticleStore(db_connection),
            fetcher=fetcher,
            default_username=settings.feed.default_username,
            default_limit=settings.feed.default_limit,
        )

    async def ingest_for_author(
        self,
        username: Optional[str] = None,
        limit: Optional[int] = None,
        deadline: Optional[float] = None,
    ) -> IngestionResult:
        """Ingest an author's feed and return the normalized articles.

        Args:
            username: Author to ingest (configured default when omitted)
            limit: Maximum number of articles in the result; does not bound persistence
            deadline: Optional overall fetch limit in seconds

        Returns:
            IngestionResult with the first ``limit`` articles and run counters

        Raises:
            ValidationError: If the username or limit is invalid
            FetchError: If the feed cannot be retrieved
            ParseError: If the feed document is malformed
            PersistenceError: If storage fails; articles already committed remain
        """
        username = UsernameValidator.validate_username(
            username if username is not None else self.default_username
        )
        limit = self.default_limit if limit is None else limit
        if limit < 0:
            raise ValidationError(
                f"Limit must be non-negative, got {limit}",
                field_name="limit",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )

        logger = get_ingestion_logger(username)

        try:
            with PerformanceLogger(logger, "feed ingestion", limit=limit) as perf:
                raw = await self.fetcher.fetch(username, deadline=deadline)
                items = self.parser.parse(raw)
                outcome = self.normalizer.normalize_all(items)
                perf.record(total_fetched=len(items), skipped=len(outcome.failures))

                stored_count = self._persist(username, outcome.articles)
                perf.record(stored=stored_count)

        except AuthorFeedError:
            raise
        except Exception as e:
            raise handle_exception(
                e, logger, "ingest_for_author", {"username": username}
            ) from e

        return IngestionResult(
            username=username,
            articles=outcome.articles[:limit],
            stored_count=stored_count,
            total_fetched=len(items),
            skipped=outcome.failures,
        )

    def _persist(self, username: str, articles: List[Article]) -> int:
        author_id = self.store.find_author_by_username(username)
        if author_id is None:
            author_id = self.store.create_author(username)

        stored = 0
        for article in articles:
            with self.store.transaction() as tx:
                self._upsert_article(tx, author_id, article)
            stored += 1

        self.store.touch_author_sync(author_id, datetime.now(timezone.utc))
        return stored

    @staticmethod
    def _upsert_article(tx: ArticleStore, author_id: int, article: Article) -> None:
        article_id = tx.find_article_by_guid(article.guid)

        if article_id is not None:
            # guid, author, link and published_at are fixed at first insert
            tx.update_article(article_id, article.title, article.last_updated)
        else:
            article_id = tx.insert_article(
                guid=article.guid,
                author_id=author_id,
                title=article.title,
                link=article.link,
                published_at=article.published_at,
                last_updated=article.last_updated,
            )

        for name in article.categories:
            category_id = tx.find_or_create_category(name)
            tx.link_article_category(article_id, category_id)

    def list_stored_articles(self) -> StoredArticlesPage:
        """All stored articles, newest first, with author and categories."""
        articles = self.store.list_stored_articles()
        return StoredArticlesPage(articles=articles, total=len(articles), has_more=False)

    def list_categories(self) -> List[str]:
        """All known category names in ascending order."""
        return self.store.list_distinct_category_names()

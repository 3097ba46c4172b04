"""
Tests for ArticleStore
======================

Test suite for the storage facade: author, article and category primitives,
transactions and the read-path queries.
"""

import sqlite3
from datetime import datetime, timezone, timedelta

import pytest

from authorfeed.database.models import SyncStatus
from authorfeed.storage.article_store import ArticleStore
from authorfeed.utils.exceptions import PersistenceError, ErrorCode, ErrorKind

BASE_TIME = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


def insert(store, author_id, guid, published_at=BASE_TIME, title=None):
    return store.insert_article(
        guid=guid,
        author_id=author_id,
        title=title or f"Title {guid}",
        link=f"https://medium.com/p/{guid}",
        published_at=published_at,
        last_updated=published_at,
    )


class TestAuthors:

    def test_create_and_find_author(self, article_store):
        assert article_store.find_author_by_username("jdoe") is None

        author_id = article_store.create_author("jdoe")

        assert article_store.find_author_by_username("jdoe") == author_id

    def test_new_author_defaults(self, article_store):
        article_store.create_author("jdoe")

        author = article_store.get_author("jdoe")

        assert author.username == "jdoe"
        assert author.sync_status == SyncStatus.SUCCESS
        assert author.last_sync_at is None

    def test_get_unknown_author(self, article_store):
        assert article_store.get_author("nobody") is None

    def test_duplicate_author(self, article_store):
        article_store.create_author("jdoe")

        with pytest.raises(PersistenceError) as exc_info:
            article_store.create_author("jdoe")

        assert exc_info.value.error_code == ErrorCode.DATABASE_CONSTRAINT
        assert exc_info.value.kind == ErrorKind.INTERNAL

    def test_touch_author_sync(self, article_store):
        author_id = article_store.create_author("jdoe")

        article_store.touch_author_sync(author_id, BASE_TIME)

        author = article_store.get_author("jdoe")
        assert author.last_sync_at == BASE_TIME
        assert author.sync_status == SyncStatus.SUCCESS


class TestArticles:

    def test_insert_and_find(self, article_store):
        author_id = article_store.create_author("jdoe")

        article_id = insert(article_store, author_id, "g1")

        assert article_store.find_article_by_guid("g1") == article_id
        assert article_store.find_article_by_guid("g2") is None

    def test_duplicate_guid_rejected(self, article_store):
        author_id = article_store.create_author("jdoe")
        insert(article_store, author_id, "g1")

        with pytest.raises(PersistenceError) as exc_info:
            insert(article_store, author_id, "g1")

        assert exc_info.value.error_code == ErrorCode.DATABASE_CONSTRAINT
        assert article_store.count_rows("articles") == 1

    def test_unknown_author_rejected(self, article_store):
        with pytest.raises(PersistenceError):
            insert(article_store, 999, "g1")

    def test_update_article(self, article_store):
        author_id = article_store.create_author("jdoe")
        article_id = insert(article_store, author_id, "g1", title="Old")

        later = BASE_TIME + timedelta(days=1)
        article_store.update_article(article_id, "New", later)

        stored = article_store.list_stored_articles()[0]
        assert stored.title == "New"
        assert stored.last_updated_at == later
        assert stored.published_at == BASE_TIME
        assert stored.link == "https://medium.com/p/g1"


class TestCategories:

    def test_find_or_create_category(self, article_store):
        first = article_store.find_or_create_category("tech")
        second = article_store.find_or_create_category("tech")

        assert first == second
        assert article_store.count_rows("categories") == 1

    def test_names_are_case_sensitive(self, article_store):
        assert article_store.find_or_create_category("Go") != article_store.find_or_create_category("go")

    def test_link_is_idempotent(self, article_store):
        author_id = article_store.create_author("jdoe")
        article_id = insert(article_store, author_id, "g1")
        category_id = article_store.find_or_create_category("tech")

        article_store.link_article_category(article_id, category_id)
        article_store.link_article_category(article_id, category_id)

        assert article_store.count_rows("article_categories") == 1

    def test_distinct_category_names_sorted(self, article_store):
        for name in ["tech", "go", "ai", "go"]:
            article_store.find_or_create_category(name)

        assert article_store.list_distinct_category_names() == ["ai", "go", "tech"]

    def test_no_categories(self, article_store):
        assert article_store.list_distinct_category_names() == []


class TestListStoredArticles:

    def test_ordering_and_aggregation(self, article_store):
        author_id = article_store.create_author("jdoe")
        old_id = insert(article_store, author_id, "old", published_at=BASE_TIME)
        new_id = insert(article_store, author_id, "new", published_at=BASE_TIME + timedelta(days=2))

        for name in ["tech", "go"]:
            article_store.link_article_category(new_id, article_store.find_or_create_category(name))

        articles = article_store.list_stored_articles()

        assert [a.guid for a in articles] == ["new", "old"]
        assert articles[0].categories == ["go", "tech"]
        assert articles[0].creator == "jdoe"
        assert articles[1].categories == []
        assert old_id != new_id

    def test_ties_broken_by_insertion_order(self, article_store):
        author_id = article_store.create_author("jdoe")
        for guid in ["a", "b", "c"]:
            insert(article_store, author_id, guid, published_at=BASE_TIME)

        assert [a.guid for a in article_store.list_stored_articles()] == ["c", "b", "a"]

    def test_empty_store(self, article_store):
        assert article_store.list_stored_articles() == []


class TestTransactions:

    def test_commit(self, article_store):
        author_id = article_store.create_author("jdoe")

        with article_store.transaction() as tx:
            article_id = insert(tx, author_id, "g1")
            tx.link_article_category(article_id, tx.find_or_create_category("tech"))

        assert article_store.count_rows("articles") == 1
        assert article_store.count_rows("article_categories") == 1

    def test_rollback_on_error(self, article_store):
        author_id = article_store.create_author("jdoe")

        with pytest.raises(PersistenceError):
            with article_store.transaction() as tx:
                insert(tx, author_id, "g1")
                tx.find_or_create_category("tech")
                insert(tx, author_id, "g1")

        assert article_store.count_rows("articles") == 0
        assert article_store.count_rows("categories") == 0

    def test_nested_transaction_reuses_connection(self, article_store):
        with article_store.transaction() as tx:
            with tx.transaction() as inner:
                assert inner is tx


class TestStoreErrors:

    def test_sqlite_errors_are_wrapped(self, tmp_path):
        from authorfeed.database.connection import DatabaseConnection

        # No schema: every query fails
        db = DatabaseConnection(str(tmp_path / "empty.db"), pool_size=1)
        store = ArticleStore(db)

        with pytest.raises(PersistenceError) as exc_info:
            store.find_author_by_username("jdoe")

        assert isinstance(exc_info.value.__cause__, sqlite3.Error)
        assert exc_info.value.kind == ErrorKind.INTERNAL
        db.close_all_connections()

    def test_count_rows_rejects_unknown_table(self, article_store):
        with pytest.raises(ValueError):
            article_store.count_rows("sqlite_master")

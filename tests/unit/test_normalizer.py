"""
Tests for ArticleNormalizer
===========================

Text unwrapping, date handling, category flattening and per-item failure
collection.
"""

from datetime import datetime, timezone

import pytest

from authorfeed.processing.feed_parser import FeedParser, PlainText, WrappedText, RawItem
from authorfeed.processing.normalizer import (
    ArticleNormalizer,
    unwrap_text,
    parse_rfc822_date,
    parse_iso_date,
)
from authorfeed.utils.exceptions import NormalizationError, ErrorCode, ErrorKind


@pytest.fixture
def normalizer():
    return ArticleNormalizer()


def raw_item(**overrides) -> RawItem:
    fields = dict(
        title=WrappedText(text="Hello", cdata=True),
        link=PlainText("https://medium.com/p/g1"),
        guid=WrappedText(text="g1", attributes={"isPermaLink": "false"}),
        categories=[WrappedText(text="tech", cdata=True)],
        creator=PlainText("World"),
        pub_date=PlainText("Tue, 02 Jan 2024 10:00:00 GMT"),
        last_updated=PlainText("2024-01-03T10:00:00.000Z"),
        content=WrappedText(text="<p>Body</p>", cdata=True),
    )
    fields.update(overrides)
    return RawItem(**fields)


class TestUnwrapText:

    def test_wrapped(self):
        assert unwrap_text(WrappedText(text="Hello", cdata=True)) == "Hello"

    def test_plain(self):
        assert unwrap_text(PlainText("World")) == "World"

    def test_missing(self):
        assert unwrap_text(None) == ""


class TestDateParsing:

    def test_rfc822(self):
        parsed = parse_rfc822_date("Tue, 02 Jan 2024 10:00:00 GMT")
        assert parsed.astimezone(timezone.utc) == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

    def test_iso_with_z(self):
        parsed = parse_iso_date("2024-01-03T10:00:00.123Z")
        assert parsed == datetime(2024, 1, 3, 10, 0, 0, 123000, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "value, microsecond",
        [
            ("2024-01-03T10:00:00.1Z", 100000),
            ("2024-01-03T10:00:00.12Z", 120000),
            ("2024-01-03T10:00:00.1234567Z", 123456),
        ],
    )
    def test_iso_fraction_precision(self, value, microsecond):
        assert parse_iso_date(value).microsecond == microsecond


class TestNormalize:

    def test_full_item(self, normalizer):
        article = normalizer.normalize(raw_item())

        assert article.guid == "g1"
        assert article.title == "Hello"
        assert article.link == "https://medium.com/p/g1"
        assert article.creator == "World"
        assert article.categories == ["tech"]
        assert article.content == "<p>Body</p>"
        assert article.published_at == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
        assert article.last_updated == datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc)

    def test_plain_guid(self, normalizer):
        article = normalizer.normalize(raw_item(guid=PlainText("  g2  ")))
        assert article.guid == "g2"

    def test_offsets_are_converted_to_utc(self, normalizer):
        article = normalizer.normalize(
            raw_item(pub_date=PlainText("Tue, 02 Jan 2024 12:00:00 +0200"))
        )

        assert article.published_at == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
        assert article.published_at.utcoffset().total_seconds() == 0

    def test_pub_date_iso_fallback(self, normalizer):
        article = normalizer.normalize(raw_item(pub_date=PlainText("2024-01-02T10:00:00Z")))
        assert article.published_at == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

    def test_updated_rfc822_fallback(self, normalizer):
        article = normalizer.normalize(
            raw_item(last_updated=PlainText("Wed, 03 Jan 2024 10:00:00 GMT"))
        )
        assert article.last_updated == datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc)

    def test_categories_flattened(self, normalizer):
        categories = [
            WrappedText(text=" tech ", cdata=True),
            PlainText("go"),
            WrappedText(text="tech", cdata=True),
            PlainText("   "),
        ]

        article = normalizer.normalize(raw_item(categories=categories))

        assert article.categories == ["tech", "go"]

    def test_categories_are_case_sensitive(self, normalizer):
        article = normalizer.normalize(
            raw_item(categories=[PlainText("Go"), PlainText("go")])
        )
        assert article.categories == ["Go", "go"]

    def test_missing_optional_fields(self, normalizer):
        article = normalizer.normalize(raw_item(creator=None, content=None, categories=[]))

        assert article.creator == ""
        assert article.content == ""
        assert article.categories == []

    @pytest.mark.parametrize("field_name", ["title", "link", "guid"])
    def test_missing_required_field(self, normalizer, field_name):
        with pytest.raises(NormalizationError) as exc_info:
            normalizer.normalize(raw_item(**{field_name: None}))

        assert exc_info.value.field_name == field_name
        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT
        assert exc_info.value.error_code == ErrorCode.ITEM_MISSING_FIELD

    def test_blank_title(self, normalizer):
        with pytest.raises(NormalizationError):
            normalizer.normalize(raw_item(title=WrappedText(text="   ", cdata=True)))

    def test_unparsable_pub_date(self, normalizer):
        with pytest.raises(NormalizationError) as exc_info:
            normalizer.normalize(raw_item(pub_date=PlainText("yesterday")))

        assert exc_info.value.error_code == ErrorCode.ITEM_INVALID_DATE
        assert exc_info.value.context["guid"] == "g1"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"pub_date": PlainText("Fri, 31 Dec 9999 23:00:00 -0500")},
            {"last_updated": PlainText("0001-01-01T00:00:00+01:00")},
        ],
    )
    def test_date_outside_utc_range(self, normalizer, overrides):
        with pytest.raises(NormalizationError) as exc_info:
            normalizer.normalize(raw_item(**overrides))

        assert exc_info.value.error_code == ErrorCode.ITEM_INVALID_DATE

    def test_missing_updated(self, normalizer):
        with pytest.raises(NormalizationError) as exc_info:
            normalizer.normalize(raw_item(last_updated=None))

        assert exc_info.value.field_name == "atom:updated"


class TestNormalizeAll:

    def test_failures_are_collected(self, normalizer, caplog):
        items = [
            raw_item(guid=PlainText("g1")),
            raw_item(guid=PlainText("g2"), pub_date=PlainText("not a date")),
            raw_item(guid=PlainText("g3")),
        ]

        outcome = normalizer.normalize_all(items)

        assert [article.guid for article in outcome.articles] == ["g1", "g3"]
        assert len(outcome.failures) == 1
        failure = outcome.failures[0]
        assert failure.index == 1
        assert failure.guid == "g2"
        assert "pubDate" in failure.reason

    def test_out_of_range_date_fails_one_item(self, normalizer):
        items = [
            raw_item(guid=PlainText("g1")),
            raw_item(guid=PlainText("g2"), pub_date=PlainText("Fri, 31 Dec 9999 23:00:00 -0500")),
        ]

        outcome = normalizer.normalize_all(items)

        assert [article.guid for article in outcome.articles] == ["g1"]
        assert [failure.guid for failure in outcome.failures] == ["g2"]

    def test_from_parsed_feed(self, normalizer, make_feed, make_item):
        raw = make_feed([make_item(guid="g1", title="T1", categories=["tech", "go"])])

        outcome = normalizer.normalize_all(FeedParser().parse(raw))

        assert len(outcome.articles) == 1
        article = outcome.articles[0]
        assert article.title == "T1"
        assert article.categories == ["tech", "go"]
        assert article.creator == "jdoe"
        assert outcome.failures == []

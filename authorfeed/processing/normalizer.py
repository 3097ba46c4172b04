"""
Article Normalizer
==================

Maps raw feed items onto canonical ``Article`` values: unwraps CDATA text,
coerces dates to UTC and flattens the category list.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..database.models import Article, NormalizationFailure
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import NormalizationError, ErrorCode
from .feed_parser import RawItem, TextValue, WrappedText


def unwrap_text(value: Optional[TextValue]) -> str:
    """Return the literal text of a field value.

    Wrapped values yield the text they carry; plain values are coerced to
    their string form. Missing values yield an empty string.
    """
    if value is None:
        return ""
    if isinstance(value, WrappedText):
        return value.text
    return str(value.value)


def parse_rfc822_date(value: str) -> datetime:
    """Parse an RFC 822 date such as ``Tue, 02 Jan 2024 10:00:00 GMT``."""
    return parsedate_to_datetime(value)


# Fractional seconds of any precision
_ISO_FRACTION = re.compile(r"(?<=\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_iso_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp such as ``2024-01-03T10:00:00.123Z``.

    Fractions are padded or cut to six digits before parsing.
    """
    value = _ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _to_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class NormalizationOutcome:
    """Per-item normalization results, partitioned."""

    articles: List[Article] = field(default_factory=list)
    failures: List[NormalizationFailure] = field(default_factory=list)


class ArticleNormalizer:
    """Converts RawItem values into canonical articles."""

    def __init__(self):
        self.logger = get_logger_for_component("normalizer")

    def normalize(self, item: RawItem) -> Article:
        """Normalize one feed item.

        Raises:
            NormalizationError: If a required field is missing or a date cannot be parsed
        """
        guid = self._resolve_guid(item)
        title = unwrap_text(item.title).strip()
        link = unwrap_text(item.link).strip()

        if not title:
            raise NormalizationError("Item has no title", field_name="title", guid=guid)
        if not link:
            raise NormalizationError("Item has no link", field_name="link", guid=guid)

        published_at = self._parse_date(
            item.pub_date, "pubDate", guid, (parse_rfc822_date, parse_iso_date)
        )
        last_updated = self._parse_date(
            item.last_updated, "atom:updated", guid, (parse_iso_date, parse_rfc822_date)
        )

        try:
            return Article(
                guid=guid,
                title=title,
                link=link,
                creator=unwrap_text(item.creator).strip(),
                categories=self._flatten_categories(item.categories),
                published_at=published_at,
                last_updated=last_updated,
                content=unwrap_text(item.content),
            )
        except PydanticValidationError as e:
            raise NormalizationError(f"Item failed validation: {e}", guid=guid) from e

    def normalize_all(self, items: Sequence[RawItem]) -> NormalizationOutcome:
        """Normalize every item, collecting failures instead of stopping at them."""
        outcome = NormalizationOutcome()

        for index, item in enumerate(items):
            try:
                outcome.articles.append(self.normalize(item))
            except NormalizationError as e:
                guid = e.context.get("guid")
                self.logger.warning(
                    f"Skipping feed item {index}: {e}",
                    extra={"item_index": index, "guid": guid},
                )
                outcome.failures.append(
                    NormalizationFailure(index=index, guid=guid, reason=str(e))
                )

        return outcome

    def _resolve_guid(self, item: RawItem) -> str:
        # Wrapped form first, raw value otherwise
        if isinstance(item.guid, WrappedText):
            guid = item.guid.text
        elif item.guid is not None:
            guid = item.guid.value
        else:
            guid = ""

        guid = guid.strip()
        if not guid:
            raise NormalizationError("Item has no guid", field_name="guid")
        return guid

    def _parse_date(
        self,
        value: Optional[TextValue],
        field_name: str,
        guid: str,
        parsers: Sequence[Callable[[str], datetime]],
    ) -> datetime:
        text = unwrap_text(value).strip()
        if not text:
            raise NormalizationError(
                f"Item has no {field_name}", field_name=field_name, guid=guid
            )

        for parser in parsers:
            try:
                return _to_utc(parser(text))
            except (TypeError, ValueError, IndexError, OverflowError):
                continue

        raise NormalizationError(
            f"Unparsable {field_name}: {text!r}",
            field_name=field_name,
            guid=guid,
            error_code=ErrorCode.ITEM_INVALID_DATE,
        )

    @staticmethod
    def _flatten_categories(values: Sequence[TextValue]) -> List[str]:
        categories = []
        seen = set()

        for value in values:
            name = unwrap_text(value).strip()
            if name and name not in seen:
                seen.add(name)
                categories.append(name)

        return categories

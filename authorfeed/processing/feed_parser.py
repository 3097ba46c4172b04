"""
Author Feed Parser
==================

Parses a raw RSS 2.0 document into a tree and extracts the channel's items.

Each item field keeps track of how its text arrived: bare element text is a
``PlainText``; text embedded in a CDATA section, or carried by an element
with attributes (``<guid isPermaLink="false">``), is a ``WrappedText``.
Unwrapping is left to the normalizer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from lxml import etree

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ParseError, ErrorCode

NAMESPACES = {
    "dc": "http://purl.org/dc/elements/1.1/",
    "atom": "http://www.w3.org/2005/Atom",
    "content": "http://purl.org/rss/1.0/modules/content/",
}

CATEGORY_TAG = "category"

# Element tag (Clark notation) -> RawItem attribute
ITEM_FIELDS = {
    "title": "title",
    "link": "link",
    "guid": "guid",
    "pubDate": "pub_date",
    f"{{{NAMESPACES['dc']}}}creator": "creator",
    f"{{{NAMESPACES['atom']}}}updated": "last_updated",
    f"{{{NAMESPACES['content']}}}encoded": "content",
}


@dataclass(frozen=True)
class PlainText:
    """Bare element text."""

    value: str


@dataclass(frozen=True)
class WrappedText:
    """Literal text carried inside a wrapper node."""

    text: str
    cdata: bool = False
    attributes: Dict[str, str] = field(default_factory=dict, compare=False)


TextValue = Union[PlainText, WrappedText]


@dataclass
class RawItem:
    """One feed item before normalization."""

    title: Optional[TextValue] = None
    link: Optional[TextValue] = None
    guid: Optional[TextValue] = None
    categories: List[TextValue] = field(default_factory=list)
    creator: Optional[TextValue] = None
    pub_date: Optional[TextValue] = None
    last_updated: Optional[TextValue] = None
    content: Optional[TextValue] = None


class FeedParser:
    """Parser for the author feed dialect."""

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")
        self._parser = etree.XMLParser(
            strip_cdata=False,
            resolve_entities=False,
            no_network=True,
            remove_comments=True,
            remove_pis=True,
        )

    def parse(self, raw: Union[bytes, str]) -> List[RawItem]:
        """Parse a feed document into its items, in document order.

        Args:
            raw: Feed document as returned by the fetcher

        Returns:
            List of RawItem; empty when the channel has no items

        Raises:
            ParseError: If the document is not well-formed XML or has no rss/channel
        """
        if isinstance(raw, str):
            raw = raw.encode("utf-8")

        try:
            root = etree.fromstring(raw, parser=self._parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise ParseError(f"Feed parsing failed: {e}") from e

        if root is None or etree.QName(root).localname != "rss":
            raise ParseError(
                "Feed parsing failed: document root is not <rss>",
                error_code=ErrorCode.FEED_STRUCTURE_INVALID,
            )

        channel = root.find("channel")
        if channel is None:
            raise ParseError(
                "Feed parsing failed: <channel> element missing",
                error_code=ErrorCode.FEED_STRUCTURE_INVALID,
            )

        items = [self._parse_item(element) for element in channel.iterfind("item")]
        self.logger.debug(f"Parsed {len(items)} items from feed")
        return items

    def _parse_item(self, element: etree._Element) -> RawItem:
        item = RawItem()

        for child in element:
            if not isinstance(child.tag, str):
                continue

            if child.tag == CATEGORY_TAG:
                item.categories.append(_text_value(child))
                continue

            name = ITEM_FIELDS.get(child.tag)
            # First occurrence wins for single-valued fields
            if name and getattr(item, name) is None:
                setattr(item, name, _text_value(child))

        return item


def _text_value(element: etree._Element) -> TextValue:
    if len(element):
        text = "".join(element.itertext())
    else:
        text = element.text or ""

    attributes = dict(element.attrib)
    cdata = _has_cdata(element)

    if cdata or attributes:
        return WrappedText(text=text, cdata=cdata, attributes=attributes)
    return PlainText(text)


def _has_cdata(element: etree._Element) -> bool:
    """Whether the element's leading content is a CDATA section."""
    if element.text is None:
        return False

    serialized = etree.tostring(element, encoding="unicode", with_tail=False)
    body = serialized[serialized.index(">") + 1:]
    return body.lstrip().startswith("<![CDATA[")

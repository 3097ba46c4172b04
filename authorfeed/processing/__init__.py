"""
AuthorFeed Processing Module
============================

Feed ingestion components: retrieval, XML parsing and article normalization.
"""

from .feed_fetcher import FeedFetcher
from .feed_parser import FeedParser, RawItem, PlainText, WrappedText
from .normalizer import ArticleNormalizer, NormalizationOutcome, unwrap_text

__all__ = [
    'FeedFetcher',
    'FeedParser',
    'RawItem',
    'PlainText',
    'WrappedText',
    'ArticleNormalizer',
    'NormalizationOutcome',
    'unwrap_text',
]

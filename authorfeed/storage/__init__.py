"""
AuthorFeed Storage Layer
========================

Persistence facade over the SQLite schema.

This module provides:
- Author, category and article primitives
- Per-article transactions
- Read-path queries for stored articles and categories
"""

from .article_store import ArticleStore

__all__ = [
    "ArticleStore",
]

"""
AuthorFeed Data Models
======================

Pydantic data models for the canonical article, the stored records and the
results returned by the ingestion service.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class SyncStatus(str, Enum):
    """Author sync status flag."""
    SUCCESS = "success"
    FAILED = "failed"


class Author(BaseModel):
    """Feed author record."""
    id: int = Field(..., description="Database primary key")
    username: str = Field(..., min_length=1, description="Unique author username")
    sync_status: SyncStatus = Field(default=SyncStatus.SUCCESS)
    last_sync_at: Optional[datetime] = Field(default=None, description="Completion time of the last run")

    def __str__(self) -> str:
        return f"Author({self.username}:{self.id})"


class Article(BaseModel):
    """Canonical article normalized from one feed item."""
    guid: str = Field(..., min_length=1, description="Feed-provided unique identifier")
    title: str = Field(..., description="Article title")
    link: str = Field(..., min_length=1, description="Article URL")
    creator: str = Field(default="", description="Author name reported by the feed")
    categories: List[str] = Field(default_factory=list, description="Category names, feed order")
    published_at: datetime = Field(..., description="Original publication time (UTC)")
    last_updated: datetime = Field(..., description="Last update time reported by the feed (UTC)")
    content: str = Field(default="", description="Encoded article body")

    def __str__(self) -> str:
        return f"Article({self.guid}: {self.title[:50]})"


class StoredArticle(BaseModel):
    """Persisted article joined with its author and categories."""
    guid: str
    title: str
    link: str
    published_at: datetime
    last_updated_at: datetime
    creator: str = Field(..., description="Owning author's username")
    categories: List[str] = Field(default_factory=list)

    @field_validator('categories', mode='before')
    @classmethod
    def coerce_categories(cls, v):
        """Never expose a null category list."""
        return v or []


class StoredArticlesPage(BaseModel):
    """Stored article listing."""
    articles: List[StoredArticle] = Field(default_factory=list)
    total: int = 0
    # Always False: the listing is not paginated
    has_more: bool = False


class NormalizationFailure(BaseModel):
    """A feed item that could not be normalized."""
    index: int = Field(..., ge=0, description="Position of the item in the feed")
    guid: Optional[str] = None
    reason: str


class IngestionResult(BaseModel):
    """Outcome of one ingestion run."""
    username: str
    articles: List[Article] = Field(default_factory=list, description="Normalized articles, bounded by the display limit")
    stored_count: int = Field(default=0, ge=0, description="Articles persisted in this run")
    total_fetched: int = Field(default=0, ge=0, description="Items present in the fetched feed")
    skipped: List[NormalizationFailure] = Field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

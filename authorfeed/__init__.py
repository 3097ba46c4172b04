"""
AuthorFeed - Author Feed Ingestion
==================================

Fetches an author's RSS feed, normalizes its items and stores them
idempotently with their categories.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Processing: feed fetching, XML parsing and article normalization
- Services: ingestion orchestration and stored-article queries
"""

__version__ = "1.0.0"
__author__ = "AuthorFeed Development Team"
__description__ = "Author feed ingestion and article store"

from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .services.ingestion_service import IngestionService
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import AuthorFeedError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "IngestionService",
    "configure_application_logging",
    "get_logger_for_component",
    "AuthorFeedError",
]

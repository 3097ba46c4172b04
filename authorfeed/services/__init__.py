"""
AuthorFeed Services
===================

Service layer shared by the CLI and any other front end.
"""

from .ingestion_service import IngestionService

__all__ = [
    'IngestionService',
]

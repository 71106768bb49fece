"""Price history ingestion."""

from .service import IngestionService

__all__ = ["IngestionService"]

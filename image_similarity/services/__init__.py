"""Business logic services."""
from .cache_service import CacheService
from .image_service import ImageService
from .search_service import SimilaritySearchService
from .ingestion_service import IngestionService
from .history_service import HistoryService

__all__ = [
    "CacheService",
    "ImageService",
    "SimilaritySearchService",
    "IngestionService",
    "HistoryService",
]

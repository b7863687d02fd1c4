"""Dependency injection for FastAPI routes."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

from fastapi import Depends

from image_similarity.core.config import settings
from image_similarity.core.database import get_session_factory
from image_similarity.core.redis import redis_client
from image_similarity.extractors import BaseFeatureExtractor, get_feature_extractor
from image_similarity.repositories import (
    ImageStore,
    SearchHistoryLedger,
    create_database_backend,
    create_memory_backend,
)
from image_similarity.services import (
    CacheService,
    HistoryService,
    ImageService,
    IngestionService,
    SimilaritySearchService,
)


# Singleton instances shared by all requests
_backend: Tuple[ImageStore, SearchHistoryLedger] | None = None
_extractor: BaseFeatureExtractor | None = None
_executor: ThreadPoolExecutor | None = None
_cache_service: CacheService | None = None


def get_backend() -> Tuple[ImageStore, SearchHistoryLedger]:
    """Get the configured image store and ledger (singleton)."""
    global _backend
    if _backend is None:
        if settings.uses_database:
            _backend = create_database_backend(get_session_factory())
        else:
            _backend = create_memory_backend()
    return _backend


def get_image_store() -> ImageStore:
    """Get image store (singleton)."""
    return get_backend()[0]


def get_history_ledger() -> SearchHistoryLedger:
    """Get search history ledger (singleton)."""
    return get_backend()[1]


def get_extractor() -> BaseFeatureExtractor:
    """Get feature extractor (singleton)."""
    global _extractor
    if _extractor is None:
        _extractor = get_feature_extractor(settings.feature_extractor)
    return _extractor


def get_executor() -> ThreadPoolExecutor:
    """Get the thread pool running feature extraction (singleton)."""
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(
            max_workers=settings.extractor_workers,
            thread_name_prefix="extractor"
        )
    return _executor


def get_cache_service() -> CacheService:
    """Get cache service (singleton)."""
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service


async def shutdown_dependencies():
    """Release singletons on application shutdown."""
    global _backend, _extractor, _executor, _cache_service
    if _executor is not None:
        _executor.shutdown(wait=True)
    await redis_client.disconnect()
    _backend = None
    _extractor = None
    _executor = None
    _cache_service = None


# Request-scoped services


async def get_image_service(
    images: ImageStore = Depends(get_image_store),
    cache: CacheService = Depends(get_cache_service),
) -> ImageService:
    """Get image service."""
    return ImageService(images, cache)


async def get_search_service(
    images: ImageStore = Depends(get_image_store),
    history: SearchHistoryLedger = Depends(get_history_ledger),
) -> SimilaritySearchService:
    """Get similarity search service."""
    return SimilaritySearchService(images, history)


async def get_ingestion_service(
    images: ImageStore = Depends(get_image_store),
    extractor: BaseFeatureExtractor = Depends(get_extractor),
    executor: ThreadPoolExecutor = Depends(get_executor),
) -> IngestionService:
    """Get ingestion service."""
    return IngestionService(images, extractor, executor=executor)


async def get_history_service(
    history: SearchHistoryLedger = Depends(get_history_ledger),
) -> HistoryService:
    """Get search history service."""
    return HistoryService(history)

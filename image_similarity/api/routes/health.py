"""Health check endpoints."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from image_similarity.api.dependencies import (
    get_cache_service,
    get_extractor,
    get_history_ledger,
    get_image_store,
)
from image_similarity.core.config import settings
from image_similarity.extractors import BaseFeatureExtractor
from image_similarity.repositories import ImageStore, SearchHistoryLedger
from image_similarity.services import CacheService

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    storage: str
    backend: str
    cache: str
    extractor: str
    image_count: Optional[int] = None
    history_count: Optional[int] = None
    vector_dimension: Optional[int] = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    images: ImageStore = Depends(get_image_store),
    history: SearchHistoryLedger = Depends(get_history_ledger),
    extractor: BaseFeatureExtractor = Depends(get_extractor),
    cache: CacheService = Depends(get_cache_service)
):
    """
    Health check endpoint.

    Returns service health status.
    """
    image_count = history_count = dimension = None

    # Check storage
    try:
        image_count = await images.count()
        history_count = await history.count()
        dimension = await images.get_dimension()
        storage_status = "healthy"
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")
        storage_status = "unhealthy"

    # Check cache
    if not cache.enabled:
        cache_status = "disabled"
    else:
        cache_status = "healthy" if await cache.ping() else "unavailable"

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "unhealthy",
        storage=storage_status,
        backend=settings.storage_backend,
        cache=cache_status,
        extractor=extractor.extractor_name,
        image_count=image_count,
        history_count=history_count,
        vector_dimension=dimension
    )

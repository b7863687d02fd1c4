"""Search history API routes."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from image_similarity.api.dependencies import get_history_service
from image_similarity.models.schemas import SearchHistoryResponse, SuccessResponse
from image_similarity.services import HistoryService

router = APIRouter(prefix="/history")


@router.get("", response_model=List[SearchHistoryResponse])
async def list_history(
    history_service: HistoryService = Depends(get_history_service)
):
    """List past searches, most recent first."""
    items = await history_service.list_history()
    return [SearchHistoryResponse.from_item(entry, image) for entry, image in items]


@router.delete("", response_model=SuccessResponse)
async def clear_history(
    history_service: HistoryService = Depends(get_history_service)
):
    """Clear the search history. Images are kept."""
    await history_service.clear_history()
    return SuccessResponse()

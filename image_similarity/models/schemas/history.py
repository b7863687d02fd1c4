"""Search history Pydantic schemas."""
from datetime import datetime

from pydantic import BaseModel

from image_similarity.models.records import ImageRecord, SearchHistoryEntry
from .image import ImageResponse


class SearchHistoryResponse(BaseModel):
    """One past search with its source image."""

    id: int
    source_image_id: int
    result_count: int
    searched_at: datetime
    source_image: ImageResponse

    @classmethod
    def from_item(cls, entry: SearchHistoryEntry, image: ImageRecord) -> "SearchHistoryResponse":
        return cls(
            id=entry.id,
            source_image_id=entry.source_image_id,
            result_count=entry.result_count,
            searched_at=entry.searched_at,
            source_image=ImageResponse.from_record(image),
        )

"""Image Pydantic schemas."""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from image_similarity.models.records import ImageRecord, SimilarityResult
from .common import to_data_url


class ImageBase(BaseModel):
    """Displayable image fields."""

    id: int
    filename: str
    mime_type: str
    width: int
    height: int
    size: int = Field(..., description="Original upload size in bytes")
    source: str
    image_data: str = Field(..., description="Display image as a base64 data URL")


class ImageResponse(ImageBase):
    """Schema for image responses."""

    uploaded_at: datetime
    vector_dimension: int

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImageResponse":
        return cls(
            id=record.id,
            filename=record.filename,
            mime_type=record.mime_type,
            width=record.width,
            height=record.height,
            size=record.size,
            source=record.source,
            image_data=to_data_url(record.image_data),
            uploaded_at=record.uploaded_at,
            vector_dimension=record.dimension,
        )


class UploadResponse(BaseModel):
    """Schema returned after a successful upload."""

    success: bool = True
    image_id: int


class SimilarImageResponse(ImageBase):
    """One ranked search result."""

    similarity_score: float = Field(..., ge=0.0, le=1.0, description="Score rounded to two places")

    @classmethod
    def from_result(cls, result: SimilarityResult) -> "SimilarImageResponse":
        return cls(
            id=result.id,
            filename=result.filename,
            mime_type=result.mime_type,
            width=result.width,
            height=result.height,
            size=result.size,
            source=result.source,
            image_data=to_data_url(result.image_data),
            similarity_score=result.similarity_score,
        )


class SimilarImagesResponse(BaseModel):
    """Schema for a similarity search."""

    source_image: int
    results: List[SimilarImageResponse]

"""Immutable domain records shared by the stores and services."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, field_validator
from pydantic import ValidationError as PydanticValidationError

from image_similarity.core.exceptions import ValidationException

DEFAULT_SOURCE = "user-upload"

# Largest id a 32-bit integer primary key holds on every database backend
MAX_RECORD_ID = 2**31 - 1


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops the offset) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ImageCreate(BaseModel):
    """An image record before the store assigns its id and timestamp."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., min_length=1, description="Display name")
    mime_type: str = Field(..., min_length=1, max_length=50, description="MIME type of the upload")
    width: int = Field(..., ge=1, description="Image width in pixels")
    height: int = Field(..., ge=1, description="Image height in pixels")
    size: int = Field(..., ge=1, description="Upload size in bytes")
    source: Optional[str] = Field(default=None, description="Provenance tag")
    feature_vector: Tuple[FiniteFloat, ...] = Field(..., min_length=1, description="Feature vector")
    image_data: bytes = Field(..., description="Encoded display image")


class ImageRecord(BaseModel):
    """A committed image with its feature vector."""

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    id: int
    filename: str
    mime_type: str
    width: int
    height: int
    size: int
    source: str
    feature_vector: Tuple[float, ...]
    image_data: bytes
    uploaded_at: datetime

    normalize_uploaded_at = field_validator("uploaded_at")(as_utc)

    @property
    def dimension(self) -> int:
        """Length of the feature vector."""
        return len(self.feature_vector)


class SearchHistoryEntry(BaseModel):
    """One recorded similarity search."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    source_image_id: int
    result_count: int = Field(..., ge=0)
    searched_at: datetime

    normalize_searched_at = field_validator("searched_at")(as_utc)


class SimilarityResult(BaseModel):
    """A ranked candidate image with its rounded similarity score."""

    model_config = ConfigDict(frozen=True)

    id: int
    filename: str
    mime_type: str
    width: int
    height: int
    size: int
    source: str
    similarity_score: float
    image_data: bytes

    @classmethod
    def from_record(cls, record: ImageRecord, score: float) -> "SimilarityResult":
        """Build a result from a record and an already display-ready score."""
        return cls(
            id=record.id,
            filename=record.filename,
            mime_type=record.mime_type,
            width=record.width,
            height=record.height,
            size=record.size,
            source=record.source,
            similarity_score=score,
            image_data=record.image_data,
        )


def validate_image_create(data: Union[ImageCreate, Dict[str, Any]]) -> ImageCreate:
    """
    Validate incoming image data at the store boundary.

    Args:
        data: ImageCreate instance or plain mapping of its fields

    Returns:
        Validated ImageCreate

    Raises:
        ValidationException: If a field is missing, empty or out of range
    """
    if isinstance(data, ImageCreate):
        data = data.model_dump()
    try:
        return ImageCreate.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'image'}: {error['msg']}"
            for error in e.errors()
        )
        raise ValidationException(f"Invalid image data: {problems}") from e

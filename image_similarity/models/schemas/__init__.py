"""Pydantic schemas for API validation."""
from .common import SuccessResponse, ErrorResponse, to_data_url
from .image import (
    ImageBase,
    ImageResponse,
    UploadResponse,
    SimilarImageResponse,
    SimilarImagesResponse,
)
from .history import SearchHistoryResponse

__all__ = [
    # Common
    "SuccessResponse",
    "ErrorResponse",
    "to_data_url",
    # Image
    "ImageBase",
    "ImageResponse",
    "UploadResponse",
    "SimilarImageResponse",
    "SimilarImagesResponse",
    # History
    "SearchHistoryResponse",
]

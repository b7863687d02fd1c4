"""Image API routes."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile

from image_similarity.api.dependencies import (
    get_image_service,
    get_ingestion_service,
    get_search_service,
)
from image_similarity.core.exceptions import ValidationException
from image_similarity.models.records import MAX_RECORD_ID
from image_similarity.models.schemas import (
    ErrorResponse,
    ImageResponse,
    SimilarImageResponse,
    SimilarImagesResponse,
    UploadResponse,
)
from image_similarity.services import ImageService, IngestionService, SimilaritySearchService

router = APIRouter(prefix="/images")

UPLOAD_ERRORS = {
    status: {"model": ErrorResponse} for status in (400, 413, 415, 502)
}
NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=201,
    responses=UPLOAD_ERRORS
)
async def upload_image(
    image: Optional[UploadFile] = File(default=None, description="JPEG or PNG image"),
    ingestion_service: IngestionService = Depends(get_ingestion_service)
):
    """
    Upload an image and extract its feature vector.

    **Returns:** the identifier of the stored image

    **Errors:**
    - **400**: no file in the request
    - **413**: file larger than the upload limit
    - **415**: file is not JPEG or PNG
    - **502**: the feature extractor could not process the file
    """
    if image is None:
        raise ValidationException("No image uploaded")

    # One byte past the limit is enough to reject an oversized upload
    raw_bytes = await image.read(ingestion_service.settings.max_upload_bytes + 1)
    record = await ingestion_service.ingest(
        raw_bytes,
        image.content_type,
        image.filename
    )
    return UploadResponse(image_id=record.id)


@router.get("/{image_id}", response_model=ImageResponse, responses=NOT_FOUND)
async def get_image(
    image_id: int = Path(..., ge=1, le=MAX_RECORD_ID, description="Image identifier"),
    image_service: ImageService = Depends(get_image_service)
):
    """Get image metadata with its display image."""
    record = await image_service.get_image(image_id)
    return ImageResponse.from_record(record)


@router.get("/{image_id}/similar", response_model=SimilarImagesResponse, responses=NOT_FOUND)
async def find_similar_images(
    image_id: int = Path(..., ge=1, le=MAX_RECORD_ID, description="Image identifier"),
    limit: Optional[int] = Query(
        default=None,
        description="Maximum number of results (default 10, clamped to 1-100)"
    ),
    search_service: SimilaritySearchService = Depends(get_search_service)
):
    """
    Find stored images most similar to an image.

    Each call is recorded in the search history.
    """
    results = await search_service.find_similar(image_id, limit)

    return SimilarImagesResponse(
        source_image=image_id,
        results=[SimilarImageResponse.from_result(result) for result in results]
    )

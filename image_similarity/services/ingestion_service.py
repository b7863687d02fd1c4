"""Ingestion of uploaded images."""
import asyncio
import logging
from concurrent.futures import Executor
from typing import Optional

from image_similarity.core.config import Settings, settings as default_settings
from image_similarity.core.exceptions import (
    ExtractionFailedException,
    PayloadTooLargeException,
    UnsupportedMediaTypeException,
    ValidationException,
)
from image_similarity.extractors import BaseFeatureExtractor
from image_similarity.models.records import ImageRecord, validate_image_create
from image_similarity.repositories import ImageStore

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "uploaded-image"


class IngestionService:
    """Validates uploads, runs the feature extractor and commits records."""

    def __init__(
        self,
        images: ImageStore,
        extractor: BaseFeatureExtractor,
        settings: Optional[Settings] = None,
        executor: Optional[Executor] = None
    ):
        """
        Initialize ingestion service.

        Args:
            images: Image store receiving new records
            extractor: Feature extractor collaborator
            settings: Upload limits configuration
            executor: Executor running the extractor, default loop executor if None
        """
        self.images = images
        self.extractor = extractor
        self.settings = settings or default_settings
        self.executor = executor

    def validate_upload(self, raw_bytes: bytes, mime_type: Optional[str]):
        """
        Check an upload before extraction. The first failing rule wins.

        Raises:
            UnsupportedMediaTypeException: If the MIME type is not accepted
            PayloadTooLargeException: If the payload exceeds max_upload_bytes
            ValidationException: If the payload is empty
        """
        accepted = self.settings.accepted_mime_types
        if mime_type not in accepted:
            raise UnsupportedMediaTypeException(mime_type, accepted)

        size = len(raw_bytes)
        if size > self.settings.max_upload_bytes:
            raise PayloadTooLargeException(size, self.settings.max_upload_bytes)

        if size == 0:
            raise ValidationException("Uploaded image is empty")

    async def ingest(
        self,
        raw_bytes: bytes,
        mime_type: Optional[str],
        filename: Optional[str],
        source: Optional[str] = None
    ) -> ImageRecord:
        """
        Ingest one uploaded image.

        Args:
            raw_bytes: Uploaded file content
            mime_type: Declared MIME type
            filename: Declared filename, blank falls back to 'uploaded-image'
            source: Provenance tag, store default when None

        Returns:
            The committed image record

        Raises:
            UnsupportedMediaTypeException: If the MIME type is not accepted
            PayloadTooLargeException: If the payload is too large
            ExtractionFailedException: If the extractor fails; nothing is committed
        """
        self.validate_upload(raw_bytes, mime_type)

        loop = asyncio.get_running_loop()
        try:
            extraction = await loop.run_in_executor(
                self.executor,
                self.extractor.extract,
                raw_bytes
            )
        except Exception as e:
            logger.error(
                f"Feature extraction with {self.extractor.extractor_name} failed "
                f"for '{filename}': {type(e).__name__}: {e}"
            )
            raise ExtractionFailedException(str(e) or type(e).__name__) from e

        image = validate_image_create({
            "filename": (filename or "").strip() or DEFAULT_FILENAME,
            "mime_type": mime_type,
            "width": extraction.width,
            "height": extraction.height,
            "size": len(raw_bytes),
            "source": source,
            "feature_vector": extraction.feature_vector,
            "image_data": extraction.processed_image,
        })
        record = await self.images.save(image)

        logger.info(
            f"Ingested image {record.id} '{record.filename}' "
            f"({record.width}x{record.height}, {record.size} bytes, dim={record.dimension})"
        )
        return record

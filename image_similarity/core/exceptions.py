"""Custom exceptions for the application."""
from typing import Iterable


class SimilarityException(Exception):
    """Base exception for all image similarity errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        """Whether the caller caused the error and may see its message."""
        return 400 <= self.status_code < 500


class NotFoundException(SimilarityException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str, identifier):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, status_code=404)


class ValidationException(SimilarityException):
    """Raised when validation fails."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UnsupportedMediaTypeException(SimilarityException):
    """Raised when an upload has a MIME type outside the accepted set."""

    def __init__(self, mime_type: str, accepted: Iterable[str]):
        self.mime_type = mime_type
        message = (
            f"Unsupported media type '{mime_type}'. "
            f"Accepted types: {', '.join(accepted)}"
        )
        super().__init__(message, status_code=415)


class PayloadTooLargeException(SimilarityException):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        message = f"Upload of {size} bytes exceeds the limit of {max_size} bytes"
        super().__init__(message, status_code=413)


class ExtractionFailedException(SimilarityException):
    """Raised when the feature extractor fails on an upload."""

    def __init__(self, message: str):
        super().__init__(f"Feature extraction failed: {message}", status_code=502)


class DimensionMismatchException(SimilarityException):
    """Raised when two feature vectors of different lengths meet."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        message = f"Feature vector dimension mismatch: expected {expected}, got {actual}"
        super().__init__(message, status_code=500)


class DanglingReferenceException(SimilarityException):
    """Raised when a history entry would reference a missing image."""

    def __init__(self, image_id):
        self.image_id = image_id
        message = f"Search history cannot reference missing image '{image_id}'"
        super().__init__(message, status_code=500)


class IntegrityException(SimilarityException):
    """Raised when stored data violates a consistency rule."""

    def __init__(self, message: str):
        super().__init__(f"Integrity error: {message}", status_code=500)


class CacheException(SimilarityException):
    """Raised when cache operations fail."""

    def __init__(self, message: str):
        super().__init__(f"Cache error: {message}", status_code=500)

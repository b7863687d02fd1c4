"""Common Pydantic schemas used across the application."""
import base64

from pydantic import BaseModel

DISPLAY_MIME_TYPE = "image/jpeg"


def to_data_url(image_data: bytes, mime_type: str = DISPLAY_MIME_TYPE) -> str:
    """Encode display bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(image_data).decode('ascii')}"


class SuccessResponse(BaseModel):
    """Simple acknowledgement response."""

    success: bool = True


class ErrorResponse(BaseModel):
    """Error payload returned by the exception handlers."""

    detail: str

"""Base feature extractor interface."""
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

from PIL import Image as PILImage

from image_similarity.core.config import settings

BACKGROUND = (255, 255, 255)


@dataclass(frozen=True)
class ExtractionResult:
    """Output of a feature extractor for one image."""

    width: int
    height: int
    feature_vector: Tuple[float, ...]
    processed_image: bytes


def load_image(image_bytes: bytes) -> PILImage.Image:
    """
    Decode image bytes into an RGB PIL image.

    Args:
        image_bytes: Encoded JPEG or PNG data

    Returns:
        Fully loaded RGB image
    """
    with PILImage.open(io.BytesIO(image_bytes)) as img:
        img.load()
        if img.mode == "RGBA":
            # Flatten transparency onto the display background
            flattened = PILImage.new("RGB", img.size, BACKGROUND)
            flattened.paste(img, mask=img.getchannel("A"))
            return flattened
        return img.convert("RGB")


def letterbox_resize(image: PILImage.Image, target_size: int) -> PILImage.Image:
    """
    Resize image to target size while preserving aspect ratio and full content.
    Adds white padding as needed so no cropping occurs.
    """
    width, height = image.size
    scale = min(target_size / width, target_size / height)
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))

    image_resized = image.resize((new_width, new_height), PILImage.Resampling.LANCZOS)

    new_image = PILImage.new("RGB", (target_size, target_size), BACKGROUND)
    x_offset = (target_size - new_width) // 2
    y_offset = (target_size - new_height) // 2
    new_image.paste(image_resized, (x_offset, y_offset))

    return new_image


def encode_jpeg(image: PILImage.Image, quality: int) -> bytes:
    """Encode an RGB image as JPEG bytes."""
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()


class BaseFeatureExtractor(ABC):
    """Abstract base class for feature extractors.

    Implementations must be deterministic: the same bytes always give the
    same vector, because stored vectors are never recomputed.
    """

    def __init__(self, target_size: int = None, jpeg_quality: int = None):
        """
        Initialize extractor.

        Args:
            target_size: Side of the square display image
            jpeg_quality: JPEG quality of the display image
        """
        self.target_size = target_size or settings.processed_image_size
        self.jpeg_quality = jpeg_quality or settings.processed_image_quality

    def extract(self, image_bytes: bytes) -> ExtractionResult:
        """
        Decode an image, compute its feature vector and display bytes.

        Args:
            image_bytes: Encoded JPEG or PNG data

        Returns:
            ExtractionResult with original dimensions

        Raises:
            Exception: Whatever decoding or the model raises
        """
        image = load_image(image_bytes)
        width, height = image.size
        processed = letterbox_resize(image, self.target_size)

        return ExtractionResult(
            width=width,
            height=height,
            feature_vector=self.compute_features(processed),
            processed_image=encode_jpeg(processed, self.jpeg_quality),
        )

    @abstractmethod
    def compute_features(self, image: PILImage.Image) -> Tuple[float, ...]:
        """
        Compute the feature vector of a letterboxed RGB image.

        Args:
            image: Square RGB image of side target_size

        Returns:
            Feature vector of length dimension
        """

    @property
    @abstractmethod
    def extractor_name(self) -> str:
        """Get the name of this extractor."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of the vectors this extractor produces."""

    @property
    def extractor_metadata(self) -> dict:
        """
        Get metadata about this extractor.

        Returns:
            Dictionary with extractor information
        """
        return {
            "extractor": self.extractor_name,
            "dimension": self.dimension,
            "target_size": self.target_size,
        }

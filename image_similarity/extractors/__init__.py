"""Pluggable feature extraction system."""
from .base import BaseFeatureExtractor, ExtractionResult
from .histogram_extractor import HistogramFeatureExtractor
from .clip_extractor import ClipFeatureExtractor

__all__ = [
    "BaseFeatureExtractor",
    "ExtractionResult",
    "HistogramFeatureExtractor",
    "ClipFeatureExtractor",
    "get_feature_extractor",
]


def get_feature_extractor(extractor_type: str = "histogram") -> BaseFeatureExtractor:
    """
    Factory function to get feature extractor by type.

    Args:
        extractor_type: Type of extractor ('histogram', 'clip')

    Returns:
        Feature extractor instance

    Raises:
        ValueError: If extractor type is unknown
    """
    extractors = {
        "histogram": HistogramFeatureExtractor,
        "clip": ClipFeatureExtractor,
    }

    extractor_class = extractors.get(extractor_type.lower())
    if not extractor_class:
        raise ValueError(
            f"Unknown feature extractor type: {extractor_type}. "
            f"Available: {', '.join(extractors.keys())}"
        )

    return extractor_class()

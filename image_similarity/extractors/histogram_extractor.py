"""Colour histogram feature extractor."""
from typing import Tuple

import numpy as np
from PIL import Image as PILImage

from .base import BaseFeatureExtractor


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    return vector / norm if norm > 0 else vector


class HistogramFeatureExtractor(BaseFeatureExtractor):
    """Deterministic extractor needing no model download.

    The vector concatenates a per-channel RGB histogram with a coarse
    grayscale layout grid. Each block is normalised on its own so that
    colour and layout weigh the same, then the whole vector is L2
    normalised.
    """

    def __init__(self, bins: int = 8, grid: int = 4, **kwargs):
        super().__init__(**kwargs)
        self.bins = bins
        self.grid = grid

    def compute_features(self, image: PILImage.Image) -> Tuple[float, ...]:
        pixels = np.asarray(image, dtype=np.uint8)

        histograms = [
            np.histogram(pixels[:, :, channel], bins=self.bins, range=(0, 256))[0]
            for channel in range(3)
        ]
        color = np.concatenate(histograms).astype(np.float64)

        layout = image.convert("L").resize((self.grid, self.grid), PILImage.Resampling.BOX)
        layout_values = np.asarray(layout, dtype=np.float64).ravel() / 255.0

        vector = _unit(np.concatenate([_unit(color), _unit(layout_values)]))
        return tuple(float(value) for value in vector)

    @property
    def extractor_name(self) -> str:
        """Get extractor name."""
        return "histogram"

    @property
    def dimension(self) -> int:
        return 3 * self.bins + self.grid * self.grid

    @property
    def extractor_metadata(self) -> dict:
        """Get extractor metadata."""
        return {
            **super().extractor_metadata,
            "bins": self.bins,
            "grid": self.grid,
        }

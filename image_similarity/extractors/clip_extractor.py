"""Pretrained CLIP feature extractor (requires the 'clip' extra)."""
import logging
import threading
from typing import Any, Optional, Tuple

from PIL import Image as PILImage

from image_similarity.core.config import settings
from .base import BaseFeatureExtractor

logger = logging.getLogger(__name__)


class ClipFeatureExtractor(BaseFeatureExtractor):
    """Extractor returning normalised open_clip image embeddings.

    torch and open_clip are imported when the model is first needed, so
    the service starts without them when another extractor is selected.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        pretrained: Optional[str] = None,
        device: Optional[str] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.model_name = model_name or settings.clip_model_name
        self.pretrained = pretrained or settings.clip_pretrained
        self.device_config = device or settings.clip_device
        self.device: Optional[str] = None
        self._model: Any = None
        self._preprocess: Any = None
        self._dimension: Optional[int] = None
        self._load_lock = threading.Lock()

    def load_model(self):
        """Load the CLIP model once; safe to call from worker threads."""
        with self._load_lock:
            if self._model is not None:
                return

            import torch
            import open_clip

            if self.device_config == "auto":
                device = "cuda" if torch.cuda.is_available() else "cpu"
            elif self.device_config == "cuda" and not torch.cuda.is_available():
                logger.warning("CUDA requested but not available, falling back to CPU")
                device = "cpu"
            else:
                device = self.device_config

            logger.info(
                f"Loading CLIP model {self.model_name} "
                f"(pretrained={self.pretrained}) on {device}"
            )
            model, _, preprocess = open_clip.create_model_and_transforms(
                self.model_name,
                pretrained=self.pretrained,
                device=device
            )
            model.eval()

            self.device = device
            self._preprocess = preprocess
            self._dimension = int(model.visual.output_dim)
            self._model = model
            logger.info(f"CLIP model loaded, embedding dimension {self._dimension}")

    def compute_features(self, image: PILImage.Image) -> Tuple[float, ...]:
        import torch

        self.load_model()
        tensor = self._preprocess(image).unsqueeze(0).to(self.device)
        with torch.no_grad():
            features = self._model.encode_image(tensor)
            features = features / features.norm(dim=-1, keepdim=True)
        return tuple(float(value) for value in features[0].cpu().tolist())

    @property
    def extractor_name(self) -> str:
        """Get extractor name."""
        return "clip"

    @property
    def dimension(self) -> int:
        self.load_model()
        return self._dimension

    @property
    def extractor_metadata(self) -> dict:
        """Get extractor metadata without forcing a model load."""
        return {
            "extractor": self.extractor_name,
            "model": self.model_name,
            "pretrained": self.pretrained,
            "target_size": self.target_size,
            "loaded": self._model is not None,
        }

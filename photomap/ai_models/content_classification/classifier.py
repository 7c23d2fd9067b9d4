"""MobileNet-style content classifier wrapper (Mock Implementation)"""

import logging
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import ClassificationModelConfig
from .labels import CONTENT_LABELS

logger = logging.getLogger(__name__)

FEATURE_NAMES = (
    "red",
    "green",
    "blue",
    "brightness",
    "contrast",
    "saturation",
    "edge_density",
    "sky_ratio",
    "bias",
)


class ContentClassifier:
    """
    MobileNet-style image classifier returning ImageNet-like labels.

    This is a MOCK implementation that simulates MobileNet behavior.
    In production, this would load actual trained MobileNet weights.
    Predictions are deterministic for a given image and weight seed.
    """

    def __init__(
        self,
        config: Optional[ClassificationModelConfig] = None,
        labels: Sequence[str] = CONTENT_LABELS,
    ):
        self.config = config or ClassificationModelConfig()
        self.labels = tuple(labels)
        self.weights: Optional[np.ndarray] = None
        self.model_loaded = False
        self.inference_count = 0
        logger.info(f"Initializing ContentClassifier with config: {self.config.model_dump()}")

    def load_model(self):
        """
        Load classifier weights.

        In production, this would use:
        import torch
        import torchvision.models as models
        self.model = models.mobilenet_v2(weights=None)
        self.model.load_state_dict(torch.load(self.config.model_path))
        self.model.eval()
        """
        logger.info(f"Loading MobileNet model from {self.config.model_path}")
        rng = np.random.default_rng(self.config.weight_seed)
        self.weights = rng.normal(0.0, 1.0, size=(len(self.labels), len(FEATURE_NAMES)))
        self.model_loaded = True
        logger.info("MobileNet model loaded successfully (MOCK)")

    @staticmethod
    def extract_features(pixels: np.ndarray) -> np.ndarray:
        """
        Compute global image statistics used as mock embeddings.

        Args:
            pixels: float array (H, W, 3) scaled to [0, 1]

        Returns:
            Feature vector ordered as FEATURE_NAMES
        """
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise ValueError(f"Expected an (H, W, 3) pixel buffer, got {pixels.shape}")

        means = pixels.mean(axis=(0, 1))
        gray = pixels.mean(axis=2)
        brightness = float(gray.mean())
        contrast = float(gray.std())

        channel_max = pixels.max(axis=2)
        channel_min = pixels.min(axis=2)
        saturation = float(
            np.mean(np.where(channel_max > 0, (channel_max - channel_min) / np.maximum(channel_max, 1e-6), 0.0))
        )

        grad_y = np.abs(np.diff(gray, axis=0)).mean() if gray.shape[0] > 1 else 0.0
        grad_x = np.abs(np.diff(gray, axis=1)).mean() if gray.shape[1] > 1 else 0.0
        edge_density = float(grad_x + grad_y)

        top = pixels[: max(1, pixels.shape[0] // 3)]
        sky_ratio = float(np.mean((top[..., 2] > top[..., 0]) & (top[..., 2] > top[..., 1])))

        return np.array(
            [means[0], means[1], means[2], brightness, contrast, saturation, edge_density, sky_ratio, 1.0],
            dtype=np.float64,
        )

    def classify(self, pixels: np.ndarray, top_k: int = 5) -> List[Tuple[str, float]]:
        """
        Classify an image.

        Args:
            pixels: Decoded pixel buffer (H, W, 3)
            top_k: Number of predictions to return

        Returns:
            List of (label, probability) sorted by descending probability

        Note:
            This is a MOCK implementation. In production, this would run actual MobileNet inference.
        """
        if not self.model_loaded:
            self.load_model()

        start_time = time.time()

        features = self.extract_features(pixels)
        # Center features so the bias column does not dominate
        centered = features - np.array([0.5, 0.5, 0.5, 0.5, 0.2, 0.3, 0.1, 0.5, 0.0])
        logits = self.weights @ centered * self.config.temperature

        # Softmax
        exp = np.exp(logits - logits.max())
        probabilities = exp / exp.sum()

        order = np.argsort(-probabilities, kind="stable")[:top_k]
        predictions = [(self.labels[i], float(probabilities[i])) for i in order]

        inference_time = (time.time() - start_time) * 1000
        self.inference_count += 1

        if predictions:
            logger.debug(
                f"Content classification completed: {predictions[0][0]} "
                f"(confidence: {predictions[0][1]:.2f}) in {inference_time:.2f}ms"
            )

        return predictions

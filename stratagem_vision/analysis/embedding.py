"""Feature embedding provider used for the coarse icon search.

The engine only needs embed() and distance(); anything satisfying
FeatureEmbedder can be swapped in (a learned model, a classical descriptor).
The default is a HOG descriptor from OpenCV. Its distances are Euclidean over
L2-Hys normalised blocks, so they run from 0 to about twice the square root
of the block count (14 for the default 64px window); the MatcherConfig
defaults are calibrated to that range.
"""

from __future__ import annotations

from typing import Protocol

import cv2
import numpy as np

from stratagem_vision.analysis.image_signals import brightness


class EmbeddingError(RuntimeError):
    """Raised when an embedding cannot be computed for an image."""


class FeatureEmbedder(Protocol):
    def embed(self, image: np.ndarray) -> np.ndarray: ...

    def distance(self, a: np.ndarray, b: np.ndarray) -> float: ...


class HogEmbedder:
    """Histogram-of-oriented-gradients embedding over a fixed-size grayscale resize."""

    def __init__(self, window: int = 64, block: int = 16, cell: int = 8, bins: int = 9):
        self._window = window
        self._hog = cv2.HOGDescriptor(
            (window, window), (block, block), (cell, cell), (cell, cell), bins
        )

    def embed(self, image: np.ndarray) -> np.ndarray:
        if image is None or image.size == 0:
            raise EmbeddingError("cannot embed an empty image")
        gray = brightness(image)
        try:
            resized = cv2.resize(
                gray, (self._window, self._window), interpolation=cv2.INTER_AREA
            )
            descriptor = self._hog.compute(resized)
        except cv2.error as e:
            raise EmbeddingError(f"HOG descriptor failed: {e}") from e
        if descriptor is None or descriptor.size == 0:
            raise EmbeddingError("HOG descriptor returned no features")
        if not np.any(descriptor):
            # Flat image: no gradients to compare
            raise EmbeddingError("image has no gradient content")
        return descriptor.astype(np.float32).ravel()

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        if a.shape != b.shape:
            raise EmbeddingError(f"embedding shapes differ: {a.shape} vs {b.shape}")
        return float(np.linalg.norm(a - b))

"""Text recognition provider.

Wraps EasyOCR and returns line-level results with confidences and normalized
bounding boxes. The engine does all coordinate conversion and all semantic
interpretation; providers do no domain filtering.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

from stratagem_vision.models import Rect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextLine:
    """One recognized line. box is normalized to [0, 1] in the provider's convention."""
    text: str
    confidence: float
    box: Rect
    # True when box.y is measured up from the bottom edge (Vision-style APIs)
    bottom_left_origin: bool = False

    def to_image_rect(self, width: int, height: int) -> Rect:
        """Box in pixel coordinates with a top-left origin."""
        if self.bottom_left_origin:
            top = height - (self.box.y + self.box.height) * height
        else:
            top = self.box.y * height
        return Rect(
            x=self.box.x * width,
            y=top,
            width=self.box.width * width,
            height=self.box.height * height,
        )


class TextRecognizer(Protocol):
    def recognize_lines(self, image: np.ndarray) -> list[TextLine]: ...


class EasyOCREngine:
    """Line-level OCR for game UI text.

    One instance may be shared by several worker threads: the model is loaded
    once and readtext() calls are serialized on it.
    """

    def __init__(self, languages: Optional[list[str]] = None, gpu: bool = False):
        self._reader = None  # Lazy-loaded easyocr.Reader
        self._languages = languages or ["en"]
        self._gpu = gpu
        self._lock = threading.Lock()

    def _ensure_loaded(self) -> None:
        """Lazy-load EasyOCR model on first use. Caller holds the lock."""
        if self._reader is None:
            logger.info("Loading EasyOCR model (first run may download ~100MB)...")
            import easyocr

            self._reader = easyocr.Reader(self._languages, gpu=self._gpu)
            logger.info("EasyOCR model loaded.")

    def recognize_lines(self, image: np.ndarray) -> list[TextLine]:
        if image is None or image.size == 0:
            return []
        if image.ndim == 3 and image.shape[2] == 4:
            image = np.ascontiguousarray(image[:, :, :3])
        h, w = image.shape[:2]
        try:
            with self._lock:
                self._ensure_loaded()
                results = self._reader.readtext(image, detail=1, paragraph=False)
        except Exception as e:
            logger.error(f"OCR failed: {e}", exc_info=True)
            return []

        lines: list[TextLine] = []
        for points, text, confidence in results:
            xs = [float(p[0]) for p in points]
            ys = [float(p[1]) for p in points]
            x1, x2 = max(0.0, min(xs)), min(float(w), max(xs))
            y1, y2 = max(0.0, min(ys)), min(float(h), max(ys))
            if x2 <= x1 or y2 <= y1:
                continue
            lines.append(
                TextLine(
                    text=str(text),
                    confidence=float(confidence),
                    box=Rect(x1 / w, y1 / h, (x2 - x1) / w, (y2 - y1) / h),
                )
            )
        return lines

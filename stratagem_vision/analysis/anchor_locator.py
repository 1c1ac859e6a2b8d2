"""Anchor locator — finds the READY UP landmark and estimates its button rect.

The landmark text is reliably recognizable, while the icon row above it is
not, so every other region in a grid read is derived from this button.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import numpy as np

from stratagem_vision.analysis.text_recognition import TextLine, TextRecognizer
from stratagem_vision.models import AnchorCandidate, AnchorConfig, Rect

logger = logging.getLogger(__name__)


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text.upper())


class AnchorLocator:
    """Runs text recognition over a capture and picks one landmark candidate."""

    def __init__(self, recognizer: TextRecognizer, config: Optional[AnchorConfig] = None):
        self._recognizer = recognizer
        self._config = config or AnchorConfig()
        words = [w for w in self._config.landmark.upper().split() if w]
        self._landmark_words = words
        self._landmark_joined = "".join(words)

    def matches_landmark(self, text: str) -> bool:
        """True if the line holds the landmark phrase, spaced or run together."""
        normalized = _squash(text)
        if not normalized or not self._landmark_joined:
            return False
        if self._landmark_joined in normalized:
            return True
        return all(word in normalized for word in self._landmark_words)

    def estimate_button_rect(self, text_rect: Rect, width: int, height: int) -> Rect:
        """Full button region around the recognized text, clamped to the image.

        The text sits in the right part of the button (a key hint precedes it),
        so the button starts well to the left of the text origin.
        """
        cfg = self._config
        button_w = text_rect.width * cfg.button_width_scale
        button_h = text_rect.height * cfg.button_height_scale
        button_y = text_rect.min_y - (button_h - text_rect.height) / 2.0
        button_x = text_rect.min_x - text_rect.width * cfg.button_left_offset_scale
        return Rect(button_x, button_y, button_w, button_h).clamped(width, height)

    def candidates_from_lines(
        self, lines: list[TextLine], width: int, height: int
    ) -> list[AnchorCandidate]:
        bottom_threshold = height * (1.0 - self._config.bottom_fraction)
        results: list[AnchorCandidate] = []
        for line in lines:
            if not self.matches_landmark(line.text):
                continue
            text_rect = line.to_image_rect(width, height)
            if not text_rect.min_y > bottom_threshold:
                logger.debug(
                    "Rejecting %r at y=%d - not in bottom %.0f%%",
                    line.text,
                    int(text_rect.min_y),
                    self._config.bottom_fraction * 100,
                )
                continue
            button_rect = self.estimate_button_rect(text_rect, width, height)
            results.append(
                AnchorCandidate(
                    text=line.text,
                    confidence=line.confidence,
                    text_rect=text_rect,
                    button_rect=button_rect,
                )
            )
        return results

    def candidates(self, capture: np.ndarray) -> list[AnchorCandidate]:
        """Every landmark candidate that survives the position filter."""
        if capture is None or capture.size == 0:
            return []
        h, w = capture.shape[:2]
        lines = self._recognizer.recognize_lines(capture)
        return self.candidates_from_lines(lines, w, h)

    @staticmethod
    def pick_best(candidates: list[AnchorCandidate], width: int) -> Optional[AnchorCandidate]:
        """Leftmost candidate, preferring those whose button centre is in the left half."""
        if not candidates:
            return None
        center_x = width / 2.0
        return min(
            candidates,
            key=lambda c: (0 if c.button_rect.mid_x < center_x else 1, c.button_rect.mid_x),
        )

    def locate(self, capture: np.ndarray) -> Optional[AnchorCandidate]:
        if capture is None or capture.size == 0:
            return None
        best = self.pick_best(self.candidates(capture), capture.shape[1])
        if best is None:
            logger.debug("%s not found via OCR", self._config.landmark)
        return best

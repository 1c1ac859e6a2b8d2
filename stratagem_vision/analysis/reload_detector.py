"""Reload detector — flags an empty magazine from the red tint on the weapon icon.

The weapon panel sits at the bottom-left of the screen; the icon occupies the
top-right corner of that panel and turns red when a reload is needed.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import numpy as np

from stratagem_vision.models import Rect, ReloadDetection

logger = logging.getLogger(__name__)

MIN_ALPHA = 32
RED_MIN = 150
RED_MARGIN = 40


def weapon_icon_rect(width: int, height: int) -> Rect:
    icon_w = min(180, width)
    icon_h = min(90, height)
    return Rect(max(0, width - icon_w), 0, icon_w, icon_h)


class ReloadDetector:
    def __init__(self, red_ratio_threshold: float = 0.08):
        self.red_ratio_threshold = red_ratio_threshold

    def detect(self, image: np.ndarray) -> ReloadDetection:
        """Red-pixel ratio over the weapon icon region of a BGR/BGRA panel capture."""
        if image is None or image.size == 0 or image.ndim != 3:
            return ReloadDetection(False, 0.0, 0)
        h, w = image.shape[:2]
        x1, y1, x2, y2 = weapon_icon_rect(w, h).integral()
        icon = image[y1:y2, x1:x2].astype(np.int32)
        if icon.size == 0:
            return ReloadDetection(False, 0.0, 0)

        b, g, r = icon[:, :, 0], icon[:, :, 1], icon[:, :, 2]
        if icon.shape[2] == 4:
            sampled = icon[:, :, 3] >= MIN_ALPHA
        else:
            sampled = np.ones(b.shape, dtype=bool)

        red = (r > RED_MIN) & (r > g + RED_MARGIN) & (r > b + RED_MARGIN) & sampled
        sampled_count = int(sampled.sum())
        ratio = float(red.sum()) / sampled_count if sampled_count > 0 else 0.0
        return ReloadDetection(ratio > self.red_ratio_threshold, ratio, sampled_count)


class ReloadMonitor:
    """Edge-triggered announcer over successive detections."""

    def __init__(
        self,
        detector: Optional[ReloadDetector] = None,
        announce_cooldown: float = 6.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._detector = detector or ReloadDetector()
        self._announce_cooldown = announce_cooldown
        self._clock = clock
        self._last_needs_reload = False
        self._last_announced_at: Optional[float] = None

    def reset(self) -> None:
        self._last_needs_reload = False
        self._last_announced_at = None

    def update(self, image: np.ndarray) -> tuple[ReloadDetection, bool]:
        """Detect on one capture; the flag is True only on a rising edge outside the cooldown."""
        detection = self._detector.detect(image)
        announce = False
        if detection.needs_reload and not self._last_needs_reload:
            now = self._clock()
            last = self._last_announced_at
            if last is None or now - last >= self._announce_cooldown:
                self._last_announced_at = now
                announce = True
                logger.info(f"Reload needed (red ratio {detection.red_ratio:.2f})")
        self._last_needs_reload = detection.needs_reload
        return detection, announce

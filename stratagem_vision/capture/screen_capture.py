"""Screen capture on mss.

One ScreenCapture belongs to one thread: mss handles are not shared across
threads, so each worker creates, starts and stops its own instance.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import mss
import numpy as np

from stratagem_vision.models import BoundingBox

logger = logging.getLogger(__name__)


class ScreenCapture:
    def __init__(self, monitor_index: int = 1):
        self.monitor_index = monitor_index
        self._sct: Optional[mss.base.MSSBase] = None

    def start(self) -> None:
        if self._sct is None:
            self._sct = mss.mss()

    def stop(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None

    def __enter__(self) -> ScreenCapture:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def list_monitors(self) -> list[dict]:
        """Physical monitors (mss index 1..n) as left/top/width/height dicts."""
        self.start()
        return [dict(m) for m in self._sct.monitors[1:]]

    def _monitor(self) -> dict:
        monitors = self._sct.monitors
        if len(monitors) <= 1:
            return monitors[0]
        idx = min(max(1, self.monitor_index), len(monitors) - 1)
        return monitors[idx]

    def has_permission(self) -> bool:
        """True if a 1x1 grab succeeds."""
        try:
            self.start()
            monitor = self._monitor()
            self._sct.grab({"top": monitor["top"], "left": monitor["left"], "width": 1, "height": 1})
            return True
        except Exception as e:
            logger.error(f"Screen capture unavailable: {e}")
            return False

    def resolve_region(self, bbox: BoundingBox) -> dict:
        """mss region for bbox on the active monitor; a negative top counts up from the bottom."""
        monitor = self._monitor()
        top = bbox.top if bbox.top >= 0 else max(0, monitor["height"] + bbox.top)
        width = max(1, min(bbox.width, monitor["width"] - bbox.left))
        height = max(1, min(bbox.height, monitor["height"] - top))
        region = BoundingBox(top=top, left=bbox.left, width=width, height=height)
        return region.as_mss_region(monitor["left"], monitor["top"])

    def grab_region(self, bbox: BoundingBox) -> Optional[np.ndarray]:
        """BGR image of bbox, or None if the grab failed."""
        try:
            self.start()
            shot = self._sct.grab(self.resolve_region(bbox))
            return cv2.cvtColor(np.array(shot), cv2.COLOR_BGRA2BGR)
        except Exception as e:
            logger.error(f"Capture failed: {e}", exc_info=True)
            return None

    def grab_full(self) -> Optional[np.ndarray]:
        """BGR image of the whole active monitor, or None if the grab failed."""
        try:
            self.start()
            shot = self._sct.grab(self._monitor())
            return cv2.cvtColor(np.array(shot), cv2.COLOR_BGRA2BGR)
        except Exception as e:
            logger.error(f"Capture failed: {e}", exc_info=True)
            return None

"""Loadout grid reader — reads the four mission stratagem icons above READY UP.

Game UI structure, bottom to top in screen space:

1. READY UP button
2. a small gap (~28% of the button height)
3. dark icon row: 4 mission stratagems + 1 booster (the row we read)
4. yellow icon row of common stratagems (ignored)

Slot rects are always derived from the located button, never from absolute
screen coordinates, so the read survives any resolution or UI scale.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import numpy as np

from stratagem_vision.analysis.anchor_locator import AnchorLocator
from stratagem_vision.analysis.catalog import ReferenceCatalog
from stratagem_vision.analysis.icon_matcher import IconMatcher
from stratagem_vision.models import GridConfig, GridReadSnapshot, IconSlot, Rect

logger = logging.getLogger(__name__)


def crop_clamped(image: np.ndarray, rect: Rect) -> Optional[np.ndarray]:
    """Crop rect from image after clamping to its bounds; None when nothing is left."""
    if image is None or image.size == 0:
        return None
    h, w = image.shape[:2]
    x1, y1, x2, y2 = rect.integral()
    x1, y1 = max(0, x1), max(0, y1)
    x2, y2 = min(w, x2), min(h, y2)
    if x2 <= x1 or y2 <= y1:
        return None
    return image[y1:y2, x1:x2]


class LoadoutGridReader:
    """Composes anchor location and icon matching over one capture.

    At most one read runs at a time: a call made while another read is in
    flight returns None immediately instead of queuing.
    """

    def __init__(
        self,
        catalog: ReferenceCatalog,
        locator: AnchorLocator,
        matcher: IconMatcher,
        capture=None,
        config: Optional[GridConfig] = None,
    ):
        self._catalog = catalog
        self._locator = locator
        self._matcher = matcher
        self._capture = capture  # ScreenCapture-like; only needed for read_from_screen()
        self._config = config or GridConfig()
        self._in_flight = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._in_flight.locked()

    def icon_rects(self, button_rect: Rect, width: int, height: int) -> list[IconSlot]:
        """Slot rects above the button, clamped to the image.

        The button spans five icons plus four gaps, so base icon size is
        button_width / 5.32. Icons are shrunk 20% around their centre to keep
        the frame out of the tile.
        """
        cfg = self._config
        base = button_rect.width / cfg.button_width_icons
        icon_size = base * cfg.icon_scale
        inset = base * (1.0 - cfg.icon_scale) / 2.0
        h_gap = base * cfg.horizontal_gap
        v_gap = button_rect.height * cfg.vertical_gap

        icon_bottom = button_rect.min_y - v_gap
        icon_top = icon_bottom - base + inset
        start_x = button_rect.min_x + base * cfg.start_inset

        slots = []
        for i in range(cfg.slot_count):
            x = start_x + i * (base + h_gap) + inset
            rect = Rect(x, icon_top, icon_size, icon_size).clamped(width, height)
            slots.append(IconSlot(index=i, rect=rect))
        return slots

    def _slot_usable(self, slot: IconSlot) -> bool:
        min_size = self._config.min_slot_size
        return slot.rect.width > min_size and slot.rect.height > min_size

    def read_slots(self, capture: np.ndarray) -> Optional[list[str]]:
        """Names for the four slots ("" where nothing matched), or None without a landmark."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Grid read already in flight; dropping request")
            return None
        try:
            snapshot = self._read(capture, diagnostics=False)
        finally:
            self._in_flight.release()
        return None if snapshot is None else snapshot.names

    def read_slots_with_diagnostics(self, capture: np.ndarray) -> Optional[GridReadSnapshot]:
        """Same read as read_slots(), keeping every intermediate for inspection."""
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Grid read already in flight; dropping request")
            return None
        try:
            return self._read(capture, diagnostics=True)
        finally:
            self._in_flight.release()

    def _read(self, capture: np.ndarray, diagnostics: bool) -> Optional[GridReadSnapshot]:
        if capture is None or capture.size == 0:
            return None
        h, w = capture.shape[:2]
        candidates = self._locator.candidates(capture)
        anchor = self._locator.pick_best(candidates, w)
        if anchor is None:
            logger.debug("Landmark not found; no grid read")
            return None
        button = anchor.button_rect
        logger.debug(
            f"Found landmark at: {int(button.min_x)},{int(button.min_y)} "
            f"{int(button.width)}x{int(button.height)}"
        )

        entries = self._catalog.entries()
        snapshot = GridReadSnapshot(
            anchor_candidates=candidates if diagnostics else [],
            anchor=anchor,
            slots=self.icon_rects(button, w, h),
            timestamp=time.time(),
        )
        for slot in snapshot.slots:
            tile = crop_clamped(capture, slot.rect) if self._slot_usable(slot) else None
            if tile is None:
                logger.debug("Failed to crop icon %d", slot.index)
                snapshot.names.append("")
                snapshot.tiles.append(None)
                snapshot.matches.append(None)
                continue
            if diagnostics:
                detail = self._matcher.match_with_diagnostics(tile, entries)
                result = detail.result
                snapshot.matches.append(detail)
            else:
                result = self._matcher.match(tile, entries)
                snapshot.matches.append(None)
            snapshot.tiles.append(tile)
            snapshot.names.append(result.name or "")
            logger.debug(
                f"Icon {slot.index}: {result.name or '(no match)'} "
                f"(distance: {result.embedding_distance:.3f})"
            )
        return snapshot

    def read_from_screen(self, capture=None) -> Optional[list[str]]:
        """Capture the display and read its bottom-left quadrant.

        The leftmost player's READY UP sits in that quadrant. Returns None when
        capture is unavailable, no landmark is found, or every slot is empty.
        """
        if capture is None:
            capture = self._capture
        if capture is None:
            logger.debug("No capture provider configured")
            return None
        if not capture.has_permission():
            logger.debug("Screen capture permission denied")
            return None
        full = capture.grab_full()
        if full is None:
            logger.debug("Failed to capture screen")
            return None
        h, w = full.shape[:2]
        quadrant = full[h // 2 :, : w // 2]
        names = self.read_slots(quadrant)
        if names is None or all(not n for n in names):
            return None
        return names

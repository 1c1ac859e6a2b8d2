"""Cooldown tracker — remembers when each detected cooldown ends and reports
names as they become available again.

Deadlines only ever move later: a fresh detection reporting less remaining
time than already tracked is treated as stale. Inbound timers are not
tracked, and an unavailable detection drops any tracked cooldown.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from stratagem_vision.models import CooldownEntry, DetectedStratagem

logger = logging.getLogger(__name__)

AvailabilityCallback = Callable[[str], None]


class CooldownTracker:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = 1.0,
    ):
        self._clock = clock
        self._tick_interval = tick_interval
        self._ends_at: dict[str, float] = {}
        self._lock = threading.Lock()
        self._listeners: list[AvailabilityCallback] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_listener(self, callback: AvailabilityCallback) -> None:
        self._listeners.append(callback)

    def ingest(self, detections: Iterable[DetectedStratagem]) -> None:
        now = self._clock()
        with self._lock:
            for item in detections:
                if item.is_unavailable:
                    if self._ends_at.pop(item.canonical_name, None) is not None:
                        logger.debug(f"{item.canonical_name} unavailable; cooldown dropped")
                    continue
                if item.is_inbound:
                    continue
                seconds = item.cooldown_remaining_seconds
                if seconds is None or seconds <= 0:
                    continue
                ends_at = now + seconds
                existing = self._ends_at.get(item.canonical_name)
                if existing is None or ends_at > existing:
                    self._ends_at[item.canonical_name] = ends_at

    def tick(self) -> list[str]:
        """Remove expired entries and notify listeners; returns the names reported."""
        now = self._clock()
        with self._lock:
            expired = [name for name, ends_at in self._ends_at.items() if now >= ends_at]
            for name in expired:
                del self._ends_at[name]

        for name in expired:
            logger.info(f"{name} is available")
            self._notify(name)
        return expired

    def _notify(self, name: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(name)
            except Exception as e:
                logger.error(f"Availability callback failed for {name}: {e}", exc_info=True)

    def is_cooling_down(self, name: str) -> bool:
        with self._lock:
            return name in self._ends_at

    def remaining_seconds(self, name: str) -> Optional[float]:
        """Seconds until name is available, or None if it is not tracked."""
        now = self._clock()
        with self._lock:
            ends_at = self._ends_at.get(name)
        if ends_at is None:
            return None
        return max(0.0, ends_at - now)

    def entries(self) -> list[CooldownEntry]:
        with self._lock:
            items = sorted(self._ends_at.items(), key=lambda item: item[1])
        return [CooldownEntry(name=name, ends_at=ends_at) for name, ends_at in items]

    def clear(self) -> None:
        with self._lock:
            self._ends_at.clear()

    # --- periodic tick -----------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="cooldown-tracker", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._tick_interval * 2)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._tick_interval):
            self.tick()

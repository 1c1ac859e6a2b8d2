"""Worker lane polling the weapon panel for the reload tint."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from stratagem_vision.analysis.reload_detector import ReloadMonitor
from stratagem_vision.capture import ScreenCapture
from stratagem_vision.models import BoundingBox

logger = logging.getLogger(__name__)


class ReloadWorker(QThread):
    detection = pyqtSignal(object)  # ReloadDetection
    reload_needed = pyqtSignal()

    def __init__(
        self,
        monitor: ReloadMonitor,
        region: BoundingBox,
        interval: float = 0.25,
        monitor_index: int = 1,
    ):
        super().__init__()
        self._monitor = monitor
        self._region = region
        self._interval = interval
        self._monitor_index = monitor_index
        self._running = False

    def run(self) -> None:
        self._running = True
        self._monitor.reset()
        capture = ScreenCapture(monitor_index=self._monitor_index)
        capture.start()
        try:
            logger.info(f"Reload monitor started ({self._interval:.2f}s interval)")
            while self._running:
                try:
                    frame = capture.grab_region(self._region)
                    if frame is not None:
                        result, announce = self._monitor.update(frame)
                        self.detection.emit(result)
                        if announce:
                            self.reload_needed.emit()
                except Exception as e:
                    logger.error(f"Reload scan error: {e}", exc_info=True)
                self.msleep(int(self._interval * 1000))
        finally:
            capture.stop()

    def stop(self) -> None:
        self._running = False
        self.wait()

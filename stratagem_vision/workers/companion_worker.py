"""Worker lane for the status text list: capture, OCR, parse, track."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal

from stratagem_vision.analysis.cooldown_tracker import CooldownTracker
from stratagem_vision.analysis.status_parser import StatusTextParser
from stratagem_vision.analysis.text_recognition import TextRecognizer
from stratagem_vision.capture import ScreenCapture
from stratagem_vision.models import BoundingBox

logger = logging.getLogger(__name__)


class CompanionWorker(QThread):
    raw_strings = pyqtSignal(list)  # OCR lines in reading order
    detected = pyqtSignal(list)  # list[DetectedStratagem]
    stratagem_available = pyqtSignal(str)

    def __init__(
        self,
        recognizer: TextRecognizer,
        parser: StatusTextParser,
        tracker: CooldownTracker,
        region: BoundingBox,
        monitor_index: int = 1,
        capture: Optional[ScreenCapture] = None,
    ):
        super().__init__()
        self._recognizer = recognizer
        self._parser = parser
        self._tracker = tracker
        self._region = region
        self._monitor_index = monitor_index
        self._capture = capture  # Created on the worker thread when None
        self._delay_ms = 0
        tracker.add_listener(self.stratagem_available.emit)

    def scan_now(self) -> bool:
        return self.scan_after(0.0)

    def scan_after(self, delay: float) -> bool:
        """Start a scan after delay seconds. Returns False when a scan is already running."""
        if self.isRunning():
            logger.debug("Companion scan already running; request dropped")
            return False
        self._delay_ms = int(max(0.0, delay) * 1000)
        self.start()
        return True

    def run(self) -> None:
        if self._delay_ms:
            self.msleep(self._delay_ms)
        capture = self._capture or ScreenCapture(monitor_index=self._monitor_index)
        owns_capture = self._capture is None
        try:
            capture.start()
            if not capture.has_permission():
                logger.debug("Screen capture permission denied; skipping scan")
                return
            frame = capture.grab_region(self._region)
            if frame is None:
                return
            lines = self._recognizer.recognize_lines(frame)
            texts = [line.text for line in lines]
            self.raw_strings.emit(texts)

            detections = self._parser.parse(texts)
            for item in detections:
                logger.debug(f"Detected: {item.to_dict()}")
            self.detected.emit(detections)
            self._tracker.ingest(detections)
        except Exception as e:
            logger.error(f"Companion scan error: {e}", exc_info=True)
        finally:
            if owns_capture:
                capture.stop()

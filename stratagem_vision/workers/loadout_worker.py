"""Worker lane for loadout grid reads."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from stratagem_vision.analysis.grid_reader import LoadoutGridReader
from stratagem_vision.capture import ScreenCapture

logger = logging.getLogger(__name__)


class LoadoutReadWorker(QThread):
    """Runs one screen read per request; requests made while a read runs are dropped."""

    names_read = pyqtSignal(list)  # Four names, "" for unmatched slots
    read_failed = pyqtSignal()

    def __init__(self, reader: LoadoutGridReader, monitor_index: int = 1):
        super().__init__()
        self._reader = reader
        self._monitor_index = monitor_index

    def request_read(self) -> bool:
        """Start a read if idle. Returns False when the request was dropped."""
        if self.isRunning():
            logger.debug("Loadout read already running; request dropped")
            return False
        self.start()
        return True

    def run(self) -> None:
        capture = ScreenCapture(monitor_index=self._monitor_index)
        try:
            capture.start()
            names = self._reader.read_from_screen(capture)
        except Exception as e:
            logger.error(f"Loadout read error: {e}", exc_info=True)
            names = None
        finally:
            capture.stop()
        if names is None:
            self.read_failed.emit()
            return
        logger.info(f"Loadout read: {names}")
        self.names_read.emit(names)

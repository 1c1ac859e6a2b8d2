import unittest

import numpy as np

from stratagem_vision.analysis.reload_detector import (
    ReloadDetector,
    ReloadMonitor,
    weapon_icon_rect,
)
from stratagem_vision.models import Rect


def _panel(red_rows: int = 0, alpha: int = None) -> np.ndarray:
    channels = 3 if alpha is None else 4
    panel = np.zeros((200, 570, channels), dtype=np.uint8)
    if alpha is not None:
        panel[:, :, 3] = alpha
    if red_rows:
        panel[:red_rows, 390:, 2] = 220
        panel[:red_rows, 390:, 1] = 40
        panel[:red_rows, 390:, 0] = 30
    return panel


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ReloadDetectorTests(unittest.TestCase):
    def test_icon_rect_is_top_right(self) -> None:
        self.assertEqual(weapon_icon_rect(570, 200), Rect(390, 0, 180, 90))
        self.assertEqual(weapon_icon_rect(100, 50), Rect(0, 0, 100, 50))

    def test_red_icon_needs_reload(self) -> None:
        detection = ReloadDetector().detect(_panel(red_rows=90))
        self.assertTrue(detection.needs_reload)
        self.assertAlmostEqual(detection.red_ratio, 1.0)
        self.assertEqual(detection.sampled_pixel_count, 180 * 90)

    def test_ratio_threshold(self) -> None:
        self.assertTrue(ReloadDetector().detect(_panel(red_rows=9)).needs_reload)
        self.assertFalse(ReloadDetector().detect(_panel(red_rows=7)).needs_reload)

    def test_dark_icon_does_not(self) -> None:
        detection = ReloadDetector().detect(_panel())
        self.assertFalse(detection.needs_reload)
        self.assertEqual(detection.red_ratio, 0.0)

    def test_transparent_pixels_are_not_sampled(self) -> None:
        detection = ReloadDetector().detect(_panel(red_rows=90, alpha=0))
        self.assertEqual(detection.sampled_pixel_count, 0)
        self.assertFalse(detection.needs_reload)

    def test_empty_image(self) -> None:
        self.assertFalse(ReloadDetector().detect(np.zeros((0, 0, 3), dtype=np.uint8)).needs_reload)


class ReloadMonitorTests(unittest.TestCase):
    def test_announces_on_rising_edge_with_cooldown(self) -> None:
        clock = FakeClock()
        monitor = ReloadMonitor(announce_cooldown=6.0, clock=clock)
        red, clear = _panel(red_rows=90), _panel()

        self.assertTrue(monitor.update(red)[1])
        clock.now = 1.0
        self.assertFalse(monitor.update(red)[1])  # still red, no new edge
        clock.now = 2.0
        self.assertFalse(monitor.update(clear)[1])
        clock.now = 3.0
        self.assertFalse(monitor.update(red)[1])  # edge inside cooldown
        clock.now = 4.0
        monitor.update(clear)
        clock.now = 7.0
        self.assertTrue(monitor.update(red)[1])

    def test_reset_clears_edge_state(self) -> None:
        clock = FakeClock()
        monitor = ReloadMonitor(announce_cooldown=0.0, clock=clock)
        red = _panel(red_rows=90)
        self.assertTrue(monitor.update(red)[1])
        monitor.reset()
        self.assertTrue(monitor.update(red)[1])


if __name__ == "__main__":
    unittest.main()

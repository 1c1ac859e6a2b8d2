import sys
import threading
import time
import types
import unittest
from unittest import mock

import numpy as np

from stratagem_vision.analysis.text_recognition import EasyOCREngine


class FakeReader:
    """Stands in for easyocr.Reader: slow to build, records overlapping readtext calls."""

    instances = 0
    active = 0
    max_active = 0
    lock = threading.Lock()

    def __init__(self, languages, gpu=False):
        time.sleep(0.05)
        with FakeReader.lock:
            FakeReader.instances += 1

    def readtext(self, image, detail=1, paragraph=False):
        with FakeReader.lock:
            FakeReader.active += 1
            FakeReader.max_active = max(FakeReader.max_active, FakeReader.active)
        time.sleep(0.02)
        with FakeReader.lock:
            FakeReader.active -= 1
        return [([[10, 5], [50, 5], [50, 15], [10, 15]], "READY UP", 0.9)]


class SharedEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        FakeReader.instances = 0
        FakeReader.active = 0
        FakeReader.max_active = 0
        module = types.ModuleType("easyocr")
        module.Reader = FakeReader
        patcher = mock.patch.dict(sys.modules, {"easyocr": module})
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_concurrent_callers_share_one_model_and_never_overlap(self) -> None:
        engine = EasyOCREngine()
        image = np.zeros((20, 100, 3), dtype=np.uint8)
        start = threading.Barrier(4)
        results = []

        def worker():
            start.wait()
            for _ in range(3):
                results.append(engine.recognize_lines(image))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        self.assertEqual(FakeReader.instances, 1)
        self.assertEqual(FakeReader.max_active, 1)
        self.assertEqual(len(results), 12)
        line = results[0][0]
        self.assertEqual(line.text, "READY UP")
        self.assertAlmostEqual(line.box.x, 0.1)
        self.assertAlmostEqual(line.box.width, 0.4)

    def test_empty_image_skips_model_load(self) -> None:
        engine = EasyOCREngine()
        self.assertEqual(engine.recognize_lines(np.zeros((0, 0, 3), dtype=np.uint8)), [])
        self.assertEqual(FakeReader.instances, 0)


if __name__ == "__main__":
    unittest.main()

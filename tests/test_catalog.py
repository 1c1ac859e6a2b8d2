import json
import tempfile
import threading
import unittest
from pathlib import Path

import cv2
import numpy as np

from stratagem_vision.analysis.catalog import (
    ReferenceCatalog,
    find_duplicate_images,
    load_catalog_images,
    load_stratagem_names,
    slugify,
)
from stratagem_vision.analysis.embedding import EmbeddingError, HogEmbedder


def _shape(kind: str) -> np.ndarray:
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    white = (255, 255, 255)
    if kind == "square":
        cv2.rectangle(img, (16, 16), (47, 47), white, -1)
    elif kind == "circle":
        cv2.circle(img, (32, 32), 18, white, -1)
    elif kind == "triangle":
        pts = np.array([[32, 10], [10, 54], [54, 54]], dtype=np.int32)
        cv2.fillPoly(img, [pts], white)
    return img


class CountingEmbedder(HogEmbedder):
    def __init__(self, fail_on_call: int = 0):
        super().__init__()
        self.calls = 0
        self._fail_on_call = fail_on_call

    def embed(self, image: np.ndarray) -> np.ndarray:
        self.calls += 1
        if self.calls == self._fail_on_call:
            raise EmbeddingError("boom")
        return super().embed(image)


class MeanEmbedder:
    def embed(self, image: np.ndarray) -> np.ndarray:
        return np.array([image.mean()], dtype=np.float32)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(abs(a[0] - b[0]))


class SlugifyTests(unittest.TestCase):
    def test_slugify_examples(self) -> None:
        self.assertEqual(slugify("Orbital 120mm HE Barrage"), "orbital-120mm-he-barrage")
        self.assertEqual(slugify("EAT-17 Expendable Anti-Tank"), "eat-17-expendable-anti-tank")
        self.assertEqual(slugify("  A.R.C.-3  "), "arc-3")
        self.assertEqual(slugify("Eagle  -  Airstrike"), "eagle-airstrike")


class ReferenceCatalogTests(unittest.TestCase):
    def _source(self):
        return [(kind.title(), _shape(kind)) for kind in ("square", "circle", "triangle")]

    def test_build_is_lazy_and_happens_once(self) -> None:
        calls = []

        def source():
            calls.append(1)
            return self._source()

        embedder = CountingEmbedder()
        catalog = ReferenceCatalog(source, embedder)
        self.assertEqual(calls, [])

        first = catalog.entries()
        second = catalog.entries()
        self.assertIs(first, second)
        self.assertEqual(len(calls), 1)
        self.assertEqual(embedder.calls, 3)
        self.assertEqual(catalog.names(), ["Square", "Circle", "Triangle"])

    def test_concurrent_first_access_builds_once(self) -> None:
        calls = []

        def source():
            calls.append(1)
            return self._source()

        catalog = ReferenceCatalog(source, HogEmbedder())
        results = []
        barrier = threading.Barrier(4)

        def worker():
            barrier.wait()
            results.append(catalog.entries())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        self.assertEqual(len(calls), 1)
        self.assertEqual(len(results), 4)
        self.assertTrue(all(r is results[0] for r in results))

    def test_missing_image_is_excluded(self) -> None:
        source = self._source() + [("Ghost", None)]
        with self.assertLogs("stratagem_vision.analysis.catalog", level="WARNING"):
            catalog = ReferenceCatalog(source, HogEmbedder())
            self.assertEqual(len(catalog), 3)
        self.assertIsNone(catalog.get("Ghost"))

    def test_embedding_failure_is_excluded(self) -> None:
        catalog = ReferenceCatalog(self._source(), CountingEmbedder(fail_on_call=2))
        self.assertEqual(catalog.names(), ["Square", "Triangle"])

    def test_entries_are_cropped_and_embedded_from_crop(self) -> None:
        embedder = HogEmbedder()
        catalog = ReferenceCatalog(self._source(), embedder)
        square = catalog.get("Square")
        self.assertEqual(square.cropped_image.shape[:2], (36, 36))
        self.assertEqual(square.raw_image.shape[:2], (64, 64))
        np.testing.assert_allclose(square.embedding, embedder.embed(square.cropped_image))

    def test_blank_reference_keeps_raw_image(self) -> None:
        blank = np.zeros((20, 20, 3), dtype=np.uint8)
        catalog = ReferenceCatalog([("Blank", blank)], MeanEmbedder())
        self.assertEqual(catalog.get("Blank").cropped_image.shape, blank.shape)

    def test_blank_reference_is_excluded_by_hog(self) -> None:
        source = self._source() + [("Blank", np.zeros((20, 20, 3), dtype=np.uint8))]
        catalog = ReferenceCatalog(source, HogEmbedder())
        self.assertEqual(catalog.names(), ["Square", "Circle", "Triangle"])

    def test_catalog_images_are_unique(self) -> None:
        catalog = ReferenceCatalog(self._source(), HogEmbedder())
        self.assertEqual(find_duplicate_images(catalog.entries()), [])

    def test_duplicate_images_are_reported(self) -> None:
        source = self._source() + [("Square Copy", _shape("square"))]
        catalog = ReferenceCatalog(source, HogEmbedder())
        self.assertEqual(find_duplicate_images(catalog.entries()), [("Square", "Square Copy")])


class CatalogFilesTests(unittest.TestCase):
    def test_load_names_and_images(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "stratagems.json").write_text(
                json.dumps([{"name": "Eagle Airstrike", "sequence": []}, {"name": "Hellbomb"}])
            )
            icons = root / "icons"
            icons.mkdir()
            cv2.imwrite(str(icons / "eagle-airstrike.png"), _shape("square"))

            names = load_stratagem_names(root / "stratagems.json")
            self.assertEqual(names, ["Eagle Airstrike", "Hellbomb"])

            images = dict(load_catalog_images(names, icons))
            self.assertEqual(images["Eagle Airstrike"].shape, (64, 64, 3))
            self.assertIsNone(images["Hellbomb"])


if __name__ == "__main__":
    unittest.main()

import json
import tempfile
import unittest
from pathlib import Path

from stratagem_vision.main import ROOT_DIR, data_root, load_config, resolve_path
from stratagem_vision.models import BoundingBox, EngineConfig, MatchWeights

DEFAULT_CONFIG = Path(__file__).parent.parent / "config" / "default_config.json"


class EngineConfigTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        config = EngineConfig()
        config.matcher.tie_zone_width = 0.4
        config.capture.companion_region = BoundingBox(top=10, left=20, width=300, height=600)
        config.reload.enabled = True
        self.assertEqual(EngineConfig.from_dict(config.to_dict()), config)

    def test_round_trip_survives_json(self) -> None:
        config = EngineConfig()
        self.assertEqual(EngineConfig.from_dict(json.loads(json.dumps(config.to_dict()))), config)

    def test_missing_sections_use_defaults(self) -> None:
        self.assertEqual(EngineConfig.from_dict({}), EngineConfig())

    def test_partial_section(self) -> None:
        config = EngineConfig.from_dict({"matcher": {"max_embedding_distance": 12.5}})
        self.assertEqual(config.matcher.max_embedding_distance, 12.5)
        self.assertEqual(config.matcher.tie_zone_width, 0.25)
        self.assertEqual(config.matcher.weights, MatchWeights())

    def test_default_reload_region_is_bottom_anchored(self) -> None:
        region = EngineConfig().capture.reload_region
        self.assertLess(region.top, 0)
        self.assertEqual((region.width, region.height), (570, 200))

    def test_shipped_config_matches_defaults(self) -> None:
        with open(DEFAULT_CONFIG) as f:
            self.assertEqual(EngineConfig.from_dict(json.load(f)), EngineConfig())


class MatchWeightsTests(unittest.TestCase):
    def test_weights_must_sum_to_one(self) -> None:
        with self.assertRaises(ValueError):
            MatchWeights(iou=0.5, color=0.5, hash=0.5, embedding=0.5)

    def test_combine(self) -> None:
        weights = MatchWeights()
        self.assertAlmostEqual(weights.combine(1.0, 1.0, 1.0, 1.0), 1.0)
        self.assertAlmostEqual(weights.combine(1.0, 0.0, 0.0, 0.0), 0.40)


class LoadConfigTests(unittest.TestCase):
    def test_missing_file_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertLogs("stratagem_vision.main", level="WARNING"):
                config = load_config(Path(tmp) / "missing.json")
        self.assertEqual(config, EngineConfig())

    def test_loads_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"status": {"min_name_similarity": 0.8}}))
            self.assertEqual(load_config(path).status.min_name_similarity, 0.8)


class DataRootTests(unittest.TestCase):
    def test_defaults_to_checkout(self) -> None:
        self.assertEqual(data_root(["stratagem-vision"]), ROOT_DIR)
        self.assertEqual(
            (ROOT_DIR / "config" / "default_config.json").resolve(), DEFAULT_CONFIG.resolve()
        )

    def test_argument_selects_data_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = data_root(["stratagem-vision", tmp])
            self.assertEqual(root, Path(tmp))
            self.assertEqual(
                resolve_path(EngineConfig().icons_dir, root), Path(tmp) / EngineConfig().icons_dir
            )

    def test_absolute_paths_are_kept(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(resolve_path(tmp, ROOT_DIR), Path(tmp))


if __name__ == "__main__":
    unittest.main()

"""Stratagem Vision — Main entry point.

Wires together: screen capture → loadout grid read + status list OCR →
cooldown tracking, with an optional reload monitor.

Runs from a source checkout by default. An installed copy takes a directory
laid out like one (config/default_config.json, assets/) as its only argument.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QTimer

from stratagem_vision.analysis.anchor_locator import AnchorLocator
from stratagem_vision.analysis.catalog import (
    ReferenceCatalog,
    find_duplicate_images,
    load_catalog_images,
    load_stratagem_names,
)
from stratagem_vision.analysis.cooldown_tracker import CooldownTracker
from stratagem_vision.analysis.embedding import HogEmbedder
from stratagem_vision.analysis.grid_reader import LoadoutGridReader
from stratagem_vision.analysis.icon_matcher import IconMatcher
from stratagem_vision.analysis.reload_detector import ReloadDetector, ReloadMonitor
from stratagem_vision.analysis.status_parser import StatusTextParser
from stratagem_vision.analysis.text_recognition import EasyOCREngine
from stratagem_vision.models import EngineConfig
from stratagem_vision.workers import CompanionWorker, LoadoutReadWorker, ReloadWorker

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).parent.parent
CONFIG_PATH = ROOT_DIR / "config" / "default_config.json"


def load_config(path: Path = CONFIG_PATH) -> EngineConfig:
    """Load config from JSON, falling back to defaults."""
    path = Path(path)
    if path.exists():
        with open(path) as f:
            data = json.load(f)
        logger.info(f"Loaded config from {path}")
        return EngineConfig.from_dict(data)
    logger.warning(f"Config not found at {path}, using defaults")
    return EngineConfig()


def data_root(argv: list[str]) -> Path:
    """Directory holding config/ and assets/: the first argument, else the source checkout."""
    return Path(argv[1]).expanduser() if len(argv) > 1 else ROOT_DIR


def resolve_path(value: str, root: Path = ROOT_DIR) -> Path:
    path = Path(value)
    return path if path.is_absolute() else root / path


def main() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    root = data_root(sys.argv)
    config = load_config(root / "config" / "default_config.json")

    app = QCoreApplication(sys.argv)
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    # --- Initialize components ---
    names = load_stratagem_names(resolve_path(config.stratagems_file, root))
    icons_dir = resolve_path(config.icons_dir, root)
    embedder = HogEmbedder()
    catalog = ReferenceCatalog(
        lambda: load_catalog_images(names, icons_dir),
        embedder,
        content_threshold=config.matcher.reference_content_threshold,
    )
    duplicates = find_duplicate_images(catalog.entries())
    for first, second in duplicates:
        logger.warning(f"Reference icons for {first!r} and {second!r} are identical")

    recognizer = EasyOCREngine()
    reader = LoadoutGridReader(
        catalog,
        AnchorLocator(recognizer, config.anchor),
        IconMatcher(embedder, config.matcher),
        config=config.grid,
    )
    parser = StatusTextParser(names, config.status.min_name_similarity)
    tracker = CooldownTracker(tick_interval=config.cooldown.tick_interval_s)

    # --- Workers ---
    monitor_index = config.capture.monitor_index
    loadout_worker = LoadoutReadWorker(reader, monitor_index=monitor_index)
    loadout_worker.names_read.connect(lambda slots: logger.info(f"Loadout: {slots}"))
    loadout_worker.read_failed.connect(lambda: logger.info("Loadout not visible"))

    companion_worker = CompanionWorker(
        recognizer,
        parser,
        tracker,
        config.capture.companion_region,
        monitor_index=monitor_index,
    )
    companion_worker.stratagem_available.connect(
        lambda name: logger.info(f"{name} ready")
    )

    reload_worker = None
    if config.reload.enabled:
        reload_monitor = ReloadMonitor(
            ReloadDetector(config.reload.red_ratio_threshold),
            announce_cooldown=config.reload.announce_cooldown_s,
        )
        reload_worker = ReloadWorker(
            reload_monitor,
            config.capture.reload_region,
            interval=config.reload.scan_interval_s,
            monitor_index=monitor_index,
        )
        reload_worker.reload_needed.connect(lambda: logger.info("Reload!"))
        reload_worker.start()

    # --- Run ---
    tracker.start()
    loadout_worker.request_read()
    companion_worker.scan_after(config.status.scan_delay_s)

    scan_timer = QTimer()
    if config.status.scan_interval_s > 0:
        scan_timer.timeout.connect(lambda: companion_worker.scan_now())
        scan_timer.start(int(config.status.scan_interval_s * 1000))

    exit_code = app.exec()

    # Cleanup
    scan_timer.stop()
    tracker.stop()
    if reload_worker is not None:
        reload_worker.stop()
    loadout_worker.wait()
    companion_worker.wait()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

from stratagem_vision.analysis.anchor_locator import AnchorLocator
from stratagem_vision.analysis.catalog import ReferenceCatalog, find_duplicate_images, slugify
from stratagem_vision.analysis.cooldown_tracker import CooldownTracker
from stratagem_vision.analysis.embedding import EmbeddingError, FeatureEmbedder, HogEmbedder
from stratagem_vision.analysis.grid_reader import LoadoutGridReader
from stratagem_vision.analysis.icon_matcher import IconMatcher
from stratagem_vision.analysis.reload_detector import ReloadDetector, ReloadMonitor
from stratagem_vision.analysis.status_parser import StatusTextParser
from stratagem_vision.analysis.text_recognition import EasyOCREngine, TextLine, TextRecognizer

__all__ = [
    "AnchorLocator",
    "CooldownTracker",
    "EasyOCREngine",
    "EmbeddingError",
    "FeatureEmbedder",
    "HogEmbedder",
    "IconMatcher",
    "LoadoutGridReader",
    "ReferenceCatalog",
    "ReloadDetector",
    "ReloadMonitor",
    "StatusTextParser",
    "TextLine",
    "TextRecognizer",
    "find_duplicate_images",
    "slugify",
]

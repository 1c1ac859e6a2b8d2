from stratagem_vision.models.config import (
    AnchorConfig,
    CaptureConfig,
    CooldownConfig,
    EngineConfig,
    GridConfig,
    MatchWeights,
    MatcherConfig,
    ReloadConfig,
    StatusConfig,
)
from stratagem_vision.models.geometry import BoundingBox, Rect
from stratagem_vision.models.stratagem import (
    AnchorCandidate,
    CandidateScore,
    CatalogEntry,
    CooldownEntry,
    DetectedStratagem,
    GridReadSnapshot,
    IconSlot,
    MatchDiagnostics,
    MatchResult,
    ReloadDetection,
)

__all__ = [
    "AnchorCandidate",
    "AnchorConfig",
    "BoundingBox",
    "CandidateScore",
    "CaptureConfig",
    "CatalogEntry",
    "CooldownConfig",
    "CooldownEntry",
    "DetectedStratagem",
    "EngineConfig",
    "GridConfig",
    "GridReadSnapshot",
    "IconSlot",
    "MatchDiagnostics",
    "MatchResult",
    "MatchWeights",
    "MatcherConfig",
    "Rect",
    "ReloadConfig",
    "ReloadDetection",
    "StatusConfig",
]

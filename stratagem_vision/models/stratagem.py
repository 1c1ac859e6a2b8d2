from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from stratagem_vision.models.geometry import Rect


@dataclass(frozen=True, eq=False)
class CatalogEntry:
    """A reference icon, pre-processed once when the catalog is built."""
    name: str
    raw_image: np.ndarray
    # raw_image trimmed to its non-background bounds (2px padding)
    cropped_image: np.ndarray
    embedding: np.ndarray


@dataclass(frozen=True)
class AnchorCandidate:
    """One recognized landmark line and the button region estimated around it."""
    text: str
    confidence: float
    text_rect: Rect
    button_rect: Rect


@dataclass(frozen=True)
class IconSlot:
    index: int
    rect: Rect


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one tile. name is None when nothing was confident enough."""
    name: Optional[str]
    embedding_distance: float = float("inf")
    tie_break_score: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.name is not None


@dataclass
class CandidateScore:
    """Per-signal scores for one catalog candidate (diagnostics)."""
    name: str
    distance: float
    in_tie_zone: bool = False
    iou: float = 0.0
    color: float = 0.0
    hash: float = 0.0
    embedding: float = 0.0
    combined: float = 0.0


@dataclass
class MatchDiagnostics:
    result: MatchResult
    best_distance: float
    candidates: list[CandidateScore] = field(default_factory=list)

    @property
    def tie_zone(self) -> list[CandidateScore]:
        return [c for c in self.candidates if c.in_tie_zone]


@dataclass
class GridReadSnapshot:
    """Everything one diagnostic grid read saw, for tuning and debugging."""
    anchor_candidates: list[AnchorCandidate] = field(default_factory=list)
    anchor: Optional[AnchorCandidate] = None
    slots: list[IconSlot] = field(default_factory=list)
    tiles: list[Optional[np.ndarray]] = field(default_factory=list)
    matches: list[Optional[MatchDiagnostics]] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    timestamp: float = 0.0


@dataclass(frozen=True)
class DetectedStratagem:
    """A (name, status) pair parsed from the OCR status stream."""
    canonical_name: str
    is_ready: bool = False
    cooldown_remaining_seconds: Optional[int] = None
    is_inbound: bool = False
    is_unavailable: bool = False

    @classmethod
    def ready(cls, name: str) -> DetectedStratagem:
        return cls(canonical_name=name, is_ready=True)

    @property
    def rank(self) -> int:
        """Dedup preference: ready < countdown < inbound < unavailable."""
        if self.is_ready:
            return 0
        if self.is_unavailable:
            return 3
        if self.is_inbound:
            return 2
        return 1

    def to_dict(self) -> dict:
        return {
            "name": self.canonical_name,
            "ready": self.is_ready,
            "cooldown_remaining_seconds": self.cooldown_remaining_seconds,
            "inbound": self.is_inbound,
            "unavailable": self.is_unavailable,
        }


@dataclass(frozen=True)
class CooldownEntry:
    name: str
    ends_at: float


@dataclass(frozen=True)
class ReloadDetection:
    needs_reload: bool
    red_ratio: float
    sampled_pixel_count: int

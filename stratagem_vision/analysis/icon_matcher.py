"""Icon matcher — names the catalog icon shown in one captured tile.

Two stages:

1. Coarse: embedding distance from the content-cropped tile to every catalog
   entry. The best distance is the admission gate; anything above
   max_embedding_distance is "no match" (icons outside the recognizable set,
   e.g. boosters).
2. Tie-break: when several entries sit within tie_zone_width of the best
   distance (upgraded variants of one weapon look alike to the embedding),
   re-rank them by a weighted blend of silhouette IoU, colour histogram,
   dHash and embedding score over content-cropped images.

The tie-break only re-ranks admitted candidates; it never admits a tile the
coarse stage rejected.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np

from stratagem_vision.analysis.embedding import FeatureEmbedder
from stratagem_vision.analysis.image_signals import (
    binary_mask,
    color_histogram,
    crop_to_content_bounds,
    difference_hash,
    hash_similarity,
    histogram_intersection,
    iou_similarity,
)
from stratagem_vision.models import (
    CandidateScore,
    CatalogEntry,
    MatchDiagnostics,
    MatchResult,
    MatcherConfig,
    MatchWeights,
)

logger = logging.getLogger(__name__)


@dataclass
class _Signals:
    mask: np.ndarray
    histogram: np.ndarray
    dhash: int


class IconMatcher:
    """Stateless per call; reference signals are memoized per catalog entry."""

    def __init__(self, embedder: FeatureEmbedder, config: Optional[MatcherConfig] = None):
        self._embedder = embedder
        self._config = config or MatcherConfig()
        self._reference_cache: dict[CatalogEntry, _Signals] = {}

    @property
    def config(self) -> MatcherConfig:
        return self._config

    def match(self, tile: np.ndarray, entries: Sequence[CatalogEntry]) -> MatchResult:
        return self._evaluate(tile, entries, top_n=0).result

    def match_with_diagnostics(
        self,
        tile: np.ndarray,
        entries: Sequence[CatalogEntry],
        top_n: Optional[int] = None,
    ) -> MatchDiagnostics:
        """Same decision as match(), plus per-signal scores for the closest candidates."""
        n = self._config.diagnostics_top_n if top_n is None else top_n
        return self._evaluate(tile, entries, top_n=max(1, n))

    def rescore(self, diagnostics: MatchDiagnostics, weights: MatchWeights) -> MatchDiagnostics:
        """Re-run the tie-break on recorded signals with a different weight vector."""
        candidates = [
            replace(c, combined=weights.combine(c.iou, c.color, c.hash, c.embedding))
            for c in diagnostics.candidates
        ]
        tie_zone = [c for c in candidates if c.in_tie_zone]
        if not tie_zone:
            return replace(diagnostics, candidates=candidates)
        if len(tie_zone) == 1:
            winner, score = tie_zone[0], None
        else:
            winner = self._pick_winner(tie_zone)
            score = winner.combined
        result = self._gate(winner.name, diagnostics.best_distance, score)
        candidates.sort(key=lambda c: c.combined, reverse=True)
        return MatchDiagnostics(
            result=result, best_distance=diagnostics.best_distance, candidates=candidates
        )

    # --- internals -------------------------------------------------------

    def _rank(
        self, tile: np.ndarray, entries: Sequence[CatalogEntry]
    ) -> Optional[list[tuple[CatalogEntry, float]]]:
        """Entries sorted by embedding distance; None when the tile cannot be embedded."""
        if tile is None or tile.size == 0:
            return None
        try:
            # Same framing as the catalog embeddings, which come from cropped references
            tile_embedding = self._embedder.embed(self._content(tile))
        except Exception as e:
            logger.debug(f"Tile embedding failed: {e}")
            return None
        ranked: list[tuple[CatalogEntry, float]] = []
        for entry in entries:
            try:
                distance = float(self._embedder.distance(tile_embedding, entry.embedding))
            except Exception as e:
                logger.debug("Distance to %r failed: %s", entry.name, e)
                continue
            if math.isnan(distance):
                continue
            ranked.append((entry, distance))
        ranked.sort(key=lambda item: item[1])
        return ranked

    def _evaluate(
        self, tile: np.ndarray, entries: Sequence[CatalogEntry], top_n: int
    ) -> MatchDiagnostics:
        ranked = self._rank(tile, entries)
        if not ranked:
            return MatchDiagnostics(result=MatchResult(None), best_distance=math.inf)

        cfg = self._config
        best_distance = ranked[0][1]
        tie_limit = best_distance + cfg.tie_zone_width
        tie_zone = [(e, d) for e, d in ranked if d <= tie_limit]

        recorded: list[tuple[CatalogEntry, float]] = list(tie_zone) if len(tie_zone) > 1 else []
        if top_n > 0:
            recorded = list(ranked[:top_n])
            recorded += [item for item in tie_zone if item not in recorded]

        tie_names = {e.name for e, _ in tie_zone}
        scores: list[CandidateScore] = []
        if recorded:
            tile_signals = self._tile_signals(tile)
            for entry, distance in recorded:
                scores.append(
                    self._score(entry, distance, tile_signals, entry.name in tie_names)
                )

        if len(tie_zone) == 1:
            result = self._gate(tie_zone[0][0].name, best_distance, None)
        else:
            winner = self._pick_winner([s for s in scores if s.in_tie_zone])
            result = self._gate(winner.name, best_distance, winner.combined)
            logger.debug(
                "Tie-break among %d candidates -> %s (%.3f)",
                len(tie_zone),
                winner.name,
                winner.combined,
            )

        scores.sort(key=lambda c: c.combined, reverse=True)
        return MatchDiagnostics(result=result, best_distance=best_distance, candidates=scores)

    def _gate(self, name: str, best_distance: float, score: Optional[float]) -> MatchResult:
        if best_distance <= self._config.max_embedding_distance:
            return MatchResult(name, best_distance, score)
        return MatchResult(None, best_distance, score)

    @staticmethod
    def _pick_winner(candidates: list[CandidateScore]) -> CandidateScore:
        winner = candidates[0]
        for candidate in candidates[1:]:
            if candidate.combined > winner.combined:
                winner = candidate
        return winner

    def _content(self, tile: np.ndarray) -> np.ndarray:
        cropped = crop_to_content_bounds(tile, self._config.tile_content_threshold)
        return tile if cropped is None else cropped

    def _tile_signals(self, tile: np.ndarray) -> _Signals:
        cfg = self._config
        cropped = self._content(tile)
        return _Signals(
            mask=binary_mask(cropped, cfg.tile_mask_threshold, cfg.mask_size),
            histogram=color_histogram(cropped, cfg.mask_size),
            dhash=difference_hash(cropped),
        )

    def _reference_signals(self, entry: CatalogEntry) -> _Signals:
        signals = self._reference_cache.get(entry)
        if signals is None:
            cfg = self._config
            image = entry.cropped_image
            signals = _Signals(
                mask=binary_mask(image, cfg.reference_mask_threshold, cfg.mask_size, use_alpha=True),
                histogram=color_histogram(image, cfg.mask_size),
                dhash=difference_hash(image),
            )
            self._reference_cache[entry] = signals
        return signals

    def _score(
        self, entry: CatalogEntry, distance: float, tile: _Signals, in_tie_zone: bool
    ) -> CandidateScore:
        ref = self._reference_signals(entry)
        iou = iou_similarity(tile.mask, ref.mask, self._config.iou_search_range)
        color = histogram_intersection(tile.histogram, ref.histogram)
        hash_score = hash_similarity(tile.dhash, ref.dhash)
        embedding = 1.0 - distance
        return CandidateScore(
            name=entry.name,
            distance=distance,
            in_tie_zone=in_tie_zone,
            iou=iou,
            color=color,
            hash=hash_score,
            embedding=embedding,
            combined=self._config.weights.combine(iou, color, hash_score, embedding),
        )

"""Status text parser — turns the OCR line stream into (name, status) detections.

The stream interleaves name lines and status lines with no delimiter, and a
name with no cooldown indicator is followed by no status line at all. Parsing
is therefore a single pass with one pending name: a status line completes the
pending name, a new name line flushes the old one as implicitly ready.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, NamedTuple, Optional, Sequence

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from stratagem_vision.models import DetectedStratagem

logger = logging.getLogger(__name__)

_COOLDOWN_RE = re.compile(r"(\d{1,2})\s*[:.\-]\s*(\d{2})")
_LETTER_DIGIT_RE = re.compile(r"(?<=[a-z])(?=[0-9])|(?<=[0-9])(?=[a-z])")
_MULTI_SPACE_RE = re.compile(r" {2,}")

# Applied in order to normalized text
OCR_CORRECTIONS = [
    ("laster cannon", "laser cannon"),
    ("laster", "laser"),
]


class StatusLine(NamedTuple):
    is_ready: bool = False
    cooldown_seconds: Optional[int] = None
    is_inbound: bool = False
    is_unavailable: bool = False


def normalize_line(text: str) -> str:
    """Trim and collapse non-breaking or doubled spaces."""
    cleaned = text.strip().replace("\u00a0", " ")
    return _MULTI_SPACE_RE.sub(" ", cleaned).strip()


def parse_cooldown_seconds(text: str) -> Optional[int]:
    """Seconds from the first MM:SS-like token (':', '.' or '-' separated).

    Returns None when there is no token, the seconds field is 60 or more, or
    the total is not positive.
    """
    match = _COOLDOWN_RE.search(text)
    if not match:
        return None
    minutes, seconds = int(match.group(1)), int(match.group(2))
    if seconds >= 60:
        return None
    total = minutes * 60 + seconds
    return total if total > 0 else None


def parse_status_line(text: str) -> Optional[StatusLine]:
    lower = text.lower()
    if "ready" in lower:
        return StatusLine(is_ready=True)
    if "unavailable" in lower:
        return StatusLine(is_unavailable=True)

    is_inbound = "inbound" in lower
    seconds = parse_cooldown_seconds(text)
    if "cooldown" in lower or is_inbound:
        return StatusLine(cooldown_seconds=seconds, is_inbound=is_inbound)
    if seconds is not None:
        return StatusLine(cooldown_seconds=seconds)
    return None


def _strip_leading_equipment_code(value: str) -> str:
    # "eat 17 expendable anti tank" -> "expendable anti tank"
    parts = value.split(" ")
    if len(parts) < 3:
        return value
    first, second = parts[0], parts[1]
    if len(first) <= 6 and first.isalpha() and second.isdigit():
        return " ".join(parts[2:])
    return value


def normalize_for_matching(value: str) -> str:
    lower = value.lower()
    cleaned = "".join(ch for ch in lower if ch.isalnum() or ch == " ")
    cleaned = _MULTI_SPACE_RE.sub(" ", cleaned).strip()
    for wrong, right in OCR_CORRECTIONS:
        cleaned = cleaned.replace(wrong, right)
    cleaned = _MULTI_SPACE_RE.sub(" ", _LETTER_DIGIT_RE.sub(" ", cleaned))
    return _strip_leading_equipment_code(cleaned)


def best_canonical_match(
    raw_name: str,
    canonical_names: Sequence[str],
    min_similarity: float = 0.72,
    normalized_names: Optional[Sequence[str]] = None,
) -> Optional[str]:
    """Closest canonical name by normalized Levenshtein similarity, or None below min_similarity."""
    candidate = normalize_for_matching(raw_name)
    if not candidate:
        return None
    if normalized_names is None:
        normalized_names = [normalize_for_matching(n) for n in canonical_names]

    for name, normalized in zip(canonical_names, normalized_names):
        if normalized == candidate:
            return name

    best = process.extractOne(
        candidate,
        normalized_names,
        scorer=Levenshtein.normalized_similarity,
        score_cutoff=min_similarity,
    )
    if best is None:
        if logger.isEnabledFor(logging.DEBUG):
            top = process.extract(
                candidate, normalized_names, scorer=Levenshtein.normalized_similarity, limit=3
            )
            summary = ", ".join(f"{canonical_names[i]}={score:.2f}" for _, score, i in top)
            logger.debug(f"No match for raw={raw_name!r} normalized={candidate!r}. Top: {summary}")
        return None
    return canonical_names[best[2]]


def _preferred_by_remaining_seconds(a: DetectedStratagem, b: DetectedStratagem) -> DetectedStratagem:
    a_sec, b_sec = a.cooldown_remaining_seconds, b.cooldown_remaining_seconds
    if a_sec is None and b_sec is None:
        return a
    if b_sec is None:
        return a if a_sec > 0 else b
    if a_sec is None:
        return b if b_sec > 0 else a
    if a_sec <= 0 and b_sec > 0:
        return b
    if b_sec <= 0:
        return a
    return a if a_sec <= b_sec else b


def preferred_detection(a: DetectedStratagem, b: DetectedStratagem) -> DetectedStratagem:
    """Which of two detections of the same name to keep; a is the earlier one."""
    if a.rank != b.rank:
        return a if a.rank < b.rank else b
    if a.rank in (1, 2):
        return _preferred_by_remaining_seconds(a, b)
    return a


def deduplicate(items: Iterable[DetectedStratagem]) -> list[DetectedStratagem]:
    """One detection per name, in first-seen order."""
    best: dict[str, DetectedStratagem] = {}
    for item in items:
        existing = best.get(item.canonical_name)
        best[item.canonical_name] = item if existing is None else preferred_detection(existing, item)
    return list(best.values())


class StatusTextParser:
    """Stateless across calls; holds the canonical names and their normalized forms."""

    def __init__(self, canonical_names: Sequence[str], min_similarity: float = 0.72):
        self._names = list(canonical_names)
        self._normalized = [normalize_for_matching(n) for n in self._names]
        self._min_similarity = min_similarity

    @property
    def canonical_names(self) -> list[str]:
        return list(self._names)

    def match_name(self, raw_name: str) -> Optional[str]:
        return best_canonical_match(
            raw_name, self._names, self._min_similarity, self._normalized
        )

    def parse(self, lines: Iterable[str]) -> list[DetectedStratagem]:
        results: list[DetectedStratagem] = []
        pending: Optional[str] = None

        for raw in lines:
            line = normalize_line(raw or "")
            if not line:
                continue

            status = parse_status_line(line)
            if status is not None:
                if pending is None:
                    logger.debug(f"Status line with no pending name: {line!r}")
                    continue
                results.append(
                    DetectedStratagem(
                        canonical_name=pending,
                        is_ready=status.is_ready,
                        cooldown_remaining_seconds=status.cooldown_seconds,
                        is_inbound=status.is_inbound,
                        is_unavailable=status.is_unavailable,
                    )
                )
                pending = None
                continue

            matched = self.match_name(line)
            if matched is None:
                continue
            if pending is not None and pending != matched:
                results.append(DetectedStratagem.ready(pending))
            pending = matched

        if pending is not None:
            results.append(DetectedStratagem.ready(pending))
        return deduplicate(results)

"""Reference catalog — the fixed set of named icons the matcher recognizes.

Entries are built lazily on first use and cached for the lifetime of the
catalog object: each reference is cropped to its content bounds and embedded
exactly once, never per comparison.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Union

import cv2
import numpy as np

from stratagem_vision.analysis.embedding import FeatureEmbedder
from stratagem_vision.analysis.image_signals import crop_to_content_bounds
from stratagem_vision.models import CatalogEntry

logger = logging.getLogger(__name__)

CatalogSource = Union[
    Iterable[tuple[str, Optional[np.ndarray]]],
    Callable[[], Iterable[tuple[str, Optional[np.ndarray]]]],
]


def slugify(name: str) -> str:
    """Icon filename stem for a stratagem name, e.g. 'Orbital 120mm HE Barrage' -> 'orbital-120mm-he-barrage'."""
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def load_stratagem_names(path: Union[str, Path]) -> list[str]:
    """Read canonical names from a JSON list of {"name": ..., ...} objects."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    names = []
    for item in data:
        name = str(item.get("name", "") if isinstance(item, dict) else item or "").strip()
        if name:
            names.append(name)
    logger.info(f"Loaded {len(names)} stratagem names from {path}")
    return names


def load_catalog_images(
    names: Iterable[str], icons_dir: Union[str, Path]
) -> Iterator[tuple[str, Optional[np.ndarray]]]:
    """Yield (name, image) pairs from <icons_dir>/<slug>.png; image is None when missing."""
    icons_dir = Path(icons_dir)
    for name in names:
        path = icons_dir / f"{slugify(name)}.png"
        image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED) if path.exists() else None
        yield name, image


def find_duplicate_images(entries: Iterable[CatalogEntry]) -> list[tuple[str, str]]:
    """Name pairs whose cropped images are pixel-identical."""
    seen: dict[tuple, str] = {}
    duplicates = []
    for entry in entries:
        img = entry.cropped_image
        key = (img.shape, img.dtype.str, img.tobytes())
        if key in seen:
            duplicates.append((seen[key], entry.name))
        else:
            seen[key] = entry.name
    return duplicates


class ReferenceCatalog:
    """Immutable-after-build set of CatalogEntry objects."""

    def __init__(
        self,
        source: CatalogSource,
        embedder: FeatureEmbedder,
        content_threshold: int = 30,
        padding: int = 2,
    ):
        self._source = source
        self._embedder = embedder
        self._content_threshold = content_threshold
        self._padding = padding
        self._entries: Optional[tuple[CatalogEntry, ...]] = None
        self._by_name: dict[str, CatalogEntry] = {}
        self._build_lock = threading.Lock()

    def entries(self) -> tuple[CatalogEntry, ...]:
        """All usable entries, building them on first call."""
        entries = self._entries
        if entries is not None:
            return entries
        with self._build_lock:
            if self._entries is None:
                self._entries = self._build()
                self._by_name = {e.name: e for e in self._entries}
            return self._entries

    def names(self) -> list[str]:
        return [e.name for e in self.entries()]

    def get(self, name: str) -> Optional[CatalogEntry]:
        self.entries()
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self.entries())

    def _build(self) -> tuple[CatalogEntry, ...]:
        source = self._source() if callable(self._source) else self._source
        built: list[CatalogEntry] = []
        skipped = 0
        for name, raw in source:
            entry = self._build_entry(name, raw)
            if entry is None:
                skipped += 1
                continue
            built.append(entry)
        logger.info(
            f"Pre-computed {len(built)} reference icons ({skipped} excluded)"
        )
        return tuple(built)

    def _build_entry(self, name: str, raw: Optional[np.ndarray]) -> Optional[CatalogEntry]:
        if raw is None or raw.size == 0:
            logger.warning("Reference icon missing for %r; excluded from matching", name)
            return None
        cropped = crop_to_content_bounds(raw, self._content_threshold, self._padding)
        if cropped is None:
            cropped = raw.copy()
        try:
            embedding = self._embedder.embed(cropped)
        except Exception as e:
            logger.warning("Embedding failed for %r (%s); excluded from matching", name, e)
            return None
        return CatalogEntry(
            name=name, raw_image=raw, cropped_image=cropped, embedding=embedding
        )

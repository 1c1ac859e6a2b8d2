"""Perceptual signals used to tell near-identical icons apart.

All functions are pure and accept BGR, BGRA or grayscale uint8 rasters. When an
alpha channel is present the colour channels are premultiplied first, so
transparent artwork background reads as black, the same as the dark capture
background.
"""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np


def _split_alpha(image: np.ndarray) -> tuple[np.ndarray, Optional[np.ndarray]]:
    """Return (premultiplied colour, alpha or None)."""
    if image.ndim == 2:
        return image, None
    if image.shape[2] == 4:
        alpha = image[:, :, 3]
        color = image[:, :, :3].astype(np.uint16) * alpha[:, :, None].astype(np.uint16)
        return (color // 255).astype(np.uint8), alpha
    return image[:, :, :3], None


def brightness(image: np.ndarray) -> np.ndarray:
    """Per-pixel max over colour channels (0-255)."""
    color, _ = _split_alpha(image)
    if color.ndim == 2:
        return color
    return color.max(axis=2)


def content_bounds(
    image: np.ndarray, threshold: int, padding: int = 2
) -> Optional[tuple[int, int, int, int]]:
    """(x, y, w, h) of the smallest padded box holding every non-background pixel.

    A pixel is content when its brightness exceeds threshold, or when it is
    partially transparent (anti-aliased artwork edges).
    """
    if image is None or image.size == 0:
        return None
    mask = brightness(image) > threshold
    _, alpha = _split_alpha(image)
    if alpha is not None:
        mask |= (alpha > 50) & (alpha < 250)
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        return None
    h, w = mask.shape
    x1 = max(0, int(xs.min()) - padding)
    y1 = max(0, int(ys.min()) - padding)
    x2 = min(w - 1, int(xs.max()) + padding)
    y2 = min(h - 1, int(ys.max()) + padding)
    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2 - x1 + 1, y2 - y1 + 1


def crop_to_content_bounds(
    image: np.ndarray, threshold: int, padding: int = 2
) -> Optional[np.ndarray]:
    """Trim image to its content bounds; None when there is no usable content."""
    bounds = content_bounds(image, threshold, padding)
    if bounds is None:
        return None
    x, y, w, h = bounds
    return image[y : y + h, x : x + w].copy()


def binary_mask(
    image: np.ndarray, threshold: int, size: int = 32, use_alpha: bool = False
) -> np.ndarray:
    """Foreground silhouette at size x size (nearest-neighbour, sharp edges)."""
    if image is None or image.size == 0:
        return np.zeros((size, size), dtype=bool)
    resized = cv2.resize(image, (size, size), interpolation=cv2.INTER_NEAREST)
    mask = brightness(resized) > threshold
    if use_alpha:
        _, alpha = _split_alpha(resized)
        if alpha is not None:
            mask |= (alpha > 50) & (alpha < 200)
    return mask


def iou_similarity(
    tile_mask: np.ndarray, reference_mask: np.ndarray, search_range: int = 3
) -> float:
    """Best intersection-over-union over integer shifts of the tile mask.

    The shift window absorbs jitter in the slot geometry. Pixels shifted in from
    outside the tile count as background.
    """
    h, w = reference_mask.shape
    r = max(0, int(search_range))
    padded = np.zeros((h + 2 * r, w + 2 * r), dtype=bool)
    padded[r : r + h, r : r + w] = tile_mask
    best = 0.0
    for dy in range(-r, r + 1):
        for dx in range(-r, r + 1):
            shifted = padded[r - dy : r - dy + h, r - dx : r - dx + w]
            union = np.count_nonzero(shifted | reference_mask)
            if union == 0:
                continue
            iou = np.count_nonzero(shifted & reference_mask) / union
            if iou > best:
                best = float(iou)
    return best


def color_histogram(image: np.ndarray, size: int = 32, bins: int = 16) -> np.ndarray:
    """Brightness histogram of foreground pixels, weighted by saturation.

    Dark pixels (max channel < 50) are background and skipped. Each remaining
    pixel contributes 0.3 + 0.7 * saturation so coloured pixels dominate.
    Normalized to sum to 1 (all zeros when there is no foreground).
    """
    hist = np.zeros(bins, dtype=np.float64)
    if image is None or image.size == 0:
        return hist
    color, _ = _split_alpha(image)
    small = cv2.resize(color, (size, size), interpolation=cv2.INTER_AREA).astype(np.float64)
    if small.ndim == 2:
        max_c = small
        min_c = small
    else:
        max_c = small.max(axis=2)
        min_c = small.min(axis=2)
    foreground = max_c >= 50
    if not np.any(foreground):
        return hist
    saturation = (max_c - min_c) / np.maximum(max_c, 1.0)
    weight = 0.3 + 0.7 * saturation
    idx = np.minimum(bins - 1, (max_c / 256.0 * bins).astype(np.int64))
    hist = np.bincount(idx[foreground], weights=weight[foreground], minlength=bins)
    total = float(hist.sum())
    if total > 0:
        hist = hist / total
    return hist


def histogram_intersection(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.minimum(a, b).sum())


def color_similarity(tile: np.ndarray, reference: np.ndarray, size: int = 32) -> float:
    return histogram_intersection(color_histogram(tile, size), color_histogram(reference, size))


def difference_hash(image: np.ndarray, threshold: int = 60) -> int:
    """64-bit dHash of the binarized central 60% of the image.

    Bit i is set when pixel i is dimmer than its right neighbour on the 9x8
    grid, so the hash fingerprints silhouette edges regardless of colour.
    """
    if image is None or image.size == 0:
        return 0
    color, _ = _split_alpha(image)
    h, w = color.shape[:2]
    margin_x = int(w * 0.20)
    margin_y = int(h * 0.20)
    crop_w = w - 2 * margin_x
    crop_h = h - 2 * margin_y
    if crop_w > 10 and crop_h > 10:
        color = color[margin_y : margin_y + crop_h, margin_x : margin_x + crop_w]
    small = cv2.resize(color, (9, 8), interpolation=cv2.INTER_AREA)
    on = brightness(small) > threshold
    edges = np.logical_and(~on[:, :-1], on[:, 1:]).ravel()
    value = 0
    for bit in np.flatnonzero(edges):
        value |= 1 << int(bit)
    return value


def hash_similarity(a: int, b: int) -> float:
    return 1.0 - bin(a ^ b).count("1") / 64.0

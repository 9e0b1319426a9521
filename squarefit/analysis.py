from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .config import ALPHA_THRESHOLD
from .imaging import alpha_plane


@dataclass(frozen=True)
class BoundingBox:
    """Half-open pixel box: x0 <= x < x1, y0 <= y < y1."""

    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x0, self.y0, self.x1, self.y1)


@dataclass(frozen=True)
class Centroid:
    cx: float
    cy: float

    def shifted(self, dx: float, dy: float) -> "Centroid":
        return Centroid(cx=self.cx + dx, cy=self.cy + dy)


@dataclass(frozen=True)
class Foreground:
    """Subject location in full-image coordinates."""

    box: BoundingBox
    centroid: Centroid
    image_w: int
    image_h: int


def _first_last(flags: np.ndarray) -> Tuple[int, int]:
    first = int(np.argmax(flags))
    last = flags.size - int(np.argmax(flags[::-1]))
    return first, last


def alpha_bbox_and_centroid(alpha: np.ndarray, threshold: int = ALPHA_THRESHOLD) -> Optional[Foreground]:
    """
    Bounding box of alpha > threshold plus the alpha-weighted centroid.

    Only foreground pixels contribute to the centroid, so opaque pixels pull
    harder than faint edge pixels that barely clear the threshold.
    Returns None when nothing clears the threshold.
    """
    if alpha.ndim != 2:
        raise ValueError(f"Expected 2D alpha plane, got shape={alpha.shape}")
    h, w = alpha.shape

    mask = alpha > threshold
    rows = mask.any(axis=1)
    if not rows.any():
        return None
    cols = mask.any(axis=0)

    y0, y1 = _first_last(rows)
    x0, x1 = _first_last(cols)

    # Background pixels inside the box weigh zero.
    weights = np.where(mask[y0:y1, x0:x1], alpha[y0:y1, x0:x1], 0)
    col_sums = weights.sum(axis=0, dtype=np.float64)
    row_sums = weights.sum(axis=1, dtype=np.float64)
    total = float(col_sums.sum())

    cx = float(col_sums @ np.arange(x0, x1, dtype=np.float64)) / total
    cy = float(row_sums @ np.arange(y0, y1, dtype=np.float64)) / total

    return Foreground(
        box=BoundingBox(x0=x0, y0=y0, x1=x1, y1=y1),
        centroid=Centroid(cx=cx, cy=cy),
        image_w=w,
        image_h=h,
    )


def find_foreground(img: Image.Image, threshold: int = ALPHA_THRESHOLD) -> Optional[Foreground]:
    return alpha_bbox_and_centroid(alpha_plane(img), threshold=threshold)

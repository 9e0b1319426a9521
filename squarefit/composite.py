from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from .analysis import Centroid, Foreground
from .config import PAD, SIZE, VBIAS, Settings
from .imaging import crop, ensure_rgba, new_canvas, paste_onto, resize

# floor() tolerance so w * (max_content / w) lands on max_content, not one pixel short.
_FLOOR_EPS = 1e-6


@dataclass(frozen=True)
class Placement:
    """Where a crop lands on the square canvas."""

    scale: float
    width: int
    height: int
    left: int
    top: int


def _round(v: float) -> int:
    # half-up, independent of banker's rounding
    return int(math.floor(v + 0.5))


def crop_to_foreground(img: Image.Image, fg: Optional[Foreground]) -> Tuple[Image.Image, Optional[Centroid]]:
    """
    Cut the subject box out of the full image and move the centroid into
    crop-local coordinates. Without a foreground the whole image is the subject.
    """
    img = ensure_rgba(img)
    if fg is None:
        return img, None
    box = fg.box
    return crop(img, box.as_tuple()), fg.centroid.shifted(-box.x0, -box.y0)


def plan_placement(
    crop_w: int,
    crop_h: int,
    size: int = SIZE,
    pad: float = PAD,
    vbias: float = VBIAS,
    centroid: Optional[Centroid] = None,
) -> Placement:
    """
    Uniform scale-to-fit into the padded square, then position.

    With a centroid the canvas center is aligned with the scaled centroid
    (visual mass); otherwise the resized box is centered geometrically.
    The vertical bias shifts only the top offset.
    """
    if crop_w <= 0 or crop_h <= 0:
        raise ValueError(f"Invalid crop size: {(crop_w, crop_h)}")

    max_content = size * (1.0 - 2.0 * pad)
    scale = min(max_content / crop_w, max_content / crop_h)
    new_w = max(1, int(math.floor(crop_w * scale + _FLOOR_EPS)))
    new_h = max(1, int(math.floor(crop_h * scale + _FLOOR_EPS)))

    bias = _round(vbias * size)
    if centroid is not None:
        left = _round(size / 2.0 - centroid.cx * scale)
        top = _round(size / 2.0 - centroid.cy * scale + bias)
    else:
        left = max(0, int(math.floor((size - new_w) / 2.0)))
        top = max(0, int(math.floor((size - new_h) / 2.0 + bias)))

    return Placement(scale=scale, width=new_w, height=new_h, left=left, top=top)


def compose_square(
    crop_img: Image.Image,
    settings: Settings,
    centroid: Optional[Centroid] = None,
) -> Tuple[Image.Image, Placement]:
    """
    Scale the crop into a SIZE x SIZE transparent canvas.

    Returns the canvas and the placement used for it.
    """
    crop_img = ensure_rgba(crop_img)
    w, h = crop_img.size
    placement = plan_placement(
        w,
        h,
        size=settings.size,
        pad=settings.pad,
        vbias=settings.vbias,
        centroid=centroid,
    )
    resized = resize(crop_img, placement.width, placement.height)
    canvas = paste_onto(new_canvas(settings.size), resized, placement.left, placement.top)
    return canvas, placement

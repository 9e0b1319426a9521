"""
Image-buffer operations used by the pipeline.

Every function returns a new buffer; inputs are left untouched. Images are
Pillow images (RGB/RGBA, 8-bit), single planes are uint8 arrays of shape (H, W).
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np
from PIL import Image


def load_image(path: str) -> Image.Image:
    img = Image.open(path)
    img.load()
    return img


def ensure_rgba(img: Image.Image) -> Image.Image:
    """
    Normalize to RGBA. Images without alpha get a fully opaque alpha plane.
    """
    if img.mode == "RGBA":
        return img
    return img.convert("RGBA")


def alpha_plane(img: Image.Image) -> np.ndarray:
    return np.array(ensure_rgba(img).getchannel("A"), dtype=np.uint8)


def rgb_array(img: Image.Image) -> np.ndarray:
    return np.array(img.convert("RGB"), dtype=np.uint8)


def inject_alpha(rgb: np.ndarray, alpha: np.ndarray) -> Image.Image:
    """
    Build an RGBA image from an RGB uint8 array and a uint8 alpha plane.
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"Expected RGB image (H,W,3), got {rgb.shape}")
    if alpha.ndim != 2 or alpha.shape[:2] != rgb.shape[:2]:
        raise ValueError(f"Alpha shape {alpha.shape} does not match RGB {rgb.shape[:2]}")
    if alpha.dtype != np.uint8:
        raise ValueError(f"Expected uint8 alpha, got {alpha.dtype}")

    rgba = np.ascontiguousarray(np.dstack([rgb.astype(np.uint8, copy=False), alpha]))
    return Image.fromarray(rgba)


def replace_alpha(img: Image.Image, alpha: np.ndarray) -> Image.Image:
    return inject_alpha(rgb_array(img), alpha)


def gaussian_blur(plane: np.ndarray, sigma: float) -> np.ndarray:
    if sigma <= 0:
        return plane.copy()
    return cv2.GaussianBlur(plane, (0, 0), sigmaX=float(sigma), sigmaY=float(sigma))


def binarize(plane: np.ndarray, threshold: int) -> np.ndarray:
    """Values >= threshold become 255, everything else 0."""
    return np.where(plane >= threshold, 255, 0).astype(np.uint8)


def crop(img: Image.Image, box: Tuple[int, int, int, int]) -> Image.Image:
    return img.crop(box)


def resize(img: Image.Image, width: int, height: int) -> Image.Image:
    if img.size == (width, height):
        return img.copy()
    return img.resize((width, height), Image.Resampling.LANCZOS)


def new_canvas(size: int) -> Image.Image:
    return Image.new("RGBA", (size, size), (0, 0, 0, 0))


def paste_onto(canvas: Image.Image, img: Image.Image, left: int, top: int) -> Image.Image:
    """
    Place img on a copy of canvas at integer offsets; parts outside are clipped.

    The canvas is fully transparent, so copying the source pixels is the same
    as compositing them "over" it.
    """
    out = canvas.copy()
    out.paste(ensure_rgba(img), (int(left), int(top)))
    return out

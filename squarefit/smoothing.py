from __future__ import annotations

from PIL import Image

from .config import SMOOTH_BLUR, SMOOTH_THRESH
from .imaging import alpha_plane, binarize, gaussian_blur, replace_alpha


def smooth_alpha(img: Image.Image, blur_sigma: float = SMOOTH_BLUR, threshold: int = SMOOTH_THRESH) -> Image.Image:
    """
    Collapse a speckled matte into a clean silhouette:
      - gaussian blur of the alpha plane
      - binarize (>= threshold -> 255, else 0)
      - recombine with the untouched RGB channels

    Soft/feathered edges are lost; color and size are unchanged.
    """
    alpha = alpha_plane(img)
    blurred = gaussian_blur(alpha, blur_sigma)
    return replace_alpha(img, binarize(blurred, threshold))

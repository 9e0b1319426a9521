from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from PIL import Image

from .config import Settings
from .imaging import ensure_rgba, load_image

logger = logging.getLogger(__name__)

Tier = Literal["high", "fast"]
Status = Literal["ok", "fallback", "failed"]


@dataclass
class Extraction:
    """
    Outcome of background removal:
      - ok:       the requested tier produced `image`
      - fallback: the high tier raised, the fast tier produced `image`
      - failed:   no tier produced an image (`image` is None)
    """

    status: Status
    tier: Tier
    image: Optional[Image.Image] = None
    error: str = ""


_REMBG_SESSIONS: Dict[str, Any] = {}


def _get_rembg_session(model_name: str):
    if model_name not in _REMBG_SESSIONS:
        from rembg import new_session

        logger.info("Creating rembg session %s", model_name)
        _REMBG_SESSIONS[model_name] = new_session(model_name)
    return _REMBG_SESSIONS[model_name]


def remove_background_fast(img: Image.Image, model_name: str) -> Image.Image:
    from rembg import remove

    out = remove(img.convert("RGB"), session=_get_rembg_session(model_name))
    if not isinstance(out, Image.Image):
        raise RuntimeError(f"rembg returned {type(out).__name__}, expected a PIL image")
    return out


def remove_background_high(img: Image.Image, hf_repo: str) -> Image.Image:
    from .matting import remove_background_hq

    return remove_background_hq(img, hf_repo)


def _describe(e: Exception) -> str:
    return f"{type(e).__name__}: {e}"


def remove_background(image_path: str, settings: Settings) -> Extraction:
    """
    Isolate the foreground of image_path as RGBA.

    HQ mode tries the BiRefNet tier first and drops to the fast tier when it
    raises. Whatever tier runs, the result always carries an alpha channel.
    """
    src = load_image(image_path)

    high_error = ""
    if settings.hq:
        try:
            out = remove_background_high(src, settings.hq_model)
            return Extraction(status="ok", tier="high", image=ensure_rgba(out))
        except Exception as e:
            high_error = _describe(e)
            logger.warning("High-quality extraction failed for %s (%s); using fast tier", image_path, high_error)

    try:
        out = remove_background_fast(src, settings.fast_model)
    except Exception as e:
        fast_error = _describe(e)
        logger.error("Background removal failed for %s: %s", image_path, fast_error)
        error = f"high: {high_error}; fast: {fast_error}" if high_error else fast_error
        return Extraction(status="failed", tier="fast", error=error)

    status: Status = "fallback" if settings.hq else "ok"
    return Extraction(status=status, tier="fast", image=ensure_rgba(out), error=high_error)

"""
Centralized configuration for the squarefit pipeline.

Ground rules:
- Read once at process start (Settings.from_env), then passed explicitly.
- No component reads os.environ on its own.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

SIZE = 2000
PAD = 0.05
VBIAS = 0.0
ALPHA_THRESHOLD = 16

SMOOTH_THRESH = 180
SMOOTH_BLUR = 1.2

QUALITY = 82
ALPHA_QUALITY = 80
EFFORT = 6

FAST_MODEL = "u2net"
HQ_MODEL = "ZhengPeng7/BiRefNet"

# BiRefNet was trained at 1024x1024; inputs are letterboxed to this square.
MATTE_SIZE = 1024
MATTE_PAD_COLOR = 127
IMAGENET_MEAN = [0.485, 0.456, 0.406]
IMAGENET_STD = [0.229, 0.224, 0.225]

DOWNLOAD_DIR = "downloaded"
FETCH_TIMEOUT_S = 30.0

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff"}


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def _env_str(env: Mapping[str, str], key: str, default: str) -> str:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    """Read-only knobs for one run."""

    size: int = SIZE
    pad: float = PAD
    vbias: float = VBIAS
    alpha_threshold: int = ALPHA_THRESHOLD
    hq: bool = False
    smooth_thresh: int = SMOOTH_THRESH
    smooth_blur: float = SMOOTH_BLUR
    quality: int = QUALITY
    alpha_quality: int = ALPHA_QUALITY
    effort: int = EFFORT
    fast_model: str = FAST_MODEL
    hq_model: str = HQ_MODEL
    download_dir: str = DOWNLOAD_DIR
    fetch_timeout_s: float = FETCH_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError(f"SIZE must be >= 1, got {self.size}")
        if not 0.0 <= self.pad < 0.5:
            raise ValueError(f"PAD must be in [0, 0.5), got {self.pad}")
        if not 0 <= self.alpha_threshold <= 255:
            raise ValueError(f"ATHRESH must be in 0..255, got {self.alpha_threshold}")
        if not 0 <= self.smooth_thresh <= 255:
            raise ValueError(f"SMOOTH_THRESH must be in 0..255, got {self.smooth_thresh}")
        if not 0 <= self.quality <= 100:
            raise ValueError(f"QUALITY must be in 0..100, got {self.quality}")
        if not 0 <= self.alpha_quality <= 100:
            raise ValueError(f"AQUALITY must be in 0..100, got {self.alpha_quality}")
        if not 0 <= self.effort <= 6:
            raise ValueError(f"EFFORT must be in 0..6, got {self.effort}")
        if self.fetch_timeout_s <= 0:
            raise ValueError(f"FETCH_TIMEOUT_S must be > 0, got {self.fetch_timeout_s}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            size=_env_int(env, "SIZE", SIZE),
            pad=_env_float(env, "PAD", PAD),
            vbias=_env_float(env, "VBIAS", VBIAS),
            alpha_threshold=_env_int(env, "ATHRESH", ALPHA_THRESHOLD),
            hq=env.get("HQ") == "1",
            smooth_thresh=_env_int(env, "SMOOTH_THRESH", SMOOTH_THRESH),
            smooth_blur=_env_float(env, "SMOOTH_BLUR", SMOOTH_BLUR),
            quality=_env_int(env, "QUALITY", QUALITY),
            alpha_quality=_env_int(env, "AQUALITY", ALPHA_QUALITY),
            effort=_env_int(env, "EFFORT", EFFORT),
            fast_model=_env_str(env, "FAST_MODEL", FAST_MODEL),
            hq_model=_env_str(env, "HQ_MODEL", HQ_MODEL),
            download_dir=_env_str(env, "DOWNLOAD_DIR", DOWNLOAD_DIR),
            fetch_timeout_s=_env_float(env, "FETCH_TIMEOUT_S", FETCH_TIMEOUT_S),
        )

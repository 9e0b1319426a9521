from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from .config import Settings
from .imaging import ensure_rgba


def encode_webp(canvas: Image.Image, settings: Settings) -> bytes:
    """
    Lossy WebP with separate image/alpha quality.

    Lossless and near-lossless are never used so every image in a batch gets
    the same quality policy. Lossy WebP is always 4:2:0 chroma subsampled;
    `method` is libwebp's effort level (0 fastest .. 6 smallest).
    """
    buf = io.BytesIO()
    ensure_rgba(canvas).save(
        buf,
        format="WEBP",
        lossless=False,
        quality=int(settings.quality),
        alpha_quality=int(settings.alpha_quality),
        method=int(settings.effort),
        exact=False,
    )
    return buf.getvalue()


def write_output(data: bytes, out_dir: str, stem: str) -> Path:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)
    out_path = p / f"{stem}.webp"
    out_path.write_bytes(data)
    return out_path

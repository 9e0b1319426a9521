from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator

from .config import IMAGE_EXTENSIONS

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_url(value: str) -> bool:
    return bool(_URL_RE.match(value))


def iter_images(input_dir: Path) -> Iterator[Path]:
    """
    Recursively yield image files under input_dir in sorted order.
    Each call starts a fresh walk.
    """
    for p in sorted(Path(input_dir).rglob("*")):
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS:
            yield p

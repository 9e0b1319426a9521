from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "downloaded_image"


def filename_from_url(url: str) -> str:
    """
    Last path segment of the URL, e.g. "https://x/y/shoe.jpg?w=1" -> "shoe.jpg".
    """
    name = posixpath.basename(unquote(urlparse(url).path))
    name = name.replace("\\", "_").strip()
    if name in ("", ".", ".."):
        return DEFAULT_NAME
    return name


def download_to_dir(url: str, dest_dir: str, timeout_s: float) -> Path:
    """
    Fetch url into dest_dir. Transport errors and non-2xx responses raise FetchError.
    """
    try:
        resp = requests.get(url, timeout=timeout_s)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"Failed to download {url}: {e}") from e

    out_dir = Path(dest_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / filename_from_url(url)
    out_path.write_bytes(resp.content)
    logger.info("Downloaded %s (%d bytes) -> %s", url, len(resp.content), out_path)
    return out_path

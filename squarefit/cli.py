from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path
from typing import IO, Dict, List, Optional

from dotenv import load_dotenv
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .config import Settings
from .contracts import ManifestRecord
from .fetch import download_to_dir
from .pipeline import process_image
from .sources import is_url, iter_images

logger = logging.getLogger("squarefit")


def _write_record(fp: Optional[IO[str]], record: ManifestRecord) -> None:
    if fp is None:
        return
    fp.write(record.model_dump_json() + "\n")
    fp.flush()


def _run_url(url: str, output_dir: Path, settings: Settings, manifest_fp: Optional[IO[str]]) -> int:
    try:
        local = download_to_dir(url, settings.download_dir, settings.fetch_timeout_s)
        result = process_image(str(local), str(output_dir), settings)
    except Exception as e:
        logger.error("Error processing URL %s: %s", url, e)
        _write_record(manifest_fp, ManifestRecord(source=url, ok=False, error=f"{type(e).__name__}: {e}"))
        return 1

    _write_record(manifest_fp, ManifestRecord(source=url, ok=True, result=result))
    logger.info("✓ %s -> %s", Path(local).name, Path(result.output_path).name)
    logger.info("Done: 1 files")
    return 0


def _run_dir(input_dir: Path, output_dir: Path, settings: Settings, manifest_fp: Optional[IO[str]]) -> int:
    if not input_dir.is_dir():
        logger.error("Input dir not found: %s", input_dir)
        return 2

    images = list(iter_images(input_dir))
    if not images:
        logger.info("No images found under %s", input_dir)
        logger.info("Done: 0 files")
        return 0

    done = 0
    failed: List[Path] = []
    written: Dict[str, Path] = {}
    t0 = time.perf_counter()
    with logging_redirect_tqdm():
        for img_path in tqdm(images, desc="Squaring", unit="img"):
            try:
                result = process_image(str(img_path), str(output_dir), settings)
            except Exception as e:
                # one bad file must not abort the batch
                logger.exception("✗ %s failed", img_path.name)
                failed.append(img_path)
                _write_record(
                    manifest_fp,
                    ManifestRecord(source=str(img_path), ok=False, error=f"{type(e).__name__}: {e}"),
                )
                continue

            done += 1
            _write_record(manifest_fp, ManifestRecord(source=str(img_path), ok=True, result=result))
            logger.info("✓ %s -> %s", img_path.name, Path(result.output_path).name)

            # inputs in different folders can share a stem
            earlier = written.get(result.output_path)
            if earlier is not None:
                logger.warning("%s overwrote the output of %s: %s", img_path, earlier, result.output_path)
            written[result.output_path] = img_path

    elapsed = time.perf_counter() - t0
    if failed:
        logger.warning("Done: %d files, %d failed (%.2fs)", done, len(failed), elapsed)
        return 1
    logger.info("Done: %d files (%.2fs)", done, elapsed)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Remove backgrounds and center products on square WebP canvases.")
    parser.add_argument("input", nargs="?", default="in", help="Input directory or http(s):// URL (default: in).")
    parser.add_argument("output", nargs="?", default="out", help="Output directory for .webp files (default: out).")
    parser.add_argument("--manifest", type=str, default=None, help="Append one JSON line per image to this file.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    if settings.hq:
        logger.info("High-quality background removal mode enabled.")

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    manifest_fp: Optional[IO[str]] = None
    if args.manifest:
        manifest_path = Path(args.manifest)
        manifest_path.parent.mkdir(parents=True, exist_ok=True)
        manifest_fp = open(manifest_path, "a", encoding="utf-8")
    try:
        if is_url(args.input):
            return _run_url(args.input, output_dir, settings, manifest_fp)
        return _run_dir(Path(args.input), output_dir, settings, manifest_fp)
    finally:
        if manifest_fp is not None:
            manifest_fp.close()


if __name__ == "__main__":
    raise SystemExit(main())

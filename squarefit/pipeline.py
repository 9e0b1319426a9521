from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from .analysis import find_foreground
from .composite import compose_square, crop_to_foreground
from .config import Settings
from .contracts import ProcessResult
from .encode import encode_webp, write_output
from .errors import ExtractionError
from .extraction import remove_background
from .smoothing import smooth_alpha

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageTimings:
    extract_s: float
    smooth_s: float
    analyze_s: float
    composite_s: float
    encode_s: float
    total_s: float


def process_image(image_path: str, out_dir: str, settings: Settings) -> ProcessResult:
    """
    Linear per-image pipeline:
      1) Background removal (HQ tier with fast fallback, or fast tier)
      2) Alpha smoothing (HQ only)
      3) Bounding box + weighted centroid, crop
      4) Scale + place on the square canvas
      5) Encode WebP, write <out_dir>/<stem>.webp
    """
    t0 = time.perf_counter()

    extraction = remove_background(image_path, settings)
    if extraction.status == "failed" or extraction.image is None:
        raise ExtractionError(f"Background removal failed for {image_path}: {extraction.error}")
    rgba = extraction.image
    t_ext = time.perf_counter()

    if settings.hq:
        rgba = smooth_alpha(rgba, blur_sigma=settings.smooth_blur, threshold=settings.smooth_thresh)
    t_smooth = time.perf_counter()

    fg = find_foreground(rgba, threshold=settings.alpha_threshold)
    if fg is None:
        logger.info("No alpha above %d in %s; using the full image", settings.alpha_threshold, image_path)
    crop_img, centroid = crop_to_foreground(rgba, fg)
    t_an = time.perf_counter()

    canvas, placement = compose_square(crop_img, settings, centroid)
    t_comp = time.perf_counter()

    data = encode_webp(canvas, settings)
    out_path = write_output(data, out_dir, Path(image_path).stem)
    t1 = time.perf_counter()

    timings = StageTimings(
        extract_s=t_ext - t0,
        smooth_s=t_smooth - t_ext,
        analyze_s=t_an - t_smooth,
        composite_s=t_comp - t_an,
        encode_s=t1 - t_comp,
        total_s=t1 - t0,
    )
    return ProcessResult(
        source_path=str(image_path),
        output_path=str(out_path),
        tier=extraction.tier,
        extraction_status=extraction.status,
        extraction_error=extraction.error,
        bbox=fg.box.as_tuple() if fg is not None else None,
        centroid=(centroid.cx, centroid.cy) if centroid is not None else None,
        placement=asdict(placement),
        timings=asdict(timings),
    )

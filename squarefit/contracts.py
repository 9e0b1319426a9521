from __future__ import annotations

from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel


class ProcessResult(BaseModel):
    source_path: str
    output_path: str
    tier: Literal["high", "fast"]
    extraction_status: Literal["ok", "fallback"]
    extraction_error: str = ""
    bbox: Optional[Tuple[int, int, int, int]] = None
    # crop-local; None when no foreground cleared the threshold
    centroid: Optional[Tuple[float, float]] = None
    placement: Dict[str, float]
    timings: Dict[str, float]


class ManifestRecord(BaseModel):
    """One line of the optional JSONL manifest."""

    source: str
    ok: bool
    result: Optional[ProcessResult] = None
    error: str = ""

"""
BiRefNet matting for the high-quality extraction tier.

Flow: letterbox to MATTE_SIZE -> ImageNet normalize -> forward (no grad)
-> sigmoid matte -> un-pad + resize back to the source resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import cv2
import numpy as np
import torch
from PIL import Image

from .config import IMAGENET_MEAN, IMAGENET_STD, MATTE_PAD_COLOR, MATTE_SIZE
from .imaging import inject_alpha, rgb_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Letterbox:
    """Maps model-space squares back to the source image."""

    orig_h: int
    orig_w: int
    resized_h: int
    resized_w: int
    x_offset: int
    y_offset: int
    target_size: int = MATTE_SIZE


def best_device() -> torch.device:
    if torch.backends.mps.is_available():
        return torch.device("mps")
    if torch.cuda.is_available():
        return torch.device("cuda")
    return torch.device("cpu")


def letterbox(rgb: np.ndarray, target_size: int = MATTE_SIZE) -> Tuple[np.ndarray, Letterbox]:
    """
    Aspect-safe resize so the longest side equals target_size, padded to a square.
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"Expected RGB image (H,W,3), got shape={rgb.shape}")
    orig_h, orig_w = rgb.shape[:2]
    if orig_h <= 0 or orig_w <= 0:
        raise ValueError(f"Invalid image size: {(orig_h, orig_w)}")

    scale = float(target_size) / float(max(orig_h, orig_w))
    resized_w = max(1, int(round(orig_w * scale)))
    resized_h = max(1, int(round(orig_h * scale)))
    interp = cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
    resized = cv2.resize(rgb, (resized_w, resized_h), interpolation=interp)

    padded = np.full((target_size, target_size, 3), MATTE_PAD_COLOR, dtype=np.uint8)
    x_offset = (target_size - resized_w) // 2
    y_offset = (target_size - resized_h) // 2
    padded[y_offset : y_offset + resized_h, x_offset : x_offset + resized_w] = resized

    box = Letterbox(
        orig_h=orig_h,
        orig_w=orig_w,
        resized_h=resized_h,
        resized_w=resized_w,
        x_offset=x_offset,
        y_offset=y_offset,
        target_size=target_size,
    )
    return padded, box


def to_tensor(padded: np.ndarray) -> torch.Tensor:
    """uint8 (S,S,3) -> float32 (1,3,S,S), ImageNet normalized."""
    x = padded.astype(np.float32) / 255.0
    mean = np.array(IMAGENET_MEAN, dtype=np.float32).reshape(1, 1, 3)
    std = np.array(IMAGENET_STD, dtype=np.float32).reshape(1, 1, 3)
    x = (x - mean) / std
    x = np.transpose(x, (2, 0, 1))
    return torch.from_numpy(np.ascontiguousarray(x)).unsqueeze(0).float()


def restore_matte(matte: np.ndarray, box: Letterbox) -> np.ndarray:
    """
    Drop the letterbox padding and resize the matte to (orig_h, orig_w).
    """
    if matte.ndim != 2:
        raise ValueError(f"Expected 2D matte, got shape={matte.shape}")
    x0, y0 = box.x_offset, box.y_offset
    cropped = matte[y0 : y0 + box.resized_h, x0 : x0 + box.resized_w].astype(np.float32, copy=False)
    if cropped.size == 0:
        raise ValueError("Matte crop is empty; check letterbox metadata.")
    restored = cv2.resize(cropped, (box.orig_w, box.orig_h), interpolation=cv2.INTER_LINEAR)
    return np.clip(restored, 0.0, 1.0).astype(np.float32, copy=False)


def _primary_output(y: Any) -> Any:
    """
    BiRefNet returns a list of stage outputs; the final stage is last.
    Dict/ModelOutput payloads are searched for a logits-like tensor.
    """
    if isinstance(y, torch.Tensor):
        return y
    if hasattr(y, "logits") and isinstance(y.logits, torch.Tensor):
        return y.logits
    if isinstance(y, (list, tuple)) and len(y) > 0:
        for item in reversed(y):
            if isinstance(item, torch.Tensor):
                return item
        return y[-1]
    if isinstance(y, dict):
        for k in ("logits", "pred", "alpha", "mask"):
            v = y.get(k)
            if isinstance(v, torch.Tensor):
                return v
        for v in y.values():
            if isinstance(v, torch.Tensor):
                return v
    return y


def predict_matte(model: torch.nn.Module, x: torch.Tensor, device: torch.device) -> np.ndarray:
    """
    Forward pass -> float32 matte in [0,1] of shape (S, S).
    """
    if x.ndim != 4 or x.shape[0] != 1:
        raise ValueError(f"Expected input tensor (1,3,H,W), got {tuple(x.shape)}")
    size = int(x.shape[-1])

    with torch.no_grad():
        y = _primary_output(model(x.to(device)))
    if not isinstance(y, torch.Tensor):
        raise RuntimeError(f"Model output is not a tensor: {type(y)}")

    while y.ndim > 2:
        y = y[0]
    if tuple(y.shape) != (size, size):
        y = torch.nn.functional.interpolate(
            y[None, None],
            size=(size, size),
            mode="bilinear",
            align_corners=False,
        )[0, 0]

    p = torch.sigmoid(y.float())
    if torch.isnan(p).any():
        raise RuntimeError("NaNs detected in predicted matte.")
    return np.clip(p.detach().to("cpu").numpy().astype(np.float32), 0.0, 1.0)


def load_birefnet(hf_repo: str, device: torch.device) -> torch.nn.Module:
    """
    Load BiRefNet from the Hugging Face hub (trust_remote_code), float32, eval.
    """
    from transformers import AutoModelForImageSegmentation

    logger.info("Loading %s on %s", hf_repo, device)
    model = AutoModelForImageSegmentation.from_pretrained(hf_repo, trust_remote_code=True)
    model.eval()
    for p in model.parameters():
        p.requires_grad_(False)
    return model.to(dtype=torch.float32).to(device)


_MODELS: Dict[str, Tuple[torch.nn.Module, torch.device]] = {}


def _get_model(hf_repo: str) -> Tuple[torch.nn.Module, torch.device]:
    if hf_repo not in _MODELS:
        device = best_device()
        _MODELS[hf_repo] = (load_birefnet(hf_repo, device), device)
    return _MODELS[hf_repo]


def remove_background_hq(img: Image.Image, hf_repo: str) -> Image.Image:
    """
    Original-resolution RGBA cutout using the BiRefNet matte as alpha.
    """
    model, device = _get_model(hf_repo)
    rgb = rgb_array(img)
    padded, box = letterbox(rgb)
    matte = restore_matte(predict_matte(model, to_tensor(padded), device), box)
    alpha = (matte * 255.0 + 0.5).astype(np.uint8)
    return inject_alpha(rgb, alpha)

# src/imaging/preprocessor.py - v2
"""Per-profile page image preparation before recognition.

Deterministic transform: downscale to the profile's max dimension, gray-scale
adaptive contrast stretch toward a target standard deviation, optional
binarization of faint scans, then re-encode (JPEG for economy, PNG
otherwise). Uses Pillow for codec/resampling and numpy for pixel math.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from docscribe.config.profiles import (
    MAX_CONCURRENT_PREPROCESS,
    OptimizationProfile,
    get_policy,
)
from docscribe.core.models import ImageDocument

logger = logging.getLogger(__name__)

_TARGET_STD: dict[OptimizationProfile, float] = {
    OptimizationProfile.ECONOMY: 44.0,
    OptimizationProfile.BALANCED: 56.0,
    OptimizationProfile.ACCURACY: 66.0,
}
_MAX_GAIN_ECONOMY = 1.45
_MAX_GAIN_DEFAULT = 1.7
_FAINT_STD = 42.0
_THRESHOLD_MIN = 70.0
_THRESHOLD_MAX = 200.0
_JPEG_QUALITY = 82

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass(frozen=True)
class PreparedImage:
    """Re-encoded image ready to be sent inline."""

    mime_type: str
    data: str


@dataclass(frozen=True)
class ContrastPlan:
    """Derived per-image adjustment parameters."""

    mean: float
    std: float
    gain: float
    binarize: bool
    threshold: float


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def scale_factor(width: int, height: int, max_dimension: int) -> float:
    """Uniform downscale factor; never upscales."""
    longest = max(width, height)
    if longest <= max_dimension:
        return 1.0
    return max_dimension / longest


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel rounded luminance of an HxWx3 uint8 raster."""
    return np.rint(rgb.astype(np.float64) @ _LUMA)


def plan_contrast(lum: np.ndarray, profile: OptimizationProfile) -> ContrastPlan:
    """Contrast gain and binarization decision for a luminance raster."""
    profile = OptimizationProfile(profile)
    mean = float(lum.mean()) if lum.size else 0.0
    std = float(lum.std()) if lum.size else 0.0
    max_gain = _MAX_GAIN_ECONOMY if profile == OptimizationProfile.ECONOMY else _MAX_GAIN_DEFAULT
    gain = _clamp(_TARGET_STD[profile] / max(std, 1.0), 1.0, max_gain)
    binarize = profile != OptimizationProfile.ECONOMY and std < _FAINT_STD
    offset = 6.0 if profile == OptimizationProfile.ACCURACY else 2.0
    threshold = _clamp(mean - offset, _THRESHOLD_MIN, _THRESHOLD_MAX)
    return ContrastPlan(mean=mean, std=std, gain=gain, binarize=binarize, threshold=threshold)


def apply_contrast(lum: np.ndarray, plan: ContrastPlan) -> np.ndarray:
    """Gray output raster (uint8) after contrast stretch and optional threshold."""
    adjusted = np.clip((lum - 128.0) * plan.gain + 128.0, 0.0, 255.0)
    if plan.binarize:
        adjusted = np.where(adjusted >= plan.threshold, 255.0, 0.0)
    return np.rint(adjusted).astype(np.uint8)


def preprocess_image(data: bytes, profile: OptimizationProfile) -> PreparedImage:
    """Transform raw image bytes for one profile attempt.

    Raises:
        UnidentifiedImageError: If the bytes are not a decodable image.
    """
    policy = get_policy(profile)
    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB")
        factor = scale_factor(img.width, img.height, policy.max_image_dimension)
        if factor < 1.0:
            target = (
                max(1, round(img.width * factor)),
                max(1, round(img.height * factor)),
            )
            img = img.resize(target, Image.Resampling.LANCZOS)
        rgb = np.asarray(img, dtype=np.uint8)

    lum = luminance(rgb)
    plan = plan_contrast(lum, profile)
    gray = apply_contrast(lum, plan)
    out = Image.fromarray(np.stack([gray, gray, gray], axis=-1))

    buffer = io.BytesIO()
    if OptimizationProfile(profile) == OptimizationProfile.ECONOMY:
        out.save(buffer, format="JPEG", quality=_JPEG_QUALITY)
        mime_type = "image/jpeg"
    else:
        out.save(buffer, format="PNG")
        mime_type = "image/png"

    logger.debug(
        "Preprocessed image for %s: %dx%d, std=%.1f, gain=%.2f, binarize=%s",
        profile, out.width, out.height, plan.std, plan.gain, plan.binarize,
    )
    return PreparedImage(mime_type=mime_type, data=base64.b64encode(buffer.getvalue()).decode("ascii"))


def prepare_document(image: ImageDocument, profile: OptimizationProfile) -> PreparedImage:
    """Preprocess a page, passing the original through when it cannot be decoded."""
    try:
        return preprocess_image(image.raw_bytes(), profile)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Preprocessing skipped for %s: %s", image.name, e)
        return PreparedImage(mime_type=image.media_type or "image/jpeg", data=image.encoded)


async def preprocess_span(
    images: Sequence[ImageDocument],
    profile: OptimizationProfile,
    concurrency: int = MAX_CONCURRENT_PREPROCESS,
) -> list[PreparedImage]:
    """Preprocess a span's pages in order, at most `concurrency` at a time."""
    prepared: list[PreparedImage] = []
    step = max(1, concurrency)
    for start in range(0, len(images), step):
        batch = images[start:start + step]
        results = await asyncio.gather(
            *(asyncio.to_thread(prepare_document, img, profile) for img in batch)
        )
        prepared.extend(results)
    return prepared

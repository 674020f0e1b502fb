# src/cache/fingerprint.py - v3
"""Deterministic cache keys from content, prompt and policy.

Content fingerprints are sampled rather than full-payload hashes so that
multi-megabyte documents stay cheap to key. The policy hash covers the whole
profile table and output contract, so any policy change yields new keys.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Mapping, Sequence

from docscribe.config.profiles import (
    CACHE_SCHEMA_VERSION,
    ModelTier,
    policy_table_payload,
)

if TYPE_CHECKING:
    from docscribe.config.profiles import OptimizationProfile, ProfilePolicy
    from docscribe.core.models import ImageDocument

logger = logging.getLogger(__name__)

PDF_CACHE_PREFIX = f"ocr-cache:pdf:{CACHE_SCHEMA_VERSION}"
IMAGE_CACHE_PREFIX = f"ocr-cache:image:{CACHE_SCHEMA_VERSION}"

_PDF_SAMPLE_CHARS = 512
_IMAGE_SAMPLE_CHARS = 64


def fast_hash(text: str) -> str:
    """DJB2 rolling hash, truncated to 32 bits, as lowercase hex."""
    h = 5381
    for ch in text:
        h = ((h << 5) + h + ord(ch)) & 0xFFFFFFFF
    return f"{h:x}"


def sha256_hex(text: str) -> str:
    """SHA-256 hex digest, falling back to fast_hash when unavailable.

    Keys only need to be stable, not collision-resistant against attackers.
    """
    try:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()
    except (AttributeError, ValueError) as e:
        logger.debug("sha256 unavailable, using fast hash: %s", e)
        return fast_hash(text)


def pdf_content_fingerprint(encoded: str) -> str:
    """Sampled fingerprint: length, head, middle and tail of the payload."""
    middle = max(0, len(encoded) // 2 - _PDF_SAMPLE_CHARS // 2)
    return "|".join([
        str(len(encoded)),
        encoded[:_PDF_SAMPLE_CHARS],
        encoded[middle:middle + _PDF_SAMPLE_CHARS],
        encoded[-_PDF_SAMPLE_CHARS:] if encoded else "",
    ])


def image_sequence_fingerprint(images: Sequence[ImageDocument]) -> str:
    """Per-image metadata plus small head/tail samples, in order."""
    parts = []
    for idx, img in enumerate(images):
        data = img.encoded
        head = data[:_IMAGE_SAMPLE_CHARS]
        tail = data[-_IMAGE_SAMPLE_CHARS:] if data else ""
        parts.append(
            f"{idx}:{img.name}:{img.media_type}:{img.size}:{img.last_modified}"
            f":{len(data)}:{head}:{tail}"
        )
    return "|".join(parts)


def policy_hash(
    policies: Mapping[OptimizationProfile, ProfilePolicy] | None = None,
) -> str:
    """Hash of the serialized policy table and output contract."""
    payload = policy_table_payload(policies)
    return sha256_hex(json.dumps(payload, sort_keys=True, separators=(",", ":")))


def build_pdf_cache_key(
    encoded: str,
    prompt: str,
    policies: Mapping[OptimizationProfile, ProfilePolicy] | None = None,
) -> str:
    """Cache key for a single PDF request."""
    return ":".join([
        PDF_CACHE_PREFIX,
        policy_hash(policies),
        sha256_hex(prompt),
        sha256_hex(pdf_content_fingerprint(encoded)),
    ])


def build_image_cache_key(
    images: Sequence[ImageDocument],
    prompt: str,
    model_override: ModelTier | None = None,
    policies: Mapping[OptimizationProfile, ProfilePolicy] | None = None,
) -> str:
    """Cache key for a whole image sequence request."""
    model_tag = ModelTier(model_override).value if model_override else "auto"
    return ":".join([
        IMAGE_CACHE_PREFIX,
        model_tag,
        policy_hash(policies),
        sha256_hex(prompt),
        sha256_hex(image_sequence_fingerprint(images)),
    ])

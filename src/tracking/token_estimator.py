# src/tracking/token_estimator.py - v1
"""Rough token estimates reported on lifecycle events.

Text: ~4 characters per token. Inline media: ~1 token per KiB of decoded
payload, at least 1.
"""

from __future__ import annotations

import math
from typing import Iterable


def estimate_text_tokens(text: str) -> int:
    """Estimate tokens for a text prompt or output."""
    return math.ceil(len(text) / 4)


def estimate_inline_data_tokens(encoded: str) -> int:
    """Estimate tokens for a base64 inline payload."""
    decoded_bytes = len(encoded) * 0.75
    return max(1, math.ceil(decoded_bytes / 1024))


def estimate_inline_batch_tokens(payloads: Iterable[str]) -> int:
    """Sum of inline estimates for several payloads."""
    return sum(estimate_inline_data_tokens(p) for p in payloads)

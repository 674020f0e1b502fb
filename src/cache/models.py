# src/cache/models.py - v2
"""Cache domain model: CacheEntry."""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel

from docscribe.config.profiles import OptimizationProfile


class CacheEntry(BaseModel):
    """Accepted transcription stored under a fingerprint key.

    For image sequences ``profile`` is the highest profile used by any span
    and ``quality`` the weakest accepted span score.
    """

    created_at: datetime
    text: str
    profile: OptimizationProfile
    quality: float

    def is_expired(self, ttl_seconds: float, now: datetime) -> bool:
        """True once the entry is older than the time-to-live."""
        return now - self.created_at > timedelta(seconds=ttl_seconds)

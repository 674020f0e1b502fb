# src/core/models.py - v2
"""Core domain models: documents, quality assessments, attempts, events."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from docscribe.config.profiles import OptimizationProfile

AnalysisEventType = Literal[
    "cache-hit",
    "profile-start",
    "profile-accepted",
    "profile-escalated",
    "completed",
]

AnalysisMode = Literal["pdf", "image"]


# === Document sources ===


class PdfDocument(BaseModel):
    """Single PDF payload, base64-encoded."""

    name: str
    media_type: str = "application/pdf"
    size: int
    encoded: str

    @classmethod
    def from_path(cls, path: Path | str) -> PdfDocument:
        """Read a local PDF and encode it."""
        path = Path(path)
        raw = path.read_bytes()
        return cls(
            name=path.name,
            size=len(raw),
            encoded=base64.b64encode(raw).decode("ascii"),
        )


class ImageDocument(BaseModel):
    """One page image of an ordered sequence, base64-encoded."""

    name: str
    media_type: str
    size: int
    last_modified: int = 0
    encoded: str

    @classmethod
    def from_path(cls, path: Path | str) -> ImageDocument:
        """Read a local image and encode it. last_modified is in milliseconds."""
        path = Path(path)
        raw = path.read_bytes()
        media_type = mimetypes.guess_type(path.name)[0] or "image/png"
        return cls(
            name=path.name,
            media_type=media_type,
            size=len(raw),
            last_modified=int(path.stat().st_mtime * 1000),
            encoded=base64.b64encode(raw).decode("ascii"),
        )

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.encoded)


# === Quality ===


class QualityAssessment(BaseModel):
    """Heuristic score in [0, 1] with ordered human-readable reasons."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    reasons: tuple[str, ...] = ()


# === Attempts ===


class AttemptResult(BaseModel):
    """Outcome of one accepted profile attempt."""

    text: str
    profile: OptimizationProfile
    assessment: QualityAssessment
    quality_score: float
    verification_score: float | None = None
    estimated_input_tokens: int = 0
    estimated_output_tokens: int = 0


class SpanResolution(AttemptResult):
    """Accepted attempt for a page span of an image sequence."""

    consumed: int = 1


# === Events ===


class AnalysisEvent(BaseModel):
    """Lifecycle notification sent to observers. Informational only."""

    model_config = ConfigDict(frozen=True)

    type: AnalysisEventType
    profile: OptimizationProfile
    message: str
    quality_score: float | None = None
    reasons: tuple[str, ...] | None = None
    estimated_input_tokens: int | None = None
    estimated_output_tokens: int | None = None
    verification_score: float | None = None

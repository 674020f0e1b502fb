# src/config/profiles.py - v3
"""Profile policy table: cost/fidelity tiers and candidate selection.

Three ordered profiles (economy < balanced < accuracy). Each maps to a model
tier and image/span/quality parameters that stay fixed for the process
lifetime. Candidate lists only ever walk forward through PROFILE_ORDER.
"""

from __future__ import annotations

import math
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict


class OptimizationProfile(str, Enum):
    """Cost/fidelity tier, ordered by PROFILE_ORDER."""

    ECONOMY = "economy"
    BALANCED = "balanced"
    ACCURACY = "accuracy"


class ModelTier(str, Enum):
    """Inference model tier. Concrete model names come from Settings."""

    FLASH = "flash"
    PRO = "pro"


class ProfilePolicy(BaseModel):
    """Per-profile parameters."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_tier: ModelTier
    max_image_dimension: int
    span_size: int
    min_quality_score: float
    carry_context_chars: int


PROFILE_ORDER: tuple[OptimizationProfile, ...] = (
    OptimizationProfile.ECONOMY,
    OptimizationProfile.BALANCED,
    OptimizationProfile.ACCURACY,
)

PROFILE_POLICIES: Mapping[OptimizationProfile, ProfilePolicy] = MappingProxyType({
    OptimizationProfile.ECONOMY: ProfilePolicy(
        model_tier=ModelTier.FLASH,
        max_image_dimension=1600,
        span_size=8,
        min_quality_score=0.58,
        carry_context_chars=240,
    ),
    OptimizationProfile.BALANCED: ProfilePolicy(
        model_tier=ModelTier.FLASH,
        max_image_dimension=2200,
        span_size=5,
        min_quality_score=0.72,
        carry_context_chars=420,
    ),
    OptimizationProfile.ACCURACY: ProfilePolicy(
        model_tier=ModelTier.PRO,
        max_image_dimension=3200,
        span_size=3,
        min_quality_score=0.0,
        carry_context_chars=640,
    ),
})

PROFILE_LABELS: Mapping[OptimizationProfile, str] = MappingProxyType({
    OptimizationProfile.ECONOMY: "Economy",
    OptimizationProfile.BALANCED: "Balanced",
    OptimizationProfile.ACCURACY: "Accuracy",
})

# Output contract shared by every transcription prompt. Part of the policy
# hash: editing it invalidates all cached results.
OUTPUT_CONTRACT = """Return Markdown only.
- Keep original order and wording. Do not summarize.
- Preserve headings, lists, formulas, and table structures.
- If a character is unreadable, keep it as □.
- For figures/diagrams, add [FIGURE] then transcribe visible text and short structural notes.
- For tables, output valid Markdown tables."""

DEFAULT_PDF_PROMPT = """Transcribe the attached PDF as-is.
- Keep line and section order.
- Correct obvious OCR split-word artifacts only.
- Do not add explanations outside the transcription output."""

DEFAULT_IMAGE_PROMPT = """Transcribe these ordered images as a single document.
- Keep page sequence strict.
- Preserve wording and structure verbatim.
- Do not add explanations outside the transcription output."""

UNREADABLE_PLACEHOLDER = "□"

# === Engine constants ===
PDF_BALANCED_MAX_MB = 4
PDF_ECONOMY_MIN_MB = 12
PDF_ESCALATION_THRESHOLD = 0.45
CACHE_SCHEMA_VERSION = "v4"
POLICY_FINGERPRINT_VERSION = "2026-02-07"
OUTPUT_STREAM_CHUNK_SIZE = 1400
MAX_CONCURRENT_PREPROCESS = 5
QUALITY_VERIFIER_SAMPLE_CHARS = 2200
CACHE_TTL_SECONDS = 60 * 60 * 24
IMAGE_SPAN_SIZE = 1


def get_policy(profile: OptimizationProfile) -> ProfilePolicy:
    """Return the policy for a profile."""
    return PROFILE_POLICIES[OptimizationProfile(profile)]


def profile_rank(profile: OptimizationProfile) -> int:
    """Position of a profile in PROFILE_ORDER."""
    return PROFILE_ORDER.index(OptimizationProfile(profile))


def max_profile(
    current: OptimizationProfile, candidate: OptimizationProfile
) -> OptimizationProfile:
    """Return the costlier of two profiles."""
    return candidate if profile_rank(candidate) > profile_rank(current) else current


def encoded_size_mb(encoded: str) -> int:
    """Whole megabytes represented by a base64 payload."""
    return math.floor((len(encoded) * 0.75) / (1024 * 1024))


def decide_initial_pdf_profile(encoded: str) -> OptimizationProfile:
    """Pick the starting profile for a PDF from its payload size.

    Large documents start at economy, small ones at balanced, and anything in
    between also starts at economy.
    """
    mb = encoded_size_mb(encoded)
    if mb >= PDF_ECONOMY_MIN_MB:
        return OptimizationProfile.ECONOMY
    if mb <= PDF_BALANCED_MAX_MB:
        return OptimizationProfile.BALANCED
    return OptimizationProfile.ECONOMY


def resolve_pdf_candidates(
    encoded: str, model_override: ModelTier | None = None
) -> list[OptimizationProfile]:
    """Ordered candidate profiles for a PDF request."""
    initial = decide_initial_pdf_profile(encoded)

    if model_override == ModelTier.PRO:
        return [OptimizationProfile.ACCURACY]

    if model_override == ModelTier.FLASH:
        if initial == OptimizationProfile.BALANCED:
            return [OptimizationProfile.BALANCED]
        return [OptimizationProfile.ECONOMY, OptimizationProfile.BALANCED]

    return list(PROFILE_ORDER[profile_rank(initial):])


def resolve_image_candidates(
    model_override: ModelTier | None = None,
) -> list[OptimizationProfile]:
    """Ordered candidate profiles for each span of an image sequence."""
    if model_override == ModelTier.PRO:
        return [OptimizationProfile.ACCURACY]
    if model_override == ModelTier.FLASH:
        return [OptimizationProfile.ECONOMY, OptimizationProfile.BALANCED]
    return list(PROFILE_ORDER)


def model_for_profile(
    profile: OptimizationProfile, model_override: ModelTier | None = None
) -> ModelTier:
    """Model tier used for an attempt; an explicit override always wins."""
    if model_override is not None:
        return ModelTier(model_override)
    return get_policy(profile).model_tier


def policy_table_payload(
    policies: Mapping[OptimizationProfile, ProfilePolicy] | None = None,
) -> dict[str, object]:
    """Serializable view of the policy table used for the policy hash."""
    table = PROFILE_POLICIES if policies is None else policies
    return {
        "version": POLICY_FINGERPRINT_VERSION,
        "outputContract": OUTPUT_CONTRACT,
        "profilePolicies": {
            OptimizationProfile(p).value: table[p].model_dump(mode="json")
            for p in PROFILE_ORDER
            if p in table
        },
    }

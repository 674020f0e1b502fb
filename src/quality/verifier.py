# src/quality/verifier.py - v3
"""Secondary-model verification of a transcription's quality.

Only consulted when the heuristic score is close to the required score.
The verifier never raises: transport errors and unparseable answers both
mean "no opinion" (None), and the heuristic score is used alone.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import TYPE_CHECKING

from docscribe.config.profiles import (
    QUALITY_VERIFIER_SAMPLE_CHARS,
    ModelTier,
    OptimizationProfile,
    model_for_profile,
)
from docscribe.llm.models import TextPart

if TYPE_CHECKING:
    from docscribe.config.settings import Settings
    from docscribe.core.models import AnalysisMode
    from docscribe.llm.base_client import BaseInferenceClient

logger = logging.getLogger(__name__)

HEURISTIC_WEIGHT = 0.78
VERIFIER_WEIGHT = 0.22
PDF_VERIFICATION_MARGIN = 0.12
IMAGE_VERIFICATION_MARGIN = 0.10
MIN_VERIFIABLE_CHARS = 60
_SAMPLE_HEAD_RATIO = 0.6
_ELLIPSIS = "\n...\n"

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```$")
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

_PROMPT_HEADERS: dict[str, tuple[str, str, str]] = {
    "pdf": (
        "You are validating OCR transcription quality.",
        "Score from 0 to 1 for fidelity and structural integrity.",
        "Prefer lower score when text is fragmented, garbled, or structurally inconsistent.",
    ),
    "image": (
        "You are validating OCR transcription quality for image pages.",
        "Score from 0 to 1 for fidelity and structure.",
        "Prefer lower scores for missing lines, garbled tokens, and malformed tables/headings.",
    ),
}


def sample_for_verification(text: str, budget: int = QUALITY_VERIFIER_SAMPLE_CHARS) -> str:
    """Head 60% + tail 40% of the budget, joined by an ellipsis line."""
    if len(text) <= budget:
        return text
    head_size = int(budget * _SAMPLE_HEAD_RATIO)
    tail_size = budget - head_size
    return f"{text[:head_size]}{_ELLIPSIS}{text[len(text) - tail_size:]}"


def parse_verifier_score(raw: str) -> float | None:
    """Extract a clamped score from a verifier answer.

    Tries, in order: the answer with code fences stripped, then the first
    embedded JSON object. Returns None when neither yields a numeric score.
    """
    stripped = _strip_fences(raw)
    direct = _score_from_json(stripped)
    if direct is not None:
        return direct

    match = _JSON_OBJECT_RE.search(stripped)
    return _score_from_json(match.group(0)) if match else None


def _strip_fences(raw: str) -> str:
    text = _FENCE_OPEN_RE.sub("", raw.strip(), count=1)
    return _FENCE_CLOSE_RE.sub("", text, count=1)


def _score_from_json(candidate: str) -> float | None:
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    score = parsed.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    # json accepts NaN and Infinity tokens; a non-finite score is no opinion.
    if not math.isfinite(score):
        return None
    return max(0.0, min(1.0, float(score)))


def needs_verification(heuristic_score: float, required_score: float, margin: float) -> bool:
    """True when the heuristic is too close to the bar to decide alone.

    Scores at or above required + margin clearly pass and scores below
    required - margin clearly fail; neither pays for a second opinion.
    """
    return required_score - margin <= heuristic_score < required_score + margin


def blend_scores(heuristic_score: float, verifier_score: float | None) -> float:
    """Effective score: fixed blend, or the heuristic alone without a verdict."""
    if verifier_score is None:
        return heuristic_score
    return heuristic_score * HEURISTIC_WEIGHT + verifier_score * VERIFIER_WEIGHT


def build_verifier_prompt(sampled: str, profile: OptimizationProfile, mode: AnalysisMode) -> str:
    intro, scale, preference = _PROMPT_HEADERS[mode]
    return "\n".join([
        intro,
        scale,
        'Return strict JSON only: {"score":0.0,"reason":"short"}',
        preference,
        f"Profile: {OptimizationProfile(profile).value}",
        "Candidate transcription:",
        sampled,
    ])


class QualityVerifier:
    """Asks the inference service to score a sampled transcription."""

    def __init__(
        self,
        client: BaseInferenceClient,
        settings: Settings,
    ) -> None:
        self._client = client
        self._settings = settings

    async def verify(
        self,
        text: str,
        profile: OptimizationProfile,
        model_override: ModelTier | None = None,
        mode: AnalysisMode = "pdf",
    ) -> float | None:
        """Return a verifier score in [0, 1], or None for no opinion."""
        if len(text.strip()) < MIN_VERIFIABLE_CHARS:
            return 0.0

        sampled = sample_for_verification(text, self._settings.verifier_sample_chars)
        prompt = build_verifier_prompt(sampled, profile, mode)
        tier = model_for_profile(profile, model_override)

        try:
            raw = await self._client.complete(
                self._settings.model_name(tier.value), [TextPart(text=prompt)]
            )
        except Exception as e:
            logger.warning("Verifier call failed (%s): %s", profile, e)
            return None

        score = parse_verifier_score(raw or "")
        if score is None:
            logger.info("Verifier answer unparseable for %s profile", profile)
        return score

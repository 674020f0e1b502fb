# src/pipeline/escalation.py - v3
"""Escalation controller: try profiles in order until one is accepted.

Per attempt: run inference (full text joined before scoring), score with the
heuristic, consult the verifier only near the bar, then accept, escalate or
fail. The last candidate is always accepted on quality grounds; only a
transport failure on the last candidate fails the request. Caching is left
to the caller so that only accepted results are ever persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from docscribe.config.profiles import (
    PDF_ESCALATION_THRESHOLD,
    PROFILE_LABELS,
    ModelTier,
    OptimizationProfile,
    get_policy,
)
from docscribe.core.models import AnalysisEvent, AnalysisMode, AttemptResult
from docscribe.logging.context import set_attempt_context
from docscribe.pipeline.stream import EventChannel
from docscribe.quality.heuristic import evaluate_quality
from docscribe.quality.verifier import (
    IMAGE_VERIFICATION_MARGIN,
    PDF_VERIFICATION_MARGIN,
    QualityVerifier,
    blend_scores,
    needs_verification,
)
from docscribe.tracking.token_estimator import estimate_text_tokens

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Base class for errors that terminate a transcription request."""


class AnalysisFailedError(TranscriptionError):
    """Request aborted: the last candidate profile failed to generate."""


class SpanResolutionError(TranscriptionError):
    """No candidate profile was available to resolve a span."""


@dataclass(frozen=True)
class AttemptOutput:
    """Raw result of running one profile: full text plus input estimate."""

    text: str
    estimated_input_tokens: int = 0


EstimateInput = Callable[[OptimizationProfile], int]
RunAttempt = Callable[[OptimizationProfile], Awaitable[AttemptOutput]]


def required_pdf_score(profile: OptimizationProfile) -> float:
    """Bar for a whole-PDF attempt; accuracy accepts anything."""
    profile = OptimizationProfile(profile)
    if profile == OptimizationProfile.ACCURACY:
        return 0.0
    return max(PDF_ESCALATION_THRESHOLD, get_policy(profile).min_quality_score - 0.1)


def required_span_score(profile: OptimizationProfile) -> float:
    """Bar for an image span: the profile minimum as-is."""
    return get_policy(profile).min_quality_score


class EscalationController:
    """Runs the accept/escalate/fail state machine over candidate profiles."""

    def __init__(
        self,
        mode: AnalysisMode,
        events: EventChannel,
        verifier: QualityVerifier | None = None,
        model_override: ModelTier | None = None,
    ) -> None:
        self._mode = mode
        self._events = events
        self._verifier = verifier
        self._model_override = model_override
        if mode == "pdf":
            self._required = required_pdf_score
            self._margin = PDF_VERIFICATION_MARGIN
            self._failure_prefix = "Analysis failed"
        else:
            self._required = required_span_score
            self._margin = IMAGE_VERIFICATION_MARGIN
            self._failure_prefix = "Image sequence analysis failed"

    async def resolve(
        self,
        candidates: Sequence[OptimizationProfile],
        run_attempt: RunAttempt,
        estimate_input: EstimateInput,
        label: str = "",
    ) -> AttemptResult:
        """Walk candidates forward and return the accepted attempt.

        Args:
            candidates: Ordered profiles to try; never reordered or skipped.
            run_attempt: Runs inference for a profile and returns full text.
            estimate_input: Input-token estimate announced on profile-start.
            label: Message prefix, e.g. "Pages 3-3: ".

        Raises:
            AnalysisFailedError: The last candidate failed to generate.
            SpanResolutionError: There was no candidate to try.
        """
        if not candidates:
            raise SpanResolutionError("Could not resolve span with available profiles.")

        last_index = len(candidates) - 1
        for index, profile in enumerate(candidates):
            profile = OptimizationProfile(profile)
            is_last = index == last_index
            name = PROFILE_LABELS[profile]
            set_attempt_context(profile.value)

            self._events.emit(AnalysisEvent(
                type="profile-start",
                profile=profile,
                message=f"{label}Running {name} profile...",
                estimated_input_tokens=estimate_input(profile),
            ))

            try:
                output = await run_attempt(profile)
            except Exception as e:
                if is_last:
                    raise AnalysisFailedError(
                        f"{self._failure_prefix}: {str(e) or type(e).__name__}"
                    ) from e
                logger.warning("%s profile failed: %s", name, e)
                self._events.emit(AnalysisEvent(
                    type="profile-escalated",
                    profile=profile,
                    message=f"{label}{name} failed; escalating automatically.",
                ))
                continue

            result = await self._score(output, profile)
            accepted = result.quality_score >= self._required(profile) or is_last

            if accepted:
                self._events.emit(self._scored_event(
                    "profile-accepted", result, f"{label}Accepted {name} profile.",
                ))
                return result

            self._events.emit(self._scored_event(
                "profile-escalated",
                result,
                f"{label}Quality signal is low ({result.quality_score:.2f}). "
                "Escalating automatically.",
            ))

        # Unreachable: the last candidate either returns or raises.
        raise SpanResolutionError("Could not resolve span with available profiles.")

    async def _score(self, output: AttemptOutput, profile: OptimizationProfile) -> AttemptResult:
        assessment = evaluate_quality(output.text, self._mode)
        required = self._required(profile)

        verification: float | None = None
        if self._verifier is not None and needs_verification(
            assessment.score, required, self._margin
        ):
            verification = await self._verifier.verify(
                output.text, profile, self._model_override, self._mode
            )

        quality = blend_scores(assessment.score, verification)
        logger.debug(
            "Scored %s attempt: heuristic=%.3f verifier=%s effective=%.3f required=%.3f",
            profile.value, assessment.score, verification, quality, required,
        )
        return AttemptResult(
            text=output.text,
            profile=profile,
            assessment=assessment,
            quality_score=quality,
            verification_score=verification,
            estimated_input_tokens=output.estimated_input_tokens,
            estimated_output_tokens=estimate_text_tokens(output.text),
        )

    @staticmethod
    def _scored_event(event_type: str, result: AttemptResult, message: str) -> AnalysisEvent:
        return AnalysisEvent(
            type=event_type,  # type: ignore[arg-type]
            profile=result.profile,
            message=message,
            quality_score=result.quality_score,
            reasons=result.assessment.reasons,
            estimated_input_tokens=result.estimated_input_tokens,
            estimated_output_tokens=result.estimated_output_tokens,
            verification_score=result.verification_score,
        )

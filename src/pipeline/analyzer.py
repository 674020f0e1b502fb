# src/pipeline/analyzer.py - v5
"""Analysis entry points: PDF and ordered image sequences.

Both return a lazy, finite async stream of text chunks. A cache hit replays
the stored text; a miss drives the escalation controller and only the
accepted text is streamed and cached. Lifecycle events go to the optional
observer and never alter the chunks.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, AsyncGenerator, AsyncIterator, Sequence

from docscribe.cache.base_cache_store import utc_now
from docscribe.cache.fingerprint import build_image_cache_key, build_pdf_cache_key
from docscribe.cache.models import CacheEntry
from docscribe.config.profiles import (
    PROFILE_LABELS,
    ModelTier,
    OptimizationProfile,
    get_policy,
    max_profile,
    model_for_profile,
    resolve_image_candidates,
    resolve_pdf_candidates,
)
from docscribe.config.settings import Settings
from docscribe.core.models import (
    AnalysisEvent,
    ImageDocument,
    PdfDocument,
    SpanResolution,
)
from docscribe.imaging.preprocessor import preprocess_span
from docscribe.llm.models import ContentPart, InlineMedia, TextPart
from docscribe.logging.context import bind_stream_context, set_span_context
from docscribe.pipeline.carry_context import extract_carry_context
from docscribe.pipeline.escalation import AttemptOutput, EscalationController
from docscribe.pipeline.prompts import build_image_prompt, build_pdf_prompt
from docscribe.pipeline.stream import (
    EventChannel,
    EventObserver,
    SequenceAccumulator,
    chunk_text,
    replay_text,
)
from docscribe.quality.verifier import QualityVerifier
from docscribe.tracking.token_estimator import (
    estimate_inline_batch_tokens,
    estimate_inline_data_tokens,
    estimate_text_tokens,
)

if TYPE_CHECKING:
    from docscribe.cache.base_cache_store import BaseCacheStore
    from docscribe.llm.base_client import BaseInferenceClient

logger = logging.getLogger(__name__)


class DocumentAnalyzer:
    """Adaptive quality/cost transcription of PDFs and image sequences.

    One instance may serve concurrent requests: all per-request state
    (accumulated text, quality floor, cursor) lives inside the generators.
    """

    def __init__(
        self,
        client: BaseInferenceClient,
        cache_store: BaseCacheStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._client = client
        self._cache = cache_store
        self._settings = settings or Settings()
        self._verifier = (
            QualityVerifier(client, self._settings) if self._settings.verifier_enabled else None
        )

    # --- PDF ---

    async def analyze_pdf_stream(
        self,
        document: PdfDocument,
        prompt: str = "",
        model_override: ModelTier | None = None,
        on_event: EventObserver | None = None,
    ) -> AsyncIterator[str]:
        """Stream the accepted transcription of a PDF.

        Raises:
            AnalysisFailedError: The last candidate profile failed to generate.
        """
        steps = self._pdf_steps(document, prompt, model_override, on_event)
        async for chunk in bind_stream_context(steps, _request_id(), "pdf"):
            yield chunk

    async def _pdf_steps(
        self,
        document: PdfDocument,
        prompt: str,
        model_override: ModelTier | None,
        on_event: EventObserver | None,
    ) -> AsyncGenerator[str, None]:
        events = EventChannel(on_event)
        encoded = document.encoded
        cache_key = build_pdf_cache_key(encoded, prompt)

        cached = await self._cache_get(cache_key)
        if cached is not None:
            name = PROFILE_LABELS[cached.profile]
            self._emit_cache_hit(
                events, cached,
                f"Cache hit: reused {name} result",
                f"Completed with {name} profile (cached).",
            )
            async for chunk in replay_text(cached.text, self._settings.stream_chunk_size):
                yield chunk
            return

        logger.info("Analyzing PDF %s (%d bytes)", document.name, document.size)
        candidates = resolve_pdf_candidates(encoded, model_override)
        controller = EscalationController("pdf", events, self._verifier, model_override)
        media_tokens = estimate_inline_data_tokens(encoded)

        def estimate_input(profile: OptimizationProfile) -> int:
            return media_tokens + estimate_text_tokens(build_pdf_prompt(prompt, profile))

        async def run_attempt(profile: OptimizationProfile) -> AttemptOutput:
            parts: list[ContentPart] = [
                InlineMedia(mime_type=document.media_type or "application/pdf", data=encoded),
                TextPart(text=build_pdf_prompt(prompt, profile)),
            ]
            text = await self._generate(profile, model_override, parts)
            return AttemptOutput(text=text, estimated_input_tokens=estimate_input(profile))

        result = await controller.resolve(candidates, run_attempt, estimate_input)

        await self._cache_put(cache_key, CacheEntry(
            created_at=self._cache_now(),
            text=result.text,
            profile=result.profile,
            quality=result.quality_score,
        ))

        for chunk in chunk_text(result.text, self._settings.stream_chunk_size):
            yield chunk

        events.emit(AnalysisEvent(
            type="completed",
            profile=result.profile,
            message=f"Completed with {PROFILE_LABELS[result.profile]} profile.",
            quality_score=result.quality_score,
            reasons=result.assessment.reasons,
            estimated_input_tokens=result.estimated_input_tokens,
            estimated_output_tokens=result.estimated_output_tokens,
            verification_score=result.verification_score,
        ))

    async def analyze_pdf(
        self,
        document: PdfDocument,
        prompt: str = "",
        model_override: ModelTier | None = None,
        on_event: EventObserver | None = None,
    ) -> str:
        """Collect analyze_pdf_stream into one string."""
        return "".join([
            chunk async for chunk in self.analyze_pdf_stream(
                document, prompt, model_override, on_event
            )
        ])

    # --- Image sequences ---

    async def analyze_image_sequence_stream(
        self,
        images: Sequence[ImageDocument],
        prompt: str = "",
        model_override: ModelTier | None = None,
        on_event: EventObserver | None = None,
    ) -> AsyncIterator[str]:
        """Stream the accepted transcription of ordered page images.

        Spans are resolved one after another; each carries a short context
        snippet from the previous accepted span. The whole sequence is cached
        once every span is accepted.

        Raises:
            ValueError: If no images are given.
            AnalysisFailedError: A span's last candidate failed to generate.
            SpanResolutionError: A span had no candidate profile.
        """
        if not images:
            raise ValueError("No images to analyze")

        steps = self._image_steps(images, prompt, model_override, on_event)
        async for chunk in bind_stream_context(steps, _request_id(), "image"):
            yield chunk

    async def _image_steps(
        self,
        images: Sequence[ImageDocument],
        prompt: str,
        model_override: ModelTier | None,
        on_event: EventObserver | None,
    ) -> AsyncGenerator[str, None]:
        events = EventChannel(on_event)
        cache_key = build_image_cache_key(images, prompt, model_override)

        cached = await self._cache_get(cache_key)
        if cached is not None:
            self._emit_cache_hit(
                events, cached,
                f"Cache hit: reused sequence result ({PROFILE_LABELS[cached.profile]} max profile).",
                "Completed with cached result.",
            )
            async for chunk in replay_text(cached.text, self._settings.stream_chunk_size):
                yield chunk
            return

        candidates = resolve_image_candidates(model_override)
        controller = EscalationController("image", events, self._verifier, model_override)
        accumulator = SequenceAccumulator()
        cursor = 0
        carry_context = ""
        highest = candidates[0] if candidates else OptimizationProfile.ECONOMY
        min_quality = 1.0
        total_input = 0
        total_output = 0

        logger.info("Analyzing image sequence of %d pages", len(images))
        while cursor < len(images):
            resolved = await self._resolve_span(
                images, cursor, prompt, carry_context, candidates, controller, model_override
            )

            highest = max_profile(highest, resolved.profile)
            min_quality = min(min_quality, resolved.quality_score)
            total_input += resolved.estimated_input_tokens
            total_output += resolved.estimated_output_tokens

            delta = accumulator.append(resolved.text)
            for chunk in chunk_text(delta, self._settings.stream_chunk_size):
                yield chunk

            carry_context = extract_carry_context(
                resolved.text.strip(), get_policy(resolved.profile).carry_context_chars
            )
            cursor += resolved.consumed

        if not accumulator.text:
            min_quality = 0.0

        await self._cache_put(cache_key, CacheEntry(
            created_at=self._cache_now(),
            text=accumulator.text,
            profile=highest,
            quality=min_quality,
        ))

        events.emit(AnalysisEvent(
            type="completed",
            profile=highest,
            message=f"Completed image sequence with max profile {PROFILE_LABELS[highest]}.",
            quality_score=min_quality,
            estimated_input_tokens=total_input,
            estimated_output_tokens=total_output,
        ))

    async def analyze_image_sequence(
        self,
        images: Sequence[ImageDocument],
        prompt: str = "",
        model_override: ModelTier | None = None,
        on_event: EventObserver | None = None,
    ) -> str:
        """Collect analyze_image_sequence_stream into one string."""
        return "".join([
            chunk async for chunk in self.analyze_image_sequence_stream(
                images, prompt, model_override, on_event
            )
        ])

    async def _resolve_span(
        self,
        images: Sequence[ImageDocument],
        start_index: int,
        prompt: str,
        carry_context: str,
        candidates: list[OptimizationProfile],
        controller: EscalationController,
        model_override: ModelTier | None,
    ) -> SpanResolution:
        span = list(images[start_index:start_index + self._settings.image_span_size])
        start_page = start_index + 1
        end_page = start_index + len(span)
        total_pages = len(images)
        set_span_context(f"{start_page}-{end_page}")

        def compose(profile: OptimizationProfile) -> str:
            return build_image_prompt(
                prompt, profile, start_page, end_page, total_pages, carry_context
            )

        def estimate_input(profile: OptimizationProfile) -> int:
            return estimate_text_tokens(compose(profile)) + estimate_inline_batch_tokens(
                img.encoded for img in span
            )

        async def run_attempt(profile: OptimizationProfile) -> AttemptOutput:
            composed = compose(profile)
            prepared = await preprocess_span(span, profile, self._settings.preprocess_concurrency)
            parts: list[ContentPart] = [
                InlineMedia(mime_type=p.mime_type, data=p.data) for p in prepared
            ]
            parts.append(TextPart(text=composed))
            text = await self._generate(profile, model_override, parts)
            estimated = estimate_text_tokens(composed) + estimate_inline_batch_tokens(
                p.data for p in prepared
            )
            return AttemptOutput(text=text, estimated_input_tokens=estimated)

        result = await controller.resolve(
            candidates, run_attempt, estimate_input, label=f"Pages {start_page}-{end_page}: "
        )
        return SpanResolution(**result.model_dump(), consumed=len(span))

    # --- Helpers ---

    async def _generate(
        self,
        profile: OptimizationProfile,
        model_override: ModelTier | None,
        parts: list[ContentPart],
    ) -> str:
        """Run a streamed call and join every fragment before scoring."""
        model = self._settings.model_name(model_for_profile(profile, model_override).value)
        fragments = [piece async for piece in self._client.stream(model, parts)]
        return "".join(fragments)

    def _emit_cache_hit(
        self, events: EventChannel, cached: CacheEntry, hit_message: str, done_message: str
    ) -> None:
        estimated_output = estimate_text_tokens(cached.text)
        for event_type, message in (("cache-hit", hit_message), ("completed", done_message)):
            events.emit(AnalysisEvent(
                type=event_type,  # type: ignore[arg-type]
                profile=cached.profile,
                message=message,
                quality_score=cached.quality,
                estimated_output_tokens=estimated_output,
            ))

    async def _cache_get(self, key: str) -> CacheEntry | None:
        if self._cache is None:
            return None
        return await self._cache.get(key)

    async def _cache_put(self, key: str, entry: CacheEntry) -> None:
        if self._cache is not None:
            await self._cache.put(key, entry)

    def _cache_now(self) -> datetime:
        return self._cache.now() if self._cache is not None else utc_now()


def _request_id() -> str:
    return uuid.uuid4().hex[:12]

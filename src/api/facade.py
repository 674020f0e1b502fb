# src/api/facade.py - v2
"""Public API facade: transcribe local files with settings-driven wiring.

Usage:
    from docscribe.api.facade import transcribe_pdf
    text = await transcribe_pdf("scan.pdf")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from docscribe.cache.cache_factory import create_cache_store
from docscribe.config.profiles import DEFAULT_IMAGE_PROMPT, DEFAULT_PDF_PROMPT, ModelTier
from docscribe.config.settings import Settings
from docscribe.core.models import ImageDocument, PdfDocument
from docscribe.llm.client_factory import create_inference_client
from docscribe.pipeline.analyzer import DocumentAnalyzer

if TYPE_CHECKING:
    from docscribe.cache.base_cache_store import BaseCacheStore
    from docscribe.llm.base_client import BaseInferenceClient
    from docscribe.pipeline.stream import EventObserver

logger = logging.getLogger(__name__)


def build_analyzer(
    settings: Settings | None = None,
    client: BaseInferenceClient | None = None,
    cache_store: BaseCacheStore | None = None,
) -> DocumentAnalyzer:
    """Wire an analyzer from settings; explicit collaborators take precedence."""
    settings = settings or Settings()
    client = client or create_inference_client(settings=settings)
    if cache_store is None:
        cache_store = create_cache_store(settings)
    return DocumentAnalyzer(client, cache_store=cache_store, settings=settings)


async def transcribe_pdf(
    path: Path | str,
    prompt: str = DEFAULT_PDF_PROMPT,
    model_override: ModelTier | None = None,
    on_event: EventObserver | None = None,
    analyzer: DocumentAnalyzer | None = None,
) -> str:
    """Transcribe a local PDF to Markdown.

    Raises:
        FileNotFoundError: If the file does not exist.
        AnalysisFailedError: If every candidate profile failed to generate.
    """
    document = PdfDocument.from_path(path)
    analyzer = analyzer or build_analyzer()
    return await analyzer.analyze_pdf(document, prompt, model_override, on_event)


async def transcribe_images(
    paths: Sequence[Path | str],
    prompt: str = DEFAULT_IMAGE_PROMPT,
    model_override: ModelTier | None = None,
    on_event: EventObserver | None = None,
    analyzer: DocumentAnalyzer | None = None,
) -> str:
    """Transcribe ordered page images to one Markdown document.

    Raises:
        FileNotFoundError: If a file does not exist.
        ValueError: If no paths are given.
    """
    images = [ImageDocument.from_path(p) for p in paths]
    analyzer = analyzer or build_analyzer()
    return await analyzer.analyze_image_sequence(images, prompt, model_override, on_event)

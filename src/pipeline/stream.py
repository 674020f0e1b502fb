# src/pipeline/stream.py - v2
"""Output stream assembly and the lifecycle event channel.

Chunks are fixed-size slices of accepted text only, whether the text comes
from the cache or from a live run. Events travel on a separate channel and
never change what the chunk stream yields.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Callable, Iterator

from docscribe.config.profiles import OUTPUT_STREAM_CHUNK_SIZE
from docscribe.core.models import AnalysisEvent

logger = logging.getLogger(__name__)

EventObserver = Callable[[AnalysisEvent], None]


def chunk_text(text: str, size: int = OUTPUT_STREAM_CHUNK_SIZE) -> Iterator[str]:
    """Yield consecutive slices of at most `size` characters."""
    if size <= 0:
        raise ValueError("chunk size must be > 0")
    for cursor in range(0, len(text), size):
        yield text[cursor:cursor + size]


async def replay_text(text: str, size: int = OUTPUT_STREAM_CHUNK_SIZE) -> AsyncIterator[str]:
    """Async view of chunk_text, used for cache hits and accepted attempts."""
    for chunk in chunk_text(text, size):
        yield chunk


class EventChannel:
    """Delivers events to an optional observer, in emission order.

    Observer errors are logged and dropped so they cannot disturb the
    analysis.
    """

    def __init__(self, observer: EventObserver | None = None) -> None:
        self._observer = observer

    def emit(self, event: AnalysisEvent) -> None:
        logger.info("[%s] %s: %s", event.type, event.profile.value, event.message)
        if self._observer is None:
            return
        try:
            self._observer(event)
        except Exception as e:
            logger.warning("Event observer raised on %s: %s", event.type, e)


class SequenceAccumulator:
    """Joins accepted span texts, separated by a blank line."""

    def __init__(self) -> None:
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def append(self, span_text: str) -> str:
        """Add a span's trimmed text and return the delta to yield ('' if none)."""
        normalized = span_text.strip()
        if not normalized:
            return ""
        delta = f"\n\n{normalized}" if self._text else normalized
        self._text += delta
        return delta

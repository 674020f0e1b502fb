# tests/unit/pipeline/test_stream.py - v2
"""Tests for pipeline/stream.py: chunking, events and accumulation."""

from __future__ import annotations

import logging

import pytest

from docscribe.config.profiles import OptimizationProfile
from docscribe.core.models import AnalysisEvent
from docscribe.pipeline.stream import (
    EventChannel,
    SequenceAccumulator,
    chunk_text,
    replay_text,
)


def _event(message: str = "m") -> AnalysisEvent:
    return AnalysisEvent(
        type="profile-start", profile=OptimizationProfile.ECONOMY, message=message
    )


class TestChunkText:
    def test_exact_slices(self):
        assert list(chunk_text("abcdefg", 3)) == ["abc", "def", "g"]

    def test_empty(self):
        assert list(chunk_text("", 3)) == []

    def test_concatenation_is_identity(self):
        text = "x" * 3001
        assert "".join(chunk_text(text)) == text
        assert [len(c) for c in chunk_text(text)] == [1400, 1400, 201]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunk_text("abc", 0))

    @pytest.mark.asyncio
    async def test_replay(self):
        assert [c async for c in replay_text("abcd", 2)] == ["ab", "cd"]


class TestEventChannel:
    def test_delivers_in_order(self):
        seen = []
        channel = EventChannel(seen.append)
        channel.emit(_event("a"))
        channel.emit(_event("b"))
        assert [e.message for e in seen] == ["a", "b"]

    def test_observer_error_suppressed(self, caplog):
        def explode(event):
            raise RuntimeError("observer bug")

        channel = EventChannel(explode)
        with caplog.at_level(logging.WARNING, logger="docscribe.pipeline.stream"):
            channel.emit(_event())
        assert "observer bug" in caplog.text

    def test_no_observer(self):
        EventChannel().emit(_event())


class TestSequenceAccumulator:
    def test_separator(self):
        acc = SequenceAccumulator()
        assert acc.append("  one  ") == "one"
        assert acc.append("two\n") == "\n\ntwo"
        assert acc.text == "one\n\ntwo"

    def test_empty_span_adds_nothing(self):
        acc = SequenceAccumulator()
        acc.append("one")
        assert acc.append("   ") == ""
        assert acc.text == "one"

# src/llm/base_client.py - v2
"""Abstract inference client interface.

Adapters translate ordered content parts into a provider request and expose
two calls: a streamed transcription and a single-shot completion. Any
provider or transport failure surfaces as InferenceError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from docscribe.llm.models import ContentPart


class InferenceError(Exception):
    """Inference call failed (transport, quota, blocked generation...)."""


class BaseInferenceClient(ABC):
    """Unified interface for inference providers."""

    @abstractmethod
    def stream(self, model: str, parts: list[ContentPart]) -> AsyncIterator[str]:
        """Stream text fragments; concatenated in order they form the output."""

    @abstractmethod
    async def complete(self, model: str, parts: list[ContentPart]) -> str:
        """Non-streaming single-shot completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (google, anthropic)."""

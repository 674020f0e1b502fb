# src/llm/adapters/anthropic_adapter.py - v3
"""Anthropic Claude adapter implementing BaseInferenceClient.

Uses the official anthropic SDK. PDFs are sent as document blocks and
images as image blocks, both base64.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from docscribe.llm.base_client import BaseInferenceClient, InferenceError
from docscribe.llm.models import ContentPart, InlineMedia

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseInferenceClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        api_key: str | None = None,
        max_output_tokens: int = 32768,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._max_output_tokens = max_output_tokens
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            try:
                import anthropic
            except ImportError as e:
                raise ImportError(
                    "anthropic package required: pip install anthropic"
                ) from e
            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self.__client

    def _build_kwargs(self, model: str, parts: list[ContentPart]) -> dict[str, Any]:
        return {
            "model": model,
            "max_tokens": self._max_output_tokens,
            "messages": [{"role": "user", "content": self._to_blocks(parts)}],
        }

    @staticmethod
    def _to_blocks(parts: list[ContentPart]) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, InlineMedia):
                block_type = "document" if part.mime_type == "application/pdf" else "image"
                blocks.append({
                    "type": block_type,
                    "source": {
                        "type": "base64",
                        "media_type": part.mime_type,
                        "data": part.data,
                    },
                })
            else:
                blocks.append({"type": "text", "text": part.text})
        return blocks

    async def stream(self, model: str, parts: list[ContentPart]) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(**self._build_kwargs(model, parts)) as s:
                async for text in s.text_stream:
                    if text:
                        yield text
        except ImportError:
            raise
        except Exception as e:
            raise InferenceError(str(e) or type(e).__name__) from e

    async def complete(self, model: str, parts: list[ContentPart]) -> str:
        try:
            response = await self._client.messages.create(**self._build_kwargs(model, parts))
        except ImportError:
            raise
        except Exception as e:
            raise InferenceError(str(e) or type(e).__name__) from e
        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

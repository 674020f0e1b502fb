# src/llm/adapters/google_adapter.py - v2
"""Google Gemini adapter implementing BaseInferenceClient.

Uses google-generativeai SDK. PDFs and images are sent as inline_data parts.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from docscribe.llm.base_client import BaseInferenceClient, InferenceError
from docscribe.llm.models import ContentPart, InlineMedia

logger = logging.getLogger(__name__)


class GoogleAdapter(BaseInferenceClient):
    """Google Gemini adapter."""

    def __init__(self, api_key: str = "", max_output_tokens: int = 32768, **kwargs: Any):
        self._api_key = api_key
        self._max_output_tokens = max_output_tokens

    def _model(self, model: str):
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(model)

    @staticmethod
    def _to_parts(parts: list[ContentPart]) -> list[dict[str, Any]]:
        converted: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, InlineMedia):
                converted.append(
                    {"inline_data": {"mime_type": part.mime_type, "data": part.raw_bytes()}}
                )
            else:
                converted.append({"text": part.text})
        return converted

    async def stream(self, model: str, parts: list[ContentPart]) -> AsyncIterator[str]:
        try:
            response = await self._model(model).generate_content_async(
                self._to_parts(parts),
                generation_config={"max_output_tokens": self._max_output_tokens},
                stream=True,
            )
            async for chunk in response:
                piece = _chunk_text(chunk)
                if piece:
                    yield piece
        except (InferenceError, ImportError):
            raise
        except Exception as e:
            raise InferenceError(str(e) or type(e).__name__) from e

    async def complete(self, model: str, parts: list[ContentPart]) -> str:
        try:
            resp = await self._model(model).generate_content_async(
                self._to_parts(parts),
                generation_config={"max_output_tokens": self._max_output_tokens},
            )
        except ImportError:
            raise
        except Exception as e:
            raise InferenceError(str(e) or type(e).__name__) from e
        return _chunk_text(resp)

    @property
    def provider_name(self) -> str:
        return "google"


def _chunk_text(chunk: Any) -> str:
    """Text of a response chunk; chunks without text parts yield ''."""
    try:
        return chunk.text or ""
    except ValueError:
        return ""

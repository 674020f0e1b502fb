# src/llm/models.py - v2
"""Inference request types: content parts sent to a model."""

from __future__ import annotations

import base64
from typing import Literal, Union

from pydantic import BaseModel


class InlineMedia(BaseModel):
    """Inline-encoded media part (PDF or image), base64 data."""

    kind: Literal["media"] = "media"
    mime_type: str
    data: str

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class TextPart(BaseModel):
    """Plain text part."""

    kind: Literal["text"] = "text"
    text: str


ContentPart = Union[InlineMedia, TextPart]

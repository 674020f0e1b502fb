# tests/conftest.py - v2
"""Shared test fixtures for unit tests.

Provides a scripted fake inference client, sample transcriptions, page
images and settings. No network access: all inference is faked.
"""

from __future__ import annotations

import base64
import io
from typing import AsyncIterator

import pytest
from PIL import Image

from docscribe.cache.memory_store import MemoryCacheStore
from docscribe.config.settings import Settings
from docscribe.core.models import ImageDocument, PdfDocument
from docscribe.llm.base_client import BaseInferenceClient
from docscribe.llm.models import ContentPart

CLEAN_TEXT = """# Annual Report

The committee met on the first Monday of the month to review the accounts.
All members were present and the minutes of the previous meeting were read.

## Finances

| Year | Income | Expenses |
| 2023 | 1200 | 900 |
| 2024 | 1350 | 1010 |

The treasurer reported a modest surplus for the second consecutive year."""

BAD_TEXT = "x"


class FakeInferenceClient(BaseInferenceClient):
    """Inference client that replays scripted answers in call order.

    Script items are strings (answer text) or exceptions (raised when the
    call is made). An exhausted script answers with an empty string.
    """

    def __init__(
        self,
        stream_script: list[str | Exception] | None = None,
        complete_script: list[str | Exception] | None = None,
    ) -> None:
        self.stream_script = list(stream_script or [])
        self.complete_script = list(complete_script or [])
        self.stream_calls: list[tuple[str, list[ContentPart]]] = []
        self.complete_calls: list[tuple[str, list[ContentPart]]] = []

    async def stream(self, model: str, parts: list[ContentPart]) -> AsyncIterator[str]:
        self.stream_calls.append((model, parts))
        item = self.stream_script.pop(0) if self.stream_script else ""
        if isinstance(item, Exception):
            raise item
        third = max(1, len(item) // 3)
        for start in range(0, len(item), third):
            yield item[start:start + third]

    async def complete(self, model: str, parts: list[ContentPart]) -> str:
        self.complete_calls.append((model, parts))
        item = self.complete_script.pop(0) if self.complete_script else ""
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def provider_name(self) -> str:
        return "fake"


def make_png(width: int = 40, height: int = 20, color=(200, 200, 200)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_image_document(name: str = "page1.png", **kwargs) -> ImageDocument:
    raw = make_png(**kwargs)
    return ImageDocument(
        name=name,
        media_type="image/png",
        size=len(raw),
        last_modified=1_700_000_000_000,
        encoded=base64.b64encode(raw).decode("ascii"),
    )


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, cache_backend="memory")


@pytest.fixture
def memory_cache() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def small_pdf() -> PdfDocument:
    raw = b"%PDF-1.4 sample document body" * 40
    return PdfDocument(
        name="sample.pdf",
        size=len(raw),
        encoded=base64.b64encode(raw).decode("ascii"),
    )


@pytest.fixture
def page_image() -> ImageDocument:
    return make_image_document()


@pytest.fixture
def event_log() -> list:
    return []


@pytest.fixture
def clean_text() -> str:
    return CLEAN_TEXT


@pytest.fixture
def bad_text() -> str:
    return BAD_TEXT


@pytest.fixture
def fake_client_cls() -> type[FakeInferenceClient]:
    return FakeInferenceClient


@pytest.fixture
def image_factory():
    return make_image_document


@pytest.fixture
def png_factory():
    return make_png

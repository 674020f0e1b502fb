# tests/unit/imaging/test_preprocessor.py - v1
"""Tests for imaging/preprocessor.py."""

from __future__ import annotations

import base64
import io

import numpy as np
import pytest
from PIL import Image

from docscribe.config.profiles import OptimizationProfile
from docscribe.core.models import ImageDocument
from docscribe.imaging.preprocessor import (
    plan_contrast,
    prepare_document,
    preprocess_image,
    preprocess_span,
    scale_factor,
)

E, B, A = (
    OptimizationProfile.ECONOMY,
    OptimizationProfile.BALANCED,
    OptimizationProfile.ACCURACY,
)


def _png_from_array(arr: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(arr).save(buffer, format="PNG")
    return buffer.getvalue()


def _faint_page() -> bytes:
    """Two close gray levels: a low-contrast scan."""
    arr = np.full((40, 40, 3), 120, dtype=np.uint8)
    arr[:, 20:] = 140
    return _png_from_array(arr)


def _decode(data: str) -> Image.Image:
    return Image.open(io.BytesIO(base64.b64decode(data)))


class TestScaleFactor:
    def test_no_upscale(self):
        assert scale_factor(100, 50, 1600) == 1.0

    def test_downscale_longest_side(self):
        assert scale_factor(4000, 2000, 1600) == pytest.approx(0.4)


class TestPlanContrast:
    def test_faint_balanced_binarizes(self):
        lum = np.array([[120.0, 140.0]])
        plan = plan_contrast(lum, B)
        assert plan.binarize
        assert plan.gain == pytest.approx(1.7)
        assert plan.threshold == pytest.approx(128.0)

    def test_economy_never_binarizes(self):
        plan = plan_contrast(np.array([[120.0, 140.0]]), E)
        assert not plan.binarize
        assert plan.gain == pytest.approx(1.45)

    def test_accuracy_threshold_offset(self):
        plan = plan_contrast(np.array([[120.0, 140.0]]), A)
        assert plan.threshold == pytest.approx(124.0)

    def test_threshold_clamped(self):
        plan = plan_contrast(np.array([[10.0, 12.0]]), B)
        assert plan.threshold == 70.0

    def test_gain_never_below_one(self):
        plan = plan_contrast(np.array([[0.0, 255.0]]), B)
        assert plan.gain == 1.0
        assert not plan.binarize


class TestPreprocessImage:
    def test_economy_jpeg(self, png_factory):
        out = preprocess_image(png_factory(), E)
        assert out.mime_type == "image/jpeg"
        assert _decode(out.data).format == "JPEG"

    def test_balanced_png(self, png_factory):
        out = preprocess_image(png_factory(), B)
        assert out.mime_type == "image/png"

    def test_downscaled_to_policy(self, png_factory):
        out = preprocess_image(png_factory(width=3000, height=1500), E)
        assert _decode(out.data).size == (1600, 800)

    def test_small_image_not_upscaled(self, png_factory):
        out = preprocess_image(png_factory(width=40, height=20), A)
        assert _decode(out.data).size == (40, 20)

    def test_faint_scan_is_binarized(self):
        out = preprocess_image(_faint_page(), B)
        values = set(np.unique(np.asarray(_decode(out.data).convert("L"))))
        assert values == {0, 255}

    def test_deterministic(self):
        assert preprocess_image(_faint_page(), A) == preprocess_image(_faint_page(), A)

    def test_gray_output(self, png_factory):
        out = preprocess_image(png_factory(color=(200, 30, 30)), B)
        arr = np.asarray(_decode(out.data).convert("RGB"))
        assert (arr[..., 0] == arr[..., 1]).all()


class TestPrepareDocument:
    def test_undecodable_passes_through(self):
        broken = ImageDocument(
            name="broken.png",
            media_type="image/png",
            size=4,
            encoded=base64.b64encode(b"nope").decode("ascii"),
        )
        out = prepare_document(broken, B)
        assert out.data == broken.encoded
        assert out.mime_type == "image/png"


class TestPreprocessSpan:
    @pytest.mark.asyncio
    async def test_order_preserved(self, image_factory):
        pages = [image_factory(f"p{i}.png", width=10 + i, height=10) for i in range(7)]
        prepared = await preprocess_span(pages, A, concurrency=3)
        widths = [_decode(p.data).size[0] for p in prepared]
        assert widths == [10 + i for i in range(7)]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await preprocess_span([], B) == []

# tests/unit/cache/test_fingerprint.py - v1
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

from types import MappingProxyType

from docscribe.cache.fingerprint import (
    build_image_cache_key,
    build_pdf_cache_key,
    fast_hash,
    pdf_content_fingerprint,
    policy_hash,
    sha256_hex,
)
from docscribe.config.profiles import (
    PROFILE_POLICIES,
    ModelTier,
    OptimizationProfile,
)


class TestHashes:
    def test_fast_hash_empty(self):
        assert fast_hash("") == "1505"

    def test_fast_hash_single_char(self):
        assert fast_hash("a") == "2b606"

    def test_fast_hash_stays_32_bit(self):
        assert len(fast_hash("x" * 10_000)) <= 8

    def test_sha256(self):
        assert sha256_hex("abc").startswith("ba7816bf")


class TestPdfKey:
    def test_deterministic(self):
        assert build_pdf_cache_key("QUJD", "p") == build_pdf_cache_key("QUJD", "p")

    def test_prefix(self):
        assert build_pdf_cache_key("QUJD", "p").startswith("ocr-cache:pdf:v4:")

    def test_prompt_changes_key(self):
        assert build_pdf_cache_key("QUJD", "a") != build_pdf_cache_key("QUJD", "b")

    def test_content_changes_key(self):
        assert build_pdf_cache_key("QUJD", "p") != build_pdf_cache_key("QUJE", "p")

    def test_policy_change_changes_key(self):
        changed = dict(PROFILE_POLICIES)
        changed[OptimizationProfile.BALANCED] = changed[
            OptimizationProfile.BALANCED
        ].model_copy(update={"min_quality_score": 0.8})
        assert policy_hash(MappingProxyType(changed)) != policy_hash()
        assert build_pdf_cache_key("QUJD", "p", changed) != build_pdf_cache_key(
            "QUJD", "p"
        )

    def test_fingerprint_samples_middle(self):
        body = "A" * 5000
        altered = body[:2500] + "B" + body[2501:]
        assert pdf_content_fingerprint(body) != pdf_content_fingerprint(altered)


class TestImageKey:
    def test_prefix_auto(self, page_image):
        key = build_image_cache_key([page_image], "p")
        assert key.startswith("ocr-cache:image:v4:auto:")

    def test_override_tag(self, page_image):
        key = build_image_cache_key([page_image], "p", ModelTier.PRO)
        assert key.startswith("ocr-cache:image:v4:pro:")

    def test_order_matters(self, image_factory):
        a = image_factory("a.png", color=(10, 10, 10))
        b = image_factory("b.png", color=(250, 250, 250))
        assert build_image_cache_key([a, b], "p") != build_image_cache_key([b, a], "p")

    def test_metadata_matters(self, page_image):
        moved = page_image.model_copy(update={"last_modified": 1})
        assert build_image_cache_key([page_image], "p") != build_image_cache_key(
            [moved], "p"
        )

# tests/unit/quality/test_verifier.py - v2
"""Tests for quality/verifier.py."""

from __future__ import annotations

import pytest

from docscribe.config.profiles import ModelTier, OptimizationProfile
from docscribe.llm.base_client import InferenceError
from docscribe.quality.verifier import (
    QualityVerifier,
    blend_scores,
    needs_verification,
    parse_verifier_score,
    sample_for_verification,
)


class TestParseScore:
    def test_plain_json(self):
        assert parse_verifier_score('{"score": 0.8, "reason": "ok"}') == pytest.approx(0.8)

    def test_fenced(self):
        assert parse_verifier_score('```json\n{"score":0.6}\n```') == pytest.approx(0.6)

    def test_embedded(self):
        assert parse_verifier_score('Sure! {"score": 0.4} hope it helps') == pytest.approx(0.4)

    def test_clamped(self):
        assert parse_verifier_score('{"score": 3}') == 1.0
        assert parse_verifier_score('{"score": -1}') == 0.0

    def test_non_numeric(self):
        assert parse_verifier_score('{"score": "high"}') is None

    def test_boolean_rejected(self):
        assert parse_verifier_score('{"score": true}') is None

    def test_garbage(self):
        assert parse_verifier_score("no idea") is None

    def test_nan_rejected(self):
        assert parse_verifier_score('{"score": NaN}') is None

    def test_infinity_rejected(self):
        assert parse_verifier_score('{"score": Infinity}') is None
        assert parse_verifier_score('{"score": -Infinity}') is None


class TestSampling:
    def test_short_text_unchanged(self):
        assert sample_for_verification("abc", 10) == "abc"

    def test_head_and_tail(self):
        text = "H" * 100 + "T" * 100
        sampled = sample_for_verification(text, 100)
        assert sampled == "H" * 60 + "\n...\n" + "T" * 40


class TestWindowAndBlend:
    def test_inside_window(self):
        assert needs_verification(0.65, 0.72, 0.12)

    def test_clear_fail(self):
        assert not needs_verification(0.30, 0.72, 0.12)

    def test_clear_pass(self):
        assert not needs_verification(0.95, 0.72, 0.12)

    def test_blend(self):
        assert blend_scores(0.5, 1.0) == pytest.approx(0.5 * 0.78 + 0.22)

    def test_blend_without_verdict(self):
        assert blend_scores(0.5, None) == 0.5


class TestQualityVerifier:
    @pytest.mark.asyncio
    async def test_short_text_scores_zero_without_call(self, fake_client_cls, settings):
        client = fake_client_cls()
        verifier = QualityVerifier(client, settings)
        assert await verifier.verify("tiny", OptimizationProfile.BALANCED) == 0.0
        assert client.complete_calls == []

    @pytest.mark.asyncio
    async def test_uses_profile_model(self, fake_client_cls, settings, clean_text):
        client = fake_client_cls(complete_script=['{"score": 0.9}'])
        verifier = QualityVerifier(client, settings)
        score = await verifier.verify(clean_text, OptimizationProfile.ACCURACY)
        assert score == pytest.approx(0.9)
        assert client.complete_calls[0][0] == settings.model_pro

    @pytest.mark.asyncio
    async def test_override_model(self, fake_client_cls, settings, clean_text):
        client = fake_client_cls(complete_script=['{"score": 0.9}'])
        verifier = QualityVerifier(client, settings)
        await verifier.verify(clean_text, OptimizationProfile.ECONOMY, ModelTier.PRO)
        assert client.complete_calls[0][0] == settings.model_pro

    @pytest.mark.asyncio
    async def test_transport_error_is_no_opinion(self, fake_client_cls, settings, clean_text):
        client = fake_client_cls(complete_script=[InferenceError("503")])
        verifier = QualityVerifier(client, settings)
        assert await verifier.verify(clean_text, OptimizationProfile.BALANCED) is None

    @pytest.mark.asyncio
    async def test_unparseable_is_no_opinion(self, fake_client_cls, settings, clean_text):
        client = fake_client_cls(complete_script=["looks fine"])
        verifier = QualityVerifier(client, settings)
        assert await verifier.verify(clean_text, OptimizationProfile.BALANCED) is None

    @pytest.mark.asyncio
    async def test_nan_score_is_no_opinion(self, fake_client_cls, settings, clean_text):
        client = fake_client_cls(complete_script=['{"score": NaN, "reason": "x"}'])
        verifier = QualityVerifier(client, settings)
        assert await verifier.verify(clean_text, OptimizationProfile.BALANCED) is None

# tests/unit/config/test_profiles.py - v1
"""Tests for config/profiles.py: policy table and candidate selection."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from docscribe.config.profiles import (
    PROFILE_ORDER,
    PROFILE_POLICIES,
    ModelTier,
    OptimizationProfile,
    decide_initial_pdf_profile,
    get_policy,
    max_profile,
    model_for_profile,
    policy_table_payload,
    resolve_image_candidates,
    resolve_pdf_candidates,
)

E, B, A = (
    OptimizationProfile.ECONOMY,
    OptimizationProfile.BALANCED,
    OptimizationProfile.ACCURACY,
)


def _encoded_of_mb(mb: float) -> str:
    """Base64-length string whose decoded size is `mb` megabytes."""
    return "A" * int(mb * 1024 * 1024 / 0.75)


class TestPolicyTable:
    def test_order(self):
        assert PROFILE_ORDER == (E, B, A)

    def test_economy_policy(self):
        p = get_policy(E)
        assert p.model_tier == ModelTier.FLASH
        assert p.max_image_dimension == 1600
        assert p.min_quality_score == 0.58
        assert p.carry_context_chars == 240

    def test_accuracy_uses_pro(self):
        assert get_policy(A).model_tier == ModelTier.PRO
        assert get_policy(A).min_quality_score == 0.0

    def test_get_policy_accepts_string(self):
        assert get_policy("balanced") is PROFILE_POLICIES[B]

    def test_policies_frozen(self):
        with pytest.raises(ValidationError):
            get_policy(E).min_quality_score = 0.1

    def test_table_read_only(self):
        with pytest.raises(TypeError):
            PROFILE_POLICIES[E] = get_policy(A)  # type: ignore[index]


class TestMaxProfile:
    def test_promotes(self):
        assert max_profile(E, B) == B

    def test_never_demotes(self):
        assert max_profile(A, E) == A

    def test_equal(self):
        assert max_profile(B, B) == B


class TestInitialPdfProfile:
    def test_small_starts_balanced(self):
        assert decide_initial_pdf_profile(_encoded_of_mb(1)) == B

    def test_large_starts_economy(self):
        assert decide_initial_pdf_profile(_encoded_of_mb(20)) == E

    def test_middle_starts_economy(self):
        assert decide_initial_pdf_profile(_encoded_of_mb(8)) == E

    def test_empty_is_small(self):
        assert decide_initial_pdf_profile("") == B


class TestPdfCandidates:
    def test_small_no_override(self):
        assert resolve_pdf_candidates(_encoded_of_mb(1)) == [B, A]

    def test_large_no_override(self):
        assert resolve_pdf_candidates(_encoded_of_mb(20)) == [E, B, A]

    def test_pro_override(self):
        assert resolve_pdf_candidates(_encoded_of_mb(20), ModelTier.PRO) == [A]

    def test_flash_override_small(self):
        assert resolve_pdf_candidates(_encoded_of_mb(1), ModelTier.FLASH) == [B]

    def test_flash_override_large(self):
        assert resolve_pdf_candidates(_encoded_of_mb(20), ModelTier.FLASH) == [E, B]


class TestImageCandidates:
    def test_full_order(self):
        assert resolve_image_candidates() == [E, B, A]

    def test_pro(self):
        assert resolve_image_candidates(ModelTier.PRO) == [A]

    def test_flash(self):
        assert resolve_image_candidates(ModelTier.FLASH) == [E, B]


class TestModelForProfile:
    def test_policy_tier(self):
        assert model_for_profile(B) == ModelTier.FLASH
        assert model_for_profile(A) == ModelTier.PRO

    def test_override_wins(self):
        assert model_for_profile(E, ModelTier.PRO) == ModelTier.PRO


class TestPolicyPayload:
    def test_contains_all_profiles(self):
        payload = policy_table_payload()
        assert set(payload["profilePolicies"]) == {"economy", "balanced", "accuracy"}
        assert "outputContract" in payload
        assert payload["profilePolicies"]["economy"]["model_tier"] == "flash"

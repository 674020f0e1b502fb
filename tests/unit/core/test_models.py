# tests/unit/core/test_models.py - v2
"""Tests for core/models.py."""

from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError

from docscribe.config.profiles import OptimizationProfile
from docscribe.core.models import (
    AnalysisEvent,
    ImageDocument,
    PdfDocument,
    QualityAssessment,
)


class TestDocuments:
    def test_pdf_from_path(self, tmp_path):
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.7 body")
        doc = PdfDocument.from_path(path)
        assert doc.name == "scan.pdf"
        assert doc.media_type == "application/pdf"
        assert doc.size == 13
        assert base64.b64decode(doc.encoded) == b"%PDF-1.7 body"

    def test_image_from_path(self, tmp_path, png_factory):
        path = tmp_path / "page1.png"
        raw = png_factory()
        path.write_bytes(raw)
        doc = ImageDocument.from_path(path)
        assert doc.media_type == "image/png"
        assert doc.size == len(raw)
        assert doc.last_modified > 0
        assert doc.raw_bytes() == raw

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PdfDocument.from_path(tmp_path / "missing.pdf")


class TestQualityAssessment:
    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            QualityAssessment(score=1.2)

    def test_frozen(self):
        assessment = QualityAssessment(score=0.5, reasons=("r",))
        with pytest.raises(ValidationError):
            assessment.score = 0.9


class TestAnalysisEvent:
    def test_optional_fields_default_none(self):
        event = AnalysisEvent(
            type="profile-start",
            profile=OptimizationProfile.ECONOMY,
            message="Running Economy profile...",
        )
        assert event.quality_score is None
        assert event.reasons is None
        assert event.verification_score is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisEvent(type="started", profile="economy", message="m")

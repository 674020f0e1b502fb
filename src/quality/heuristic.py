# src/quality/heuristic.py - v2
"""Local quality heuristic for transcriptions.

Pure function of the text: scores start at 1.0 and lose weighted penalties
for corruption signals (replacement characters, placeholders, fragmented
lines, symbol blobs, merged tokens, glyph bursts, short output, missing
structure). Whole-PDF and per-image-span outputs use slightly different
weights, held in HeuristicProfile.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from docscribe.config.profiles import UNREADABLE_PLACEHOLDER
from docscribe.core.models import AnalysisMode, QualityAssessment

REPLACEMENT_CHAR = "�"

_PUNCTUATION_BLOB_RE = re.compile(r"[^\w\s]{5,}")
_LONG_TOKEN_RE = re.compile(r"\S{35,}")
_GLYPH_BURST_RE = re.compile(r"(.)\1{7,}")
_HEADING_RE = re.compile(r"^#{1,6}\s")

_FRAGMENT_LINE_MAX = 2


@dataclass(frozen=True)
class HeuristicProfile:
    """Weights and reason thresholds for one analysis mode."""

    unreadable_weight: float
    placeholder_weight: float
    fragment_weight: float
    min_length: int
    short_penalty: float
    structure_line_threshold: int
    unreadable_reason_rate: float
    placeholder_reason_rate: float
    fragment_reason_rate: float
    reason_unreadable: str
    reason_fragmented: str
    reason_symbols: str
    reason_long_tokens: str
    reason_short: str
    reason_stable: str
    placeholder_cap: float = 0.15
    punctuation_step: float = 0.03
    punctuation_cap: float = 0.25
    long_token_step: float = 0.02
    long_token_cap: float = 0.2
    burst_step: float = 0.04
    burst_cap: float = 0.25
    structure_penalty: float = 0.06


PDF_HEURISTIC = HeuristicProfile(
    unreadable_weight=2.2,
    placeholder_weight=0.6,
    fragment_weight=0.45,
    min_length=120,
    short_penalty=0.25,
    structure_line_threshold=40,
    unreadable_reason_rate=0.003,
    placeholder_reason_rate=0.02,
    fragment_reason_rate=0.35,
    reason_unreadable="High ratio of corrupted replacement characters",
    reason_fragmented="Too many fragmented short lines",
    reason_symbols="Potential OCR artifacts around symbols",
    reason_long_tokens="Unnaturally long tokens may indicate OCR merge errors",
    reason_short="Output is unexpectedly short",
    reason_stable="Transcription quality is stable",
)

IMAGE_HEURISTIC = HeuristicProfile(
    unreadable_weight=2.3,
    placeholder_weight=0.65,
    fragment_weight=0.4,
    min_length=80,
    short_penalty=0.2,
    structure_line_threshold=30,
    unreadable_reason_rate=0.004,
    placeholder_reason_rate=0.025,
    fragment_reason_rate=0.4,
    reason_unreadable="Unreadable replacement character ratio is high",
    reason_fragmented="Fragmented line pattern detected",
    reason_symbols="Symbol artifacts detected",
    reason_long_tokens="Long token merges suggest OCR boundary errors",
    reason_short="Chunk output is unexpectedly short",
    reason_stable="Chunk quality looks stable",
)

_HEURISTICS: dict[str, HeuristicProfile] = {
    "pdf": PDF_HEURISTIC,
    "image": IMAGE_HEURISTIC,
}

REASON_PLACEHOLDERS = "Many unresolved glyph placeholders remain"
REASON_BURSTS = "Repeated glyph bursts detected"
REASON_NO_STRUCTURE = "Long output without any headings or tables"


def normalize_text(text: str) -> str:
    """Drop carriage returns."""
    return text.replace("\r", "")


def normalized_lines(text: str) -> list[str]:
    """Non-empty trimmed lines."""
    return [line.strip() for line in normalize_text(text).split("\n") if line.strip()]


def is_heading(line: str) -> bool:
    return bool(_HEADING_RE.match(line))


def is_table_line(line: str) -> bool:
    return "|" in line


def evaluate_quality(text: str, mode: AnalysisMode = "pdf") -> QualityAssessment:
    """Score a transcription in [0, 1] and explain the penalties.

    Args:
        text: Raw transcription of a whole PDF or of one image span.
        mode: "pdf" or "image"; selects weights and thresholds.

    Returns:
        QualityAssessment with clamped score and ordered reasons.
    """
    h = _HEURISTICS[mode]
    normalized = normalize_text(text)
    chars = max(len(normalized), 1)
    lines = normalized_lines(normalized)
    trimmed_length = len(normalized.strip())

    unreadable_rate = normalized.count(REPLACEMENT_CHAR) / chars
    placeholder_rate = normalized.count(UNREADABLE_PLACEHOLDER) / chars
    punctuation_blobs = len(_PUNCTUATION_BLOB_RE.findall(normalized))
    long_tokens = len(_LONG_TOKEN_RE.findall(normalized))
    glyph_bursts = sum(1 for _ in _GLYPH_BURST_RE.finditer(normalized))

    if lines:
        fragment_rate = sum(1 for line in lines if len(line) <= _FRAGMENT_LINE_MAX) / len(lines)
    else:
        fragment_rate = 1.0

    structure_signal = sum(1 for line in lines if is_heading(line)) + sum(
        1 for line in lines if is_table_line(line)
    )
    too_short = trimmed_length < h.min_length
    missing_structure = structure_signal == 0 and len(lines) > h.structure_line_threshold

    score = 1.0
    score -= unreadable_rate * h.unreadable_weight
    score -= min(h.placeholder_cap, placeholder_rate * h.placeholder_weight)
    score -= fragment_rate * h.fragment_weight
    score -= min(h.punctuation_cap, punctuation_blobs * h.punctuation_step)
    score -= min(h.long_token_cap, long_tokens * h.long_token_step)
    score -= min(h.burst_cap, glyph_bursts * h.burst_step)
    if too_short:
        score -= h.short_penalty
    if missing_structure:
        score -= h.structure_penalty
    score = max(0.0, min(1.0, score))

    reasons: list[str] = []
    if unreadable_rate > h.unreadable_reason_rate:
        reasons.append(h.reason_unreadable)
    if placeholder_rate > h.placeholder_reason_rate:
        reasons.append(REASON_PLACEHOLDERS)
    if fragment_rate > h.fragment_reason_rate:
        reasons.append(h.reason_fragmented)
    if punctuation_blobs > 3:
        reasons.append(h.reason_symbols)
    if long_tokens > 2:
        reasons.append(h.reason_long_tokens)
    if glyph_bursts > 1:
        reasons.append(REASON_BURSTS)
    if too_short:
        reasons.append(h.reason_short)
    if missing_structure:
        reasons.append(REASON_NO_STRUCTURE)
    if not reasons:
        reasons.append(h.reason_stable)

    return QualityAssessment(score=score, reasons=tuple(reasons))

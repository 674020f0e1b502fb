# src/pipeline/prompts.py - v1
"""Prompt composition for PDF attempts and image page spans."""

from __future__ import annotations

from docscribe.config.profiles import OUTPUT_CONTRACT, OptimizationProfile

_NO_INSTRUCTION = "No additional user instruction."

_PDF_HINTS: dict[OptimizationProfile, str] = {
    OptimizationProfile.ECONOMY: (
        "Prioritize direct transcription. Keep output concise and avoid redundant spacing."
    ),
    OptimizationProfile.BALANCED: (
        "Prioritize faithful transcription with moderate OCR corrections for broken words."
    ),
    OptimizationProfile.ACCURACY: (
        "Prioritize maximum fidelity. Resolve ambiguous glyphs from surrounding context when possible."
    ),
}

_IMAGE_HINTS: dict[OptimizationProfile, str] = {
    OptimizationProfile.ECONOMY: (
        "Prioritize concise but faithful transcription for this page span."
    ),
    OptimizationProfile.BALANCED: (
        "Prioritize faithful transcription and repair obvious OCR split words."
    ),
    OptimizationProfile.ACCURACY: (
        "Prioritize maximum fidelity and resolve hard glyphs via neighboring context."
    ),
}


def _user_instruction(prompt: str) -> str:
    return f"User instruction:\n{prompt.strip() or _NO_INSTRUCTION}"


def build_pdf_prompt(prompt: str, profile: OptimizationProfile) -> str:
    """Full text part sent alongside a PDF."""
    return "\n\n".join([
        OUTPUT_CONTRACT,
        _PDF_HINTS[OptimizationProfile(profile)],
        _user_instruction(prompt),
    ])


def build_image_prompt(
    prompt: str,
    profile: OptimizationProfile,
    start_page: int,
    end_page: int,
    total_pages: int,
    carry_context: str,
) -> str:
    """Full text part sent after the images of a page span."""
    if carry_context:
        context_block = f"Context from previous pages (for continuity only):\n{carry_context}"
    else:
        context_block = "No previous page context."

    return "\n\n".join([
        OUTPUT_CONTRACT,
        f"Current page range: {start_page}-{end_page} of {total_pages}.",
        'For this page range, every page must begin with an exact heading: "## pageN" '
        "using the absolute page number in the full document.",
        _IMAGE_HINTS[OptimizationProfile(profile)],
        context_block,
        _user_instruction(prompt),
    ])

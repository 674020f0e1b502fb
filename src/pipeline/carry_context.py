# src/pipeline/carry_context.py - v1
"""Continuity snippet carried from one accepted span into the next prompt.

The snippet only guides the next span (open tables, current section); it is
never appended to the output.
"""

from __future__ import annotations

from docscribe.quality.heuristic import is_heading, is_table_line

_MAX_HEADINGS = 3
_MAX_TABLE_LINES = 3
_MAX_TAIL_LINES = 4


def extract_carry_context(text: str, max_chars: int) -> str:
    """Last headings, last table lines and last lines, de-duplicated.

    The result never exceeds max_chars; when it would, the trailing slice
    is kept.
    """
    if max_chars <= 0:
        return ""

    lines = [line.strip() for line in text.split("\n") if line.strip()]
    headings = [line for line in lines if is_heading(line)][-_MAX_HEADINGS:]
    table_lines = [line for line in lines if is_table_line(line)][-_MAX_TABLE_LINES:]
    tail = lines[-_MAX_TAIL_LINES:]

    merged = list(dict.fromkeys([*headings, *table_lines, *tail]))
    joined = "\n".join(merged)

    if len(joined) <= max_chars:
        return joined
    return joined[len(joined) - max_chars:]

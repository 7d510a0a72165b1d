from __future__ import annotations

import math

from .constants import CHAR_WIDTH_FACTOR


_ESCAPE_TABLE = str.maketrans({
    "\\": "\\\\",
    "(": "\\(",
    ")": "\\)",
    "\n": "\\n",
    "\r": "\\r",
})


def pdf_escape_literal(s: str) -> str:
    # PDF literal string escaping.
    return s.translate(_ESCAPE_TABLE)


def fmt_num(value: float) -> str:
    """Format a number for a content-stream operand (at most 3 decimals)."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def str_width(text: str, font_size: float) -> float:
    """
    Approximate the rendered width of ``text``.

    Every character counts as ``font_size * 0.6``; no font metrics are used.
    """
    return len(text) * font_size * CHAR_WIDTH_FACTOR


def chars_per_line(max_width: float, font_size: float) -> int:
    if font_size <= 0:
        return 1
    return max(1, int(math.floor(max_width / (font_size * CHAR_WIDTH_FACTOR))))


def _wrap_paragraph(words: list[str], max_chars: int, lines: list[str]) -> None:
    current = ""
    for word in words:
        if len(word) > max_chars:
            if current:
                lines.append(current)
                current = ""
            lines.extend(word[i : i + max_chars] for i in range(0, len(word), max_chars))
        elif not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)


def wrap_text(text: str, max_chars: int) -> list[str]:
    """
    Greedy word wrap to at most ``max_chars`` characters per line.

    Words longer than a line are split into fixed-size chunks. Explicit
    newlines start a new paragraph and a blank paragraph yields an empty
    line, so callers keep vertical rhythm for intentional gaps.
    """
    max_chars = max(1, max_chars)
    paragraphs = text.split("\n")
    lines: list[str] = []
    for index, paragraph in enumerate(paragraphs):
        words = paragraph.split()
        if not words:
            # Trailing newline does not add a phantom line.
            if index < len(paragraphs) - 1 or len(paragraphs) == 1:
                lines.append("")
            continue
        _wrap_paragraph(words, max_chars, lines)
    return lines

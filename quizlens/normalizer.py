"""
Text Normalizer
===============
Repairs systematic OCR artifacts in text recognized from UI screenshots.

Rules run in a fixed order, each on the output of the previous one:
    1. Drop junk glyphs (¥ © ® ™)
    2. Bullets (• ·) become "-"
    3. Drop fake radio buttons ("O ", "0 ", "○ ", "◯ ") at line start
    4. Drop a leading "©" token at line start
    5. Blank out lines made only of junk glyphs
    6. Remove CR, trailing whitespace, and collapse blank-line runs
    7. Blank out lines made only of | / \\ (misread separators)
    8. Trim the whole text

The pipeline is repeated until the text stops changing, so normalizing
already-normalized text is a no-op. Every rule either removes characters or
(rule 2) replaces them one-for-one, so the loop always terminates.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# ─── Patterns ─────────────────────────────────────────────────────────────────

# A "©" that opens a line is left for the line-start rule; all others go
JUNK_GLYPH_PATTERN = re.compile(r"^([^\S\n]*©)|[¥©®™]", re.MULTILINE)

BULLET_PATTERN = re.compile(r"[•·]")

# "O static", "○ Anonymous": radio controls read as a letter/digit.
# "Object" or "0x1F" have no whitespace after the glyph and are kept.
FAKE_RADIO_PATTERN = re.compile(r"^[^\S\n]*[O0○◯][^\S\n]+", re.MULTILINE)

LEADING_COPYRIGHT_PATTERN = re.compile(r"^[^\S\n]*©+[^\S\n]*", re.MULTILINE)

JUNK_LINE_PATTERN = re.compile(r"^[^\S\n]*[$¥©]+[^\S\n]*$", re.MULTILINE)

TRAILING_WHITESPACE_PATTERN = re.compile(r"[^\S\n]+\n")

BLANK_RUN_PATTERN = re.compile(r"\n{3,}")

SEPARATOR_LINE_PATTERN = re.compile(r"^[^\S\n]*[|\\/]+[^\S\n]*$", re.MULTILINE)


# ─── Rules ────────────────────────────────────────────────────────────────────


def strip_junk_glyphs(text: str) -> str:
    return JUNK_GLYPH_PATTERN.sub(lambda m: m.group(1) or "", text)


def normalize_bullets(text: str) -> str:
    return BULLET_PATTERN.sub("-", text)


def strip_fake_radio_buttons(text: str) -> str:
    return FAKE_RADIO_PATTERN.sub("", text)


def strip_leading_copyright(text: str) -> str:
    return LEADING_COPYRIGHT_PATTERN.sub("", text)


def blank_junk_lines(text: str) -> str:
    return JUNK_LINE_PATTERN.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Drop CRs and trailing whitespace; at most one blank line in a row."""
    text = text.replace("\r", "")
    text = TRAILING_WHITESPACE_PATTERN.sub("\n", text)
    return BLANK_RUN_PATTERN.sub("\n\n", text)


def blank_separator_lines(text: str) -> str:
    return SEPARATOR_LINE_PATTERN.sub("", text)


def trim(text: str) -> str:
    return text.strip()


RULES: tuple[Callable[[str], str], ...] = (
    strip_junk_glyphs,
    normalize_bullets,
    strip_fake_radio_buttons,
    strip_leading_copyright,
    blank_junk_lines,
    normalize_whitespace,
    blank_separator_lines,
    trim,
)


class TextNormalizer:
    """Applies the ordered rule pipeline until the text is stable."""

    def __init__(self, rules: tuple[Callable[[str], str], ...] = RULES):
        self.rules = rules

    def normalize(self, raw: Optional[str]) -> str:
        """
        Clean raw OCR text.

        Args:
            raw: Text from the OCR backend. None or "" yields "".

        Returns:
            Cleaned text.
        """
        if not raw:
            return ""

        text = raw
        passes = 0
        while True:
            cleaned = self._apply(text)
            passes += 1
            if cleaned == text:
                break
            text = cleaned

        logger.debug(
            f"Normalized {len(raw)} -> {len(text)} chars in {passes} pass(es)"
        )
        return text

    def _apply(self, text: str) -> str:
        for rule in self.rules:
            text = rule(text)
        return text


_default_normalizer = TextNormalizer()


def normalize_text(raw: Optional[str]) -> str:
    """Clean raw OCR text with the default rule pipeline."""
    return _default_normalizer.normalize(raw)

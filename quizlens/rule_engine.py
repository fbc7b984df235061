"""
Answer Rule Engine
==================
Deterministic, rule-based answer detection for "what kind of class is
this?" style Java quiz questions.

Flow:
    cleaned text → question gate → choice candidates →
    structural signatures (priority order, first match wins) → AnswerResult

An answer is only produced when a code signature is present. Weak signals
(option words, question phrasing) alone never produce one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .models import AnswerResult, SignatureKind

logger = logging.getLogger(__name__)

# ─── Question Gate ────────────────────────────────────────────────────────────

# "What type of class is X", "what kind of ..."
QUESTION_PHRASE_PATTERN = re.compile(r"what\b.*\b(?:type|kind)\b", re.IGNORECASE)

# ─── Choice Extraction ────────────────────────────────────────────────────────

MAX_CHOICE_LENGTH = 40

KNOWN_OPTION_WORDS = (
    "static",
    "local",
    "anonymous",
    "shadow",
    "private",
    "public",
    "protected",
)

# Lines starting with these are code, not options
CODE_LINE_PREFIXES = ("class ", "public ")

CODE_CHARACTERS = ("{", "}", ";")

SINGLE_WORD_PATTERN = re.compile(r"^[A-Za-z]+$")

# ─── Structural Signatures ────────────────────────────────────────────────────

# "public void printLabel(String s) {" (type, name, parameter list, brace)
METHOD_HEADER_PATTERN = re.compile(
    r"\b(?!new\b|return\b)[\w<>\[\]]+\s+\w+\s*\([^)]*\)\s*"
    r"(?:throws\s+[\w.,\s]+?)?\{",
    re.IGNORECASE,
)

# "Outer(int size) {" (constructor without modifiers; names are capitalized)
CONSTRUCTOR_HEADER_PATTERN = re.compile(
    r"\b[A-Z]\w*\s*\([^)]*\)\s*(?:throws\s+[\w.,\s]+?)?\{"
)

# "new Outer() {" opens an anonymous class, not a constructor body
NEW_BEFORE_PATTERN = re.compile(r"\bnew\s*$")

# "class ProductCode {}"
EMPTY_CLASS_PATTERN = re.compile(r"\bclass\s+\w+\s*\{\s*\}", re.IGNORECASE)

# "new Comparator<String>() { ... }"
ANONYMOUS_CLASS_PATTERN = re.compile(
    r"\bnew\s+[\w.]+(?:<[^<>]*>)?\s*\([^)]*\)\s*\{[\s\S]*?\}",
    re.IGNORECASE,
)

# "static class Inner"
STATIC_NESTED_CLASS_PATTERN = re.compile(
    r"\bstatic\s+class\s+\w+\b", re.IGNORECASE
)


def _block_end(text: str, open_index: int) -> int:
    """Index of the brace closing the block opened at open_index.

    Returns len(text) when OCR lost the closing brace.
    """
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return len(text)


def _body_headers(text: str):
    """Method and constructor headers, each ending at its opening brace."""
    yield from METHOD_HEADER_PATTERN.finditer(text)
    for header in CONSTRUCTOR_HEADER_PATTERN.finditer(text):
        if not NEW_BEFORE_PATTERN.search(text, 0, header.start()):
            yield header


def has_local_class(text: str) -> bool:
    """A class with an empty body declared inside a method or constructor body."""
    for header in _body_headers(text):
        body_start = header.end()
        body_end = _block_end(text, body_start - 1)
        if EMPTY_CLASS_PATTERN.search(text, body_start, body_end):
            return True
    return False


def has_anonymous_class(text: str) -> bool:
    return ANONYMOUS_CLASS_PATTERN.search(text) is not None


def has_static_nested_class(text: str) -> bool:
    return STATIC_NESTED_CLASS_PATTERN.search(text) is not None


@dataclass(frozen=True)
class Signature:
    """One structural pattern and the answer it implies."""
    kind: SignatureKind
    keyword: str
    label: str
    rationale: str
    matches: Callable[[str], bool]


SIGNATURES: tuple[Signature, ...] = (
    Signature(
        kind=SignatureKind.LOCAL_CLASS,
        keyword="local",
        label="Local",
        rationale=(
            "The class is declared inside a method body, which makes it a "
            "local (method-local) class in Java."
        ),
        matches=has_local_class,
    ),
    Signature(
        kind=SignatureKind.ANONYMOUS_CLASS,
        keyword="anonymous",
        label="Anonymous",
        rationale=(
            "An anonymous class is created with `new Type() { ... }`: a class "
            "body supplied inline with no declared class name."
        ),
        matches=has_anonymous_class,
    ),
    Signature(
        kind=SignatureKind.STATIC_NESTED_CLASS,
        keyword="static",
        label="Static",
        rationale=(
            "A static nested class is declared with the static modifier: "
            "`static class Name { ... }`."
        ),
        matches=has_static_nested_class,
    ),
)


# ─── Choice Helpers ───────────────────────────────────────────────────────────


def extract_choices(cleaned_text: str) -> list[str]:
    """
    Collect short option-like strings from cleaned text.

    Short non-code lines come first, then known option words found anywhere
    in the text (OCR often merges all options onto one line). Duplicates are
    dropped case-insensitively, keeping the first one seen.
    """
    lines = [line.strip() for line in cleaned_text.split("\n")]

    optionish = []
    for line in lines:
        if not line:
            continue
        lower = line.lower()
        if any(c in lower for c in CODE_CHARACTERS):
            continue
        if lower.startswith(CODE_LINE_PREFIXES):
            continue
        if len(lower) > MAX_CHOICE_LENGTH:
            continue
        optionish.append(line)

    lower_text = cleaned_text.lower()
    known = [word for word in KNOWN_OPTION_WORDS if word in lower_text]

    choices: list[str] = []
    seen: set[str] = set()
    for choice in optionish + known:
        key = choice.lower()
        if key not in seen:
            seen.add(key)
            choices.append(choice)
    return choices


def normalize_choice(choice: str) -> str:
    """Capitalize a single-word choice; return anything else verbatim."""
    trimmed = choice.strip()
    if SINGLE_WORD_PATTERN.match(trimmed):
        return trimmed[0].upper() + trimmed[1:]
    return trimmed


def pick_choice(choices: list[str], keyword: str) -> Optional[str]:
    """First choice containing keyword (case-insensitive), normalized."""
    for choice in choices:
        if keyword in choice.lower():
            return normalize_choice(choice)
    return None


# ─── Engine ───────────────────────────────────────────────────────────────────


class AnswerRuleEngine:
    """
    Stateless answer detector. Each detect() call is independent.
    """

    def __init__(self, signatures: tuple[Signature, ...] = SIGNATURES):
        self.signatures = signatures

    def has_question(self, cleaned_text: str) -> bool:
        """True if the text contains "?" or a what-type/kind phrase."""
        return "?" in cleaned_text or bool(
            QUESTION_PHRASE_PATTERN.search(cleaned_text)
        )

    def detect(self, cleaned_text: str, enabled: bool = True) -> AnswerResult:
        """
        Detect the answer for one cleaned text.

        Args:
            cleaned_text: Output of the text normalizer.
            enabled: When False, always returns a non-match.

        Returns:
            A matched AnswerResult, or AnswerResult.no_match().
        """
        if not enabled or not cleaned_text:
            return AnswerResult.no_match()

        if not self.has_question(cleaned_text):
            logger.debug("No question indicator, skipping answer detection")
            return AnswerResult.no_match()

        choices = extract_choices(cleaned_text)

        for signature in self.signatures:
            if not signature.matches(cleaned_text):
                continue

            answer = pick_choice(choices, signature.keyword) or signature.label
            logger.debug(
                f"Signature {signature.kind.value} matched, answer: {answer}"
            )
            return AnswerResult(
                matched=True,
                answer=answer,
                rationale=signature.rationale,
                signature=signature.kind,
            )

        logger.debug(f"No signature matched ({len(choices)} candidate choices)")
        return AnswerResult.no_match()


_default_engine = AnswerRuleEngine()


def detect_answer(cleaned_text: str, enabled: bool = True) -> AnswerResult:
    """Detect an answer with the default signature set."""
    return _default_engine.detect(cleaned_text, enabled)

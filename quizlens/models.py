"""
Data Models
===========
Pydantic models for scan results.
All models are serializable to JSON for export.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

# Separator placed between per-image texts in the accumulated document
DOCUMENT_SEPARATOR = "\n\n---\n\n"


# ─── Enums ────────────────────────────────────────────────────────────────────


class PageSegmentationMode(str, Enum):
    """How the OCR backend should interpret the image layout."""
    AUTO = "auto"
    SINGLE_BLOCK = "block"
    SINGLE_LINE = "line"

    @property
    def tesseract_psm(self) -> int:
        return _TESSERACT_PSM[self]


_TESSERACT_PSM = {
    PageSegmentationMode.AUTO: 3,
    PageSegmentationMode.SINGLE_BLOCK: 6,
    PageSegmentationMode.SINGLE_LINE: 7,
}


class SignatureKind(str, Enum):
    """Structural code signatures recognized by the rule engine."""
    LOCAL_CLASS = "local_class"
    ANONYMOUS_CLASS = "anonymous_class"
    STATIC_NESTED_CLASS = "static_nested_class"


class ItemStatus(str, Enum):
    """Outcome of processing one image."""
    OK = "ok"
    FAILED = "failed"


# ─── Answer Model ─────────────────────────────────────────────────────────────


class AnswerResult(BaseModel):
    """
    Outcome of answer detection for one cleaned text.

    A non-match is a regular value (matched=False), never an exception.
    """
    matched: bool = False
    answer: Optional[str] = None
    rationale: Optional[str] = None
    signature: Optional[SignatureKind] = None

    @classmethod
    def no_match(cls) -> AnswerResult:
        return cls()

    def __bool__(self) -> bool:
        return self.matched


# ─── Item / Batch Models ──────────────────────────────────────────────────────


class ImageResult(BaseModel):
    """Everything produced for a single input image."""
    source: str
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    preprocessed: bool = False
    raw_text: str = Field(
        default="",
        description="Text exactly as returned by the OCR backend"
    )
    cleaned_text: str = ""
    answer: AnswerResult = Field(default_factory=AnswerResult.no_match)
    status: ItemStatus = ItemStatus.OK
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @computed_field
    @property
    def has_text(self) -> bool:
        return bool(self.cleaned_text.strip())


class BatchReport(BaseModel):
    """Results for a batch of images, in input order."""
    items: list[ImageResult] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.status == ItemStatus.OK)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if item.status == ItemStatus.FAILED)

    @computed_field
    @property
    def answered(self) -> int:
        return sum(1 for item in self.items if item.answer.matched)

    @computed_field
    @property
    def document(self) -> str:
        return DOCUMENT_SEPARATOR.join(
            item.cleaned_text.strip()
            for item in self.items
            if item.cleaned_text.strip()
        )

    @computed_field
    @property
    def latest_answer(self) -> Optional[AnswerResult]:
        for item in reversed(self.items):
            if item.answer.matched:
                return item.answer
        return None

"""
Output Document
===============
Accumulates cleaned text from successive images into one document and
remembers the most recent detected answer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from .models import DOCUMENT_SEPARATOR, AnswerResult, BatchReport, ImageResult

logger = logging.getLogger(__name__)

DEFAULT_TEXT_FILENAME = "ocr-output.txt"


class OutputDocument:
    """Append-only text sink for scan results."""

    def __init__(self):
        self._entries: list[str] = []
        self.latest_answer: Optional[AnswerResult] = None

    @property
    def text(self) -> str:
        return DOCUMENT_SEPARATOR.join(self._entries)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def append(self, text: str):
        """Add one image's cleaned text; blank text is ignored."""
        if text and text.strip():
            self._entries.append(text.strip())

    def set_answer(self, answer: Optional[AnswerResult]):
        """Record a detected answer. Non-matches keep the previous one."""
        if answer:
            self.latest_answer = answer

    def add_result(self, result: ImageResult):
        self.append(result.cleaned_text)
        self.set_answer(result.answer)

    def clear(self):
        self._entries = []
        self.latest_answer = None

    def save_text(self, filepath: Union[str, Path] = DEFAULT_TEXT_FILENAME) -> bool:
        """Write the document as UTF-8 text. Returns False if empty."""
        if not self._entries:
            logger.warning("Nothing to save: document is empty")
            return False

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(self.text, encoding="utf-8")
        logger.info(f"Saved text output: {filepath}")
        return True

    @classmethod
    def from_report(cls, report: BatchReport) -> OutputDocument:
        document = cls()
        for item in report.items:
            document.add_result(item)
        return document


def save_json(report: BatchReport, filepath: Union[str, Path]):
    """Save a BatchReport to a JSON file."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(
            report.model_dump(mode="json"), f, indent=2, ensure_ascii=False
        )
    logger.info(f"Saved JSON report: {filepath}")

"""
OCR Backends
============
Text recognition for conditioned (or raw) screenshots.

Backends return literal recognized text. They must NOT clean, merge or
interpret it; that is the normalizer's and rule engine's job.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import pytesseract
from PIL import Image

from .errors import OcrError
from .models import PageSegmentationMode

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Drop the alpha channel so colour values reach tesseract as-is.

    pytesseract pastes RGBA images onto white, which turns binarized
    black pixels with partial alpha into gray.
    """
    if "A" not in image.getbands():
        return image
    return image.convert("L" if image.mode == "LA" else "RGB")


class OcrBackend(ABC):
    """Interface for OCR engines."""

    @abstractmethod
    def recognize(
        self,
        image: Image.Image,
        language: str,
        mode: PageSegmentationMode,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Recognize text in an image.

        Args:
            image: Conditioned or raw PIL image.
            language: Tesseract-style language code, e.g. "eng" or "eng+deu".
            mode: Page segmentation mode.
            progress_callback: Called with increasing values in [0.0, 1.0].

        Returns:
            Raw recognized text (may be empty).

        Raises:
            OcrError: If recognition fails.
        """
        raise NotImplementedError


class TesseractBackend(OcrBackend):
    """
    Tesseract OCR via pytesseract.

    One instance is meant to be created per batch and reused for every
    image; the binary check runs once per instance.
    """

    def __init__(self, extra_config: str = ""):
        self.extra_config = extra_config
        self._version: Optional[str] = None

    def ensure_available(self) -> str:
        """Return the installed tesseract version (checked once, then cached)."""
        if self._version is None:
            try:
                self._version = str(pytesseract.get_tesseract_version())
            except pytesseract.TesseractNotFoundError as e:
                raise OcrError(
                    "tesseract is not installed or not on PATH"
                ) from e
            logger.info(f"Using tesseract {self._version}")
        return self._version

    def build_config(self, mode: PageSegmentationMode) -> str:
        config = f"--psm {mode.tesseract_psm}"
        if self.extra_config:
            config = f"{config} {self.extra_config}"
        return config

    def recognize(
        self,
        image: Image.Image,
        language: str,
        mode: PageSegmentationMode,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> str:
        self.ensure_available()
        image = flatten_alpha(image)

        if progress_callback:
            progress_callback(0.0)

        try:
            text = pytesseract.image_to_string(
                image,
                lang=language,
                config=self.build_config(mode),
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise OcrError(f"Tesseract failed: {e}") from e

        if progress_callback:
            progress_callback(1.0)

        return text or ""

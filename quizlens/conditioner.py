"""
Image Conditioner
=================
Turns an arbitrary screenshot into a binary bitmap that OCR reads reliably.

Pipeline (per image):
    1. Upscale by a fixed factor (Lanczos resampling)
    2. Grayscale via BT.709 luma: 0.2126 R + 0.7152 G + 0.0722 B
    3. Contrast around mid-gray: (y - 128) * gain + 128
    4. Binarize: y' >= threshold -> 255, else 0 (R, G and B; alpha untouched)

The output is always an RGBA image. The input image is never modified.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image

from .errors import InvalidConfigError, UnsupportedImageError

logger = logging.getLogger(__name__)

MID_GRAY = 128.0

# ITU-R BT.709 luma coefficients
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722


@dataclass
class ConditionerOptions:
    """Tuning knobs for the conditioner. Defaults suit UI screenshots."""

    upscale_factor: float = 2.0
    contrast_gain: float = 1.25
    binarize_threshold: float = 175

    def validate(self):
        """Raise InvalidConfigError if any option is outside its domain."""
        if not _is_finite_number(self.upscale_factor) or self.upscale_factor <= 0:
            raise InvalidConfigError(
                f"upscale_factor must be a positive number, got {self.upscale_factor!r}"
            )
        if not _is_finite_number(self.contrast_gain):
            raise InvalidConfigError(
                f"contrast_gain must be a finite number, got {self.contrast_gain!r}"
            )
        if not _is_finite_number(self.binarize_threshold):
            raise InvalidConfigError(
                f"binarize_threshold must be a finite number, got {self.binarize_threshold!r}"
            )


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


class ImageConditioner:
    """
    Deterministic screenshot preprocessor.

    Stateless apart from its options, so one instance can be shared by
    worker threads processing different images.
    """

    def __init__(self, options: Optional[ConditionerOptions] = None):
        self.options = options or ConditionerOptions()
        self.options.validate()

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        """Output dimensions for a source of the given size."""
        factor = self.options.upscale_factor
        return math.floor(width * factor), math.floor(height * factor)

    def condition(self, image: Image.Image) -> Image.Image:
        """
        Condition a single image.

        Args:
            image: Any PIL image. It is converted to RGBA internally.

        Returns:
            A new RGBA image whose R, G and B channels are all 0 or 255.

        Raises:
            UnsupportedImageError: If the image (or its scaled size) is empty
                or its mode cannot be converted to RGBA.
        """
        width, height = image.size
        if width == 0 or height == 0:
            raise UnsupportedImageError(
                f"Image has no pixels ({width}x{height})"
            )

        new_width, new_height = self.target_size(width, height)
        if new_width < 1 or new_height < 1:
            raise UnsupportedImageError(
                f"Upscale factor {self.options.upscale_factor} shrinks "
                f"{width}x{height} image to nothing"
            )

        try:
            rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        except ValueError as e:
            raise UnsupportedImageError(
                f"Cannot convert {image.mode} image to RGBA: {e}"
            ) from e

        if rgba.size != (new_width, new_height):
            rgba = rgba.resize(
                (new_width, new_height), Image.Resampling.LANCZOS
            )

        pixels = np.asarray(rgba)
        binary = self._binarize(pixels[..., :3].astype(np.float64))

        out = np.empty_like(pixels)
        out[..., 0] = binary
        out[..., 1] = binary
        out[..., 2] = binary
        out[..., 3] = pixels[..., 3]

        logger.debug(
            f"Conditioned {width}x{height} {image.mode} image "
            f"to {new_width}x{new_height}"
        )
        return Image.fromarray(out)

    def _binarize(self, rgb: np.ndarray) -> np.ndarray:
        """Map float RGB pixels to a single 0/255 channel."""
        luma = (
            LUMA_R * rgb[..., 0]
            + LUMA_G * rgb[..., 1]
            + LUMA_B * rgb[..., 2]
        )
        adjusted = (luma - MID_GRAY) * self.options.contrast_gain + MID_GRAY
        return np.where(
            adjusted >= self.options.binarize_threshold, 255, 0
        ).astype(np.uint8)


def condition_image(
    image: Image.Image,
    options: Optional[ConditionerOptions] = None,
) -> Image.Image:
    """Condition an image with the given (or default) options."""
    return ImageConditioner(options).condition(image)

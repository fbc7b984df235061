"""
Errors
======
Exception taxonomy for the scanning pipeline.

"No confident answer" is not an error: the rule engine reports it as an
AnswerResult with matched=False.
"""


class QuizLensError(Exception):
    """Base class for all quizlens errors."""


class InvalidConfigError(QuizLensError, ValueError):
    """A configuration value is outside its valid domain."""


class UnsupportedImageError(QuizLensError):
    """The input image cannot be processed (empty, undecodable, too small)."""


class OcrError(QuizLensError):
    """The OCR backend failed to recognize an image."""

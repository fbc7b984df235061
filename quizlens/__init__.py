"""
QuizLens
========
Screenshot OCR with text cleanup and rule-based quiz answer detection.

Architecture:
    - Image Conditioner: Upscales and binarizes screenshots for OCR
    - OCR Backend: Recognizes raw text (Tesseract via pytesseract)
    - Text Normalizer: Repairs systematic OCR artifacts
    - Answer Rule Engine: Picks an answer only on an unambiguous code signature
    - Output Document: Accumulates cleaned text and the latest answer

Version: 1.0.0
"""

__version__ = "1.0.0"

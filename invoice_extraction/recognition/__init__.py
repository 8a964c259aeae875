"""
Recognition Module for Invoice Extraction System.

Contract for the upstream OCR engine whose text output the extraction core
consumes. No engine is bundled.

Author: ML Engineering Team
"""

from .recognized_text import RecognizedText, TextRecognizer

__all__ = ['RecognizedText', 'TextRecognizer']

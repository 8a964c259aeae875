"""
Recognized Text Data Classes.

This module defines the contract between an upstream OCR engine and the
extraction core. The core never runs OCR itself; it consumes the text an
engine produced together with the engine's own confidence.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class RecognizedText:
    """
    Text recognized from one document.

    Attributes:
        text: Full recognized text, lines separated by newlines
        confidence: Engine confidence (0-1), None when the engine gives none

    Example:
        >>> recognized = RecognizedText.from_engine("請求書\\n合計 110,000", 87.5)
        >>> recognized.confidence
        0.875
    """
    text: str
    confidence: Optional[float] = None

    def __post_init__(self):
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def from_engine(cls, text: str, confidence: Optional[float]) -> 'RecognizedText':
        """
        Build from raw engine output.

        Engines report confidence either as a fraction or as a percentage
        (Tesseract uses 0-100). Values above 1 are read as percentages and
        the result is clamped to [0, 1].

        Args:
            text: Recognized text (non-string values become "").
            confidence: Engine confidence in either scale, or None.
        """
        if confidence is not None:
            confidence = float(confidence)
            if confidence > 1.0:
                confidence /= 100.0
            confidence = max(0.0, min(1.0, confidence))
        return cls(text=text if isinstance(text, str) else "", confidence=confidence)


class TextRecognizer(Protocol):
    """An OCR engine: rasterized page image in, recognized text out."""

    def recognize(self, image_bytes: bytes) -> RecognizedText:
        ...

"""
Japanese Invoice Extraction Core.

Turns noisy OCR text of scanned Japanese invoices into immutable, validated
invoice records with a completeness score.

Example:
    >>> from invoice_extraction import InvoiceDataAssembler
    >>> result = InvoiceDataAssembler().assemble(ocr_text, "invoice.pdf", file_hash)
    >>> print(result.to_json())

Author: ML Engineering Team
Version: 1.0.0
"""

__version__ = "1.0.0"

from .assembly import InvoiceDataAssembler, ConfidenceScorer, AmountReconciler
from .extraction import InvoiceExtractionResult, LineItemTableExtractor, FieldExtractorCascade
from .normalization import TextNormalizer, DateNormalizer, AmountParser
from .recognition import RecognizedText, TextRecognizer

__all__ = [
    '__version__',
    'InvoiceDataAssembler',
    'ConfidenceScorer',
    'AmountReconciler',
    'InvoiceExtractionResult',
    'LineItemTableExtractor',
    'FieldExtractorCascade',
    'TextNormalizer',
    'DateNormalizer',
    'AmountParser',
    'RecognizedText',
    'TextRecognizer',
]

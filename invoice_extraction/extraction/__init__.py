"""
Extraction Module for Invoice Extraction System.

This module turns normalized OCR text into typed invoice fields:
    - Cascaded, confidence-weighted scalar field extraction
    - Anchor-based party (client / issuer) detection
    - Line-item table reconstruction from layout-free text
    - Immutable result records

Author: ML Engineering Team
"""

from .extraction_result import (
    ExtractedField,
    InvoiceBasicInfo,
    IssuerInfo,
    BillingTo,
    TaxBreakdown,
    AmountInfo,
    LineItem,
    PaymentTerms,
    BillingPeriod,
    ReconciliationKeys,
    InvoiceMetadata,
    InvoiceExtractionResult,
)
from .cascade import FieldRule, FieldExtractorCascade, AnchorHit, AnchorScanner, compile_rule
from .document import DocumentFieldExtractor, extract_invoice_number, extract_issue_date
from .identity import IdentityExtractor, PartyMatch, extract_registration_number
from .payment import PaymentFieldExtractor
from .amounts import AmountFieldExtractor, AmountFields
from .line_items import LineItemTableExtractor, extract_line_items

__all__ = [
    'ExtractedField',
    'InvoiceBasicInfo',
    'IssuerInfo',
    'BillingTo',
    'TaxBreakdown',
    'AmountInfo',
    'LineItem',
    'PaymentTerms',
    'BillingPeriod',
    'ReconciliationKeys',
    'InvoiceMetadata',
    'InvoiceExtractionResult',
    'FieldRule',
    'FieldExtractorCascade',
    'AnchorHit',
    'AnchorScanner',
    'compile_rule',
    'DocumentFieldExtractor',
    'extract_invoice_number',
    'extract_issue_date',
    'IdentityExtractor',
    'PartyMatch',
    'extract_registration_number',
    'PaymentFieldExtractor',
    'AmountFieldExtractor',
    'AmountFields',
    'LineItemTableExtractor',
    'extract_line_items',
]

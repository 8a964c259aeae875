"""
Assembly Module for Invoice Extraction System.

This module combines extracted fields into the final invoice record:
    - Amount reconciliation (subtotal / tax / total / rate)
    - Completeness scoring
    - Record assembly and metadata stamping

Author: ML Engineering Team
"""

from .reconciliation import AmountReconciler, ReconciledAmounts
from .scorer import ConfidenceScorer, ConfidenceReport
from .assembler import InvoiceDataAssembler, compute_invoice_id, utc_now

__all__ = [
    'AmountReconciler',
    'ReconciledAmounts',
    'ConfidenceScorer',
    'ConfidenceReport',
    'InvoiceDataAssembler',
    'compute_invoice_id',
    'utc_now',
]

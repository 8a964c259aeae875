"""
Evaluation Module for Invoice Extraction System.

This module compares extraction results with golden records:
    - Field-level accuracy computation
    - Missing field rate calculation
    - Ground truth loading (JSON / CSV)
    - Metrics reporting

Author: ML Engineering Team
"""

from .evaluator import Evaluator
from .metrics import MetricsCalculator, EvaluationResult, FieldMetrics
from .ground_truth import GroundTruthLoader

__all__ = [
    'Evaluator',
    'MetricsCalculator',
    'EvaluationResult',
    'FieldMetrics',
    'GroundTruthLoader',
]

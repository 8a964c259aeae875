"""
Metrics Calculator Module.

This module computes field-level metrics for extraction results compared
with golden records.

Metrics Include:
    - Field-level accuracy (exact match)
    - Partial match scores (rapidfuzz similarity)
    - Missing field rates
    - Average extraction confidence

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from rapidfuzz import fuzz

from config import get_config
from invoice_extraction.utils.exceptions import EvaluationError
from invoice_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

AMOUNT_FIELDS = ('subtotal', 'tax_amount', 'total_amount')


@dataclass
class FieldMetrics:
    """
    Metrics for a single field across all samples.

    Attributes:
        field_name: Name of the field
        total_samples: Total number of samples evaluated
        extracted_count: Number of samples where the field was extracted
        correct_count: Number of exact matches
        partial_match_count: Number of exact or partial matches
        missing_count: Number of samples without a value
        accuracy: Exact match accuracy (0-1)
        extraction_rate: Rate of successful extraction (0-1)
        partial_accuracy: Accuracy including partial matches (0-1)
        avg_confidence: Mean confidence of the extracted values
    """
    field_name: str
    total_samples: int = 0
    extracted_count: int = 0
    correct_count: int = 0
    partial_match_count: int = 0
    missing_count: int = 0
    accuracy: float = 0.0
    extraction_rate: float = 0.0
    partial_accuracy: float = 0.0
    avg_confidence: float = 0.0


@dataclass
class EvaluationResult:
    """
    Complete evaluation results.

    Attributes:
        field_metrics: Field name to FieldMetrics
        overall_accuracy: Mean exact-match accuracy over fields
        overall_extraction_rate: Mean extraction rate over fields
        avg_confidence: Mean field confidence
        avg_completeness: Mean completeness score of the results
        total_samples: Number of samples evaluated
        timestamp: Evaluation timestamp
    """
    field_metrics: Dict[str, FieldMetrics] = field(default_factory=dict)
    overall_accuracy: float = 0.0
    overall_extraction_rate: float = 0.0
    avg_confidence: float = 0.0
    avg_completeness: float = 0.0
    total_samples: int = 0
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'overall_accuracy': self.overall_accuracy,
            'overall_extraction_rate': self.overall_extraction_rate,
            'avg_confidence': self.avg_confidence,
            'avg_completeness': self.avg_completeness,
            'total_samples': self.total_samples,
            'timestamp': self.timestamp,
            'field_metrics': {
                name: {
                    'accuracy': m.accuracy,
                    'extraction_rate': m.extraction_rate,
                    'partial_accuracy': m.partial_accuracy,
                    'extracted_count': m.extracted_count,
                    'correct_count': m.correct_count,
                    'missing_count': m.missing_count,
                    'avg_confidence': m.avg_confidence,
                }
                for name, m in self.field_metrics.items()
            },
        }

    def print_report(self) -> str:
        """Generate a formatted report string."""
        lines = [
            "=" * 60,
            "EXTRACTION EVALUATION REPORT",
            "=" * 60,
            f"Timestamp: {self.timestamp}",
            f"Total Samples: {self.total_samples}",
            "-" * 60,
            "",
            "OVERALL METRICS:",
            f"  Accuracy:         {self.overall_accuracy * 100:.1f}%",
            f"  Extraction Rate:  {self.overall_extraction_rate * 100:.1f}%",
            f"  Avg Confidence:   {self.avg_confidence:.2f}",
            f"  Avg Completeness: {self.avg_completeness:.2f}",
            "",
            "-" * 60,
            "FIELD-LEVEL METRICS:",
            "",
        ]

        for name, m in self.field_metrics.items():
            lines.extend([
                f"  {name}:",
                f"    Accuracy:        {m.accuracy * 100:.1f}%",
                f"    Extraction Rate: {m.extraction_rate * 100:.1f}%",
                f"    Partial Match:   {m.partial_accuracy * 100:.1f}%",
                f"    Extracted/Total: {m.extracted_count}/{m.total_samples}",
                f"    Avg Confidence:  {m.avg_confidence:.2f}",
                "",
            ])

        lines.append("=" * 60)
        return "\n".join(lines)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class MetricsCalculator:
    """
    Compares flat extraction records with golden records.

    Amount fields are compared numerically (within ``amount_tolerance``),
    dates by their digits, and text after whitespace removal. Text that is
    not an exact match counts as a partial match when its rapidfuzz ratio
    reaches ``partial_match_threshold``.

    Example:
        >>> calculator = MetricsCalculator(fields=["invoice_number", "total_amount"])
        >>> result = calculator.evaluate(predictions, ground_truth)
        >>> print(result.print_report())
    """

    def __init__(
        self,
        fields: Optional[List[str]] = None,
        case_sensitive: bool = False,
        partial_match_threshold: Optional[float] = None,
        amount_tolerance: Optional[float] = None
    ) -> None:
        """
        Initialize the metrics calculator.

        Args:
            fields: Field names to evaluate (default: evaluation.fields).
            case_sensitive: Whether text comparisons are case-sensitive.
            partial_match_threshold: Similarity (0-1) counted as a partial match.
            amount_tolerance: Allowed absolute difference for amounts.
        """
        self.fields = fields or get_config("evaluation.fields", ['invoice_number', 'total_amount'])
        self.case_sensitive = case_sensitive
        self.partial_match_threshold = (
            partial_match_threshold if partial_match_threshold is not None
            else get_config("evaluation.partial_match_threshold", 0.8)
        )
        self.amount_tolerance = (
            amount_tolerance if amount_tolerance is not None
            else get_config("evaluation.amount_tolerance", 0)
        )

        logger.debug(f"MetricsCalculator initialized (fields: {len(self.fields)})")

    def evaluate(
        self,
        predictions: List[Dict[str, Any]],
        ground_truth: List[Dict[str, Any]],
        confidence_scores: Optional[List[Dict[str, float]]] = None
    ) -> EvaluationResult:
        """
        Evaluate predictions against ground truth.

        Args:
            predictions: Flat prediction dictionaries.
            ground_truth: Golden records, in the same order.
            confidence_scores: Per-sample field confidences.

        Returns:
            EvaluationResult with computed metrics.

        Raises:
            EvaluationError: If predictions and ground truth lengths differ.
        """
        if len(predictions) != len(ground_truth):
            raise EvaluationError(
                f"Predictions ({len(predictions)}) and ground truth "
                f"({len(ground_truth)}) must have same length"
            )

        total_samples = len(predictions)
        if total_samples == 0:
            return EvaluationResult()

        field_metrics = {
            name: FieldMetrics(field_name=name, total_samples=total_samples)
            for name in self.fields
        }
        confidence_sums = {name: 0.0 for name in self.fields}

        for idx, (pred, gt) in enumerate(zip(predictions, ground_truth)):
            conf = confidence_scores[idx] if confidence_scores else {}

            for field_name in self.fields:
                metrics = field_metrics[field_name]
                pred_value = pred.get(field_name)

                if _is_empty(pred_value):
                    metrics.missing_count += 1
                    continue

                metrics.extracted_count += 1
                confidence_sums[field_name] += conf.get(field_name, 0.0)

                is_exact, is_partial = self.compare_values(
                    pred_value, gt.get(field_name), field_name
                )
                if is_exact:
                    metrics.correct_count += 1
                if is_partial:
                    metrics.partial_match_count += 1

        for name, metrics in field_metrics.items():
            metrics.extraction_rate = metrics.extracted_count / total_samples
            metrics.accuracy = metrics.correct_count / total_samples
            metrics.partial_accuracy = metrics.partial_match_count / total_samples
            if metrics.extracted_count:
                metrics.avg_confidence = confidence_sums[name] / metrics.extracted_count

        num_fields = len(self.fields)
        completeness = [
            float(pred.get('ocr_confidence') or 0.0) for pred in predictions
        ]

        return EvaluationResult(
            field_metrics=field_metrics,
            overall_accuracy=sum(m.accuracy for m in field_metrics.values()) / num_fields,
            overall_extraction_rate=sum(
                m.extraction_rate for m in field_metrics.values()
            ) / num_fields,
            avg_confidence=sum(m.avg_confidence for m in field_metrics.values()) / num_fields,
            avg_completeness=sum(completeness) / total_samples,
            total_samples=total_samples,
        )

    def compare_values(
        self,
        predicted: Any,
        ground_truth: Any,
        field_name: str
    ) -> Tuple[bool, bool]:
        """
        Compare a predicted value with the expected one.

        Args:
            predicted: Predicted value.
            ground_truth: Expected value.
            field_name: Field name (selects amount / date / text comparison).

        Returns:
            Tuple of (is_exact_match, is_partial_match).
        """
        if _is_empty(ground_truth) or _is_empty(predicted):
            return (False, False)

        if field_name in AMOUNT_FIELDS or field_name.endswith('_amount'):
            pred_amount = self._to_amount(predicted)
            gt_amount = self._to_amount(ground_truth)
            if pred_amount is None or gt_amount is None:
                return (False, False)
            is_exact = abs(pred_amount - gt_amount) <= self.amount_tolerance
            return (is_exact, is_exact)

        pred_norm = self._normalize_value(predicted, field_name)
        gt_norm = self._normalize_value(ground_truth, field_name)

        if pred_norm == gt_norm:
            return (True, True)

        similarity = self.similarity(pred_norm, gt_norm)
        return (False, similarity >= self.partial_match_threshold)

    @staticmethod
    def similarity(s1: str, s2: str) -> float:
        """Normalized Levenshtein similarity (0-1)."""
        if not s1 or not s2:
            return 0.0
        return fuzz.ratio(s1, s2) / 100.0

    @staticmethod
    def _to_amount(value: Any) -> Optional[float]:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        digits = re.sub(r'[^\d.\-]', '', str(value))
        try:
            return float(digits)
        except ValueError:
            return None

    def _normalize_value(self, value: Any, field_name: str) -> str:
        text = re.sub(r'\s+', '', str(value))
        if not self.case_sensitive:
            text = text.lower()
        if 'date' in field_name:
            text = re.sub(r'\D', '', text)
        return text

    def evaluate_single(
        self,
        prediction: Dict[str, Any],
        ground_truth: Dict[str, Any],
        confidence_scores: Optional[Dict[str, float]] = None
    ) -> Dict[str, Any]:
        """
        Compare one prediction with its golden record.

        Returns:
            Per-field comparison results.
        """
        results = {}

        for field_name in self.fields:
            pred_value = prediction.get(field_name)
            gt_value = ground_truth.get(field_name)
            is_exact, is_partial = self.compare_values(pred_value, gt_value, field_name)

            results[field_name] = {
                'predicted': pred_value,
                'ground_truth': gt_value,
                'exact_match': is_exact,
                'partial_match': is_partial,
                'confidence': (confidence_scores or {}).get(field_name, 0.0),
                'extracted': not _is_empty(pred_value),
            }

        return results

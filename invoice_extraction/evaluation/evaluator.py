"""
Main Evaluator Module.

This module provides the Evaluator class that matches extraction results
with golden records, computes metrics and writes reports.

Author: ML Engineering Team
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config import get_config
from invoice_extraction.extraction.extraction_result import InvoiceExtractionResult
from invoice_extraction.utils.exceptions import EvaluationError
from invoice_extraction.utils.helpers import ensure_directory
from invoice_extraction.utils.logger import get_logger
from .ground_truth import GroundTruthLoader
from .metrics import EvaluationResult, MetricsCalculator

# Initialize module logger
logger = get_logger(__name__)

ResultLike = Union[InvoiceExtractionResult, Dict[str, Any]]


def _flatten(result: ResultLike) -> Dict[str, Any]:
    if isinstance(result, InvoiceExtractionResult):
        return result.to_flat_dict()
    return result


def _confidences(result: ResultLike) -> Dict[str, float]:
    if isinstance(result, InvoiceExtractionResult):
        return dict(result.field_confidences)
    return result.get('field_confidences') or {}


class Evaluator:
    """
    Golden-file evaluator.

    Attributes:
        metrics_calculator: MetricsCalculator instance
        ground_truth: GroundTruthLoader instance (None until loaded)

    Example:
        >>> evaluator = Evaluator("tests/fixtures/golden.json")
        >>> result = evaluator.evaluate(extraction_results)
        >>> print(result.print_report())
    """

    REPORT_FORMATS = ('txt', 'json')

    def __init__(
        self,
        ground_truth_path: Optional[Union[str, Path]] = None,
        fields: Optional[List[str]] = None,
        partial_match_threshold: Optional[float] = None
    ) -> None:
        """
        Initialize the evaluator.

        Args:
            ground_truth_path: Path to a JSON or CSV ground truth file.
            fields: Fields to evaluate (default: evaluation.fields).
            partial_match_threshold: Similarity counted as a partial match.
        """
        self.metrics_calculator = MetricsCalculator(
            fields=fields,
            partial_match_threshold=partial_match_threshold,
        )

        self.ground_truth: Optional[GroundTruthLoader] = None
        if ground_truth_path:
            self.load_ground_truth(ground_truth_path)

        logger.debug("Evaluator initialized")

    def load_ground_truth(self, path: Union[str, Path]) -> None:
        """
        Load ground truth data from file.

        Args:
            path: Path to ground truth file.
        """
        self.ground_truth = GroundTruthLoader(path)
        validation = self.ground_truth.validate()

        if validation['invalid_records'] > 0:
            logger.warning(
                f"Ground truth has {validation['invalid_records']} incomplete records"
            )

    def _match_ground_truth(self, predictions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if self.ground_truth is None:
            raise EvaluationError(
                "No ground truth available. Load ground truth or provide it as argument."
            )

        matched = []
        for pred in predictions:
            source_file = pred.get('source_file') or ''
            record = self.ground_truth.get_by_filename(source_file)
            if record is None:
                logger.warning(f"No ground truth for: {source_file}")
                record = {}
            matched.append(record)
        return matched

    def evaluate(
        self,
        results: List[ResultLike],
        ground_truth: Optional[List[Dict[str, Any]]] = None
    ) -> EvaluationResult:
        """
        Evaluate extraction results.

        Args:
            results: Extraction results or their flat dictionaries.
            ground_truth: Golden records in result order. If None, records
                are matched from the loaded file by source file name.

        Returns:
            EvaluationResult with computed metrics.

        Raises:
            EvaluationError: If no ground truth is available.
        """
        predictions = [_flatten(r) for r in results]
        confidence_scores = [_confidences(r) for r in results]

        if ground_truth is None:
            ground_truth = self._match_ground_truth(predictions)

        result = self.metrics_calculator.evaluate(
            predictions=predictions,
            ground_truth=ground_truth,
            confidence_scores=confidence_scores,
        )

        logger.info(
            f"Evaluation complete: {result.overall_accuracy * 100:.1f}% accuracy "
            f"on {result.total_samples} samples"
        )
        return result

    def evaluate_single(
        self,
        result: ResultLike,
        ground_truth: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Evaluate a single extraction result.

        Returns:
            Per-field comparison results.
        """
        prediction = _flatten(result)
        if ground_truth is None:
            ground_truth = self._match_ground_truth([prediction])[0]

        return self.metrics_calculator.evaluate_single(
            prediction=prediction,
            ground_truth=ground_truth,
            confidence_scores=_confidences(result),
        )

    def generate_report(
        self,
        evaluation_result: EvaluationResult,
        output_path: Optional[Union[str, Path]] = None,
        format: str = 'txt'
    ) -> str:
        """
        Generate an evaluation report.

        Args:
            evaluation_result: Evaluation result to report.
            output_path: Path for the report file. If None, returns the string.
            format: Report format ('txt' or 'json').

        Returns:
            Report string, or the path of the saved file.

        Raises:
            EvaluationError: If the format is not supported.
        """
        allowed = get_config("evaluation.report_formats", list(self.REPORT_FORMATS))
        if format not in allowed:
            raise EvaluationError(
                f"Unsupported report format: {format}",
                {"supported": list(allowed)}
            )

        if format == 'json':
            report = json.dumps(evaluation_result.to_dict(), indent=2, ensure_ascii=False)
        else:
            report = evaluation_result.print_report()

        if output_path:
            ensure_directory(Path(output_path).parent)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(report)
            logger.info(f"Report saved to: {output_path}")
            return str(output_path)

        return report

    def save_detailed_results(
        self,
        results: List[ResultLike],
        output_path: Union[str, Path],
        ground_truth: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        """
        Save per-sample comparisons as JSON.

        Returns:
            Path to the saved file.
        """
        predictions = [_flatten(r) for r in results]
        if ground_truth is None:
            ground_truth = self._match_ground_truth(predictions)

        detailed = []
        for idx, (result, prediction) in enumerate(zip(results, predictions)):
            gt = ground_truth[idx] if idx < len(ground_truth) else {}
            detailed.append({
                'sample_index': idx,
                'source_file': prediction.get('source_file', ''),
                'extraction': prediction,
                'ground_truth': gt,
                'comparison': self.evaluate_single(result, gt),
            })

        ensure_directory(Path(output_path).parent)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(detailed, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"Detailed results saved to: {output_path}")
        return str(output_path)

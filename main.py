#!/usr/bin/env python3
"""
Japanese Invoice Extraction Core - Main Entry Point.

Runs the extraction core over OCR text dumps (one ``.txt`` file per scanned
document, e.g. ``invoice_001.pdf.txt``) and writes the structured results
as JSON. Optionally evaluates the results against a golden file.

Usage:
    Command Line:
        python main.py --input invoice_001.pdf.txt --output results.json
        python main.py --input ./ocr_dumps/ --evaluate --ground-truth golden.json

    Python:
        from main import run_extraction
        results = run_extraction("ocr_dumps/")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from config import ConfigurationManager, get_config
from invoice_extraction.assembly import InvoiceDataAssembler
from invoice_extraction.evaluation import Evaluator
from invoice_extraction.extraction import InvoiceExtractionResult
from invoice_extraction.utils.exceptions import (
    EvaluationError,
    InputFileNotFoundError,
    InvoiceExtractionError,
    UnsupportedFileTypeError,
)
from invoice_extraction.utils.helpers import (
    compute_file_hash,
    ensure_directory,
    generate_timestamp,
    get_file_extension,
)
from invoice_extraction.utils.logger import get_logger, setup_logger_from_config

SUPPORTED_EXTENSIONS = ['.txt']
DEFAULT_OUTPUT = "outputs/extraction_results.json"


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Japanese Invoice Extraction Core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Process one OCR dump:
        python main.py --input invoice_001.pdf.txt --output results.json

    Process directory:
        python main.py --input ./ocr_dumps/ --output ./results/

    With evaluation:
        python main.py --input ./ocr_dumps/ --evaluate --ground-truth golden.json
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="OCR text dump (.txt) or directory containing dumps"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=DEFAULT_OUTPUT,
        help=f"Output JSON file or directory (default: {DEFAULT_OUTPUT})"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    # Evaluation options
    parser.add_argument(
        "--evaluate",
        action="store_true",
        help="Evaluate results against a golden file"
    )

    parser.add_argument(
        "--ground-truth", "-gt",
        type=str,
        default=None,
        help="Golden file (JSON or CSV) for evaluation"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    level = None
    if args.debug:
        level = "DEBUG"
    elif args.quiet:
        level = "WARNING"
    logger = setup_logger_from_config(level)

    logger.info("=" * 60)
    logger.info("JAPANESE INVOICE EXTRACTION CORE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output}")

    return config


def collect_inputs(input_path: str) -> List[Path]:
    """
    Resolve the OCR dumps to process.

    Args:
        input_path: A ``.txt`` file or a directory.

    Returns:
        Sorted list of dump paths.

    Raises:
        InputFileNotFoundError: If the path doesn't exist.
        UnsupportedFileTypeError: If a file is not a ``.txt`` dump.
    """
    logger = get_logger(__name__)
    path = Path(input_path)

    if not path.exists():
        raise InputFileNotFoundError(str(path))

    if path.is_file():
        extension = get_file_extension(path)
        if extension not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFileTypeError(extension, SUPPORTED_EXTENSIONS)
        return [path]

    files = sorted(
        p for p in path.iterdir()
        if p.is_file() and get_file_extension(p) in SUPPORTED_EXTENSIONS
    )
    if not files:
        logger.warning(f"No OCR dumps found in: {path}")
    else:
        logger.info(f"Found {len(files)} files to process")
    return files


def source_name(dump_path: Path) -> str:
    """
    Name of the scanned document a dump was produced from.

    Example:
        >>> source_name(Path("ocr/invoice_001.pdf.txt"))
        'invoice_001.pdf'
    """
    name = dump_path.name
    return name[:-4] if name.lower().endswith('.txt') else name


def resolve_output_path(output: Optional[str]) -> Path:
    """A path without a suffix is treated as a directory."""
    path = Path(output or DEFAULT_OUTPUT)
    if path.suffix:
        ensure_directory(path.parent)
        return path
    ensure_directory(path)
    return path / Path(DEFAULT_OUTPUT).name


def run_extraction(
    input_path: str,
    output_path: Optional[str] = None,
    evaluate: bool = False,
    ground_truth_path: Optional[str] = None,
    clock: Optional[Callable] = None
) -> List[InvoiceExtractionResult]:
    """
    Run the extraction core over OCR dumps.

    Args:
        input_path: Dump file or directory.
        output_path: JSON file (or directory) for the results. None skips writing.
        evaluate: Whether to run golden-file evaluation.
        ground_truth_path: Golden file for evaluation.
        clock: Timestamp source passed to the assembler.

    Returns:
        List of extraction results.

    Raises:
        EvaluationError: If evaluation is requested without a golden file.

    Example:
        >>> results = run_extraction("ocr_dumps/", "outputs/")
        >>> for r in results:
        ...     print(r.basic_info.invoice_number)
    """
    logger = get_logger(__name__)

    if evaluate and not ground_truth_path:
        raise EvaluationError("Evaluation requires a ground truth file (--ground-truth)")

    assembler = InvoiceDataAssembler(clock=clock)
    files = collect_inputs(input_path)
    logger.info(f"Processing {len(files)} files...")

    results = []
    for dump in files:
        logger.info(f"Processing: {dump.name}")
        try:
            raw_text = dump.read_text(encoding='utf-8')
            file_hash = compute_file_hash(dump)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading {dump.name}: {e}")
            continue

        result = assembler.assemble(raw_text, source_name(dump), file_hash)
        results.append(result)

        logger.info(
            f"  Extracted: Invoice #{result.basic_info.invoice_number or 'N/A'}, "
            f"Completeness: {result.completeness:.2f}"
        )

    if output_path and results:
        path = resolve_output_path(output_path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)
        logger.info(f"JSON output: {path}")

    if evaluate:
        evaluator = Evaluator(ground_truth_path)
        evaluation = evaluator.evaluate(results)
        print(evaluation.print_report())

        reports_dir = Path(get_config("paths.output_dir", "outputs")) / "reports"
        report_path = reports_dir / f"evaluation_{generate_timestamp()}.txt"
        evaluator.generate_report(evaluation, report_path, format='txt')

    return results


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        results = run_extraction(
            input_path=args.input,
            output_path=args.output,
            evaluate=args.evaluate,
            ground_truth_path=args.ground_truth,
        )

        if not results:
            logger.error("No files processed")
            return 1

        logger.info("=" * 60)
        logger.info(f"Extraction complete. Processed {len(results)} files.")
        logger.info("=" * 60)
        return 0

    except InvoiceExtractionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if logging.getLogger("invoice_extraction").isEnabledFor(logging.DEBUG):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())

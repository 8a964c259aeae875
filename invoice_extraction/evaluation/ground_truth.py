"""
Ground Truth Loader Module.

This module handles loading and managing the expected (golden) records
used to evaluate extraction results.

Supported Formats:
    - JSON files (a list, {"records": [...]}, or a mapping keyed by file name)
    - CSV files

Records use the keys of InvoiceExtractionResult.to_flat_dict().

Author: ML Engineering Team
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from invoice_extraction.utils.exceptions import GroundTruthError, InputFileNotFoundError
from invoice_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class GroundTruthLoader:
    """
    Loads ground truth records from JSON or CSV.

    Attributes:
        data: Loaded ground truth records
        file_path: Path to the ground truth file

    Example:
        >>> loader = GroundTruthLoader("tests/fixtures/golden.json")
        >>> expected = loader.get_by_filename("sample_invoice.pdf")
        >>> expected["total_amount"]
        110000
    """

    # Fields every golden record should carry
    REQUIRED_FIELDS = [
        'invoice_number',
        'issue_date',
        'client_name',
        'issuer_name',
        'total_amount',
    ]

    SUPPORTED_FORMATS = ['.json', '.csv']

    def __init__(self, file_path: Optional[Union[str, Path]] = None) -> None:
        """
        Initialize the ground truth loader.

        Args:
            file_path: Path to ground truth file. If None, creates an empty loader.
        """
        self.file_path = Path(file_path) if file_path else None
        self.data: List[Dict[str, Any]] = []
        self._file_index: Dict[str, int] = {}

        if self.file_path:
            self.load(self.file_path)

    def load(self, file_path: Union[str, Path]) -> List[Dict[str, Any]]:
        """
        Load ground truth from file.

        Args:
            file_path: Path to ground truth file.

        Returns:
            List of ground truth records.

        Raises:
            InputFileNotFoundError: If the file doesn't exist.
            GroundTruthError: If the format is unsupported or the content
                is malformed.
        """
        path = Path(file_path)

        if not path.exists():
            raise InputFileNotFoundError(str(path))

        extension = path.suffix.lower()

        if extension == '.json':
            self.data = self._load_json(path)
        elif extension == '.csv':
            self.data = self._load_csv(path)
        else:
            raise GroundTruthError(
                str(path),
                f"Unsupported format: {extension} (supported: {', '.join(self.SUPPORTED_FORMATS)})"
            )

        self._build_index()

        logger.info(f"Loaded {len(self.data)} ground truth records from {path.name}")
        return self.data

    def _load_json(self, path: Path) -> List[Dict[str, Any]]:
        """Load ground truth from a JSON file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise GroundTruthError(str(path), f"Invalid JSON: {e}") from e

        if isinstance(data, dict):
            if 'records' in data:
                data = data['records']
            else:
                # Keyed by file name
                data = [
                    {**record, 'source_file': name}
                    for name, record in data.items()
                    if isinstance(record, dict)
                ]

        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise GroundTruthError(str(path), "Expected a list of records")

        return data

    def _load_csv(self, path: Path) -> List[Dict[str, Any]]:
        """Load ground truth from a CSV file; empty cells become None."""
        data = []

        with open(path, 'r', encoding='utf-8-sig', newline='') as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames:
                raise GroundTruthError(str(path), "Missing header row")
            for row in reader:
                data.append({key: (value if value != '' else None) for key, value in row.items()})

        return data

    def _build_index(self) -> None:
        """Build an index for lookups by file name."""
        self._file_index = {}

        for idx, record in enumerate(self.data):
            filename = record.get('source_file') or record.get('filename')
            if filename:
                self._file_index[Path(filename).name] = idx
                self._file_index[filename] = idx

    def get_all(self) -> List[Dict[str, Any]]:
        """Get all ground truth records."""
        return self.data

    def get_by_filename(self, filename: str) -> Optional[Dict[str, Any]]:
        """
        Get the ground truth record for a source file.

        Args:
            filename: Source file name (with or without path).

        Returns:
            Ground truth record or None.
        """
        if filename in self._file_index:
            return self.data[self._file_index[filename]]

        normalized = Path(filename).name
        if normalized in self._file_index:
            return self.data[self._file_index[normalized]]

        return None

    def validate(self) -> Dict[str, Any]:
        """
        Check the loaded records for missing required fields.

        Returns:
            Dictionary with validation results.
        """
        results = {
            'total_records': len(self.data),
            'valid_records': 0,
            'invalid_records': 0,
            'missing_fields': {},
        }

        for record in self.data:
            missing = [
                name for name in self.REQUIRED_FIELDS
                if record.get(name) in (None, '')
            ]
            for name in missing:
                results['missing_fields'][name] = results['missing_fields'].get(name, 0) + 1

            if missing:
                results['invalid_records'] += 1
            else:
                results['valid_records'] += 1

        logger.info(
            f"Ground truth validation: {results['valid_records']}/{results['total_records']} valid"
        )
        return results

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def __getitem__(self, index: int) -> Dict[str, Any]:
        return self.data[index]

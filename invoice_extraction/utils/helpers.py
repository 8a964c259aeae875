"""
Helper Utilities Module.

Small, generic functions shared across the extraction core.

Functions:
    - to_half_width_digits: Fold full-width digits to ASCII
    - strip_whitespace: Remove every whitespace character
    - round_half_up: Arithmetic rounding (0.5 rounds away from zero)
    - compute_file_hash: SHA-256 of a file's bytes
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - generate_timestamp: Generate formatted timestamps
"""

import hashlib
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Union

_FULLWIDTH_DIGITS = str.maketrans('０１２３４５６７８９', '0123456789')
_WHITESPACE_RE = re.compile(r'\s+')


def to_half_width_digits(text: str) -> str:
    """
    Replace full-width digits (０-９) with their ASCII counterparts.

    Example:
        >>> to_half_width_digits("１２３,４５６")
        "123,456"
    """
    return text.translate(_FULLWIDTH_DIGITS)


def strip_whitespace(text: str) -> str:
    """Remove all whitespace, including the ideographic space (U+3000)."""
    return _WHITESPACE_RE.sub('', text)


def round_half_up(value: Union[int, float], ndigits: int = 0) -> Union[int, float]:
    """
    Round a number the way invoices do (half away from zero).

    The built-in round() uses banker's rounding, which turns 12.5 yen
    into 12. Amounts on Japanese invoices are rounded arithmetically.

    Args:
        value: Number to round.
        ndigits: Number of decimal places. 0 returns an int.

    Returns:
        Rounded value.

    Example:
        >>> round_half_up(12.5)
        13
        >>> round_half_up(0.645, 2)
        0.65
    """
    exponent = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    if ndigits == 0:
        return int(rounded)
    return float(rounded)


def compute_file_hash(filepath: Union[str, Path], chunk_size: int = 65536) -> str:
    """
    Compute the SHA-256 hex digest of a file.

    Args:
        filepath: File to hash.
        chunk_size: Read size in bytes.

    Returns:
        Lowercase hex digest.
    """
    digest = hashlib.sha256()
    with open(filepath, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/reports")
        PosixPath('outputs/reports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the lowercase file extension, including the dot.

    Example:
        >>> get_file_extension("invoice.PDF.TXT")
        ".txt"
        >>> get_file_extension("noextension")
        ""
    """
    return Path(filepath).suffix.lower()


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-01-21"
    """
    return datetime.now().strftime(format_str)

"""
Utility Module for the Invoice Extraction Core.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Text and file helpers
"""

from .logger import setup_logger, setup_logger_from_config, get_logger, document_context
from .helpers import (
    to_half_width_digits,
    strip_whitespace,
    round_half_up,
    compute_file_hash,
    ensure_directory,
    get_file_extension,
    generate_timestamp,
)

__all__ = [
    'setup_logger',
    'setup_logger_from_config',
    'get_logger',
    'document_context',
    'to_half_width_digits',
    'strip_whitespace',
    'round_half_up',
    'compute_file_hash',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
]

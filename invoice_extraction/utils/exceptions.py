"""
Custom Exceptions Module.

The extraction core itself never raises for missing or malformed invoice
content: absent fields are reported as ``None``. The exceptions below are
raised only at the outer surfaces (configuration loading, the command-line
entry point and golden-file evaluation).

Exception Hierarchy:
    InvoiceExtractionError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   └── InputFileNotFoundError
    ├── ConfigurationError
    └── EvaluationError
        └── GroundTruthError
"""


class InvoiceExtractionError(Exception):
    """
    Base exception for all invoice extraction errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(InvoiceExtractionError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an input file is not an OCR text dump.

    Example:
        >>> raise UnsupportedFileTypeError(".pdf", [".txt"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class InputFileNotFoundError(InputError):
    """Raised when an input path cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(InvoiceExtractionError):
    """Raised when the settings file is missing or malformed."""
    pass


# =============================================================================
# EVALUATION ERRORS
# =============================================================================

class EvaluationError(InvoiceExtractionError):
    """Base exception for golden-file evaluation errors."""
    pass


class GroundTruthError(EvaluationError):
    """Raised when a ground-truth file cannot be loaded or is malformed."""

    def __init__(self, source: str, reason: str = None):
        message = f"Invalid ground truth: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'InvoiceExtractionError',
    'InputError',
    'UnsupportedFileTypeError',
    'InputFileNotFoundError',
    'ConfigurationError',
    'EvaluationError',
    'GroundTruthError',
]

"""
Plausibility Validators Module.

This module provides the filters extracted values must pass before they are
accepted:
    - Dates (real calendar date inside the configured year window)
    - Amounts (configured magnitude window)
    - Qualified-invoice registration numbers
    - Phone numbers and e-mail addresses

Every validator exposes ``validate`` returning ``(is_valid, message)`` and a
boolean shortcut ``is_valid`` suitable for use as a cascade rule validator.

Author: ML Engineering Team
"""

import re
from datetime import date
from typing import Tuple, Union

from dateutil.parser import isoparse

from config import get_config
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)


class DateValidator:
    """
    Validates ISO date strings.

    Example:
        >>> validator = DateValidator()
        >>> validator.is_valid("2024-11-24")
        True
        >>> validator.validate("2024-02-30")
        (False, "Invalid date: day is out of range for month")
    """

    ISO_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

    def __init__(self, min_year: int = None, max_year: int = None) -> None:
        """
        Initialize the date validator.

        Args:
            min_year: Earliest accepted year (default: extraction.date.min_year).
            max_year: Latest accepted year (default: extraction.date.max_year).
        """
        self.min_year = min_year if min_year is not None else get_config(
            "extraction.date.min_year", 1900
        )
        self.max_year = max_year if max_year is not None else get_config(
            "extraction.date.max_year", 2100
        )

    def is_valid(self, date_str: str) -> bool:
        valid, _ = self.validate(date_str)
        return valid

    def validate(self, date_str: str) -> Tuple[bool, str]:
        """
        Validate an ISO (YYYY-MM-DD) date string.

        Args:
            date_str: Date string to validate.

        Returns:
            Tuple of (is_valid, message).
        """
        if not date_str or not isinstance(date_str, str):
            return False, "Date is empty"

        if not self.ISO_PATTERN.match(date_str):
            return False, f"Not an ISO date: {date_str}"

        try:
            parsed = isoparse(date_str)
        except ValueError as e:
            return False, f"Invalid date: {e}"

        return self.validate_parts(parsed.year, parsed.month, parsed.day)

    def validate_parts(self, year: int, month: int, day: int) -> Tuple[bool, str]:
        """
        Validate a date given as numeric parts.

        Returns:
            Tuple of (is_valid, message).
        """
        if year < self.min_year:
            return False, f"Year {year} is before {self.min_year}"
        if year > self.max_year:
            return False, f"Year {year} is after {self.max_year}"

        try:
            date(year, month, day)
        except ValueError as e:
            return False, f"Invalid date: {e}"

        return True, "Valid date"


class AmountValidator:
    """
    Plausibility filter for monetary amounts in yen.

    Amounts are accepted when ``min_amount <= |amount| <= max_amount``.

    Example:
        >>> validator = AmountValidator()
        >>> validator.is_valid(1234567)
        True
        >>> validator.validate(50)
        (False, "Amount 50 is below 100")
    """

    def __init__(self, min_amount: float = None, max_amount: float = None) -> None:
        self.min_amount = min_amount if min_amount is not None else get_config(
            "extraction.amount.min", 100
        )
        self.max_amount = max_amount if max_amount is not None else get_config(
            "extraction.amount.max", 100000000
        )

    def is_valid(self, amount: Union[int, float]) -> bool:
        valid, _ = self.validate(amount)
        return valid

    def validate(self, amount: Union[int, float]) -> Tuple[bool, str]:
        """
        Validate an amount against the plausibility window.

        Args:
            amount: Numeric amount.

        Returns:
            Tuple of (is_valid, message).
        """
        if amount is None or isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return False, "Amount is not a number"

        magnitude = abs(amount)
        if magnitude < self.min_amount:
            return False, f"Amount {amount} is below {self.min_amount}"
        if magnitude > self.max_amount:
            return False, f"Amount {amount} is above {self.max_amount}"

        return True, "Valid amount"


class RegistrationNumberValidator:
    """Validates qualified-invoice registration numbers (T + 13 digits)."""

    PATTERN = re.compile(r'^T\d{13}$')

    def is_valid(self, value: str) -> bool:
        valid, _ = self.validate(value)
        return valid

    def validate(self, value: str) -> Tuple[bool, str]:
        if not value or not isinstance(value, str):
            return False, "Registration number is empty"
        if not self.PATTERN.match(value):
            return False, f"Registration number must be T followed by 13 digits: {value}"
        return True, "Valid registration number"


class PhoneNumberValidator:
    """
    Validates Japanese phone numbers.

    A phone number is accepted when it contains 10 or 11 digits and
    nothing but digits and hyphens.
    """

    ALLOWED = re.compile(r'^[\d-]+$')

    def is_valid(self, value: str) -> bool:
        valid, _ = self.validate(value)
        return valid

    def validate(self, value: str) -> Tuple[bool, str]:
        if not value or not isinstance(value, str):
            return False, "Phone number is empty"
        if not self.ALLOWED.match(value):
            return False, f"Phone number has invalid characters: {value}"

        digits = len(value.replace('-', ''))
        if digits < 10 or digits > 11:
            return False, f"Phone number must have 10-11 digits, got {digits}"

        return True, "Valid phone number"


class EmailValidator:
    """Validates e-mail addresses (an @ and a top-level domain of 2+ letters)."""

    TLD = re.compile(r'\.[a-zA-Z]{2,}$')

    def is_valid(self, value: str) -> bool:
        valid, _ = self.validate(value)
        return valid

    def validate(self, value: str) -> Tuple[bool, str]:
        if not value or not isinstance(value, str):
            return False, "Email is empty"
        if value.count('@') != 1:
            return False, f"Email must contain exactly one @: {value}"

        local, domain = value.split('@')
        if not local or not self.TLD.search(domain):
            return False, f"Email domain is invalid: {value}"

        return True, "Valid email"

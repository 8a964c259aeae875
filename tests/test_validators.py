"""Unit tests for plausibility validators and shared helpers."""

import pytest

from invoice_extraction.normalization import (
    AmountValidator,
    DateValidator,
    EmailValidator,
    PhoneNumberValidator,
    RegistrationNumberValidator,
)
from invoice_extraction.utils.helpers import round_half_up, to_half_width_digits

pytestmark = pytest.mark.unit


class TestDateValidator:
    def test_valid_iso_date(self):
        assert DateValidator().validate("2024-11-24") == (True, "Valid date")

    def test_impossible_day(self):
        """February 30th is not a calendar date."""
        valid, message = DateValidator().validate("2024-02-30")
        assert valid is False
        assert message.startswith("Invalid date")

    def test_year_window_from_arguments(self):
        validator = DateValidator(min_year=2000, max_year=2030)
        assert validator.is_valid("1999-12-31") is False
        assert validator.is_valid("2031-01-01") is False
        assert validator.is_valid("2030-12-31") is True

    def test_non_iso_rejected(self):
        assert DateValidator().is_valid("2024/11/24") is False
        assert DateValidator().is_valid(None) is False


class TestAmountValidator:
    @pytest.mark.parametrize("amount", [100, 1234567, 100000000, -5000, 100.5])
    def test_accepts_window(self, amount):
        assert AmountValidator().is_valid(amount) is True

    @pytest.mark.parametrize("amount", [99, 0, 100000001, None, True, "1000"])
    def test_rejects_outside_window(self, amount):
        assert AmountValidator().is_valid(amount) is False

    def test_message_names_the_bound(self):
        assert AmountValidator().validate(50) == (False, "Amount 50 is below 100")


class TestRegistrationNumberValidator:
    def test_t_plus_thirteen_digits(self):
        validator = RegistrationNumberValidator()
        assert validator.is_valid("T1234567890123") is True
        assert validator.is_valid("T123456789012") is False
        assert validator.is_valid("1234567890123") is False
        assert validator.is_valid("") is False


class TestPhoneNumberValidator:
    @pytest.mark.parametrize("value", ["03-1234-5678", "090-1234-5678", "0312345678"])
    def test_valid(self, value):
        assert PhoneNumberValidator().is_valid(value) is True

    @pytest.mark.parametrize("value", ["1234-5678", "03(1234)5678", "012-3456-78901", ""])
    def test_invalid(self, value):
        assert PhoneNumberValidator().is_valid(value) is False


class TestEmailValidator:
    def test_valid(self):
        assert EmailValidator().is_valid("billing@techsol.co.jp") is True

    @pytest.mark.parametrize("value", ["billing.techsol.co.jp", "a@b@c.jp", "@techsol.jp", "a@host"])
    def test_invalid(self, value):
        assert EmailValidator().is_valid(value) is False


class TestHelpers:
    def test_round_half_up(self):
        """Halves round away from zero, unlike the built-in round()."""
        assert round_half_up(12.5) == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(0.645, 2) == 0.65
        assert round_half_up(10.0, 1) == 10.0

    def test_half_width_digits(self):
        assert to_half_width_digits("１２３,４５６") == "123,456"

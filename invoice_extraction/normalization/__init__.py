"""
Normalization Module.

Canonicalizes raw OCR fragments (text, dates, amounts, company names) and
provides the plausibility validators applied to every extracted value.
"""

from .normalizers import (
    TextNormalizer,
    DateNormalizer,
    AmountParser,
    CompanyNameNormalizer,
    normalize_text,
    normalize_date,
    parse_amount,
    normalize_company_name,
)
from .validators import (
    DateValidator,
    AmountValidator,
    RegistrationNumberValidator,
    PhoneNumberValidator,
    EmailValidator,
)

__all__ = [
    'TextNormalizer',
    'DateNormalizer',
    'AmountParser',
    'CompanyNameNormalizer',
    'normalize_text',
    'normalize_date',
    'parse_amount',
    'normalize_company_name',
    'DateValidator',
    'AmountValidator',
    'RegistrationNumberValidator',
    'PhoneNumberValidator',
    'EmailValidator',
]

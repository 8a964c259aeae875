"""
Normalizers Module.

This module turns raw OCR fragments into canonical values:
    - TextNormalizer: repairs digit-group separators misread by OCR
    - DateNormalizer: Japanese/Western date tokens to ISO 8601
    - AmountParser: yen amount tokens to numbers
    - CompanyNameNormalizer: whitespace removal and legal-form abbreviation

All normalizers are pure: no state is kept between calls and no exception
escapes for malformed input, which is reported as ``None``.

Author: ML Engineering Team
"""

import re
from typing import List, Optional, Union

from config import get_config
from invoice_extraction.normalization.validators import AmountValidator, DateValidator
from invoice_extraction.utils.helpers import strip_whitespace, to_half_width_digits
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

Number = Union[int, float]


class TextNormalizer:
    """
    Repairs OCR noise in digit groups.

    OCR engines frequently read the thousands comma as a period and the yen
    sign as a backslash, so ``\\110.000`` and ``1.234.567`` appear where the
    document printed ``¥110,000`` and ``1,234,567``. Every ``.``-delimited
    three-digit group is rewritten with a comma until nothing changes.

    Example:
        >>> TextNormalizer().normalize("合計 \\\\110.000")
        "合計 110,000"
        >>> TextNormalizer().normalize("1.234.567")
        "1,234,567"
    """

    BACKSLASH_GROUP = re.compile(r'\\(\d+)\.(\d{3})')
    DOT_GROUP = re.compile(r'(\d{1,3})\.(\d{3})')
    LINE_BREAK = re.compile(r'\r\n|\r|\n')

    def normalize(self, text: str) -> str:
        """
        Rewrite dot-separated digit groups to comma form, to a fixed point.

        Args:
            text: Raw OCR text.

        Returns:
            Normalized text. Non-string input yields an empty string.
        """
        if not isinstance(text, str):
            return ""

        previous = None
        while previous != text:
            previous = text
            text = self.BACKSLASH_GROUP.sub(r'\1,\2', text)
            text = self.DOT_GROUP.sub(r'\1,\2', text)
        return text

    def split_lines(self, text: str) -> List[str]:
        """Split text into its ordered lines without collapsing whitespace."""
        if not isinstance(text, str) or not text:
            return []
        return self.LINE_BREAK.split(text)


class DateNormalizer:
    """
    Normalizes Japanese and Western date tokens to ISO format (YYYY-MM-DD).

    Recognized forms, tried in order:
        - ISO ``2024-11-24`` (validated)
        - ``2024/11/24``, ``2024-1-5``
        - ``2024.11.24``
        - ``2024年11月24日`` (trailing 日 optional)
        - Imperial era ``令和6年11月24日`` (令和/平成/昭和/大正, 元年 = year 1)

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("令和6年11月24日")
        "2024-11-24"
        >>> normalizer.normalize("2024/2/30") is None
        True
    """

    ERA_START_YEARS = {
        '令和': 2019,
        '平成': 1989,
        '昭和': 1926,
        '大正': 1912,
    }

    ISO_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
    WESTERN_PATTERNS = [
        re.compile(r'^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$'),
        re.compile(r'^(\d{4})\.(\d{1,2})\.(\d{1,2})$'),
        re.compile(r'^(\d{4})年(\d{1,2})月(\d{1,2})日?$'),
    ]
    ERA_PATTERN = re.compile(r'^(令和|平成|昭和|大正)(\d{1,2}|元)年(\d{1,2})月(\d{1,2})日?$')

    # Locates date tokens in free text; every alternative is accepted by normalize().
    TOKEN_PATTERN = re.compile(
        r'(?<!\d)(?:'
        r'\d{4}[/\-]\d{1,2}[/\-]\d{1,2}'
        r'|\d{4}\.\d{1,2}\.\d{1,2}'
        r'|\d{4}\s*年\s*\d{1,2}\s*月\s*\d{1,2}\s*日?'
        r'|(?:令和|平成|昭和|大正)\s*(?:\d{1,2}|元)\s*年\s*\d{1,2}\s*月\s*\d{1,2}\s*日?'
        r')(?!\d)'
    )

    def __init__(self, validator: Optional[DateValidator] = None) -> None:
        """
        Initialize the date normalizer.

        Args:
            validator: Date plausibility filter. Defaults to the configured
                year window.
        """
        self.validator = validator or DateValidator()

    def normalize(self, token: str) -> Optional[str]:
        """
        Normalize a date token to ISO format.

        Args:
            token: Date token such as "2024年11月24日".

        Returns:
            ISO date string, or None if the token is not a recognized,
            real date inside the accepted year window.
        """
        if not isinstance(token, str):
            return None

        cleaned = strip_whitespace(to_half_width_digits(token))
        if not cleaned:
            return None

        if self.ISO_PATTERN.match(cleaned):
            return cleaned if self.validator.is_valid(cleaned) else None

        for pattern in self.WESTERN_PATTERNS:
            match = pattern.match(cleaned)
            if match:
                year, month, day = (int(part) for part in match.groups())
                return self._to_iso(year, month, day, token)

        match = self.ERA_PATTERN.match(cleaned)
        if match:
            era, era_year, month, day = match.groups()
            era_year = 1 if era_year == '元' else int(era_year)
            year = self.ERA_START_YEARS[era] + era_year - 1
            return self._to_iso(year, int(month), int(day), token)

        logger.debug(f"Unrecognized date token: {token!r}")
        return None

    def _to_iso(self, year: int, month: int, day: int, token: str) -> Optional[str]:
        valid, message = self.validator.validate_parts(year, month, day)
        if not valid:
            logger.debug(f"Rejected date {token!r}: {message}")
            return None
        return f"{year:04d}-{month:02d}-{day:02d}"

    def find_all(self, text: str) -> List[str]:
        """
        Find every normalizable date in text, in document order.

        Args:
            text: Free text.

        Returns:
            ISO dates of all valid date tokens.
        """
        if not isinstance(text, str):
            return []

        dates = []
        for match in self.TOKEN_PATTERN.finditer(text):
            normalized = self.normalize(match.group(0))
            if normalized:
                dates.append(normalized)
        return dates


class AmountParser:
    """
    Parses yen amount tokens to numbers.

    Full-width digits are folded, currency marks (¥, ￥, backslash, 円) and
    thousands separators (``,`` and ``，``) removed, and the result must be
    a plain decimal number within the plausibility window.

    Example:
        >>> parser = AmountParser()
        >>> parser.parse("¥1,234,567")
        1234567
        >>> parser.parse("１２３，４５６円")
        123456
        >>> parser.parse("50") is None
        True
    """

    STRIP_PATTERN = re.compile(r'[¥\\￥,，円\s]')
    NUMBER_PATTERN = re.compile(r'^-?\d+(\.\d+)?$')

    def __init__(self, validator: Optional[AmountValidator] = None) -> None:
        self.validator = validator or AmountValidator()

    def to_number(self, token: str) -> Optional[Number]:
        """
        Convert a token to a number without the plausibility filter.

        Returns:
            int for integral tokens, float for decimal tokens, else None.
        """
        if not isinstance(token, str):
            return None

        cleaned = self.STRIP_PATTERN.sub('', to_half_width_digits(token))
        match = self.NUMBER_PATTERN.match(cleaned)
        if not match:
            return None

        if match.group(1):
            return float(cleaned)
        return int(cleaned)

    def parse(self, token: str) -> Optional[Number]:
        """
        Parse an amount token and apply the plausibility filter.

        Args:
            token: Amount token such as "¥110,000".

        Returns:
            The amount, or None when unparseable or implausible.
        """
        amount = self.to_number(token)
        if amount is None:
            return None

        valid, message = self.validator.validate(amount)
        if not valid:
            logger.debug(f"Rejected amount {token!r}: {message}")
            return None
        return amount


class CompanyNameNormalizer:
    """
    Normalizes company names for comparison and reconciliation.

    Whitespace (including the ideographic space) is removed. Optionally the
    legal-entity form is abbreviated the way it is printed on bank transfer
    records, e.g. 株式会社 → (株).

    Example:
        >>> CompanyNameNormalizer().normalize("株式会社 サンプル 商事")
        "株式会社サンプル商事"
        >>> CompanyNameNormalizer().normalize("株式会社サンプル", abbreviate=True)
        "(株)サンプル"
    """

    ABBREVIATIONS = {
        '株式会社': '(株)',
        '有限会社': '(有)',
        '合同会社': '(同)',
        '合資会社': '(資)',
        '合名会社': '(名)',
        '一般社団法人': '(一社)',
        '一般財団法人': '(一財)',
        '公益社団法人': '(公社)',
        '公益財団法人': '(公財)',
    }

    def normalize(self, name: str, abbreviate: bool = False) -> str:
        """
        Normalize a company name.

        Args:
            name: Company name as extracted.
            abbreviate: Replace legal-entity forms with their short forms.

        Returns:
            Normalized name ("" for empty or non-string input).
        """
        if not isinstance(name, str):
            return ""

        normalized = strip_whitespace(name)
        if abbreviate:
            for full, short in self.ABBREVIATIONS.items():
                normalized = normalized.replace(full, short)
        return normalized


def normalize_text(text: str) -> str:
    """Module-level shortcut for TextNormalizer().normalize()."""
    return TextNormalizer().normalize(text)


def normalize_date(token: str) -> Optional[str]:
    """Module-level shortcut for DateNormalizer().normalize()."""
    return DateNormalizer().normalize(token)


def parse_amount(token: str) -> Optional[Number]:
    """Module-level shortcut for AmountParser().parse()."""
    return AmountParser().parse(token)


def normalize_company_name(name: str, abbreviate: bool = False) -> str:
    """Module-level shortcut for CompanyNameNormalizer().normalize()."""
    return CompanyNameNormalizer().normalize(name, abbreviate=abbreviate)

"""
Amount Field Extraction Module.

Extracts the monetary fields printed on the invoice:
    - Total, subtotal and consumption tax
    - Tax rate stated on the document
    - Per-rate breakdown lines (10%対象 / 8%対象)

Reconciling these into a consistent set is done by AmountReconciler.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from invoice_extraction.extraction.cascade import FieldExtractorCascade, compile_rule
from invoice_extraction.extraction.extraction_result import ExtractedField, TaxBreakdown
from invoice_extraction.normalization.normalizers import AmountParser
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

VALUE = r'([0-9０-９][0-9０-９,，]*)'
PREFIX = r'[:\s：¥\\￥円]*'
TAX_INCLUDED = r'(?:[ \t　]*[(（]税込[)）])?'
PERCENT = r'[%％]'
PRICE_TOKEN = re.compile(r'[¥￥\\]?[ \t　]*(?:\d{1,3}(?:[,，]\d{3})+|\d{3,})(?![\d%％])')
RATE_LINE = re.compile(r'(10|8)[ \t　]*' + PERCENT + r'[ \t　]*対象')


@dataclass(frozen=True)
class AmountFields:
    """Amounts as printed, before reconciliation."""
    subtotal: Optional[ExtractedField] = None
    tax_amount: Optional[ExtractedField] = None
    total_amount: Optional[ExtractedField] = None
    tax_rate: Optional[ExtractedField] = None
    breakdown: Tuple[TaxBreakdown, ...] = ()

    @staticmethod
    def value_of(extracted: Optional[ExtractedField]):
        return extracted.value if extracted else None


class AmountFieldExtractor:
    """
    Extracts labeled amounts with heuristic fallbacks for the total.

    When no total label is found, the largest comma-grouped plausible
    number is taken (confidence 0.6), then the largest plain 4-8 digit
    plausible number (confidence 0.4).

    Example:
        >>> fields = AmountFieldExtractor().extract("小計 100,000\\n消費税 10,000\\n合計 110,000")
        >>> fields.total_amount.value, fields.subtotal.value, fields.tax_amount.value
        (110000, 100000, 10000)
    """

    def __init__(self, amount_parser: Optional[AmountParser] = None) -> None:
        self.amount_parser = amount_parser or AmountParser()
        parse = self.amount_parser.parse

        self.total = FieldExtractorCascade("total_amount", [
            compile_rule(
                r'(?:合計金額|税込合計|合計|総額|御請求金額|ご請求金額|御請求額|ご請求額|請求金額|請求額|(?<![A-Za-z])Total)'
                + TAX_INCLUDED + PREFIX + VALUE,
                0.9, re.IGNORECASE, converter=parse
            ),
            compile_rule(
                r'(?<!税抜)(?<!税別)(?<!抜き)(?<!対象)(?:金額|Amount)' + TAX_INCLUDED + PREFIX + VALUE,
                0.7, re.IGNORECASE, converter=parse
            ),
            compile_rule(
                r'[¥￥\\][ \t　]*' + VALUE + r'[ \t　]*(?:円|JPY|yen)',
                0.7, re.IGNORECASE, converter=parse
            ),
            compile_rule(
                r'(?<![\d,，])(\d{1,3}(?:[,，]\d{3})+)(?![\d,，])',
                0.6, converter=parse, pick=max
            ),
            compile_rule(
                r'(?<![\d,，.\-/])(\d{4,8})(?![\d,，.\-/年月日])',
                0.4, converter=parse, pick=max
            ),
        ])

        self.subtotal = FieldExtractorCascade("subtotal", [
            compile_rule(
                r'(?:小計金額|小計|Sub\s*total)' + PREFIX + VALUE,
                0.9, re.IGNORECASE, converter=parse
            ),
            compile_rule(
                r'(?:税抜金額|税抜き金額|税抜合計|税抜き|税抜|税別金額|税別)' + PREFIX + VALUE,
                0.9, converter=parse
            ),
            compile_rule(r'課税対象額' + PREFIX + VALUE, 0.85, converter=parse),
        ])

        self.tax = FieldExtractorCascade("tax_amount", [
            compile_rule(
                r'(?:消費税額|消費税|税額|Tax|VAT)' + PREFIX + VALUE,
                0.9, converter=parse
            ),
            compile_rule(
                r'(?:消費税|税額|税)[ \t　]*[(（]?[ \t　]*(?:10|8)[ \t　]*' + PERCENT
                + r'[ \t　]*[)）]?' + PREFIX + VALUE,
                0.9, converter=parse
            ),
            compile_rule(r'(?:内消費税|税金|内税|外税)' + PREFIX + VALUE, 0.8, converter=parse),
            compile_rule(
                r'(?:10|8)' + PERCENT + r'(?:消費税|税額)' + PREFIX + VALUE,
                0.8, converter=parse
            ),
        ])

        self.tax_rate = FieldExtractorCascade("tax_rate", [
            compile_rule(
                r'(10|8)[ \t　]*' + PERCENT + r'[ \t　]*(?:対象|税率|消費税)',
                0.8, converter=float
            ),
            compile_rule(
                r'(?:消費税率|税率)[ \t　]*[:：]?[ \t　]*(10|8)[ \t　]*' + PERCENT,
                0.8, converter=float
            ),
        ])

    def extract_total(self, text: str) -> Optional[ExtractedField]:
        return self.total.extract(text)

    def extract_subtotal(self, text: str) -> Optional[ExtractedField]:
        return self.subtotal.extract(text)

    def extract_tax(self, text: str) -> Optional[ExtractedField]:
        return self.tax.extract(text)

    def detect_tax_rate(self, text: str) -> Optional[ExtractedField]:
        """Tax rate stated next to a 対象/税率/消費税 label, in percent."""
        return self.tax_rate.extract(text)

    def extract_breakdown(self, lines: Sequence[str]) -> Tuple[TaxBreakdown, ...]:
        """
        Parse per-rate lines such as "10%対象 100,000 消費税 10,000".

        A line yields an entry only when it carries both the taxable amount
        and a tax amount not larger than it.

        Args:
            lines: Document lines.

        Returns:
            Breakdown entries in document order, one per rate.
        """
        entries = []
        seen_rates = set()

        for line in lines:
            match = RATE_LINE.search(line)
            if not match:
                continue

            rate = float(match.group(1))
            amounts = [
                self.amount_parser.parse(token.group(0))
                for token in PRICE_TOKEN.finditer(line, match.end())
            ]
            amounts = [amount for amount in amounts if amount is not None]
            if len(amounts) < 2 or rate in seen_rates:
                continue

            taxable, tax = amounts[0], amounts[1]
            if tax > taxable:
                continue

            seen_rates.add(rate)
            entries.append(TaxBreakdown(rate=rate, amount=tax, taxable_amount=taxable))

        return tuple(entries)

    def extract(self, text: str, lines: Optional[Sequence[str]] = None) -> AmountFields:
        """
        Extract every amount field.

        Args:
            text: Normalized document text.
            lines: Document lines (split from text when omitted).

        Returns:
            AmountFields with the printed values.
        """
        if not isinstance(text, str):
            return AmountFields()
        if lines is None:
            lines = text.splitlines()

        return AmountFields(
            subtotal=self.extract_subtotal(text),
            tax_amount=self.extract_tax(text),
            total_amount=self.extract_total(text),
            tax_rate=self.detect_tax_rate(text),
            breakdown=self.extract_breakdown(lines),
        )

"""
Document Field Extraction Module.

Extracts document-level identifiers and dates:
    - Invoice number
    - Issue, transaction and due dates
    - Subject (件名), order number, project name
    - Billing period

Author: ML Engineering Team
"""

import re
from typing import List, Optional

from invoice_extraction.extraction.cascade import (
    FieldExtractorCascade,
    compile_rule,
)
from invoice_extraction.extraction.extraction_result import BillingPeriod, ExtractedField
from invoice_extraction.normalization.normalizers import DateNormalizer
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

DATE = DateNormalizer.TOKEN_PATTERN.pattern
DOCUMENT_ID = r'([A-Za-z0-9][A-Za-z0-9\-_]*)'
SEP = r'[:\s：]*'
LINE_VALUE = r'[ \t　]*[:：]?[ \t　]*([^\n]+)'


PHONE_LIKE = re.compile(r'^0\d{1,4}-\d{1,4}-\d{4}$')


def _is_document_id(value: str) -> bool:
    """At least 3 characters, at least one digit, not a phone number."""
    return (
        len(value) >= 3
        and any(ch.isdigit() for ch in value)
        and not PHONE_LIKE.match(value)
    )


def _second(values: List[str]) -> Optional[str]:
    return values[1] if len(values) > 1 else None


def _clean_label_value(value: str) -> Optional[str]:
    cleaned = re.sub(r'\s+', ' ', value).strip(' ：:')
    return cleaned or None


class DocumentFieldExtractor:
    """
    Extracts identifiers and dates from normalized invoice text.

    Example:
        >>> extractor = DocumentFieldExtractor()
        >>> extractor.extract_invoice_number("請求書番号: INV-2024-001").value
        "INV-2024-001"
        >>> extractor.extract_issue_date("請求日 令和6年11月24日").value
        "2024-11-24"
    """

    def __init__(self, date_normalizer: Optional[DateNormalizer] = None) -> None:
        self.date_normalizer = date_normalizer or DateNormalizer()
        to_date = self.date_normalizer.normalize

        self.invoice_number = FieldExtractorCascade("invoice_number", [
            compile_rule(
                r'(?:請求書番号|請求No\.?|Invoice\s*No\.?|Invoice\s*Number|請求書\s*No\.?)'
                r'[:\s：#]*' + DOCUMENT_ID,
                0.9, re.IGNORECASE, validator=_is_document_id
            ),
            compile_rule(
                r'(?<!登録)(?<!口座)(?<!電話)(?<!注文)(?<!発注)(?<!郵便)(?:No\.?|番号)' + SEP + DOCUMENT_ID,
                0.7, validator=_is_document_id
            ),
            compile_rule(
                r'請求書[:\s：]+' + DOCUMENT_ID,
                0.6, validator=_is_document_id
            ),
        ])

        self.issue_date = FieldExtractorCascade("issue_date", [
            compile_rule(
                r'(?:請求日|発行日|請求書日付|作成日|発行年月日)' + SEP + f'({DATE})',
                0.9, converter=to_date
            ),
            compile_rule(f'({DATE})', 0.6, converter=to_date),
        ])

        self.transaction_date = FieldExtractorCascade("transaction_date", [
            compile_rule(
                r'(?:お取引日|取引日|納品日|役務提供日)' + SEP + f'({DATE})',
                0.85, converter=to_date
            ),
        ])

        self.due_date = FieldExtractorCascade("due_date", [
            compile_rule(
                r'(?:お支払期限|支払期限|お支払い期限|支払い期限|振込期限|期限|Due\s*Date)'
                + SEP + f'({DATE})',
                0.9, re.IGNORECASE, converter=to_date
            ),
            compile_rule(f'({DATE})', 0.5, converter=to_date, pick=_second),
        ])

        self.subject = FieldExtractorCascade("subject", [
            compile_rule(r'件\s*名' + LINE_VALUE, 0.85, converter=_clean_label_value),
        ])

        self.order_number = FieldExtractorCascade("order_number", [
            compile_rule(
                r'(?:注文番号|発注番号|注文No\.?|発注No\.?|PO\s*No\.?)[:\s：#]*' + DOCUMENT_ID,
                0.85, re.IGNORECASE, validator=_is_document_id
            ),
        ])

        self.project_name = FieldExtractorCascade("project_name", [
            compile_rule(r'(?:案件名|プロジェクト名)' + LINE_VALUE, 0.85,
                         converter=_clean_label_value),
        ])

        self.billing_period = re.compile(
            r'(?:対象期間|請求期間|ご利用期間|利用期間)' + SEP
            + f'({DATE})' + r'\s*[〜~～\-ー－から]+\s*' + f'({DATE})'
        )

    def extract_invoice_number(self, text: str) -> Optional[ExtractedField]:
        return self.invoice_number.extract(text)

    def extract_issue_date(self, text: str) -> Optional[ExtractedField]:
        return self.issue_date.extract(text)

    def extract_transaction_date(self, text: str) -> Optional[ExtractedField]:
        """Labeled transaction date only; callers fall back to the issue date."""
        return self.transaction_date.extract(text)

    def extract_due_date(self, text: str) -> Optional[ExtractedField]:
        return self.due_date.extract(text)

    def extract_subject(self, text: str) -> Optional[ExtractedField]:
        return self.subject.extract(text)

    def extract_order_number(self, text: str) -> Optional[ExtractedField]:
        return self.order_number.extract(text)

    def extract_project_name(self, text: str) -> Optional[ExtractedField]:
        return self.project_name.extract(text)

    def extract_billing_period(self, text: str) -> Optional[ExtractedField]:
        """
        Extract a labeled service period such as "対象期間: 2024/11/1〜2024/11/30".

        Returns:
            ExtractedField holding a BillingPeriod, or None.
        """
        if not isinstance(text, str):
            return None

        for match in self.billing_period.finditer(text):
            start = self.date_normalizer.normalize(match.group(1))
            end = self.date_normalizer.normalize(match.group(2))
            if start and end and start <= end:
                return ExtractedField(value=BillingPeriod(start=start, end=end), confidence=0.85)
        return None


def extract_invoice_number(text: str) -> Optional[str]:
    """Return the invoice number found in text, or None."""
    return DocumentFieldExtractor().invoice_number.extract_value(text)


def extract_issue_date(text: str) -> Optional[str]:
    """Return the ISO issue date found in text, or None."""
    return DocumentFieldExtractor().issue_date.extract_value(text)

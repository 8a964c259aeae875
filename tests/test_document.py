"""Unit tests for invoice number, date and label extraction."""

import pytest

from invoice_extraction.extraction import (
    BillingPeriod,
    DocumentFieldExtractor,
    extract_invoice_number,
    extract_issue_date,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def extractor():
    return DocumentFieldExtractor()


class TestInvoiceNumber:
    def test_labeled(self, extractor):
        extracted = extractor.extract_invoice_number("請求書番号: INV-2024-001")
        assert extracted.value == "INV-2024-001"
        assert extracted.confidence == 0.9

    def test_english_label(self):
        assert extract_invoice_number("Invoice No. 2024-118") == "2024-118"

    def test_generic_number_label(self, extractor):
        """A bare No./番号 label is accepted with lower confidence."""
        extracted = extractor.extract_invoice_number("No. 12345")
        assert extracted.value == "12345"
        assert extracted.confidence == 0.7

    def test_phone_number_rejected(self):
        assert extract_invoice_number("番号 03-1234-5678") is None

    def test_registration_number_is_not_an_invoice_number(self):
        assert extract_invoice_number("登録番号 T1234567890123") is None

    def test_postal_code_is_not_an_invoice_number(self):
        assert extract_invoice_number("郵便番号 150-0002") is None

    def test_value_without_digits_rejected(self):
        assert extract_invoice_number("請求書番号: ABC") is None


class TestDates:
    def test_labeled_issue_date(self, extractor):
        extracted = extractor.extract_issue_date("請求日 令和6年11月24日")
        assert extracted.value == "2024-11-24"
        assert extracted.confidence == 0.9

    def test_unlabeled_issue_date(self, extractor):
        """The first date in the document is a weaker issue-date candidate."""
        extracted = extractor.extract_issue_date("2024/11/24 発行")
        assert extracted.value == "2024-11-24"
        assert extracted.confidence == 0.6

    def test_invalid_issue_date_skipped(self):
        assert extract_issue_date("請求日 2024/2/30\n作成日 2024/3/1") == "2024-03-01"

    def test_labeled_due_date(self, extractor):
        assert extractor.extract_due_date("お支払期限: 2024年12月31日").value == "2024-12-31"

    def test_due_date_falls_back_to_second_date(self, extractor):
        extracted = extractor.extract_due_date("2024/11/24\n2024/12/31")
        assert extracted.value == "2024-12-31"
        assert extracted.confidence == 0.5

    def test_single_date_is_not_a_due_date(self, extractor):
        assert extractor.extract_due_date("2024/11/24") is None

    def test_transaction_date_requires_label(self, extractor):
        assert extractor.extract_transaction_date("2024/11/24") is None
        assert extractor.extract_transaction_date("納品日: 2024/11/20").value == "2024-11-20"


class TestLabels:
    def test_subject(self, extractor):
        assert extractor.extract_subject("件名: Webサイト制作費用\n").value == "Webサイト制作費用"

    def test_order_number(self, extractor):
        assert extractor.extract_order_number("注文番号: PO-1234").value == "PO-1234"

    def test_project_name(self, extractor):
        assert extractor.extract_project_name("案件名：基幹システム刷新").value == "基幹システム刷新"

    def test_billing_period(self, extractor):
        extracted = extractor.extract_billing_period("対象期間: 2024/11/01〜2024/11/30")
        assert extracted.value == BillingPeriod(start="2024-11-01", end="2024-11-30")

    def test_reversed_billing_period_rejected(self, extractor):
        assert extractor.extract_billing_period("対象期間: 2024/12/01〜2024/11/01") is None

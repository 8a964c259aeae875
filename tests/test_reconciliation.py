"""Unit tests for amount reconciliation and completeness scoring."""

import pytest

from invoice_extraction.assembly import AmountReconciler, ConfidenceScorer
from invoice_extraction.extraction import (
    AmountInfo,
    BillingTo,
    InvoiceBasicInfo,
    IssuerInfo,
    LineItem,
    PaymentTerms,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def reconciler():
    return AmountReconciler()


class TestAmountReconciler:
    def test_all_printed(self, reconciler):
        reconciled = reconciler.reconcile(120000, 12000, 132000)
        assert (reconciled.subtotal, reconciled.tax_amount, reconciled.total_amount) == (
            120000, 12000, 132000
        )
        assert reconciled.tax_rate == 10.0
        assert reconciled.tier == 1

    def test_total_defaults_to_sum(self, reconciler):
        reconciled = reconciler.reconcile(subtotal=5000, tax=400)
        assert reconciled.total_amount == 5400
        assert reconciled.tax_rate == 8.0

    def test_subtotal_and_total(self, reconciler):
        reconciled = reconciler.reconcile(subtotal=100000, total=110000)
        assert reconciled.tax_amount == 10000
        assert reconciled.tier == 2

    def test_subtotal_only(self, reconciler):
        """Without a total the subtotal is billed untaxed."""
        reconciled = reconciler.reconcile(subtotal=100000)
        assert (reconciled.subtotal, reconciled.tax_amount, reconciled.total_amount) == (
            100000, 0, 100000
        )
        assert reconciled.tax_rate == 0.0

    def test_tax_and_total(self, reconciler):
        reconciled = reconciler.reconcile(tax=10000, total=110000)
        assert reconciled.subtotal == 100000
        assert reconciled.tax_rate == 10.0
        assert reconciled.tier == 3

    def test_tax_only_uses_detected_rate(self, reconciler):
        reconciled = reconciler.reconcile(tax=800, detected_rate=8.0)
        assert reconciled.subtotal == 0
        assert reconciled.tax_rate == 8.0

    def test_total_only_split_with_default_rate(self, reconciler):
        reconciled = reconciler.reconcile(total=110000)
        assert (reconciled.subtotal, reconciled.tax_amount, reconciled.total_amount) == (
            100000, 10000, 110000
        )
        assert reconciled.tax_rate == 10.0
        assert reconciled.tier == 4

    def test_total_only_split_with_detected_rate(self, reconciler):
        reconciled = reconciler.reconcile(total=10800, detected_rate=8.0)
        assert (reconciled.subtotal, reconciled.tax_amount) == (10000, 800)

    def test_split_rounds_half_up(self):
        reconciled = AmountReconciler(default_tax_rate=10).reconcile(total=1001)
        assert reconciled.subtotal == 910
        assert reconciled.tax_amount == 91

    def test_nothing_printed(self, reconciler):
        reconciled = reconciler.reconcile()
        assert (reconciled.subtotal, reconciled.tax_amount, reconciled.total_amount) == (0, 0, 0)
        assert reconciled.tax_rate == 10.0

    def test_effective_rate_one_decimal(self, reconciler):
        assert reconciler.reconcile(30000, 2550, 32550).tax_rate == 8.5


class TestConfidenceScorer:
    def test_complete_record(self):
        report = ConfidenceScorer().score(
            InvoiceBasicInfo("INV-1", "2024-11-24", "2024-11-24", subject="制作費"),
            BillingTo("株式会社サンプル", "経理部", "山田 太郎"),
            IssuerInfo("株式会社発行", "東京都渋谷区1-1", "03-1234-5678", "a@b.jp", "T1234567890123"),
            AmountInfo(100000, 10000, 110000),
            [LineItem("制作", 100000)],
            PaymentTerms(due_date="2024-12-31"),
        )
        assert report.score == 1.0
        assert report.populated == report.total == 17
        assert report.missing == ()

    def test_empty_record(self):
        """Sentinel names and zero amounts do not count as populated."""
        report = ConfidenceScorer().score(
            InvoiceBasicInfo(), BillingTo("不明"), None, AmountInfo(), [], PaymentTerms()
        )
        assert report.score == 0.0
        assert report.populated == 0

    def test_sparse_record(self):
        report = ConfidenceScorer().score(
            InvoiceBasicInfo(invoice_number="INV-1"),
            BillingTo("株式会社サンプル"),
            None,
            AmountInfo(total_amount=110000),
            [],
            PaymentTerms(bank_name="みずほ銀行"),
        )
        # invoice_number, client_name, tax_amount, total_amount, payment_terms
        assert report.populated == 5
        assert report.score == 0.29
        assert "issuer_name" in report.missing
        assert 0.0 <= report.score <= 1.0

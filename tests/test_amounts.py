"""Unit tests for printed amount extraction."""

import pytest

from invoice_extraction.extraction import AmountFieldExtractor, TaxBreakdown

pytestmark = pytest.mark.unit


@pytest.fixture
def extractor():
    return AmountFieldExtractor()


class TestLabeledAmounts:
    def test_subtotal_tax_total(self, extractor):
        fields = extractor.extract("小計 100,000\n消費税 10,000\n合計 110,000")
        assert fields.subtotal.value == 100000
        assert fields.tax_amount.value == 10000
        assert fields.total_amount.value == 110000
        assert fields.total_amount.confidence == 0.9

    def test_english_labels(self, extractor):
        """Total inside Subtotal is not mistaken for the total label."""
        fields = extractor.extract("Subtotal 100,000\nTotal 110,000")
        assert fields.subtotal.value == 100000
        assert fields.total_amount.value == 110000

    def test_tax_with_rate_in_label(self, extractor):
        assert extractor.extract_tax("消費税(10%) 12,000").value == 12000

    def test_tax_included_total(self, extractor):
        assert extractor.extract_total("合計(税込) ¥132,000").value == 132000

    def test_non_string_input(self, extractor):
        fields = extractor.extract(None)
        assert fields.total_amount is None
        assert fields.breakdown == ()


class TestTotalFallbacks:
    def test_largest_grouped_number(self, extractor):
        extracted = extractor.extract_total("Web制作 100,000\n保守 10,000\n110,000")
        assert extracted.value == 110000
        assert extracted.confidence == 0.6

    def test_largest_plain_number(self, extractor):
        extracted = extractor.extract_total("伝票 12345\n2024年 5000")
        assert extracted.value == 12345
        assert extracted.confidence == 0.4

    def test_implausible_values_skipped(self, extractor):
        assert extractor.extract_total("合計 50") is None


class TestTaxRate:
    def test_rate_next_to_target_label(self, extractor):
        extracted = extractor.detect_tax_rate("10%対象 100,000")
        assert extracted.value == 10.0

    def test_rate_after_label(self, extractor):
        assert extractor.detect_tax_rate("消費税率: 8%").value == 8.0

    def test_no_rate(self, extractor):
        assert extractor.detect_tax_rate("消費税(10%) 12,000") is None


class TestBreakdown:
    def test_two_rates(self, extractor):
        lines = ["10%対象 100,000 消費税 10,000", "8%対象 5,000 消費税 400"]
        assert extractor.extract_breakdown(lines) == (
            TaxBreakdown(rate=10.0, amount=10000, taxable_amount=100000),
            TaxBreakdown(rate=8.0, amount=400, taxable_amount=5000),
        )

    def test_incomplete_line_skipped(self, extractor):
        assert extractor.extract_breakdown(["10%対象 100,000"]) == ()

    def test_tax_larger_than_base_skipped(self, extractor):
        assert extractor.extract_breakdown(["10%対象 1,000 消費税 5,000"]) == ()

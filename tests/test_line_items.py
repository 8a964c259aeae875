"""Unit tests for line-item table reconstruction."""

import pytest

from invoice_extraction.extraction import LineItem, LineItemTableExtractor, extract_line_items

pytestmark = pytest.mark.unit

PIPE_TABLE = [
    "請求書",
    "品名|数量|単価|金額",
    "Web制作|1|100,000|100,000",
    "保守サポート",
    "(11月分)|1|20,000|20,000",
    "",
    "小計 120,000",
    "Web制作|1|999,999|999,999",
]


@pytest.fixture
def extractor():
    return LineItemTableExtractor()


class TestHeader:
    @pytest.mark.parametrize(
        "line",
        ["品名|数量|単価|金額", "品 名  数 量", "摘要\t\t\t", "Description  Qty  Amount"],
    )
    def test_header_lines(self, extractor, line):
        assert extractor.is_header(line) is True

    @pytest.mark.parametrize("line", ["合計 金額 110,000", "件名: 品名の変更", "請求書", "| | |"])
    def test_non_header_lines(self, extractor, line):
        assert extractor.is_header(line) is False

    def test_find_header(self, extractor):
        assert extractor.find_header(PIPE_TABLE) == 1
        assert extractor.find_header(["請求書", "合計 110,000"]) is None


class TestRows:
    def test_pipe_table_with_wrapped_description(self, extractor):
        """A price-less line is merged into the next priced row."""
        items = extractor.extract(PIPE_TABLE)
        assert items == [
            LineItem(description="Web制作", amount=100000, quantity=1, unit_price=100000),
            LineItem(description="保守サポート (11月分)", amount=20000, quantity=1, unit_price=20000),
        ]

    def test_two_pending_lines_merged(self, extractor):
        """Consecutive price-less lines build one description."""
        items = extractor.extract([
            "品名|数量|単価|金額",
            "システム",
            "保守作業",
            "(11月分)|1|20,000|20,000",
        ])
        assert items == [
            LineItem(description="システム 保守作業 (11月分)", amount=20000, quantity=1, unit_price=20000),
        ]

    def test_large_quantity_cell_is_not_a_price(self, extractor):
        items = extractor.extract(["品名|数量|単価|金額", "ボルト|100|500|50,000"])
        assert items == [
            LineItem(description="ボルト", amount=50000, quantity=100, unit_price=500),
        ]

    def test_no_header_no_items(self, extractor):
        assert extractor.extract(["請求書", "Web制作 100,000", "合計 110,000"]) == []
        assert extractor.extract([]) == []

    def test_space_separated_columns_with_unit(self, extractor):
        items = extractor.extract([
            "品名  数量  単価  金額",
            "サーバー保守  3台  10,000  30,000",
        ])
        assert items == [
            LineItem(description="サーバー保守", amount=30000, quantity=3, unit="台", unit_price=10000),
        ]

    def test_unit_price_derived_from_single_amount(self, extractor):
        items = extractor.extract(["品名|数量|金額", "Web制作|3|100,000"])
        assert items[0].amount == 100000
        assert items[0].quantity == 3
        assert items[0].unit_price == 33333

    def test_row_tax_rate(self, extractor):
        items = extractor.extract(["品名|数量|税率|単価|金額", "Web制作|1|10%|100,000|100,000"])
        assert items[0].tax_rate == 10.0
        assert items[0].unit_price == 100000

    def test_payment_noise_skipped(self, extractor):
        items = extractor.extract([
            "品名|数量|単価|金額",
            "振込先 みずほ銀行 1234567",
            "Web制作|1|100,000|100,000",
        ])
        assert [item.description for item in items] == ["Web制作"]

    def test_stops_at_rate_summary(self, extractor):
        items = extractor.extract([
            "品名|数量|単価|金額",
            "Web制作|1|100,000|100,000",
            "10%対象 100,000",
            "Web保守|1|20,000|20,000",
        ])
        assert len(items) == 1

    def test_row_cap(self):
        lines = ["品名|数量|単価|金額"] + [f"作業{n}|1|1,000|1,000" for n in range(5)]
        assert len(LineItemTableExtractor(max_rows=3).extract(lines)) == 3


class TestFallback:
    LINES = ["品名|数量|単価|金額", "コンサルティング費用", "小計 100,000"]

    def test_pending_description_gets_fallback_amount(self):
        assert extract_line_items(self.LINES, fallback_amount=100000) == [
            LineItem(description="コンサルティング費用", amount=100000, unit_price=100000),
        ]

    def test_no_fallback_amount(self):
        assert extract_line_items(self.LINES) == []

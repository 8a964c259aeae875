"""End-to-end tests for record assembly from OCR text."""

import dataclasses
import json

import pytest

from invoice_extraction.assembly import InvoiceDataAssembler, compute_invoice_id
from invoice_extraction.extraction import (
    InvoiceExtractionResult,
    LineItem,
    TaxBreakdown,
)
from invoice_extraction.recognition import RecognizedText

FILE_HASH = "a" * 64


@pytest.fixture
def assembler(fixed_clock):
    return InvoiceDataAssembler(clock=fixed_clock)


@pytest.fixture
def sample_result(assembler, sample_text):
    return assembler.assemble(sample_text, "sample_invoice.pdf", FILE_HASH)


class TestSampleInvoice:
    def test_basic_info(self, sample_result):
        basic = sample_result.basic_info
        assert basic.invoice_number == "INV-2024-0015"
        assert basic.issue_date == "2024-11-24"
        assert basic.transaction_date == "2024-11-24"
        assert basic.subject == "Webサイト制作費用"
        assert basic.currency == "JPY"

    def test_parties(self, sample_result):
        assert sample_result.billing_to.company_name == "株式会社サンプル商事"
        assert sample_result.billing_to.department == "経理部"
        assert sample_result.billing_to.contact_person == "山田 太郎"

        issuer = sample_result.issuer_info
        assert issuer.name == "株式会社テックソリューションズ"
        assert issuer.address == "〒150-0002 東京都渋谷区渋谷2-21-1"
        assert issuer.phone == "03-1234-5678"
        assert issuer.email == "billing@techsol.co.jp"
        assert issuer.registration_number == "T1234567890123"

    def test_amounts(self, sample_result):
        amounts = sample_result.amount_info
        assert (amounts.subtotal, amounts.tax_amount, amounts.total_amount) == (
            120000, 12000, 132000
        )
        assert amounts.tax_rate == 10.0
        assert amounts.tax_exempt is False
        assert amounts.tax_breakdown == (
            TaxBreakdown(rate=10.0, amount=12000, taxable_amount=120000),
        )

    def test_line_items(self, sample_result):
        assert sample_result.line_items == (
            LineItem(description="Web制作", amount=100000, quantity=1, unit_price=100000),
            LineItem(description="保守サポート (11月分)", amount=20000, quantity=1, unit_price=20000),
        )

    def test_payment_terms(self, sample_result):
        terms = sample_result.payment_terms
        assert terms.due_date == "2024-12-31"
        assert terms.bank_name == "みずほ銀行"
        assert terms.branch_name == "渋谷支店"
        assert terms.account_type == "普通預金"
        assert terms.account_number == "1234567"
        assert terms.account_holder == "カ)テックソリューションズ"

    def test_metadata(self, sample_result, fixed_clock):
        metadata = sample_result.metadata
        assert metadata.source == "pdf_import"
        assert metadata.file_name == "sample_invoice.pdf"
        assert metadata.file_hash == FILE_HASH
        assert metadata.ocr_confidence == 1.0
        assert metadata.created_at == metadata.updated_at == fixed_clock().isoformat()
        assert metadata.status == "draft"
        assert metadata.is_readonly is True
        assert sample_result.warnings == ()

    def test_field_confidences(self, sample_result):
        assert sample_result.get_confidence("invoice_number") == 0.9
        assert sample_result.get_confidence("client_name") == 0.9
        assert sample_result.get_confidence("issuer_name") == 0.8
        assert sample_result.get_confidence("registration_number") == 0.95
        assert sample_result.get_confidence("transaction_date") == sample_result.get_confidence(
            "issue_date"
        )
        assert sample_result.get_confidence("order_number") == 0.0

    def test_reconciliation_keys(self, sample_result):
        keys = sample_result.reconciliation_keys
        assert keys.normalized_issuer_name == "株式会社テックソリューションズ"
        assert keys.total_amount == 132000
        assert keys.contact_person == "山田 太郎"


class TestDeterminism:
    def test_same_input_same_record(self, assembler, sample_text):
        first = assembler.assemble(sample_text, "sample_invoice.pdf", FILE_HASH)
        second = assembler.assemble(sample_text, "sample_invoice.pdf", FILE_HASH)
        assert first == second
        assert first.to_json() == second.to_json()

    def test_id_depends_on_hash_and_text(self):
        assert compute_invoice_id("h1", "text") == compute_invoice_id("h1", "text")
        assert compute_invoice_id("h1", "text") != compute_invoice_id("h2", "text")
        assert compute_invoice_id("h1", "text") != compute_invoice_id("h1", "text2")
        assert compute_invoice_id("h1", "text").startswith("inv_")
        assert len(compute_invoice_id("h1", "text")) == 20

    def test_record_is_immutable(self, sample_result):
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample_result.basic_info.invoice_number = "X"
        with pytest.raises(TypeError):
            sample_result.field_confidences["total_amount"] = 0.1

    def test_round_trip_through_json(self, sample_result):
        restored = InvoiceExtractionResult.from_dict(json.loads(sample_result.to_json()))
        assert restored == sample_result


class TestDegradedInput:
    def test_non_string_text(self, assembler):
        result = assembler.assemble(None, "scan.png", FILE_HASH)
        assert result.billing_to.company_name == "不明"
        assert result.issuer_info is None
        assert result.amount_info.total_amount == 0
        assert result.line_items == ()
        assert result.metadata.source == "image_import"
        assert result.metadata.ocr_confidence == 0.0
        assert result.warnings == ("issuer name not found", "total amount not found")

    def test_total_only(self, assembler):
        """A lone total is split with the default rate."""
        result = assembler.assemble("合計 ¥110,000", "scan.jpg", FILE_HASH)
        amounts = result.amount_info
        assert (amounts.subtotal, amounts.tax_amount, amounts.total_amount) == (
            100000, 10000, 110000
        )
        assert result.warnings == ("issuer name not found",)

    def test_registration_without_issuer_name(self, assembler):
        result = assembler.assemble(
            "登録番号: T1234567890123\n合計 110,000", "scan.jpg", FILE_HASH
        )
        assert result.issuer_info.name == "不明"
        assert result.issuer_info.registration_number == "T1234567890123"
        assert "issuer name not found" in result.warnings

    def test_ocr_dot_separators_repaired(self, assembler):
        result = assembler.assemble("合計 \\110.000", "scan.jpg", FILE_HASH)
        assert result.amount_info.total_amount == 110000

    def test_untaxed_total_is_exempt(self, assembler):
        result = assembler.assemble("小計 50,000\n合計 50,000", "scan.jpg", FILE_HASH)
        assert result.amount_info.tax_amount == 0
        assert result.amount_info.tax_exempt is True
        assert result.amount_info.tax_breakdown == ()


class TestRecognizedText:
    def test_engine_confidence_carried(self, assembler):
        recognized = RecognizedText.from_engine("合計 110,000", 87)
        result = assembler.assemble_from_recognition(recognized, "scan.png", FILE_HASH)
        assert result.metadata.engine_confidence == 0.87
        assert result.amount_info.total_amount == 110000

    def test_from_engine_clamps(self):
        assert RecognizedText.from_engine("x", 150).confidence == 1.0
        assert RecognizedText.from_engine("x", -0.5).confidence == 0.0
        assert RecognizedText.from_engine("x", None).confidence is None

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            RecognizedText("x", 1.5)

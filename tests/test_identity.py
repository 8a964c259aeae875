"""Unit tests for party names, contact details and registration numbers."""

import pytest

from invoice_extraction.extraction import IdentityExtractor, extract_registration_number
from invoice_extraction.extraction.identity import (
    clean_address,
    format_phone_number,
    repair_registration_number,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def extractor():
    return IdentityExtractor()


@pytest.fixture
def client_block():
    return [
        "請求先",
        "株式会社サンプル商事 御中",
        "経理部",
        "山田 太郎 様",
        "",
        "株式会社テックソリューションズ",
    ]


class TestRegistrationNumber:
    def test_labeled(self, extractor):
        extracted = extractor.extract_registration_number("登録番号: T1234567890123")
        assert extracted.value == "T1234567890123"
        assert extracted.confidence == 0.95

    def test_split_by_ocr_spaces(self):
        """OCR spaces inside the number are removed before matching."""
        assert extract_registration_number("登録番号: T 1234 5678 9012 3") == "T1234567890123"

    def test_missing_prefix_repaired(self):
        assert extract_registration_number("登録番号: 1234567890123") == "T1234567890123"

    def test_misread_prefix_repaired(self):
        assert repair_registration_number("イ1234567890123") == "T1234567890123"
        assert repair_registration_number("「1234567890123") == "T1234567890123"

    def test_misread_prefix_through_label(self, extractor):
        extracted = extractor.extract_registration_number("登録番号: イ1234567890123")
        assert extracted.value == "T1234567890123"
        assert extracted.confidence == 0.95

    def test_not_joined_with_next_line(self):
        """Digits on the following line never extend the number."""
        text = "登録番号: T1234567890123\n100,000円"
        assert extract_registration_number(text) == "T1234567890123"

    def test_label_on_previous_line(self):
        assert extract_registration_number("登録番号:\nT1234567890123") == "T1234567890123"

    def test_twelve_digits_rejected(self):
        assert extract_registration_number("登録番号: T123456789012") is None

    def test_unlabeled_lowercase_prefix(self, extractor):
        extracted = extractor.extract_registration_number("発行元 t1234567890123")
        assert extracted.value == "T1234567890123"
        assert extracted.confidence == 0.7


class TestPhone:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("0312345678", "03-1234-5678"),
            ("09012345678", "090-1234-5678"),
            ("0120123456", "0120-123-456"),
            ("0451234567", "045-123-4567"),
            ("(03)1234-5678", "03-1234-5678"),
            ("03ー1234ー5678", "03-1234-5678"),
            ("１２３", None),
        ],
    )
    def test_format(self, raw, expected):
        assert format_phone_number(raw) == expected

    def test_labeled(self, extractor):
        extracted = extractor.extract_phone("TEL: 03-1234-5678")
        assert extracted.value == "03-1234-5678"
        assert extracted.confidence == 0.9

    def test_labeled_without_separators(self, extractor):
        extracted = extractor.extract_phone("TEL 0312345678")
        assert extracted.value == "03-1234-5678"
        assert extracted.confidence == 0.85

    def test_region_searched_first(self, extractor):
        """The issuer region wins over an earlier number in the document."""
        text = "TEL: 06-1111-2222\n株式会社発行\nTEL: 03-1234-5678"
        region = "株式会社発行\nTEL: 03-1234-5678"
        assert extractor.extract_phone(text, region).value == "03-1234-5678"
        assert extractor.extract_phone(text).value == "06-1111-2222"


class TestEmailAndAddress:
    def test_email_lowercased(self, extractor):
        extracted = extractor.extract_email("E-mail: Billing@TechSol.co.jp")
        assert extracted.value == "billing@techsol.co.jp"
        assert extracted.confidence == 0.9

    def test_address_cut_at_contact_label(self):
        assert clean_address("〒150-0002 東京都渋谷区渋谷2-21-1 TEL 03-1234-5678") == (
            "〒150-0002 東京都渋谷区渋谷2-21-1"
        )

    def test_address_after_issuer_line(self, extractor):
        lines = ["株式会社テックソリューションズ", "〒150-0002 東京都渋谷区渋谷2-21-1", "TEL: 03-1234-5678"]
        extracted = extractor.extract_address(lines, 0)
        assert extracted.value == "〒150-0002 東京都渋谷区渋谷2-21-1"
        assert extracted.confidence == 0.9


class TestParties:
    def test_client_after_anchor(self, extractor, client_block):
        client = extractor.extract_client(client_block)
        assert client.value == "株式会社サンプル商事"
        assert client.field.confidence == 0.9
        assert client.line_index == 1

    def test_client_on_anchor_line(self, extractor):
        client = extractor.extract_client(["請求先: 株式会社サンプル 御中"])
        assert client.value == "株式会社サンプル"
        assert client.line_index == 0

    def test_client_from_honorific(self, extractor):
        """Without an anchor, the first 御中 line names the client."""
        client = extractor.extract_client(["請求書", "山田商店 御中"])
        assert client.value == "山田商店"
        assert client.field.confidence == 0.6

    def test_no_client(self, extractor):
        assert extractor.extract_client(["請求書", "合計 110,000"]) is None

    def test_department_and_contact(self, extractor, client_block):
        client = extractor.extract_client(client_block)
        assert extractor.extract_department(client_block, client).value == "経理部"
        assert extractor.extract_contact_person(client_block, client).value == "山田 太郎"

    def test_issuer_after_client(self, extractor, client_block):
        client = extractor.extract_client(client_block)
        issuer = extractor.extract_issuer(client_block, client)
        assert issuer.value == "株式会社テックソリューションズ"
        assert issuer.field.confidence == 0.8
        assert issuer.line_index == 5

    def test_labeled_issuer(self, extractor):
        issuer = extractor.extract_issuer(["発行元: 株式会社発行商事"])
        assert issuer.value == "株式会社発行商事"
        assert issuer.field.confidence == 0.9

    def test_issuer_is_never_the_client(self, extractor):
        lines = ["請求先", "株式会社サンプル商事 御中"]
        client = extractor.extract_client(lines)
        assert extractor.extract_issuer(lines, client) is None

"""
Payment Field Extraction Module.

Extracts the transfer destination and payment conditions:
    - Bank and branch name
    - Account type, number and holder
    - Payment condition and transfer-fee bearer

Author: ML Engineering Team
"""

import re
from typing import Dict, Optional

from invoice_extraction.extraction.cascade import FieldExtractorCascade, compile_rule
from invoice_extraction.extraction.extraction_result import ExtractedField
from invoice_extraction.extraction.patterns import JP_CHARS, KATAKANA
from invoice_extraction.utils.helpers import strip_whitespace
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

BANK_LABEL_PREFIX = re.compile(r'^(?:お?振込先|お?支払先|銀行名|金融機関名?)[:：]?')

ACCOUNT_TYPES = {
    '普通': '普通預金',
    '普': '普通預金',
    'savings': '普通預金',
    '当座': '当座預金',
    '当': '当座預金',
    'checking': '当座預金',
    '貯蓄': '貯蓄預金',
}

FEE_BEARERS = {
    '貴社': '貴社負担',
    '御社': '貴社負担',
    'お客様': '貴社負担',
    '弊社': '弊社負担',
    '当社': '弊社負担',
}


def _clean_bank_name(raw: str) -> Optional[str]:
    value = BANK_LABEL_PREFIX.sub('', strip_whitespace(raw))
    if not value.endswith('銀行') or not 3 <= len(value) <= 15:
        return None
    return value


def _clean_branch_name(raw: str) -> Optional[str]:
    value = strip_whitespace(raw)
    value = re.sub(r'^.*銀行', '', value)
    value = re.sub(r'^(?:支店名?|店名)[:：]?', '', value)
    if not 2 <= len(value) <= 15 or value in ('支店', '支所', '出張所'):
        return None
    return value


def _account_type(raw: str) -> Optional[str]:
    return ACCOUNT_TYPES.get(raw.strip().lower())


def _clean_holder(raw: str) -> Optional[str]:
    value = re.sub(r'[ \t　]+', ' ', raw).strip()
    if not 2 <= len(value) <= 50:
        return None
    return value


def _fee_bearer(raw: str) -> Optional[str]:
    return FEE_BEARERS.get(raw)


class PaymentFieldExtractor:
    """
    Extracts bank transfer details.

    The branch is searched after the bank name first, since invoices print
    "○○銀行 ○○支店" together; a branch elsewhere gets a lower confidence.

    Example:
        >>> extractor = PaymentFieldExtractor()
        >>> details = extractor.extract_bank_details("みずほ銀行 渋谷支店 普通 1234567")
        >>> details["bank_name"].value, details["branch_name"].value
        ("みずほ銀行", "渋谷支店")
        >>> details["account_number"].value
        "1234567"
    """

    def __init__(self) -> None:
        name_chars = f'[{JP_CHARS}a-zA-Z \\t　]'

        self.bank_name = FieldExtractorCascade("bank_name", [
            compile_rule(
                r'(?:銀行名|金融機関名?)[ \t　]*[:：]?[ \t　]*([^\s:：]+銀\s*行)',
                0.9, converter=_clean_bank_name
            ),
            compile_rule(
                f'({name_chars}{{1,20}}銀\\s*行)', 0.85, converter=_clean_bank_name
            ),
        ])

        branch_pattern = f'({name_chars}{{1,20}}(?:支\\s*店|支\\s*所|出\\s*張\\s*所))'
        self.branch_after_bank = FieldExtractorCascade("branch_name", [
            compile_rule(branch_pattern, 0.85, converter=_clean_branch_name),
        ])
        self.branch_anywhere = FieldExtractorCascade("branch_name", [
            compile_rule(branch_pattern, 0.7, converter=_clean_branch_name),
        ])

        self.account_type = FieldExtractorCascade("account_type", [
            compile_rule(
                r'(?:預金種[目別類]|口座種[別類目])[ \t　]*[:：]?[ \t　]*(普通|当座|貯蓄)',
                0.9, converter=_account_type
            ),
            compile_rule(
                r'(普通|当座|貯蓄|Savings|Checking)', 0.85, re.IGNORECASE,
                converter=_account_type
            ),
            compile_rule(r'[(（](普|当)[)）]', 0.8, converter=_account_type),
        ])

        self.account_number = FieldExtractorCascade("account_number", [
            compile_rule(
                r'(?:口座番号|口座No\.?|Account\s*(?:No\.?|Number)?)[:\s：#.]*(\d{5,8})(?!\d)',
                0.9, re.IGNORECASE
            ),
            compile_rule(
                r'(?:普通|当座|貯蓄)(?:預金)?[ \t　]*[:：]?[ \t　]*(\d{5,8})(?!\d)', 0.8
            ),
            compile_rule(r'(?:No|NO)[:\s.]*(\d{7})(?!\d)', 0.7),
            compile_rule(r'(?<![\d\-])(\d{7})(?![\d\-])', 0.5),
        ])

        self.account_holder = FieldExtractorCascade("account_holder", [
            compile_rule(
                r'(?:口座名義人?|名義人?|カナ氏名|カナ)[ \t　]*[:：]?\s*'
                f'([{KATAKANA}（）()・．. 　]{{2,50}})',
                0.8, converter=_clean_holder
            ),
            compile_rule(
                r'(?:口座名義人?|名義人?)[ \t　]*[:：]?[ \t　]*([^\n]{2,40})',
                0.7, converter=_clean_holder
            ),
            compile_rule(
                f'^[ \\t　]*([{KATAKANA}][{KATAKANA} 　]{{2,29}})[ \\t　]*$',
                0.5, re.MULTILINE, converter=_clean_holder
            ),
        ])

        self.payment_condition = FieldExtractorCascade("payment_condition", [
            compile_rule(
                r'(?:お?支払条件|お?支払い条件|お?支払方法|お?支払い方法)[ \t　]*[:：]?[ \t　]*([^\n]+)',
                0.8, converter=lambda raw: re.sub(r'\s+', ' ', raw).strip() or None
            ),
        ])

        self.fee_bearer = FieldExtractorCascade("fee_bearer", [
            compile_rule(
                r'(?:振込)?手数料[はを]?[ \t　]*(貴社|御社|お客様|弊社|当社)(?:にて|で)?(?:ご)?負担',
                0.8, converter=_fee_bearer
            ),
        ])

    def extract_bank_name(self, text: str) -> Optional[ExtractedField]:
        return self.bank_name.extract(text)

    def extract_branch_name(
        self,
        text: str,
        bank_name: Optional[str] = None
    ) -> Optional[ExtractedField]:
        """
        Extract the branch, preferring text right after the bank name.

        Args:
            text: Document text.
            bank_name: Extracted bank name, if any.
        """
        if not isinstance(text, str):
            return None

        if bank_name:
            match = re.search(r'\s*'.join(map(re.escape, bank_name)), text)
            if match:
                found = self.branch_after_bank.extract(text[match.end():])
                if found:
                    return found
        return self.branch_anywhere.extract(text)

    def extract_bank_details(self, text: str) -> Dict[str, Optional[ExtractedField]]:
        """
        Extract all transfer-destination fields.

        Returns:
            Mapping with keys bank_name, branch_name, account_type,
            account_number and account_holder (values may be None).
        """
        bank = self.extract_bank_name(text)
        return {
            'bank_name': bank,
            'branch_name': self.extract_branch_name(text, bank.value if bank else None),
            'account_type': self.account_type.extract(text),
            'account_number': self.account_number.extract(text),
            'account_holder': self.account_holder.extract(text),
        }

    def extract_payment_condition(self, text: str) -> Optional[ExtractedField]:
        return self.payment_condition.extract(text)

    def extract_fee_bearer(self, text: str) -> Optional[ExtractedField]:
        return self.fee_bearer.extract(text)

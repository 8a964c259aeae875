"""
Identity Field Extraction Module.

Extracts the parties of an invoice and their contact details:
    - Client (billed party) name, department and contact person
    - Issuer name and address
    - Phone number and e-mail address
    - Qualified-invoice registration number (T + 13 digits)

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from config import get_config
from invoice_extraction.extraction.cascade import (
    AnchorScanner,
    FieldExtractorCascade,
    compile_rule,
)
from invoice_extraction.extraction.extraction_result import ExtractedField
from invoice_extraction.extraction.patterns import (
    JP_CHARS,
    LETTER,
    TRAILING_HONORIFIC,
    find_corporate_name,
    has_corporate_marker,
)
from invoice_extraction.normalization.validators import (
    EmailValidator,
    PhoneNumberValidator,
    RegistrationNumberValidator,
)
from invoice_extraction.utils.helpers import strip_whitespace, to_half_width_digits
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

HYPHENS = r'\-−ー‐－—'
PHONE_LABEL = r'(?:TEL|Tel|tel|電話番号|電話|℡)'
EMAIL_ADDRESS = r'([a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,})'
ADDRESS_STOP = re.compile(r'(?:TEL|Tel|tel|電話|FAX|Fax|fax|℡|E-?mail|メール).*$', re.DOTALL)
MISREAD_T_PREFIX = re.compile(r'^[TtＴイ1lLI『｢「]')

CLIENT_LABEL = re.compile(r'^(?:ご?請求先|宛先|宛名|TO|To)[:\s：]*')
CLIENT_SAME_LINE = re.compile(r'請\s*求\s*先[ \t　]*[:：]?[ \t　]*(\S.*)$')
CLIENT_NOISE = re.compile(r'振込|手数料|負担|^ご?担当者?$|^お客$|^皆$')
ISSUER_LABEL = re.compile(r'(?:発行元|発行者|請求元)[ \t　]*[:：]?[ \t　]*(\S.*)$')
DEPARTMENT = re.compile(
    f'^[{JP_CHARS}a-zA-Z0-9]{{1,20}}(?:事業部|本部|部|課|室|グループ|センター|チーム)$'
)
CONTACT_LABELED = re.compile(
    r'(?:ご担当者?|担当者?)(?:様)?[ \t　]*[:：]?[ \t　]*'
    r'([一-鿿々ぁ-んァ-ヶー]{1,10}(?:[ 　][一-鿿々ぁ-んァ-ヶー]{1,10})?)[ \t　]*(?:様|殿)'
)
CONTACT_LINE = re.compile(
    r'^([一-鿿々]{1,4}[ 　]?[一-鿿々ぁ-んァ-ヶー]{1,6})[ \t　]*(?:様|殿)$'
)


@dataclass(frozen=True)
class PartyMatch:
    """An extracted party name with the line it was found on."""
    field: ExtractedField
    line_index: int

    @property
    def value(self) -> str:
        return self.field.value


def compact_lines(text: str) -> str:
    """Remove whitespace inside each line; line breaks are kept."""
    return '\n'.join(strip_whitespace(line) for line in text.splitlines())


def repair_registration_number(raw: str) -> str:
    """
    Repair common OCR misreads in a registration number candidate.

    A bare 13-digit value gets its missing ``T``; a leading character the
    engine commonly confuses with ``T`` (イ, 1, l, I, 『, ｢, 「) is replaced.

    Example:
        >>> repair_registration_number("イ1234567890123")
        "T1234567890123"
    """
    value = to_half_width_digits(raw)
    if re.fullmatch(r'\d{13}', value):
        return 'T' + value
    value = MISREAD_T_PREFIX.sub('T', value)
    return re.sub(r'[^T\d]', '', value)


def format_phone_number(raw: str) -> Optional[str]:
    """
    Normalize a phone number candidate to hyphenated form.

    Brackets and dash look-alikes become hyphens. Numbers printed without
    separators are hyphenated by area code: 11 digits 3-4-4, 0120 4-3-3,
    03/06 2-4-4, other 10-digit numbers 3-3-4.

    Returns:
        Hyphenated number, or None when it does not have 10-11 digits.
    """
    value = to_half_width_digits(raw)
    value = re.sub(r'[()（）]', '-', value)
    value = re.sub(f'[{HYPHENS}\\s]', '-', value)
    value = re.sub(r'-{2,}', '-', value).strip('-')

    digits = re.sub(r'\D', '', value)
    if not 10 <= len(digits) <= 11:
        return None

    if '-' in value:
        return value
    if len(digits) == 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    if digits.startswith('0120'):
        return f"{digits[:4]}-{digits[4:7]}-{digits[7:]}"
    if digits[:2] in ('03', '06'):
        return f"{digits[:2]}-{digits[2:6]}-{digits[6:]}"
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def clean_address(raw: str) -> Optional[str]:
    """Cut an address at the first contact label and collapse whitespace."""
    value = re.sub(r'^郵便番号[:\s：]*', '〒', raw.strip())
    value = ADDRESS_STOP.sub('', value)
    value = re.sub(r'\s+', ' ', value).strip(' ,、:：')
    return value if len(value) > 5 else None


def clean_party_name(raw: str) -> Optional[str]:
    """
    Clean a party-name candidate: label and honorific removed, no whitespace.

    Returns:
        Name of 2-50 characters containing letters, or None.
    """
    compact = strip_whitespace(raw)
    compact = CLIENT_LABEL.sub('', compact)
    compact = TRAILING_HONORIFIC.sub('', compact)
    if not 2 <= len(compact) <= 50 or not LETTER.search(compact):
        return None
    if CLIENT_NOISE.search(compact):
        return None
    return compact


class IdentityExtractor:
    """
    Extracts party names and contact details.

    Client names are found after the 請求先 anchor, issuer details in the
    text following the client line, which is where Japanese invoices print
    the issuer block.

    Example:
        >>> lines = ["請求先", "株式会社サンプル 御中", "", "株式会社発行商事"]
        >>> extractor = IdentityExtractor()
        >>> client = extractor.extract_client(lines)
        >>> client.value
        "株式会社サンプル"
        >>> extractor.extract_issuer(lines, client).value
        "株式会社発行商事"
    """

    def __init__(self) -> None:
        self.client_keyword = get_config("extraction.anchor.client_keyword", "請求先")
        self.client_lookahead = get_config("extraction.anchor.client_lookahead", 3)
        self.issuer_lookahead = get_config("extraction.anchor.issuer_lookahead", 15)

        self.client_scanner = AnchorScanner(
            anchor=self.client_keyword,
            max_lookahead=self.client_lookahead,
            accept=clean_party_name,
            prefer=has_corporate_marker,
        )

        registration_valid = RegistrationNumberValidator().is_valid
        registration_value = r'([TtＴイ1lLI『｢「]?[\d０-９]{13,})'
        self.registration_number = FieldExtractorCascade("registration_number", [
            compile_rule(
                r'(?:適格請求書発行事業者登録番号|登録番号|登録No\.?|登録ナンバー|'
                r'RegistrationNumber|RegistrationNo\.?|Reg\.?No\.?|インボイス番号|InvoiceNo\.?)'
                r'[:：\n]*' + registration_value,
                0.95, re.IGNORECASE,
                converter=repair_registration_number, validator=registration_valid
            ),
            compile_rule(
                r'(?:インボイス|Invoice)[:：\n]*' + registration_value,
                0.9, re.IGNORECASE,
                converter=repair_registration_number, validator=registration_valid
            ),
            compile_rule(
                r'T番号[:：\n]*' + registration_value,
                0.9,
                converter=repair_registration_number, validator=registration_valid
            ),
            compile_rule(
                r'(?<![A-Za-z0-9])([TtＴ『｢「][\d０-９]{13})(?![\d０-９])',
                0.7,
                converter=lambda raw: repair_registration_number(raw).upper(),
                validator=registration_valid
            ),
        ])

        phone_valid = PhoneNumberValidator().is_valid
        sep = f'[{HYPHENS}\\s()（）]'
        self.phone = FieldExtractorCascade("phone", [
            compile_rule(
                PHONE_LABEL + r'[:\s：.]*(\(?\d{2,4}' + sep + r'{1,2}\d{2,4}' + sep + r'\d{4})',
                0.9, converter=format_phone_number, validator=phone_valid
            ),
            compile_rule(
                PHONE_LABEL + r'[:\s：.]*(\d{10,11})(?!\d)',
                0.85, converter=format_phone_number, validator=phone_valid
            ),
            compile_rule(
                r'[(（]\d{2,4}[)）]\s*\d{2,4}[' + HYPHENS + r']\s*\d{4}',
                0.6, group=0, converter=format_phone_number, validator=phone_valid
            ),
            compile_rule(
                r'(?<![\d' + HYPHENS + r'])(\d{2,4}[' + HYPHENS + r']\d{2,4}[' + HYPHENS
                + r']\d{4})(?!\d)',
                0.5, converter=format_phone_number, validator=phone_valid
            ),
        ])

        email_valid = EmailValidator().is_valid
        self.email = FieldExtractorCascade("email", [
            compile_rule(
                r'(?:E-?mail|mail|メールアドレス|メール)[:\s：]*' + EMAIL_ADDRESS,
                0.9, re.IGNORECASE,
                converter=lambda raw: raw.strip().lower(), validator=email_valid
            ),
            compile_rule(
                EMAIL_ADDRESS, 0.7,
                converter=lambda raw: raw.strip().lower(), validator=email_valid
            ),
        ])

        postal_tail = r'[ \t　]*\n?[^\n]*'
        self.address = FieldExtractorCascade("address", [
            compile_rule(
                r'〒[ \t　]*\d{3}[' + HYPHENS + r']?\d{4}' + postal_tail,
                0.9, group=0, converter=clean_address
            ),
            compile_rule(
                r'郵便番号[:\s：]*\d{3}[' + HYPHENS + r']?\d{4}' + postal_tail,
                0.85, group=0, converter=clean_address
            ),
            compile_rule(
                r'(?<![\d' + HYPHENS + r'])\d{3}[' + HYPHENS + r']\d{4}(?![\d' + HYPHENS + r'])'
                + r'[ \t　]+[^\n]+',
                0.8, group=0, converter=clean_address
            ),
            compile_rule(
                f'(?:東京都|北海道|(?:京都|大阪)府|[{JP_CHARS}]{{2,3}}県)[^\\n]+',
                0.75, group=0, converter=clean_address
            ),
        ])

    # ------------------------------------------------------------------
    # Client
    # ------------------------------------------------------------------

    def extract_client(self, lines: Sequence[str]) -> Optional[PartyMatch]:
        """
        Extract the billed party.

        Order: name on the 請求先 line itself, anchor scan of the lines after
        請求先 (company lines preferred), then the first line carrying an
        honorific (御中, then 様, then 殿) anywhere in the document.

        Args:
            lines: Document lines.

        Returns:
            PartyMatch, or None.
        """
        for index, line in enumerate(lines):
            match = CLIENT_SAME_LINE.search(line)
            if match:
                remainder = match.group(1)
                if has_corporate_marker(remainder) or TRAILING_HONORIFIC.search(remainder.strip()):
                    name = clean_party_name(remainder)
                    if name:
                        return PartyMatch(ExtractedField(name, 0.9), index)

        hit = self.client_scanner.scan(lines)
        if hit:
            confidence = 0.9 if hit.preferred else 0.7
            return PartyMatch(ExtractedField(hit.value, confidence), hit.line_index)

        for honorific in ('御中', '様', '殿'):
            pattern = re.compile(r'^(.+?)[ \t　]*' + honorific)
            for index, line in enumerate(lines):
                match = pattern.search(line.strip())
                if match:
                    name = clean_party_name(match.group(1))
                    if name:
                        return PartyMatch(ExtractedField(name, 0.6), index)

        return None

    def _client_block(self, lines: Sequence[str], client: Optional[PartyMatch]) -> List[str]:
        if client is None:
            return []
        return list(lines[client.line_index:client.line_index + self.client_lookahead + 1])

    def extract_department(
        self,
        lines: Sequence[str],
        client: Optional[PartyMatch]
    ) -> Optional[ExtractedField]:
        """Department (部/課/室...) printed with or just below the client name."""
        for line in self._client_block(lines, client):
            compact = strip_whitespace(line).replace(client.value, '')
            compact = TRAILING_HONORIFIC.sub('', compact)
            if compact and not has_corporate_marker(compact) and DEPARTMENT.match(compact):
                return ExtractedField(compact, 0.7)
        return None

    def extract_contact_person(
        self,
        lines: Sequence[str],
        client: Optional[PartyMatch]
    ) -> Optional[ExtractedField]:
        """Contact person within the client block (ご担当 label, or a 様 line)."""
        block = self._client_block(lines, client)

        for line in block:
            match = CONTACT_LABELED.search(line)
            if match:
                return ExtractedField(re.sub(r'\s+', ' ', match.group(1)).strip(), 0.8)

        for line in block[1:]:
            stripped = line.strip()
            if has_corporate_marker(stripped):
                continue
            match = CONTACT_LINE.match(stripped)
            if match:
                return ExtractedField(re.sub(r'\s+', ' ', match.group(1)).strip(), 0.6)
        return None

    # ------------------------------------------------------------------
    # Issuer
    # ------------------------------------------------------------------

    def extract_issuer(
        self,
        lines: Sequence[str],
        client: Optional[PartyMatch] = None
    ) -> Optional[PartyMatch]:
        """
        Extract the issuing company.

        Order: labeled 発行元/発行者/請求元, company line after the client line,
        company line anywhere else in the document.

        Args:
            lines: Document lines.
            client: Client match, used as the anchor of the issuer block.

        Returns:
            PartyMatch, or None.
        """
        client_name = client.value if client else None

        for index, line in enumerate(lines):
            match = ISSUER_LABEL.search(line)
            if match:
                compact = TRAILING_HONORIFIC.sub('', strip_whitespace(match.group(1)))
                name = find_corporate_name(compact) or (
                    compact if 2 <= len(compact) <= 40 and LETTER.search(compact) else None
                )
                if name and name != client_name:
                    return PartyMatch(ExtractedField(name, 0.9), index)

        def accept(line: str) -> Optional[str]:
            compact = strip_whitespace(line)
            if TRAILING_HONORIFIC.search(compact):
                return None
            name = find_corporate_name(compact)
            if name and name != client_name:
                return name
            return None

        if client is not None:
            after_client = AnchorScanner(None, self.issuer_lookahead, accept)
            hit = after_client.scan(lines, anchor_index=client.line_index)
            if hit:
                return PartyMatch(ExtractedField(hit.value, 0.8), hit.line_index)

        anywhere = AnchorScanner(None, None, accept)
        hit = anywhere.scan(lines, anchor_index=-1)
        if hit:
            confidence = 0.5 if client is not None else 0.6
            return PartyMatch(ExtractedField(hit.value, confidence), hit.line_index)

        return None

    def extract_address(
        self,
        lines: Sequence[str],
        after_line: Optional[int] = None
    ) -> Optional[ExtractedField]:
        """
        Extract the issuer address from the lines following ``after_line``.

        Args:
            lines: Document lines.
            after_line: Issuer line index; the search starts at this line so
                an address printed beside the name is found.
        """
        start = after_line if after_line is not None else 0
        region = '\n'.join(lines[start:])
        return self.address.extract(region)

    def extract_phone(self, text: str, region: Optional[str] = None) -> Optional[ExtractedField]:
        """Phone number, searched in ``region`` first, then the whole text."""
        if region:
            found = self.phone.extract(region)
            if found:
                return found
        return self.phone.extract(text)

    def extract_email(self, text: str, region: Optional[str] = None) -> Optional[ExtractedField]:
        """E-mail address, searched in ``region`` first, then the whole text."""
        if region:
            found = self.email.extract(region)
            if found:
                return found
        return self.email.extract(text)

    def extract_registration_number(self, text: str) -> Optional[ExtractedField]:
        """
        Extract the qualified-invoice registration number.

        Whitespace inside each line is removed first because OCR splits the
        14 characters into several tokens. Line breaks are kept so a number
        is never glued to digits on the next line.

        Returns:
            ExtractedField with a value matching ``^T\\d{13}$``, or None.
        """
        if not isinstance(text, str):
            return None
        return self.registration_number.extract(compact_lines(text))


def extract_registration_number(text: str) -> Optional[str]:
    """
    Return the registration number (T + 13 digits) found in text, or None.

    Example:
        >>> extract_registration_number("登録番号: T1234567890123")
        "T1234567890123"
    """
    return IdentityExtractor().registration_number.extract_value(
        compact_lines(text) if isinstance(text, str) else text
    )

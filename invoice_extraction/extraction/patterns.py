"""
Shared regular-expression building blocks for Japanese invoice text.

Author: ML Engineering Team
"""

import re
from typing import Optional

# Hiragana, katakana (with prolonged sound mark) and CJK ideographs.
JP_CHARS = 'ぁ-んァ-ヶー一-鿿々'
KATAKANA = 'ァ-ヴー'
LETTER = re.compile(f'[{JP_CHARS}a-zA-Z]')

HONORIFIC_ONLY = re.compile(r'^(?:様|御中|殿)$')
TRAILING_HONORIFIC = re.compile(r'(?:様|御中|殿)+$')

CORPORATE_FORMS = [
    '株式会社',
    '有限会社',
    '合同会社',
    '合資会社',
    '合名会社',
    '一般社団法人',
    '一般財団法人',
    '公益社団法人',
    '公益財団法人',
]
CORPORATE_ABBREVIATIONS = ['㈱', '㈲', '(株)', '（株）', '(有)', '（有）']


def spaced(word: str) -> str:
    """Regex for a word whose characters may be separated by OCR spaces."""
    return r'\s*'.join(re.escape(ch) for ch in word)


CORPORATE_MARKER = re.compile(
    '|'.join([spaced(form) for form in CORPORATE_FORMS]
             + [re.escape(abbr) for abbr in CORPORATE_ABBREVIATIONS])
)

_NAME_BODY = f'[{JP_CHARS}a-zA-Z0-9０-９＆&・]'
_FORMS = '|'.join(CORPORATE_FORMS + [re.escape(a) for a in CORPORATE_ABBREVIATIONS])

# Applied to whitespace-free text: legal form before or after the name.
CORPORATE_PREFIX_NAME = re.compile(f'(?:{_FORMS}){_NAME_BODY}{{2,20}}')
CORPORATE_SUFFIX_NAME = re.compile(f'{_NAME_BODY}{{2,20}}(?:{_FORMS})')


def has_corporate_marker(line: str) -> bool:
    """True when the line contains a legal-entity form (spaces tolerated)."""
    return bool(CORPORATE_MARKER.search(line))


def find_corporate_name(compact: str) -> Optional[str]:
    """
    Extract a company name from whitespace-free text.

    Prefix forms (株式会社サンプル) are tried before suffix forms
    (サンプル株式会社).

    Returns:
        Company name of 4-40 characters, or None.
    """
    for pattern in (CORPORATE_PREFIX_NAME, CORPORATE_SUFFIX_NAME):
        match = pattern.search(compact)
        if match and 4 <= len(match.group(0)) <= 40:
            return match.group(0)
    return None

"""
Line Item Table Extraction Module.

OCR output carries no layout: table rows arrive as plain lines, columns are
separated by pipes, tabs or runs of spaces (or not at all), and long item
names wrap onto several lines. This module finds the table header, walks
the rows below it and rebuilds one LineItem per priced row.

Author: ML Engineering Team
"""

import re
from typing import List, Optional, Sequence, Tuple, Union

from config import get_config
from invoice_extraction.extraction.extraction_result import LineItem
from invoice_extraction.extraction.patterns import JP_CHARS, LETTER
from invoice_extraction.normalization.normalizers import AmountParser
from invoice_extraction.utils.helpers import round_half_up
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

Number = Union[int, float]

# Header keyword groups, including variants OCR engines produce for them.
HEADER_GROUPS = {
    'item': re.compile(
        r'品\s*名|摘\s*要|商\s*品|品\s*目|科\s*目|項\s*目|内\s*容|科\s*提|下\s*る|机\s*衣|'
        r'Description|Item', re.IGNORECASE
    ),
    'quantity': re.compile(r'数\s*量|個\s*数|放\s*量|施\s*還|Quantity|Qty', re.IGNORECASE),
    'unit_price': re.compile(r'単\s*価|Unit\s*Price|Price', re.IGNORECASE),
    'amount': re.compile(r'金\s*額|Amount', re.IGNORECASE),
}
HEADER_EXCLUDE = re.compile(
    r'^(?:合計|小計|消費税|税額|総額|御請求額|ご請求額|税|Total|Sub\s*total|Tax)|件\s*名\s*[:：]',
    re.IGNORECASE
)

ROW_STOP = re.compile(
    r'^(?:合計|小計|消費税|税額|税込|税抜|総額|御請求額|ご請求額|請求金額|'
    r'(?:10|8)\s*[%％]\s*対象|Total|Sub\s*total|Tax(?![a-z])|は\s*\||油\s*生|時\s*トト)'
    r'|^税\s*[:：(（]?\s*[¥\\￥\d]',
    re.IGNORECASE
)
ROW_NOISE = re.compile(
    r'支払|振込|振込先|期限|お支払|銀行|支店|口座|名義|登録番号|TEL|FAX|担当|〒|住所|※',
    re.IGNORECASE
)
PIPE_ONLY = re.compile(r'^[\s|｜]+$')
EDGE_CHARS = ' |｜\t　'

HAS_PRICE = re.compile(
    r'[¥\\￥]\s*\d|\d{1,3}(?:[,，]\d{3})+|(?<![\d.\-/])\d{4,}(?![\d年月日/.\-])'
)
PRICE_TOKEN = re.compile(
    r'(?<![\dA-Za-z.,，/\-])(?:[¥￥\\][ \t　]*)?'
    r'(?:\d{1,3}(?:[,，]\d{3})+|\d{3,})'
    r'(?![\d,，.%％年月日/\-])'
)

CELL_SPLIT = re.compile(r'[|｜\t]|\s{2,}')
UNITS = r'個|本|枚|台|式|件|回|時間|日|ヶ月|か月|ヵ月'
QUANTITY_PATTERNS = [
    (re.compile(r'(?:数量|個数|Qty|Quantity)[:\s：]*(\d+(?:\.\d+)?)', re.IGNORECASE), False),
    (re.compile(r'\d+\s*[%％]\s+(\d+(?:\.\d+)?)(?![\d,，.])'), False),
    (re.compile(r'(?<![\d月/.])(\d+(?:\.\d+)?)\s*(' + UNITS + r')'), True),
]
STANDALONE_QUANTITY = re.compile(
    r'(?:(?<=\s)|^)\d+(?:\.\d+)?\s*(?:' + UNITS + r')(?=\s|$)'
)
RATE_TOKEN = re.compile(r'(?<!\d)(10|8)\s*[%％]')
PERCENT_TOKEN = re.compile(r'\d+(?:\.\d+)?\s*[%％]')
DESCRIPTION = re.compile(f'^([{JP_CHARS}a-zA-Z0-9０-９\\s（）()【】・\\-/&＆.]+)')
EMPTY_BRACKETS = re.compile(r'\(\s*\)|（\s*）|【\s*】')
TRAILING_NUMBERS = re.compile(r'(?:\s+[\d.]+)+$')
LEADING_INDEX = re.compile(r'^[\d０-９]+[\s　.．)）]+')


def _as_number(token: str) -> Number:
    value = float(token)
    return int(value) if value.is_integer() else value


class LineItemTableExtractor:
    """
    Reconstructs line items from layout-free OCR lines.

    Steps:
        1. Header detection (first line with 2+ keyword groups, 3+ pipe/tab
           separators, or an item keyword with 3+ wide-space columns)
        2. Row scan until the first totals line, skipping payment, address
           and contact noise
        3. Multi-line description merge (price-less lines are held and
           prefixed to the next priced line)
        4. Row parsing into description, quantity, unit price and amount

    Example:
        >>> extractor = LineItemTableExtractor()
        >>> items = extractor.extract(["品名|数量|単価|金額", "Web制作|1|100,000|100,000"])
        >>> items[0].description, items[0].quantity, items[0].unit_price, items[0].amount
        ("Web制作", 1, 100000, 100000)
    """

    def __init__(
        self,
        amount_parser: Optional[AmountParser] = None,
        max_rows: Optional[int] = None
    ) -> None:
        """
        Initialize the extractor.

        Args:
            amount_parser: Parser applying the amount plausibility filter.
            max_rows: Row cap (default: extraction.line_items.max_rows).
        """
        self.amount_parser = amount_parser or AmountParser()
        self.max_rows = max_rows if max_rows is not None else get_config(
            "extraction.line_items.max_rows", 20
        )
        self.min_description = get_config("extraction.line_items.description_min_length", 2)
        self.max_description = get_config("extraction.line_items.description_max_length", 100)

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def is_header(self, line: str) -> bool:
        """Check whether a line qualifies as the table header."""
        probe = line.strip(EDGE_CHARS)
        if not probe or HEADER_EXCLUDE.search(probe):
            return False

        groups = sum(1 for pattern in HEADER_GROUPS.values() if pattern.search(line))
        if groups >= 2:
            return True

        separators = line.count('|') + line.count('｜') + line.count('\t')
        if separators >= 3:
            return True

        columns = [cell for cell in CELL_SPLIT.split(probe) if cell.strip()]
        return bool(HEADER_GROUPS['item'].search(line)) and len(columns) >= 3

    def find_header(self, lines: Sequence[str]) -> Optional[int]:
        """
        Find the first header line.

        Returns:
            Line index, or None when the document has no table.
        """
        for index, line in enumerate(lines):
            if self.is_header(line):
                logger.debug(f"Line-item header at line {index}: {line.strip()!r}")
                return index
        return None

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def extract(
        self,
        lines: Sequence[str],
        fallback_amount: Optional[Number] = None
    ) -> List[LineItem]:
        """
        Extract line items.

        Args:
            lines: Document lines.
            fallback_amount: Subtotal (or total) used to price a description
                left pending when no priced row was found.

        Returns:
            Line items in document order; empty when there is no table.
        """
        if not lines:
            return []

        header = self.find_header(lines)
        if header is None:
            logger.debug("No line-item header found")
            return []

        items: List[LineItem] = []
        pending = ''

        for raw in lines[header + 1:]:
            line = raw.strip()
            if not line:
                continue
            if ROW_STOP.match(line.strip(EDGE_CHARS)):
                break
            if ROW_NOISE.search(line) or PIPE_ONLY.match(line):
                continue
            if not LETTER.search(line):
                continue

            if HAS_PRICE.search(line):
                combined = f"{pending} {line}" if pending else line
                pending = ''
                item = self.parse_row(combined)
                if item is not None:
                    items.append(item)
            else:
                pending = f"{pending} {line}" if pending else line

            if len(items) >= self.max_rows:
                logger.debug(f"Line-item cap of {self.max_rows} rows reached")
                break

        if pending and not items and fallback_amount:
            description = self._clean_description(pending)
            if description:
                logger.debug(f"Pairing pending description {description!r} with {fallback_amount}")
                items.append(LineItem(
                    description=description,
                    amount=fallback_amount,
                    unit_price=fallback_amount,
                ))

        logger.debug(f"Extracted {len(items)} line items")
        return items

    def parse_row(self, line: str) -> Optional[LineItem]:
        """
        Parse one priced row.

        Args:
            line: Row text, possibly prefixed with a pending description.

        Returns:
            LineItem, or None when no valid description or amount is found.
        """
        cells = [cell.strip() for cell in CELL_SPLIT.split(line.strip()) if cell.strip()]
        flat = re.sub(r'\s+', ' ', re.sub(r'[|｜\t]', ' ', line)).strip()

        source = flat
        if len(cells) >= 2:
            source = next((cell for cell in cells if LETTER.search(cell)), flat)
        description = self._clean_description(source)
        if description is None:
            logger.debug(f"Row dropped, no description: {line!r}")
            return None

        quantity, unit, quantity_span = self._find_quantity(flat)
        quantity_cell = False
        if quantity is None and len(cells) >= 3 and re.fullmatch(r'\d+(?:\.\d+)?', cells[1]):
            candidate = _as_number(cells[1])
            if 0 < candidate < 10000:
                quantity = candidate
                quantity_cell = True

        numbers = []
        for match in PRICE_TOKEN.finditer(flat):
            if quantity_span and match.start() < quantity_span[1] and match.end() > quantity_span[0]:
                continue
            value = self.amount_parser.parse(match.group(0))
            if value is None:
                continue
            # the quantity cell precedes the prices
            if quantity_cell and value == quantity:
                quantity_cell = False
                continue
            numbers.append(value)

        if not numbers:
            logger.debug(f"Row dropped, no amount: {line!r}")
            return None

        unit_price = None
        if len(numbers) >= 2:
            unit_price, amount = numbers[0], numbers[-1]
        else:
            amount = numbers[0]
            if quantity:
                unit_price = round_half_up(amount / quantity)

        rate = RATE_TOKEN.search(flat)

        return LineItem(
            description=description,
            amount=amount,
            quantity=quantity,
            unit=unit,
            unit_price=unit_price,
            tax_rate=float(rate.group(1)) if rate else None,
        )

    def _find_quantity(
        self,
        flat: str
    ) -> Tuple[Optional[Number], Optional[str], Optional[Tuple[int, int]]]:
        for pattern, has_unit in QUANTITY_PATTERNS:
            for match in pattern.finditer(flat):
                value = _as_number(match.group(1))
                if 0 < value < 10000:
                    unit = match.group(2) if has_unit else None
                    return value, unit, match.span(1)
        return None, None, None

    def _clean_description(self, text: str) -> Optional[str]:
        """
        Isolate the item name: numeric tokens, rates and quantities removed.

        Returns:
            Description within the configured length bounds, or None.
        """
        value = PRICE_TOKEN.sub(' ', text)
        value = re.sub(r'[¥\\￥]', ' ', value)
        value = PERCENT_TOKEN.sub(' ', value)
        value = re.sub(r'\s+', ' ', value).strip()
        value = STANDALONE_QUANTITY.sub(' ', value)
        value = re.sub(r'\s+', ' ', value).strip()

        match = DESCRIPTION.match(value)
        if not match:
            return None

        value = EMPTY_BRACKETS.sub('', match.group(1))
        value = re.sub(r'\s+', ' ', value).strip()
        value = TRAILING_NUMBERS.sub('', value)
        value = LEADING_INDEX.sub('', value).strip()

        if not self.min_description <= len(value) <= self.max_description:
            return None
        return value


def extract_line_items(
    lines: Sequence[str],
    fallback_amount: Optional[Number] = None
) -> List[LineItem]:
    """Module-level shortcut for LineItemTableExtractor().extract()."""
    return LineItemTableExtractor().extract(lines, fallback_amount)

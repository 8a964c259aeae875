"""
Field Extractor Cascade Module.

Every scalar invoice field is extracted by the same reducer: an ordered list
of rules, most specific first, each pairing a pattern with a confidence
weight. The first rule that yields a value passing its converter and
validator wins, and its weight becomes the field's confidence.

Lines-oriented fields (client and issuer names) use AnchorScanner instead:
find an anchor line, then inspect a bounded window of following lines.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Pattern, Sequence, Union

from invoice_extraction.extraction.extraction_result import ExtractedField
from invoice_extraction.extraction.patterns import HONORIFIC_ONLY
from invoice_extraction.utils.helpers import strip_whitespace
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

Converter = Callable[[str], Optional[Any]]
Validator = Callable[[Any], bool]
Picker = Callable[[List[Any]], Optional[Any]]


@dataclass(frozen=True)
class FieldRule:
    """
    One step of a cascade.

    Attributes:
        pattern: Compiled regex searched over the text
        confidence: Confidence assigned when this rule wins (0-1)
        validator: Predicate the converted value must satisfy
        converter: Turns the captured text into the field value; returning
            None rejects the candidate. Defaults to str.strip
        group: Capture group holding the candidate (0 = whole match)
        pick: Chooses among all valid candidates (e.g. max). By default the
            first valid candidate in document order is used
    """
    pattern: Pattern
    confidence: float
    validator: Optional[Validator] = None
    converter: Optional[Converter] = None
    group: int = 1
    pick: Optional[Picker] = None

    def candidates(self, text: str) -> Iterator[Any]:
        """Yield converted, validated candidates in document order."""
        for match in self.pattern.finditer(text):
            raw = match.group(self.group)
            if raw is None:
                continue

            value = self.converter(raw) if self.converter else raw.strip()
            if value is None or value == "":
                continue
            if self.validator is not None and not self.validator(value):
                continue
            yield value

    def apply(self, text: str) -> Optional[Any]:
        """
        Evaluate the rule against text.

        Returns:
            The chosen value, or None when no candidate survives.
        """
        if self.pick is None:
            return next(self.candidates(text), None)

        values = list(self.candidates(text))
        return self.pick(values) if values else None


class FieldExtractorCascade:
    """
    Ordered rule list reduced to a single ExtractedField.

    Example:
        >>> cascade = FieldExtractorCascade("email", [
        ...     FieldRule(re.compile(r'メール[:：]\\s*(\\S+@\\S+)'), 0.9),
        ...     FieldRule(re.compile(r'(\\S+@\\S+)'), 0.7),
        ... ])
        >>> cascade.extract("メール: info@example.co.jp")
        ExtractedField(value='info@example.co.jp', confidence=0.9)
    """

    def __init__(self, field_name: str, rules: Sequence[FieldRule]) -> None:
        """
        Initialize the cascade.

        Args:
            field_name: Field label used in log messages.
            rules: Rules ordered from most to least specific.
        """
        self.field_name = field_name
        self.rules = tuple(rules)

    def extract(self, text: str) -> Optional[ExtractedField]:
        """
        Run the rules in order and return the first surviving value.

        Args:
            text: Text to search.

        Returns:
            ExtractedField, or None when no rule yields a value.
        """
        if not isinstance(text, str) or not text:
            return None

        for index, rule in enumerate(self.rules):
            value = rule.apply(text)
            if value is not None:
                logger.debug(
                    f"{self.field_name}: rule {index} matched {value!r} "
                    f"(confidence {rule.confidence})"
                )
                return ExtractedField(value=value, confidence=rule.confidence)

        logger.debug(f"{self.field_name}: no rule matched")
        return None

    def extract_value(self, text: str) -> Optional[Any]:
        """Like extract(), returning only the value."""
        extracted = self.extract(text)
        return extracted.value if extracted else None


@dataclass(frozen=True)
class AnchorHit:
    """Line accepted by an AnchorScanner."""
    value: str
    line_index: int
    preferred: bool


class AnchorScanner:
    """
    Bounded look-ahead scan after an anchor line.

    Lines following the anchor are inspected up to ``max_lookahead`` lines
    (None scans to the end of the document). Empty lines and lines holding
    only an honorific (様, 御中, 殿) are skipped. Lines satisfying ``prefer``
    win over other accepted lines.

    Attributes:
        anchor: Keyword (matched with whitespace removed) or compiled regex
        max_lookahead: Number of lines inspected after the anchor
        accept: Maps a line to a cleaned value, or None to reject it
        prefer: Optional predicate marking preferred lines
    """

    def __init__(
        self,
        anchor: Union[str, Pattern, None],
        max_lookahead: Optional[int],
        accept: Callable[[str], Optional[str]],
        prefer: Optional[Callable[[str], bool]] = None
    ) -> None:
        self.anchor = anchor
        self.max_lookahead = max_lookahead
        self.accept = accept
        self.prefer = prefer

    def find_anchor(self, lines: Sequence[str]) -> Optional[int]:
        """
        Locate the first anchor line.

        Returns:
            Line index, or None when the anchor does not occur.
        """
        if self.anchor is None:
            return None

        for index, line in enumerate(lines):
            compact = strip_whitespace(line)
            if isinstance(self.anchor, str):
                if self.anchor in compact:
                    return index
            elif self.anchor.search(compact):
                return index
        return None

    def scan(
        self,
        lines: Sequence[str],
        anchor_index: Optional[int] = None
    ) -> Optional[AnchorHit]:
        """
        Scan the window after the anchor.

        Args:
            lines: Document lines.
            anchor_index: Explicit anchor line. When omitted the anchor is
                located with find_anchor(); -1 scans from the first line.

        Returns:
            AnchorHit, or None when no anchor or no acceptable line exists.
        """
        if anchor_index is None:
            anchor_index = self.find_anchor(lines)
            if anchor_index is None:
                return None

        start = anchor_index + 1
        end = len(lines) if self.max_lookahead is None else min(
            len(lines), start + self.max_lookahead
        )

        window = []
        for index in range(start, end):
            line = lines[index].strip()
            if not line or HONORIFIC_ONLY.match(strip_whitespace(line)):
                continue
            window.append((index, line))

        if self.prefer is not None:
            for index, line in window:
                if self.prefer(line):
                    value = self.accept(line)
                    if value:
                        return AnchorHit(value=value, line_index=index, preferred=True)

        for index, line in window:
            value = self.accept(line)
            if value:
                return AnchorHit(value=value, line_index=index, preferred=False)

        return None


def compile_rule(
    pattern: str,
    confidence: float,
    flags: int = 0,
    **kwargs
) -> FieldRule:
    """Shortcut building a FieldRule from a pattern string."""
    return FieldRule(pattern=re.compile(pattern, flags), confidence=confidence, **kwargs)

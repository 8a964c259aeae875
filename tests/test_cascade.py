"""Unit tests for the field extractor cascade and anchor scanning."""

import re

import pytest

from invoice_extraction.extraction.cascade import (
    AnchorScanner,
    FieldExtractorCascade,
    FieldRule,
    compile_rule,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def email_cascade():
    return FieldExtractorCascade("email", [
        compile_rule(r'メール[:：]\s*(\S+@\S+)', 0.9),
        compile_rule(r'(\S+@\S+)', 0.7),
    ])


class TestFieldRule:
    def test_first_valid_candidate_in_document_order(self):
        rule = compile_rule(r'(\d+)', 0.8, converter=int, validator=lambda v: v > 10)
        assert rule.apply("5 42 99") == 42

    def test_converter_returning_none_rejects(self):
        """A candidate the converter cannot convert is skipped."""
        rule = compile_rule(r'(\w+)', 0.8, converter=lambda s: int(s) if s.isdigit() else None)
        assert rule.apply("abc 123") == 123

    def test_pick_chooses_among_candidates(self):
        rule = compile_rule(r'(\d+)', 0.5, converter=int, pick=max)
        assert rule.apply("100 300 200") == 300

    def test_no_match(self):
        rule = FieldRule(pattern=re.compile(r'(\d+)'), confidence=0.5)
        assert rule.apply("no digits") is None


class TestFieldExtractorCascade:
    def test_most_specific_rule_wins(self, email_cascade):
        extracted = email_cascade.extract("連絡先 a@x.jp\nメール: info@example.co.jp")
        assert extracted.value == "info@example.co.jp"
        assert extracted.confidence == 0.9

    def test_falls_through_to_weaker_rule(self, email_cascade):
        """The confidence of the rule that matched is reported."""
        extracted = email_cascade.extract("連絡先 info@example.co.jp")
        assert extracted.value == "info@example.co.jp"
        assert extracted.confidence == 0.7

    def test_absent_when_nothing_matches(self, email_cascade):
        assert email_cascade.extract("no address here") is None
        assert email_cascade.extract("") is None
        assert email_cascade.extract(None) is None

    def test_extract_value(self, email_cascade):
        assert email_cascade.extract_value("x@y.jp") == "x@y.jp"


class TestAnchorScanner:
    @staticmethod
    def _accept(line):
        return line if len(line) >= 4 else None

    def test_skips_honorific_and_empty_lines(self):
        lines = ["請 求 先", "", "御中", "株式会社サンプル"]
        hit = AnchorScanner("請求先", 3, self._accept).scan(lines)
        assert hit.value == "株式会社サンプル"
        assert hit.line_index == 3
        assert hit.preferred is False

    def test_lookahead_bound(self):
        """Lines beyond the window are never inspected."""
        lines = ["請求先", "ab", "cd", "ef", "株式会社サンプル"]
        assert AnchorScanner("請求先", 3, self._accept).scan(lines) is None

    def test_preferred_line_wins(self):
        lines = ["請求先", "東京都港区1-1", "株式会社サンプル"]
        scanner = AnchorScanner("請求先", 3, self._accept, prefer=lambda l: "株式会社" in l)
        hit = scanner.scan(lines)
        assert hit.value == "株式会社サンプル"
        assert hit.preferred is True

    def test_missing_anchor(self):
        assert AnchorScanner("請求先", 3, self._accept).scan(["株式会社サンプル"]) is None

    def test_regex_anchor_and_explicit_index(self):
        scanner = AnchorScanner(re.compile(r'請求元'), None, self._accept)
        assert scanner.find_anchor(["x", "請 求 元"]) == 1
        assert scanner.scan(["株式会社サンプル"], anchor_index=-1).line_index == 0

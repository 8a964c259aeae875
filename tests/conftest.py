"""Shared fixtures for the extraction core tests."""

from datetime import datetime
from pathlib import Path

import pytest
from dateutil import tz

from config import CONFIG_ENV_VAR, ConfigurationManager

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the bundled settings.yaml."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_dump(fixtures_dir) -> Path:
    """OCR dump of a complete invoice with a two-row item table."""
    return fixtures_dir / "sample_invoice.pdf.txt"


@pytest.fixture
def sample_text(sample_dump) -> str:
    return sample_dump.read_text(encoding="utf-8")


@pytest.fixture
def fixed_clock():
    """Clock returning the same instant on every call."""
    instant = datetime(2024, 11, 25, 9, 30, tzinfo=tz.tzutc())
    return lambda: instant

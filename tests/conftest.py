"""Pytest configuration and shared builders for naaccrxml tests.

Most tests work on a four-field slice of the 230 / ``I`` dictionary so the
fixed-width lines stay readable::

    recordType(1) registryId(10) patientIdNumber(8) primarySite(4)  -> 23 chars
"""

from pathlib import Path
from typing import Callable

import pytest

from naaccrxml.config import ConversionOptions
from naaccrxml.dictionary import resolve_dictionary, select_fields
from naaccrxml.models import ActiveFieldSet, RuntimeDictionary

ITEMS = ["recordType", "registryId", "patientIdNumber", "primarySite"]
LINE_LENGTH = 23


def flat_line(patient: str = "", site: str = "", *, registry: str = "0000001234") -> str:
    """Return one 23-character line for the :data:`ITEMS` layout."""
    return f"{'I':<1}{registry:<10}{patient:<8}{site:<4}"


@pytest.fixture(autouse=True)
def _no_job_file(monkeypatch):
    """Keep a developer's ``$NAACCRXML_CONFIG`` out of the test run."""
    monkeypatch.delenv("NAACCRXML_CONFIG", raising=False)
    monkeypatch.delenv("NAACCRXML_LOG_DIR", raising=False)


@pytest.fixture
def dictionary() -> RuntimeDictionary:
    return resolve_dictionary("230", "I")


@pytest.fixture
def fields(dictionary) -> ActiveFieldSet:
    return select_fields(dictionary, ITEMS)


@pytest.fixture
def write_flat(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper writing *lines* to ``tmp_path/<name>``."""

    def _write(lines, name: str = "input.txt") -> Path:
        path = tmp_path / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_options(tmp_path: Path) -> Callable[..., ConversionOptions]:
    """Return a helper building options for the :data:`ITEMS` layout."""

    def _make(**values) -> ConversionOptions:
        values.setdefault("items", list(ITEMS))
        values.setdefault("target", tmp_path / "output.xml")
        return ConversionOptions(**values)

    return _make

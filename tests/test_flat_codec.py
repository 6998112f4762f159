"""Tests for the fixed-width decoder, encoder and layout descriptor."""

import pytest

from conftest import LINE_LENGTH, flat_line

from naaccrxml.io.flat import (
    decode_line,
    encode_record,
    iter_flat_lines,
    write_layout_descriptor,
)
from naaccrxml.models import FlatLine
from naaccrxml.utils.errors import IOFailure
from naaccrxml.utils.reporting import NullReporter


def test_decode_exact_line(fields):
    line = FlatLine(text=flat_line("00000001", "C509"), line_number=1)
    reporter = NullReporter()

    record = decode_line(line, fields, reporter)

    assert record.values == {
        "recordType": "I",
        "registryId": "0000001234",
        "patientIdNumber": "00000001",
        "primarySite": "C509",
    }
    assert record.line_number == 1
    assert reporter.warnings == []


def test_short_line_is_padded_and_reported(fields):
    """A line that stops inside patientIdNumber keeps the partial value."""
    line = FlatLine(text="I0000001234000", line_number=7)
    reporter = NullReporter()

    record = decode_line(line, fields, reporter)

    assert record.get("patientIdNumber") == "000"
    assert record.get("primarySite") is None
    [warning] = reporter.warnings
    assert (warning.line_number, warning.expected, warning.actual, warning.action) == (
        7,
        LINE_LENGTH,
        14,
        "padded",
    )
    assert "line #7" in warning.message


def test_long_line_is_truncated_and_reported(fields):
    line = FlatLine(text=flat_line("00000001", "C509") + "EXTRA", line_number=3)
    reporter = NullReporter()

    record = decode_line(line, fields, reporter)

    assert record.get("primarySite") == "C509"
    assert reporter.warnings[0].action == "truncated"
    assert reporter.warnings[0].actual == LINE_LENGTH + 5


def test_blank_windows_are_dropped(fields):
    record = decode_line(FlatLine(text=flat_line("", "    "), line_number=1), fields)
    assert "patientIdNumber" not in record.values
    assert "primarySite" not in record.values


def test_values_are_trimmed(fields):
    record = decode_line(FlatLine(text=flat_line("  42  ", " C5"), line_number=1), fields)
    assert record.get("patientIdNumber") == "42"
    assert record.get("primarySite") == "C5"


def test_blank_line_decodes_to_nothing(fields):
    reporter = NullReporter()
    record = decode_line(FlatLine(text="", line_number=2), fields, reporter)
    assert record.values == {}
    assert reporter.warnings[0].action == "padded"


def test_encode_restores_the_line(fields):
    original = flat_line("00000001", "C509")
    record = decode_line(FlatLine(text=original, line_number=1), fields)
    assert encode_record(record.values, fields) == original


def test_encode_pads_missing_values(fields):
    assert encode_record({"primarySite": "C1"}, fields) == " " * 19 + "C1  "


def test_encode_truncates_long_values(fields):
    reporter = NullReporter()
    line = encode_record({"primarySite": "C50999"}, fields, reporter, line_number=4)

    assert line.endswith("C509")
    assert len(line) == LINE_LENGTH
    assert reporter.warnings[0].line_number == 4
    assert reporter.warnings[0].expected == 4


def test_iter_flat_lines(tmp_path):
    path = tmp_path / "input.txt"
    path.write_bytes(b"first\r\nsecond\n\nlast")

    lines = list(iter_flat_lines(path))

    assert [ln.text for ln in lines] == ["first", "second", "", "last"]
    assert [ln.line_number for ln in lines] == [1, 2, 3, 4]


def test_iter_flat_lines_missing_file(tmp_path):
    with pytest.raises(IOFailure):
        list(iter_flat_lines(tmp_path / "missing.txt"))


def test_iter_flat_lines_bad_encoding(tmp_path):
    path = tmp_path / "latin.txt"
    path.write_bytes("café\n".encode("latin-1"))
    with pytest.raises(IOFailure, match="decode"):
        list(iter_flat_lines(path, "utf-8"))
    assert [ln.text for ln in iter_flat_lines(path, "latin-1")] == ["café"]


def test_layout_descriptor(tmp_path, fields):
    path = write_layout_descriptor(tmp_path / "layout.sas", fields)
    assert path.read_text(encoding="ascii") == (
        "put\n"
        "@1 recordType $1.\n"
        "@2 registryId $10.\n"
        "@12 patientIdNumber $8.\n"
        "@20 primarySite $4.\n"
        ";"
    )


def test_short_line_matches_prepadded_line(dictionary):
    """Three missing characters on a 10-wide layout behave like trailing spaces."""
    from naaccrxml.dictionary import select_fields

    ten_wide = select_fields(dictionary, ["registryId"])
    assert ten_wide.expected_line_length == 10

    short = decode_line(FlatLine(text="0000001", line_number=1), ten_wide)
    padded = decode_line(FlatLine(text="0000001   ", line_number=1), ten_wide)

    assert short.values == padded.values == {"registryId": "0000001"}


def test_decode_encode_decode_is_stable(fields):
    first = decode_line(FlatLine(text=flat_line("42", "C5"), line_number=1), fields)
    again = decode_line(FlatLine(text=encode_record(first.values, fields), line_number=1), fields)
    assert again.values == first.values

"""
Fixed-width flat-file codec.

* :func:`iter_flat_lines` – stream :class:`~naaccrxml.models.FlatLine`
  objects from a file without loading it.
* :func:`decode_line` – slice one line into a
  :class:`~naaccrxml.models.DecodedRecord` under strict length discipline.
* :func:`encode_record` – the inverse, used by the XML → flat path.
* :func:`write_layout_descriptor` – the ``@offset key $length.`` recipe that
  lets external tooling read the same flat file as typed columns.

Length mismatches are data-quality signals: the line is truncated or
right-padded and a :class:`~naaccrxml.models.LineLengthMismatch` goes to the
reporter.  Only I/O failures are fatal.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Mapping, Optional

from naaccrxml.models import ActiveFieldSet, DecodedRecord, FlatLine, LineLengthMismatch
from naaccrxml.utils.errors import IOFailure
from naaccrxml.utils.reporting import Reporter

__all__ = [
    "iter_flat_lines",
    "decode_line",
    "encode_record",
    "write_layout_descriptor",
]


def iter_flat_lines(path: str | Path, encoding: str = "utf-8") -> Iterator[FlatLine]:
    """Yield every line of *path* with its 1-based number, terminators removed.

    Raises:
        IOFailure: When the file cannot be opened or decoded.
    """
    path = Path(path)
    try:
        with path.open("r", encoding=encoding) as fh:
            for number, raw in enumerate(fh, start=1):
                yield FlatLine(text=raw.rstrip("\r\n"), line_number=number)
    except UnicodeDecodeError as exc:
        raise IOFailure(f"Unable to decode {path} as {encoding}: {exc.reason}") from exc
    except OSError as exc:
        raise IOFailure(f"Unable to read {path}: {exc.strerror or exc}") from exc


def decode_line(
    line: FlatLine,
    fields: ActiveFieldSet,
    reporter: Optional[Reporter] = None,
    expected_length: Optional[int] = None,
) -> DecodedRecord:
    """Slice *line* into trimmed, non-empty values keyed by column key.

    Args:
        line: Raw input record.
        fields: Active fields in dictionary order.
        reporter: Receives a :class:`LineLengthMismatch` for skewed lines.
        expected_length: Pre-computed ``fields.expected_line_length``; pass
            it when decoding many lines to avoid recomputing the sum.

    Returns:
        Mapping of truncated id to value; blank windows are dropped.
    """
    expected = fields.expected_line_length if expected_length is None else expected_length
    text = line.text

    if len(text) != expected:
        action = "truncated" if len(text) > expected else "padded"
        if reporter is not None:
            reporter.warn(
                LineLengthMismatch(
                    line_number=line.line_number,
                    expected=expected,
                    actual=len(text),
                    action=action,
                )
            )
        text = text[:expected] if action == "truncated" else text.ljust(expected)

    values: dict[str, str] = {}
    start = 0
    for field in fields:
        end = start + field.length
        value = text[start:end].strip()
        if value:
            values[field.truncated_id] = value
        start = end
    return DecodedRecord(values=values, line_number=line.line_number)


def encode_record(
    values: Mapping[str, str],
    fields: ActiveFieldSet,
    reporter: Optional[Reporter] = None,
    line_number: int = 0,
) -> str:
    """Return the fixed-width line holding *values* (keyed by column key).

    Values are left-justified and space-padded to each field's width.
    Over-long values are cut to the width and reported with
    ``action="truncated"``.
    """
    parts: list[str] = []
    for field in fields:
        value = values.get(field.truncated_id) or ""
        if len(value) > field.length:
            if reporter is not None:
                reporter.warn(
                    LineLengthMismatch(
                        line_number=line_number,
                        expected=field.length,
                        actual=len(value),
                        action="truncated",
                    )
                )
            value = value[: field.length]
        parts.append(value.ljust(field.length))
    return "".join(parts)


def write_layout_descriptor(path: str | Path, fields: ActiveFieldSet) -> Path:
    """Write the column-layout recipe for *fields* and return its path.

    Format::

        put
        @1 recordType $1.
        @2 registryType $1.
        ;

    Raises:
        IOFailure: When the file cannot be written.
    """
    path = Path(path)
    lines = ["put"]
    offset = 1
    for field in fields:
        lines.append(f"@{offset} {field.truncated_id} ${field.length}.")
        offset += field.length
    try:
        path.write_text("\n".join(lines) + "\n;", encoding="ascii")
    except OSError as exc:
        raise IOFailure(f"Unable to write layout descriptor {path}: {exc.strerror or exc}") from exc
    return path

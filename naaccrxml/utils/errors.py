"""Exception hierarchy shared by the dictionary, I/O, and pipeline layers.

Every fatal condition is raised as a subclass of :class:`NaaccrXmlError` so a
host (the CLI, a macro layer, a notebook) only needs to catch one type.  The
base class carries an optional source line number and a structural path
(``/NaaccrData/Patient[2]/Tumor[1]``) when the failing layer knows them.

Line-length problems are *not* exceptions; see
:class:`naaccrxml.models.LineLengthMismatch`.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "NaaccrXmlError",
    "UnsupportedVersion",
    "UnsupportedRecordType",
    "ColumnKeyCollision",
    "InvalidDictionary",
    "MissingRequiredAttribute",
    "DictionaryUriMismatch",
    "IOFailure",
    "MalformedUnderlyingStream",
    "ConfigError",
    "ConversionCancelled",
]


class NaaccrXmlError(RuntimeError):
    """Raised when a conversion cannot continue.

    Attributes:
        message: Human-readable description of the failure.
        line_number: 1-based source line, when known.
        path: Structural path of the element being processed, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        path: Optional[str] = None,
    ) -> None:
        self.message = message
        self.line_number = line_number
        self.path = path
        super().__init__(self.describe())

    def describe(self) -> str:
        """Return the message decorated with line number and path."""
        parts = [self.message]
        if self.line_number is not None:
            parts.append(f"line {self.line_number}")
        if self.path:
            parts.append(f"path {self.path}")
        return " | ".join(parts)


class UnsupportedVersion(NaaccrXmlError):
    """The requested NAACCR version has no packaged base dictionary."""


class UnsupportedRecordType(NaaccrXmlError):
    """The record type is not one of A, M, C or I."""


class ColumnKeyCollision(NaaccrXmlError):
    """Two different fields map onto the same flat-file column key."""


class InvalidDictionary(NaaccrXmlError):
    """A dictionary source is unreadable or declares an incomplete field."""


class MissingRequiredAttribute(NaaccrXmlError):
    """A required root attribute (base dictionary URI, record type) is absent."""


class DictionaryUriMismatch(NaaccrXmlError):
    """The supplied user dictionary does not match the URI declared on the data."""


class IOFailure(NaaccrXmlError):
    """Reading from or writing to the underlying file failed."""


class MalformedUnderlyingStream(NaaccrXmlError):
    """The XML parser rejected the input; wraps the parser's own error."""


class ConfigError(NaaccrXmlError):
    """The job configuration failed validation."""


class ConversionCancelled(NaaccrXmlError):
    """The caller asked the running conversion to stop."""

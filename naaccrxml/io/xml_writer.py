"""
Streaming NAACCR XML writer.

:class:`PatientXmlWriter` writes the prolog and the ``NaaccrData`` root as
soon as it is created, then one ``Patient`` at a time, so memory use stays
bounded by the largest patient.  The same class serves the flat-file
conversion and callers holding an in-memory :class:`~naaccrxml.models.NaaccrData`.

Layout (4-space indentation)::

    <?xml version="1.0" encoding="UTF-8"?>

    <NaaccrData baseDictionaryUri="…" recordType="I" timeGenerated="…" specificationVersion="1.7" xmlns="http://naaccr.org/naaccrxml">
        <Item naaccrId="registryId">0000001234</Item>
        <Patient>
            <Item naaccrId="patientIdNumber">00000001</Item>
            <Tumor>
                <Item naaccrId="primarySite">C509</Item>
            </Tumor>
        </Patient>
    </NaaccrData>

The root always declares :data:`~naaccrxml.models.CURRENT_SPECIFICATION_VERSION`
and the library namespace, whatever the source data says; older documents
are upgraded on write.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import IO, Dict, List, Optional, Sequence

import structlog

from naaccrxml.dictionary import resolve_dictionary
from naaccrxml.models import (
    ATT_BASE_DICT,
    ATT_REC_TYPE,
    ATT_SPEC_VERSION,
    ATT_TIME_GENERATED,
    ATT_USER_DICT,
    CURRENT_SPECIFICATION_VERSION,
    ITEM_TAG,
    NAACCR_XML_NAMESPACE,
    PATIENT_TAG,
    ROOT_TAG,
    STANDARD_ROOT_ATTRIBUTES,
    TUMOR_TAG,
    FieldDescriptor,
    Item,
    NaaccrData,
    ParentLevel,
    Patient,
    RuntimeDictionary,
)
from naaccrxml.utils.errors import (
    DictionaryUriMismatch,
    IOFailure,
    MissingRequiredAttribute,
    NaaccrXmlError,
    UnsupportedVersion,
)

__all__ = ["PatientXmlWriter", "escape_text", "escape_attribute", "version_from_base_uri"]

log = structlog.get_logger()

_INDENT = "    "
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BASE_URI_RE = re.compile(r"naaccr-dictionary-(\d{3})\.xml$")
_XML_NAME_RE = re.compile(r"^[A-Za-z_][\w.\-]*(:[A-Za-z_][\w.\-]*)?$")


# --------------------------------------------------------------------------- #
# Escaping
# --------------------------------------------------------------------------- #
def escape_text(value: str) -> str:
    """Escape *value* for use as element text.

    ``&``, ``<`` and ``>`` become entities, CR/CRLF become LF and the
    control characters XML 1.0 forbids are replaced by a space.
    """
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = _ILLEGAL_XML_CHARS.sub(" ", value)
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attribute(value: str) -> str:
    """Escape *value* for use inside a double-quoted attribute."""
    value = escape_text(value)
    return (
        value.replace('"', "&quot;")
        .replace("\n", "&#10;")
        .replace("\t", "&#9;")
    )


def version_from_base_uri(uri: str) -> str:
    """Return the NAACCR version encoded in a base dictionary URI."""
    match = _BASE_URI_RE.search(uri.strip())
    if not match:
        raise UnsupportedVersion(f"Unable to get NAACCR version from base dictionary URI '{uri}'")
    return match.group(1)


# --------------------------------------------------------------------------- #
# Writer
# --------------------------------------------------------------------------- #
class PatientXmlWriter:
    """Single-use, sequential writer for the NAACCR XML hierarchy.

    Args:
        sink: Path of the target file or an open text stream.
        root: Root metadata and root-level items.
        dictionary: Runtime dictionary used to order items, validate their
            level and look up item numbers.  Resolved from the root's base
            dictionary URI and record type when omitted.
        write_numbers: Add ``naaccrNum`` to items whose field has a number.

    Raises:
        MissingRequiredAttribute: No base dictionary URI or record type.
        DictionaryUriMismatch: The root declares a user dictionary URI that
            differs from the supplied dictionary's.
        IOFailure: The sink cannot be opened or written.
    """

    def __init__(
        self,
        sink: str | Path | IO[str],
        root: NaaccrData,
        dictionary: Optional[RuntimeDictionary] = None,
        *,
        write_numbers: bool = False,
    ) -> None:
        # Validate everything before touching the sink.
        if not root.base_dictionary_uri:
            raise MissingRequiredAttribute("base dictionary URI is required", path=f"/{ROOT_TAG}")
        if not root.record_type:
            raise MissingRequiredAttribute("record type is required", path=f"/{ROOT_TAG}")

        if dictionary is None:
            dictionary = resolve_dictionary(
                version_from_base_uri(root.base_dictionary_uri), root.record_type
            )
        user_uri = dictionary.user_dictionary_uri
        if user_uri and root.user_dictionary_uri and root.user_dictionary_uri != user_uri:
            raise DictionaryUriMismatch(
                f"Provided dictionary has a different URI ({user_uri}) than the one "
                f"declared on the data ({root.user_dictionary_uri})",
                path=f"/{ROOT_TAG}",
            )

        for key in root.extra_attributes:
            if not _XML_NAME_RE.match(key):
                raise NaaccrXmlError(f"invalid root attribute name '{key}'", path=f"/{ROOT_TAG}")

        self._dictionary = dictionary
        self._write_numbers = write_numbers
        self._order: Dict[str, int] = {f.naaccr_id: i for i, f in enumerate(dictionary.fields)}
        self._finalized = False
        self._closed = False
        self.patient_count = 0
        self.tumor_count = 0
        root_items = self._resolve_items(root.items, ParentLevel.ROOT, f"/{ROOT_TAG}")

        owns_sink = isinstance(sink, (str, Path))
        if owns_sink:
            try:
                self._sink: IO[str] = open(sink, "w", encoding="utf-8", newline="\n")
            except OSError as exc:
                raise IOFailure(f"Unable to open {sink} for writing: {exc.strerror or exc}") from exc
        else:
            self._sink = sink

        try:
            self._write_header(root, user_uri or root.user_dictionary_uri, root_items)
        except BaseException:
            if owns_sink:
                self._sink.close()
                Path(sink).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------ #
    # Context-manager protocol
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "PatientXmlWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    # ------------------------------------------------------------------ #
    # Low-level output
    # ------------------------------------------------------------------ #
    def _write(self, text: str) -> None:
        try:
            self._sink.write(text)
        except (OSError, ValueError) as exc:
            raise IOFailure(f"Unable to write XML: {getattr(exc, 'strerror', None) or exc}") from exc

    def _close_sink(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sink.close()
        except OSError as exc:
            raise IOFailure(f"Unable to close XML output: {exc.strerror or exc}") from exc

    # ------------------------------------------------------------------ #
    # Root
    # ------------------------------------------------------------------ #
    def _write_header(
        self,
        root: NaaccrData,
        user_uri: Optional[str],
        root_items: List[tuple[FieldDescriptor, Item]],
    ) -> None:
        generated = root.time_generated or datetime.now()
        attributes: List[tuple[str, str]] = [(ATT_BASE_DICT, root.base_dictionary_uri or "")]
        if user_uri:
            attributes.append((ATT_USER_DICT, user_uri))
        attributes.append((ATT_REC_TYPE, root.record_type or ""))
        attributes.append(
            (ATT_TIME_GENERATED, generated.astimezone().isoformat(timespec="milliseconds"))
        )
        # always the library's version, whatever the source data declared
        attributes.append((ATT_SPEC_VERSION, CURRENT_SPECIFICATION_VERSION))
        attributes.append(("xmlns", NAACCR_XML_NAMESPACE))
        for key, value in root.extra_attributes.items():
            if key not in STANDARD_ROOT_ATTRIBUTES and key != "xmlns":
                attributes.append((key, value))

        rendered = " ".join(f'{k}="{escape_attribute(v)}"' for k, v in attributes)
        self._write('<?xml version="1.0" encoding="UTF-8"?>\n\n')
        self._write(f"<{ROOT_TAG} {rendered}>\n")
        self._render_items(root_items, 1)

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #
    def _field_for(self, item: Item, level: ParentLevel, path: str) -> FieldDescriptor:
        field = self._dictionary.get(item.naaccr_id)
        if field is None:
            field = self._dictionary.by_column_key(item.naaccr_id)
        if field is None:
            raise NaaccrXmlError(f"unknown NAACCR ID: {item.naaccr_id}", path=path)
        if field.parent != level:
            raise NaaccrXmlError(
                f"item '{field.naaccr_id}' belongs under {field.parent.value}, not {level.value}",
                path=path,
            )
        return field

    def _resolve_items(
        self, items: Sequence[Item], level: ParentLevel, path: str
    ) -> List[tuple[FieldDescriptor, Item]]:
        """Return non-blank *items* with their fields, in dictionary order."""
        resolved = [
            (self._field_for(item, level, f"{path}/{ITEM_TAG}[@naaccrId='{item.naaccr_id}']"), item)
            for item in items
            if item.value.strip()
        ]
        resolved.sort(key=lambda pair: self._order[pair[0].naaccr_id])
        return resolved

    def _write_items(
        self, items: Sequence[Item], level: ParentLevel, depth: int, path: str
    ) -> None:
        self._render_items(self._resolve_items(items, level, path), depth)

    def _render_items(self, resolved: List[tuple[FieldDescriptor, Item]], depth: int) -> None:
        indent = _INDENT * depth
        for field, item in resolved:
            number = ""
            if self._write_numbers and field.naaccr_num is not None:
                number = f' naaccrNum="{field.naaccr_num}"'
            self._write(
                f'{indent}<{ITEM_TAG} naaccrId="{field.naaccr_id}"{number}>'
                f"{escape_text(item.value)}</{ITEM_TAG}>\n"
            )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def write_patient(self, patient: Patient) -> None:
        """Write *patient* and its tumors.

        Raises:
            NaaccrXmlError: The writer has been finalised or aborted, or an
                item is unknown or sits under the wrong element.
            IOFailure: Writing to the sink failed.
        """
        if self._finalized:
            raise NaaccrXmlError("cannot write a Patient after the document was finalized")
        if self._closed:
            raise NaaccrXmlError("cannot write a Patient after the writer was aborted")

        self.patient_count += 1
        path = f"/{ROOT_TAG}/{PATIENT_TAG}[{self.patient_count}]"
        self._write(f"{_INDENT}<{PATIENT_TAG}>\n")
        self._write_items(patient.items, ParentLevel.PATIENT, 2, path)
        for index, tumor in enumerate(patient.tumors, start=1):
            self.tumor_count += 1
            self._write(f"{_INDENT * 2}<{TUMOR_TAG}>\n")
            self._write_items(tumor.items, ParentLevel.TUMOR, 3, f"{path}/{TUMOR_TAG}[{index}]")
            self._write(f"{_INDENT * 2}</{TUMOR_TAG}>\n")
        self._write(f"{_INDENT}</{PATIENT_TAG}>\n")

    def abort(self) -> None:
        """Close the sink without finalising; the document stays unterminated.

        Later calls to :meth:`close` or :meth:`close_and_keep_alive` are no-ops.
        """
        if not self._finalized:
            self._close_sink()

    def close_and_keep_alive(self) -> None:
        """Close the root element without closing the underlying sink."""
        if not self._finalized and not self._closed:
            self._write(f"</{ROOT_TAG}>\n")
            try:
                self._sink.flush()
            except OSError as exc:
                raise IOFailure(f"Unable to flush XML output: {exc.strerror or exc}") from exc
            self._finalized = True
            log.debug("xml.finalized", patients=self.patient_count, tumors=self.tumor_count)

    def close(self) -> None:
        """Finalise the document (once) and close the sink."""
        self.close_and_keep_alive()
        self._close_sink()

    @property
    def finalized(self) -> bool:
        return self._finalized

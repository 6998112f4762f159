"""
Streaming NAACCR XML reader – the inverse of :mod:`naaccrxml.io.xml_writer`.

The reader walks the document with :func:`lxml.etree.iterparse` and yields
one :class:`~naaccrxml.models.Patient` at a time, clearing every consumed
element so arbitrarily large files run in constant memory.  Root attributes
and root-level items are available on :attr:`PatientXmlReader.root` as soon
as the reader is constructed.

Parser failures surface as
:class:`~naaccrxml.utils.errors.MalformedUnderlyingStream` with the line
number and the structural path being read.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional, Union

from lxml import etree

from naaccrxml.dictionary import UserDictionary, resolve_dictionary
from naaccrxml.models import (
    ATT_BASE_DICT,
    ATT_REC_TYPE,
    ATT_SPEC_VERSION,
    ATT_TIME_GENERATED,
    ATT_USER_DICT,
    ITEM_TAG,
    NAACCR_XML_NAMESPACE,
    PATIENT_TAG,
    ROOT_TAG,
    STANDARD_ROOT_ATTRIBUTES,
    TUMOR_TAG,
    NaaccrData,
    ParentLevel,
    Patient,
    RuntimeDictionary,
    Tumor,
)
from naaccrxml.utils.errors import (
    IOFailure,
    MalformedUnderlyingStream,
    MissingRequiredAttribute,
    NaaccrXmlError,
)

from .xml_writer import version_from_base_uri

__all__ = ["PatientXmlReader"]

log = logging.getLogger(__name__)


def _local(el) -> str:
    return etree.QName(el).localname


def _parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.strip())
    except ValueError:
        log.warning("Ignoring unparseable timeGenerated value '%s'", raw)
        return None


class PatientXmlReader:
    """Read patients from a NAACCR XML document.

    Args:
        source: Path to the XML file or a binary stream.
        dictionary: Runtime dictionary to validate items against.  When
            omitted it is resolved from the root's base dictionary URI and
            record type, with *user_dictionaries* merged on top.
        user_dictionaries: Extension dictionaries used for that resolution.

    Raises:
        MissingRequiredAttribute: The root lacks a base URI or record type.
        MalformedUnderlyingStream: The document is not well-formed XML.
        IOFailure: The file cannot be opened.
    """

    def __init__(
        self,
        source: Union[str, Path, IO[bytes]],
        dictionary: Optional[RuntimeDictionary] = None,
        user_dictionaries: Iterable[UserDictionary] = (),
    ) -> None:
        if isinstance(source, (str, Path)):
            try:
                self._fh: IO[bytes] = open(source, "rb")
            except OSError as exc:
                raise IOFailure(f"Unable to read {source}: {exc.strerror or exc}") from exc
            self._owns_fh = True
        else:
            self._fh = source
            self._owns_fh = False

        self._context = etree.iterparse(
            self._fh, events=("start", "end"), huge_tree=True, remove_comments=True
        )
        self._stream = self._events()
        self._patient_index = 0
        self._tumor_index = 0
        self._patient: Optional[Patient] = None
        self._tumor: Optional[Tumor] = None
        self._done = False
        self._user_dictionaries = tuple(user_dictionaries)
        self.dictionary: Optional[RuntimeDictionary] = dictionary
        try:
            self.root: NaaccrData = self._read_root()
        except BaseException:
            self.close()
            raise

    # ------------------------------------------------------------------ #
    # Context-manager protocol
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "PatientXmlReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_fh:
            self._fh.close()

    # ------------------------------------------------------------------ #
    # Event stream
    # ------------------------------------------------------------------ #
    def _path(self) -> str:
        parts = [f"/{ROOT_TAG}"]
        if self._patient is not None:
            parts.append(f"/{PATIENT_TAG}[{self._patient_index}]")
            if self._tumor is not None:
                parts.append(f"/{TUMOR_TAG}[{self._tumor_index}]")
        return "".join(parts)

    def _events(self):
        try:
            for event, el in self._context:
                if not isinstance(el.tag, str):
                    continue
                yield event, el
        except etree.XMLSyntaxError as exc:
            raise MalformedUnderlyingStream(
                exc.msg or str(exc), line_number=exc.lineno, path=self._path()
            ) from exc
        except OSError as exc:
            raise IOFailure(f"Unable to read XML: {exc.strerror or exc}") from exc

    # ------------------------------------------------------------------ #
    # Root
    # ------------------------------------------------------------------ #
    def _read_root(self) -> NaaccrData:
        root: Optional[NaaccrData] = None
        for event, el in self._stream:
            name = _local(el)
            if root is None:
                if name != ROOT_TAG:
                    raise NaaccrXmlError(
                        f"root element must be {ROOT_TAG}, got {name}", line_number=el.sourceline
                    )
                namespace = etree.QName(el).namespace
                if namespace not in (None, NAACCR_XML_NAMESPACE):
                    raise NaaccrXmlError(
                        f"unexpected namespace '{namespace}'", line_number=el.sourceline
                    )
                root = self._root_from_attributes(el)
                continue

            if event == "start" and name == PATIENT_TAG:
                self._open_patient()
                return root
            if event == "end" and name == ITEM_TAG:
                self._add_item(root, el, ParentLevel.ROOT)
            elif event == "end" and name == ROOT_TAG:
                self._done = True
                return root

        if root is None:
            raise MalformedUnderlyingStream("document is empty", path="/")
        raise MalformedUnderlyingStream(f"unterminated {ROOT_TAG} element", path=self._path())

    def _root_from_attributes(self, el) -> NaaccrData:
        attrs = dict(el.attrib)
        base_uri = attrs.get(ATT_BASE_DICT)
        record_type = attrs.get(ATT_REC_TYPE)
        if not base_uri:
            raise MissingRequiredAttribute(
                "base dictionary URI is required", line_number=el.sourceline, path=f"/{ROOT_TAG}"
            )
        if not record_type:
            raise MissingRequiredAttribute(
                "record type is required", line_number=el.sourceline, path=f"/{ROOT_TAG}"
            )

        root = NaaccrData(
            base_dictionary_uri=base_uri,
            user_dictionary_uri=attrs.get(ATT_USER_DICT),
            record_type=record_type,
            time_generated=_parse_timestamp(attrs.get(ATT_TIME_GENERATED)),
            specification_version=attrs.get(ATT_SPEC_VERSION),
            extra_attributes={
                k: v
                for k, v in attrs.items()
                if k not in STANDARD_ROOT_ATTRIBUTES and not k.startswith("{")
            },
        )

        if self.dictionary is None:
            self.dictionary = resolve_dictionary(
                version_from_base_uri(base_uri), record_type, self._user_dictionaries
            )
        declared = (root.user_dictionary_uri or "").split()
        missing = [u for u in declared if u not in self.dictionary.user_dictionary_uris]
        if missing:
            log.warning(
                "Data declares user dictionary URI(s) %s that were not provided",
                ", ".join(missing),
            )
        return root

    # ------------------------------------------------------------------ #
    # Items / patients
    # ------------------------------------------------------------------ #
    def _open_patient(self) -> None:
        self._patient_index += 1
        self._tumor_index = 0
        self._patient = Patient()

    def _add_item(self, holder, el, level: ParentLevel) -> None:
        naaccr_id = el.get("naaccrId")
        if not naaccr_id:
            raise NaaccrXmlError(
                "Item without naaccrId attribute", line_number=el.sourceline, path=self._path()
            )
        field = self.dictionary.get(naaccr_id) if self.dictionary else None
        if field is None:
            raise NaaccrXmlError(
                f"unknown NAACCR ID: {naaccr_id}", line_number=el.sourceline, path=self._path()
            )
        if field.parent != level:
            raise NaaccrXmlError(
                f"item '{naaccr_id}' belongs under {field.parent.value}, not {level.value}",
                line_number=el.sourceline,
                path=self._path(),
            )
        value = el.text or ""
        if value.strip():
            holder.add_item(naaccr_id, value)
        el.clear()

    def __iter__(self) -> Iterator[Patient]:
        if self._done:
            return
        for event, el in self._stream:
            name = _local(el)
            if event == "start":
                if name == PATIENT_TAG:
                    self._open_patient()
                elif name == TUMOR_TAG:
                    if self._patient is None:
                        raise NaaccrXmlError(
                            "Tumor outside of a Patient", line_number=el.sourceline, path=self._path()
                        )
                    self._tumor_index += 1
                    self._tumor = Tumor()
                continue

            if name == ITEM_TAG:
                if self._tumor is not None:
                    self._add_item(self._tumor, el, ParentLevel.TUMOR)
                elif self._patient is not None:
                    self._add_item(self._patient, el, ParentLevel.PATIENT)
                else:
                    self._add_item(self.root, el, ParentLevel.ROOT)
            elif name == TUMOR_TAG and self._patient is not None and self._tumor is not None:
                self._patient.tumors.append(self._tumor)
                self._tumor = None
                el.clear()
            elif name == PATIENT_TAG and self._patient is not None:
                patient, self._patient = self._patient, None
                el.clear()
                while el.getprevious() is not None:
                    del el.getparent()[0]
                yield patient
            elif name == ROOT_TAG:
                self._done = True
                return

    def read_all(self) -> List[Patient]:
        """Return every remaining patient (convenience for small files)."""
        return list(self)

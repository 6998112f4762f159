"""
Domain-level data models shared across dictionary, I/O, pipeline, and CLI layers.

The module provides:

* **Format constants** – supported NAACCR versions, record types, the XML
  namespace and the specification version written by this library.
* **`FieldDescriptor`** – one dictionary entry (id, number, width, parent).
* **`RuntimeDictionary` / `ActiveFieldSet`** – the merged, ordered field
  catalog for one conversion job and its selected subset.
* **`FlatLine` / `DecodedRecord`** – transient objects for a single input line.
* **`Item` / `Tumor` / `Patient` / `NaaccrData`** – the hierarchical record
  model written to and read from XML.
* **`LineLengthMismatch`** – the structured, non-fatal warning raised by the
  fixed-width decoder.

Every collection keeps declaration order; output order is part of the
format contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, PositiveInt

# --------------------------------------------------------------------------- #
# 1 – Format constants
# --------------------------------------------------------------------------- #
SUPPORTED_VERSIONS: Tuple[str, ...] = ("140", "150", "160", "180", "210", "220", "230")
RECORD_TYPES: Tuple[str, ...] = ("A", "M", "C", "I")

NAACCR_XML_NAMESPACE = "http://naaccr.org/naaccrxml"
CURRENT_SPECIFICATION_VERSION = "1.7"
BASE_DICTIONARY_URI_TEMPLATE = "http://naaccr.org/naaccrxml/naaccr-dictionary-{version}.xml"

# Flat-file column keys are bounded by the statistical-package variable limit.
MAX_TRUNCATED_ID_LENGTH = 32

ROOT_TAG = "NaaccrData"
PATIENT_TAG = "Patient"
TUMOR_TAG = "Tumor"
ITEM_TAG = "Item"

ATT_BASE_DICT = "baseDictionaryUri"
ATT_USER_DICT = "userDictionaryUri"
ATT_REC_TYPE = "recordType"
ATT_TIME_GENERATED = "timeGenerated"
ATT_SPEC_VERSION = "specificationVersion"
STANDARD_ROOT_ATTRIBUTES: Tuple[str, ...] = (
    ATT_BASE_DICT,
    ATT_USER_DICT,
    ATT_REC_TYPE,
    ATT_TIME_GENERATED,
    ATT_SPEC_VERSION,
)


def base_dictionary_uri(version: str) -> str:
    """Return the canonical base-dictionary URI for *version*."""
    return BASE_DICTIONARY_URI_TEMPLATE.format(version=version)


def truncate_id(naaccr_id: str) -> str:
    """Return the flat-file column key derived from *naaccr_id*."""
    return naaccr_id[:MAX_TRUNCATED_ID_LENGTH]


class ParentLevel(str, Enum):
    """XML element under which a field's ``Item`` is nested."""

    ROOT = ROOT_TAG
    PATIENT = PATIENT_TAG
    TUMOR = TUMOR_TAG


# --------------------------------------------------------------------------- #
# 2 – Dictionary models
# --------------------------------------------------------------------------- #
class FieldDescriptor(BaseModel, frozen=True):
    """One field of a NAACCR dictionary.

    Attributes
    ----------
    naaccr_id
        Stable textual identifier (``patientIdNumber``).
    naaccr_num
        Historical numeric item code, when the field has one.
    length
        Column width in the fixed-width layout.
    parent
        Element the field's ``Item`` belongs to.
    record_types
        Record types (A/M/C/I) the field is part of.
    source
        ``"base"`` or the URI of the user dictionary that last defined it.
    """

    naaccr_id: str = Field(..., min_length=1)
    naaccr_num: Optional[PositiveInt] = None
    length: PositiveInt
    parent: ParentLevel
    record_types: Tuple[str, ...] = RECORD_TYPES
    source: str = "base"

    @property
    def truncated_id(self) -> str:
        """Column key used in the flat layout (prefix of :attr:`naaccr_id`)."""
        return truncate_id(self.naaccr_id)


@dataclass(frozen=True)
class RuntimeDictionary:
    """Merged, ordered, read-only field catalog for one conversion job.

    Instances may be shared by several jobs; nothing mutates them after
    :func:`naaccrxml.dictionary.resolve_dictionary` returns.
    """

    version: str
    record_type: str
    base_dictionary_uri: str
    fields: Tuple[FieldDescriptor, ...]
    user_dictionary_uris: Tuple[str, ...] = ()
    _by_id: Dict[str, FieldDescriptor] = field(init=False, repr=False, compare=False)
    _by_key: Dict[str, FieldDescriptor] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {f.naaccr_id: f for f in self.fields})
        object.__setattr__(self, "_by_key", {f.truncated_id: f for f in self.fields})

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, naaccr_id: object) -> bool:
        return naaccr_id in self._by_id

    def get(self, naaccr_id: str) -> Optional[FieldDescriptor]:
        """Return the field called *naaccr_id* or ``None``."""
        return self._by_id.get(naaccr_id)

    def by_column_key(self, key: str) -> Optional[FieldDescriptor]:
        """Return the field whose truncated id is *key* or ``None``."""
        return self._by_key.get(key)

    @property
    def user_dictionary_uri(self) -> Optional[str]:
        """Space-separated user URIs as written on the root element."""
        return " ".join(self.user_dictionary_uris) or None


@dataclass(frozen=True)
class ActiveFieldSet:
    """Subset of a :class:`RuntimeDictionary` taking part in a conversion."""

    dictionary: RuntimeDictionary
    fields: Tuple[FieldDescriptor, ...]

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def expected_line_length(self) -> int:
        """Sum of the active fields' widths."""
        return sum(f.length for f in self.fields)

    def for_level(self, level: ParentLevel) -> Tuple[FieldDescriptor, ...]:
        """Return the active fields nested under *level*, in dictionary order."""
        return tuple(f for f in self.fields if f.parent == level)


# --------------------------------------------------------------------------- #
# 3 – Flat-file transients
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class FlatLine:
    """One raw input record and its 1-based line number."""

    text: str
    line_number: int

    @property
    def length(self) -> int:
        return len(self.text)


@dataclass
class DecodedRecord:
    """Non-empty trimmed values of one flat line keyed by column key."""

    values: Dict[str, str]
    line_number: int = 0

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)


class LineLengthMismatch(BaseModel, frozen=True):
    """Recoverable warning emitted when a flat line has the wrong width.

    Attributes:
        line_number: 1-based line number of the offending record.
        expected: Width implied by the active fields.
        actual: Width of the raw line.
        action: ``"truncated"`` or ``"padded"``.
    """

    line_number: int
    expected: int
    actual: int
    action: Literal["truncated", "padded"]

    @property
    def message(self) -> str:
        return (
            f"Expected line length of {self.expected} but line #{self.line_number} "
            f"is {self.actual}; {self.action} it"
        )


# --------------------------------------------------------------------------- #
# 4 – Hierarchical record model
# --------------------------------------------------------------------------- #
class Item(BaseModel):
    """A single field value nested under the root, a patient or a tumor."""

    naaccr_id: str
    value: str


class _ItemHolder(BaseModel):
    """Shared accessors for elements that own items."""

    items: List[Item] = Field(default_factory=list)

    def add_item(self, naaccr_id: str, value: str) -> None:
        self.items.append(Item(naaccr_id=naaccr_id, value=value))

    def item_value(self, naaccr_id: str) -> Optional[str]:
        for item in self.items:
            if item.naaccr_id == naaccr_id:
                return item.value
        return None


class Tumor(_ItemHolder):
    """Tumor-level values of exactly one flat record."""


class Patient(_ItemHolder):
    """A patient and the tumors grouped under it (at least one once written)."""

    tumors: List[Tumor] = Field(default_factory=list)


class NaaccrData(_ItemHolder):
    """Root-level metadata written once per document.

    Attributes
    ----------
    base_dictionary_uri
        Required by every writer.
    user_dictionary_uri
        Space-separated URIs; present only when user dictionaries are used.
    record_type
        One of :data:`RECORD_TYPES`; required by every writer.
    time_generated
        Generation timestamp; the writer uses *now* when unset.
    specification_version
        Value read from existing data.  Writers ignore it and always emit
        :data:`CURRENT_SPECIFICATION_VERSION`.
    extra_attributes
        Non-standard root attributes forwarded verbatim, in order.
    """

    base_dictionary_uri: Optional[str] = None
    user_dictionary_uri: Optional[str] = None
    record_type: Optional[str] = None
    time_generated: Optional[datetime] = None
    specification_version: Optional[str] = None
    extra_attributes: Dict[str, str] = Field(default_factory=dict)

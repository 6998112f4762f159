"""
Readers for dictionary sources.

Two on-disk formats are understood:

* **CSV tables** (packaged base dictionaries and most user dictionaries) with
  the columns ``naaccrId,naaccrNum,length,parentXmlElement,recordTypes``.
  Only ``naaccrId`` is mandatory; blank cells in a user dictionary mean
  "keep the base value".
* **NAACCR XML dictionaries** (``<NaaccrDictionary dictionaryUri=…>`` with
  ``ItemDef`` children), parsed with *lxml*.

Both produce :class:`UserDictionary` objects made of :class:`FieldRow`
entries; the resolver decides how rows turn into descriptors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from lxml import etree

from naaccrxml.models import RECORD_TYPES, ParentLevel
from naaccrxml.utils.errors import InvalidDictionary

__all__ = [
    "FieldRow",
    "UserDictionary",
    "read_base_rows",
    "load_user_dictionary",
]

log = logging.getLogger(__name__)

_BASE_DIR = files("naaccrxml.resources") / "dictionaries"
_CSV_COLUMNS = ("naaccrId", "naaccrNum", "length", "parentXmlElement", "recordTypes")


@dataclass(frozen=True)
class FieldRow:
    """One dictionary row; ``None`` attributes are unset in the source."""

    naaccr_id: str
    naaccr_num: Optional[int] = None
    length: Optional[int] = None
    parent: Optional[ParentLevel] = None
    record_types: Optional[Tuple[str, ...]] = None

    def overrides(self) -> Dict[str, object]:
        """Return the attributes this row sets, keyed by descriptor field name."""
        values = {
            "naaccr_num": self.naaccr_num,
            "length": self.length,
            "parent": self.parent,
            "record_types": self.record_types,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class UserDictionary:
    """A site-defined extension/override dictionary."""

    uri: str
    rows: Tuple[FieldRow, ...]
    origin: Optional[Path] = None


# --------------------------------------------------------------------------- #
# Cell parsing
# --------------------------------------------------------------------------- #
def _int_cell(raw: str, column: str, naaccr_id: str, origin: str) -> Optional[int]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise InvalidDictionary(
            f"{origin}: {column} of '{naaccr_id}' must be an integer, got '{raw}'"
        ) from None
    if value <= 0:
        raise InvalidDictionary(f"{origin}: {column} of '{naaccr_id}' must be positive")
    return value


def _parent_cell(raw: str, naaccr_id: str, origin: str) -> Optional[ParentLevel]:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return ParentLevel(raw)
    except ValueError:
        raise InvalidDictionary(
            f"{origin}: parentXmlElement of '{naaccr_id}' must be one of "
            f"{', '.join(p.value for p in ParentLevel)}; got '{raw}'"
        ) from None


def _record_types_cell(raw: str, naaccr_id: str, origin: str) -> Optional[Tuple[str, ...]]:
    tokens = tuple(t.strip() for t in raw.replace(";", ",").split(",") if t.strip())
    if not tokens:
        return None
    unknown = [t for t in tokens if t not in RECORD_TYPES]
    if unknown:
        raise InvalidDictionary(
            f"{origin}: recordTypes of '{naaccr_id}' contains unknown value(s) "
            + ", ".join(unknown)
        )
    return tokens


def _row_from_mapping(values: Dict[str, str], origin: str) -> FieldRow:
    naaccr_id = (values.get("naaccrId") or "").strip()
    if not naaccr_id:
        raise InvalidDictionary(f"{origin}: every row needs a naaccrId")
    return FieldRow(
        naaccr_id=naaccr_id,
        naaccr_num=_int_cell(values.get("naaccrNum") or "", "naaccrNum", naaccr_id, origin),
        length=_int_cell(values.get("length") or "", "length", naaccr_id, origin),
        parent=_parent_cell(values.get("parentXmlElement") or "", naaccr_id, origin),
        record_types=_record_types_cell(values.get("recordTypes") or "", naaccr_id, origin),
    )


# --------------------------------------------------------------------------- #
# CSV dictionaries
# --------------------------------------------------------------------------- #
def _read_csv_rows(handle, origin: str) -> Tuple[FieldRow, ...]:
    try:
        df = pd.read_csv(handle, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise InvalidDictionary(f"{origin}: unreadable CSV dictionary – {exc}") from exc

    df.columns = [str(c).strip() for c in df.columns]
    if "naaccrId" not in df.columns:
        raise InvalidDictionary(
            f"{origin}: missing 'naaccrId' column (expected {', '.join(_CSV_COLUMNS)})"
        )
    extra = [c for c in df.columns if c not in _CSV_COLUMNS]
    if extra:
        log.debug("%s: ignoring dictionary column(s) %s", origin, ", ".join(extra))

    return tuple(_row_from_mapping(rec, origin) for rec in df.to_dict(orient="records"))


def read_base_rows(version: str) -> Optional[Tuple[FieldRow, ...]]:
    """Return the packaged base dictionary rows for *version* or ``None``."""
    resource = _BASE_DIR / f"naaccr-dictionary-{version}.csv"
    if not resource.is_file():
        return None
    with resource.open("r", encoding="utf-8") as fh:
        return _read_csv_rows(fh, f"naaccr-dictionary-{version}.csv")


# --------------------------------------------------------------------------- #
# XML dictionaries
# --------------------------------------------------------------------------- #
def _read_xml_dictionary(path: Path) -> Tuple[Optional[str], Tuple[FieldRow, ...]]:
    try:
        tree = etree.parse(str(path))
    except etree.XMLSyntaxError as exc:
        raise InvalidDictionary(
            f"{path}: malformed XML dictionary – {exc.msg}",
            line_number=exc.lineno,
        ) from exc

    root = tree.getroot()
    if etree.QName(root).localname != "NaaccrDictionary":
        raise InvalidDictionary(f"{path}: root element must be NaaccrDictionary")

    rows: List[FieldRow] = []
    for el in root.iter():
        if not isinstance(el.tag, str) or etree.QName(el).localname != "ItemDef":
            continue
        rows.append(_row_from_mapping(dict(el.attrib), str(path)))
    return root.get("dictionaryUri"), tuple(rows)


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #
def load_user_dictionary(path: str | Path, uri: Optional[str] = None) -> UserDictionary:
    """Read a user dictionary from a CSV or NAACCR XML file.

    Args:
        path: Dictionary file; ``.xml`` files are parsed as NAACCR XML
            dictionaries, anything else as CSV.
        uri: URI declared on the output root.  For XML dictionaries it must
            agree with the file's ``dictionaryUri`` when both are present.
            Defaults to the file's own URI.

    Returns:
        The parsed :class:`UserDictionary`.

    Raises:
        InvalidDictionary: When the file is missing, unreadable or declares
            an invalid row.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise InvalidDictionary(f"Invalid dictionary path: {path}")

    if path.suffix.lower() == ".xml":
        declared, rows = _read_xml_dictionary(path)
        if uri and declared and uri != declared:
            raise InvalidDictionary(
                f"{path}: dictionaryUri '{declared}' does not match supplied URI '{uri}'"
            )
        uri = uri or declared
    else:
        with path.open("r", encoding="utf-8") as fh:
            rows = _read_csv_rows(fh, str(path))

    if not uri:
        uri = path.resolve().as_uri()
        log.info("No URI supplied for %s; using %s", path, uri)

    log.info("Dictionary: %s (%d fields)", path, len(rows))
    return UserDictionary(uri=uri, rows=rows, origin=path)

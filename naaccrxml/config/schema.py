"""
Pydantic models that mirror the YAML job configuration consumed by *naaccrxml*.

The classes define a strongly-typed representation of a conversion job so
the pipelines work with validated objects instead of ad-hoc dictionaries.

Notes:
* Boolean options accept the usual spellings (``yes``/``no``,
  ``true``/``false``, ``1``/``0``) because job files are often written by
  other tools.
* ``items`` accepts a YAML list or a comma/semicolon separated string.
* ``dictionaries`` accepts a list of ``{path, uri}`` mappings, or a
  semicolon separated path string paired with ``dictionary_uris``.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from naaccrxml.dictionary import (
    normalize_record_type,
    normalize_version,
    parse_requested_fields,
)


class DictionarySource(BaseModel):
    """One user dictionary file and the URI declared for it on output.

    Attributes:
        path: CSV or NAACCR XML dictionary file.
        uri: URI written in ``userDictionaryUri``; defaults to the XML
            dictionary's own URI or the file URI.
    """

    path: Path
    uri: Optional[str] = None


class ConversionOptions(BaseModel):
    """Root configuration object for one conversion job.

    Attributes:
        naaccr_version: Base dictionary version (``140`` … ``230``).
        record_type: ``A``, ``M``, ``C`` or ``I``.
        source: Input file.
        target: Output file.
        items: Explicit allow-list of item ids.
        items_file: Table whose first column lists item ids.
        dictionaries: User dictionaries, applied in order (last wins).
        write_numbers: Emit ``naaccrNum`` on items.
        group_tumors: Group consecutive lines sharing a patient key.
        cleanup: Delete job-owned temporary artifacts after success.
        layout_file: Where to write the layout descriptor (optional).
        patient_key: Field used for grouping.
        source_is_temporary: The flat source is an intermediate artifact
            owned by this job and removed by :meth:`cleanup`.
        encoding: Flat-file character encoding.
    """

    naaccr_version: str = "230"
    record_type: str = "I"
    source: Optional[Path] = None
    target: Optional[Path] = None
    items: Optional[List[str]] = None
    items_file: Optional[Path] = None
    dictionaries: List[DictionarySource] = Field(default_factory=list)
    write_numbers: bool = False
    group_tumors: bool = True
    cleanup: bool = True
    layout_file: Optional[Path] = None
    patient_key: str = "patientIdNumber"
    source_is_temporary: bool = False
    encoding: str = "utf-8"

    # ------------------------------------------------------------------ #
    # Pre-processing
    # ------------------------------------------------------------------ #
    @model_validator(mode="before")
    @classmethod
    def _split_dictionary_strings(cls, values):
        """Accept ``dictionaries: "a.csv;b.csv"`` with ``dictionary_uris``."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        uris_raw = values.pop("dictionary_uris", None)
        raw = values.get("dictionaries")
        if isinstance(raw, str):
            paths = [p.strip() for p in raw.split(";") if p.strip()]
            uris = [u.strip() for u in (uris_raw or "").split(";") if u.strip()]
            values["dictionaries"] = [
                {"path": p, "uri": uris[i] if i < len(uris) else None}
                for i, p in enumerate(paths)
            ]
        elif raw is None:
            values["dictionaries"] = []
        if uris_raw and not isinstance(raw, str):
            raise ValueError(
                "dictionary_uris only applies to a ';'-separated dictionaries string; "
                "give each dictionary entry its own uri instead"
            )
        return values

    # ------------------------------------------------------------------ #
    # Field validators
    # ------------------------------------------------------------------ #
    @field_validator("naaccr_version", mode="before")
    @classmethod
    def _version(cls, v):
        return normalize_version(v)

    @field_validator("record_type", mode="before")
    @classmethod
    def _record_type(cls, v):
        return normalize_record_type(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        if isinstance(v, str):
            return parse_requested_fields(v)
        return v

    @field_validator("patient_key")
    @classmethod
    def _patient_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("patient_key cannot be blank")
        return v.strip()

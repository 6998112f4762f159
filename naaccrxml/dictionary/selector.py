"""Narrow a runtime dictionary to the fields requested for a conversion."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from naaccrxml.models import ActiveFieldSet, RuntimeDictionary
from naaccrxml.utils.errors import IOFailure

__all__ = ["select_fields", "read_requested_fields", "parse_requested_fields"]

log = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[\s,;]+")


def parse_requested_fields(text: Optional[str]) -> Optional[List[str]]:
    """Split a comma/semicolon/whitespace separated item list.

    Returns ``None`` for an empty string so callers fall back to all fields.
    """
    if text is None:
        return None
    ids = [t for t in _SPLIT_RE.split(text) if t]
    return ids or None


def read_requested_fields(path: str | Path) -> List[str]:
    """Return the identifiers listed in the first column of *path*.

    The first row is a header and is skipped whatever it says.  Files ending
    in ``.tsv`` are tab separated; everything else is read as CSV.

    Raises:
        IOFailure: When the file cannot be read.
    """
    path = Path(path).expanduser()
    sep = "\t" if path.suffix.lower() == ".tsv" else ","
    try:
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False, usecols=[0])
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise IOFailure(f"Unable to read item file {path}: {exc}") from exc
    ids = [v.strip() for v in df.iloc[:, 0].tolist() if v and v.strip()]
    log.info("Read %d requested item(s) from %s", len(ids), path)
    return ids


def select_fields(
    dictionary: RuntimeDictionary,
    requested: Optional[Iterable[str]] = None,
) -> ActiveFieldSet:
    """Return the active fields of *dictionary*.

    Args:
        dictionary: Resolved runtime dictionary.
        requested: Field identifiers to keep.  ``None`` keeps every field.
            Identifiers may be full ids or flat column keys; unknown ones are
            ignored.

    Returns:
        The selection, always in dictionary declaration order.
    """
    if requested is None:
        return ActiveFieldSet(dictionary=dictionary, fields=dictionary.fields)

    wanted = {r.strip() for r in requested if r and r.strip()}
    fields = tuple(
        f for f in dictionary.fields if f.naaccr_id in wanted or f.truncated_id in wanted
    )
    known = {f.naaccr_id for f in fields} | {f.truncated_id for f in fields}
    unknown = sorted(wanted - known)
    if unknown:
        log.debug("Ignoring unknown requested item(s): %s", ", ".join(unknown))
    return ActiveFieldSet(dictionary=dictionary, fields=fields)

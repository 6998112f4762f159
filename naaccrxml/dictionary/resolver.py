"""
Field dictionary resolution.

:func:`resolve_dictionary` turns a (version, record type) pair plus any number
of user dictionaries into one :class:`~naaccrxml.models.RuntimeDictionary`.

Merge rules
-----------
1. Start from the packaged base dictionary for *version* (all record types).
2. Apply user dictionaries in the order given.  A row whose ``naaccrId``
   already exists overrides only the attributes it sets; a new id is
   appended.  Later dictionaries therefore win over earlier ones.
3. Keep the fields that belong to the requested record type.
4. Reject two different fields sharing a flat-file column key.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Iterable, Tuple

import structlog

from naaccrxml.models import (
    RECORD_TYPES,
    SUPPORTED_VERSIONS,
    FieldDescriptor,
    RuntimeDictionary,
    base_dictionary_uri,
)
from naaccrxml.utils.errors import (
    ColumnKeyCollision,
    InvalidDictionary,
    UnsupportedRecordType,
    UnsupportedVersion,
)

from .sources import FieldRow, UserDictionary, read_base_rows

__all__ = ["resolve_dictionary", "base_fields", "normalize_version", "normalize_record_type"]

log = structlog.get_logger()


def normalize_version(version: object) -> str:
    """Return *version* as a supported version token or raise."""
    token = str(version).strip() if version is not None else ""
    if token not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(
            f"NAACCR version must be {', '.join(SUPPORTED_VERSIONS)}; got '{token}'"
        )
    return token


def normalize_record_type(record_type: object) -> str:
    """Return *record_type* upper-cased when it is one of A, M, C or I."""
    token = str(record_type).strip().upper() if record_type is not None else ""
    if token not in RECORD_TYPES:
        raise UnsupportedRecordType(
            f"Record type must be {', '.join(RECORD_TYPES)}; got '{token}'"
        )
    return token


def _descriptor_from_row(row: FieldRow, source: str) -> FieldDescriptor:
    if row.length is None or row.parent is None:
        raise InvalidDictionary(
            f"Field '{row.naaccr_id}' from {source} needs both length and parentXmlElement"
        )
    return FieldDescriptor(naaccr_id=row.naaccr_id, source=source, **row.overrides())


@lru_cache(maxsize=None)
def base_fields(version: str) -> Tuple[FieldDescriptor, ...]:
    """Return every field of the base dictionary for *version* (all record types)."""
    version = normalize_version(version)
    rows = read_base_rows(version)
    if rows is None:
        raise UnsupportedVersion(f"No base dictionary packaged for version {version}")
    return tuple(_descriptor_from_row(r, "base") for r in rows)


def _apply_user_dictionary(
    merged: Dict[str, FieldDescriptor], user: UserDictionary
) -> None:
    for row in user.rows:
        existing = merged.get(row.naaccr_id)
        if existing is None:
            merged[row.naaccr_id] = _descriptor_from_row(row, user.uri)
            continue
        update = row.overrides()
        if update:
            log.debug(
                "dictionary.override",
                naaccr_id=row.naaccr_id,
                uri=user.uri,
                attributes=sorted(update),
            )
        merged[row.naaccr_id] = existing.model_copy(update={**update, "source": user.uri})


def _check_column_keys(fields: Iterable[FieldDescriptor]) -> None:
    owners: Dict[str, FieldDescriptor] = {}
    for f in fields:
        other = owners.get(f.truncated_id)
        if other is not None:
            raise ColumnKeyCollision(
                f"Fields '{other.naaccr_id}' ({other.source}) and '{f.naaccr_id}' "
                f"({f.source}) share the flat column key '{f.truncated_id}'"
            )
        owners[f.truncated_id] = f


def resolve_dictionary(
    version: object,
    record_type: object,
    user_dictionaries: Iterable[UserDictionary] = (),
) -> RuntimeDictionary:
    """Build the runtime dictionary for one conversion job.

    Args:
        version: NAACCR version token (``"180"``, ``230`` …).
        record_type: One of ``A``, ``M``, ``C``, ``I``.
        user_dictionaries: Extension dictionaries applied in order; the last
            one wins when two of them set the same attribute.

    Returns:
        An immutable :class:`RuntimeDictionary` in declaration order.

    Raises:
        UnsupportedVersion: *version* is not packaged.
        UnsupportedRecordType: *record_type* is not A/M/C/I.
        ColumnKeyCollision: Two fields compete for the same flat column.
        InvalidDictionary: A new user field lacks length or parent.
    """
    version = normalize_version(version)
    record_type = normalize_record_type(record_type)
    users = tuple(user_dictionaries)

    merged: Dict[str, FieldDescriptor] = {f.naaccr_id: f for f in base_fields(version)}
    for user in users:
        _apply_user_dictionary(merged, user)

    fields = tuple(f for f in merged.values() if record_type in f.record_types)
    _check_column_keys(fields)

    uris: list[str] = []
    for user in users:
        if user.uri not in uris:
            uris.append(user.uri)

    log.debug(
        "dictionary.resolved",
        version=version,
        record_type=record_type,
        fields=len(fields),
        user_dictionaries=len(users),
    )
    return RuntimeDictionary(
        version=version,
        record_type=record_type,
        base_dictionary_uri=base_dictionary_uri(version),
        fields=fields,
        user_dictionary_uris=tuple(uris),
    )

"""
Patient grouping of sequential tumor records.

Flat files carry one tumor per line.  :class:`PatientGrouper` decides, line by
line, whether a record continues the open patient or starts a new one:

* a new patient starts when grouping is disabled, when the record has no
  patient key, when no patient is open, or when the key differs from the
  open patient's key;
* every record adds exactly one tumor to the open patient.

Only the open patient is held in memory; finished patients are handed back
to the caller as soon as the next one starts.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from naaccrxml.models import (
    ActiveFieldSet,
    DecodedRecord,
    FieldDescriptor,
    Item,
    ParentLevel,
    Patient,
    Tumor,
    truncate_id,
)

__all__ = ["PatientGrouper", "iter_patients", "DEFAULT_PATIENT_KEY"]

DEFAULT_PATIENT_KEY = "patientIdNumber"


def _items(record: DecodedRecord, fields: Iterable[FieldDescriptor]) -> List[Item]:
    items: List[Item] = []
    for field in fields:
        value = record.values.get(field.truncated_id)
        if value:
            items.append(Item(naaccr_id=field.naaccr_id, value=value))
    return items


class PatientGrouper:
    """Stateful grouping engine fed one :class:`DecodedRecord` at a time.

    Args:
        fields: Active fields; their parent level decides where each value
            lands.
        group_tumors: When *False* every record becomes its own patient.
        patient_key: Field whose value identifies a patient.

    Attributes:
        current_patient_key: Key of the open patient (``None`` when blank).
        has_open_patient: Whether a patient is waiting for more tumors.
        has_written_root: Whether root-level items were captured.
        root_items: Root-level items taken from the first record.
        patient_count: Number of new-patient events so far.
        tumor_count: Number of records fed so far.
    """

    def __init__(
        self,
        fields: ActiveFieldSet,
        *,
        group_tumors: bool = True,
        patient_key: str = DEFAULT_PATIENT_KEY,
    ) -> None:
        self._root_fields = fields.for_level(ParentLevel.ROOT)
        self._patient_fields = fields.for_level(ParentLevel.PATIENT)
        self._tumor_fields = fields.for_level(ParentLevel.TUMOR)
        self._key = truncate_id(patient_key)
        self._group_tumors = group_tumors
        self._current: Optional[Patient] = None

        self.current_patient_key: Optional[str] = None
        self.has_open_patient = False
        self.has_written_root = False
        self.root_items: List[Item] = []
        self.patient_count = 0
        self.tumor_count = 0

    def _starts_new_patient(self, key: Optional[str]) -> bool:
        return (
            not self._group_tumors
            or key is None
            or not self.has_open_patient
            or key != self.current_patient_key
        )

    def feed(self, record: DecodedRecord) -> Optional[Patient]:
        """Consume *record*; return the patient it closed, if any."""
        if not self.has_written_root:
            self.root_items = _items(record, self._root_fields)
            self.has_written_root = True

        key = (record.values.get(self._key) or "").strip() or None

        finished: Optional[Patient] = None
        if self._starts_new_patient(key):
            finished = self._current
            self._current = Patient(items=_items(record, self._patient_fields))
            self.has_open_patient = True
            self.current_patient_key = key
            self.patient_count += 1

        self._current.tumors.append(Tumor(items=_items(record, self._tumor_fields)))
        self.tumor_count += 1
        return finished

    def finish(self) -> Optional[Patient]:
        """Close and return the open patient (``None`` when nothing was fed)."""
        finished, self._current = self._current, None
        self.has_open_patient = False
        self.current_patient_key = None
        return finished


def iter_patients(
    records: Iterable[DecodedRecord],
    fields: ActiveFieldSet,
    *,
    group_tumors: bool = True,
    patient_key: str = DEFAULT_PATIENT_KEY,
) -> Iterator[Patient]:
    """Yield grouped patients from *records* in input order."""
    grouper = PatientGrouper(fields, group_tumors=group_tumors, patient_key=patient_key)
    for record in records:
        finished = grouper.feed(record)
        if finished is not None:
            yield finished
    last = grouper.finish()
    if last is not None:
        yield last

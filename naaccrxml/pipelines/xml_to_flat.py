"""
High-level "NAACCR XML → flat" conversion.

:class:`XmlToFlatJob` is the inverse of
:class:`~naaccrxml.pipelines.flat_to_xml.FlatToXmlJob`: the runtime
dictionary comes from the document's own root attributes (plus the user
dictionaries named in the options), and every ``Tumor`` becomes one
fixed-width line carrying the root, patient and tumor values.  A patient
without tumors still produces one line so no patient-level data is lost.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import structlog

from naaccrxml.config.schema import ConversionOptions
from naaccrxml.dictionary import select_fields
from naaccrxml.io.flat import encode_record, write_layout_descriptor
from naaccrxml.io.xml_reader import PatientXmlReader
from naaccrxml.models import ActiveFieldSet, Item, Patient, truncate_id
from naaccrxml.utils.errors import ConfigError, ConversionCancelled, IOFailure
from naaccrxml.utils.reporting import LogReporter, Reporter

from .flat_to_xml import _part_path, load_user_dictionaries, requested_items
from .types import ConversionResult

__all__ = ["XmlToFlatJob", "xml_to_flat", "flatten_patient"]

log = structlog.get_logger()


def _values(items: List[Item]) -> Dict[str, str]:
    return {truncate_id(item.naaccr_id): item.value for item in items}


def flatten_patient(root_items: List[Item], patient: Patient) -> Iterator[Dict[str, str]]:
    """Yield one column-key → value mapping per tumor of *patient*."""
    shared = _values(root_items)
    shared.update(_values(patient.items))
    if not patient.tumors:
        yield dict(shared)
        return
    for tumor in patient.tumors:
        values = dict(shared)
        values.update(_values(tumor.items))
        yield values


class XmlToFlatJob:
    """One XML → flat conversion.

    Args:
        options: Validated job options; ``source`` (XML) and ``target``
            (flat file) are required by :meth:`run`.
        reporter: Receives over-long value warnings.
        cancel_check: Called between patients; returning *True* aborts the
            job with :class:`ConversionCancelled`.
    """

    def __init__(
        self,
        options: ConversionOptions,
        *,
        reporter: Optional[Reporter] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.options = options
        self.reporter = reporter if reporter is not None else LogReporter()
        self._cancel_check = cancel_check
        self.fields: Optional[ActiveFieldSet] = None

    def run(self) -> ConversionResult:
        """Convert ``options.source`` into ``options.target``.

        Raises:
            ConfigError: Source or target missing from the options.
            ConversionCancelled: *cancel_check* asked to stop.
            NaaccrXmlError: Any fatal dictionary, parser or I/O failure.
        """
        source, target = self.options.source, self.options.target
        if source is None or target is None:
            raise ConfigError("Both a source XML file and a target flat file are required")
        if not target.parent.exists():
            raise IOFailure(f"Parent directory for target flat path doesn't exist: {target.parent}")

        warnings_before = len(getattr(self.reporter, "warnings", []))
        part = _part_path(target)
        patients = tumors = lines = 0
        layout_file: Optional[Path] = None

        with PatientXmlReader(source, user_dictionaries=load_user_dictionaries(self.options)) as reader:
            self.fields = fields = select_fields(reader.dictionary, requested_items(self.options))
            log.info(
                "xml_to_flat.start",
                source=str(source),
                target=str(target),
                version=reader.dictionary.version,
                record_type=reader.dictionary.record_type,
                fields=len(fields),
            )
            if self.options.layout_file is not None:
                layout_file = write_layout_descriptor(self.options.layout_file, fields)

            try:
                with part.open("w", encoding=self.options.encoding, newline="\n") as out:
                    for patient in reader:
                        if self._cancel_check is not None and self._cancel_check():
                            raise ConversionCancelled(
                                f"conversion cancelled after {patients} patient(s)",
                                path=f"/NaaccrData/Patient[{patients + 1}]",
                            )
                        patients += 1
                        tumors += len(patient.tumors)
                        for values in flatten_patient(reader.root.items, patient):
                            lines += 1
                            out.write(encode_record(values, fields, self.reporter, lines) + "\n")
            except OSError as exc:
                part.unlink(missing_ok=True)
                raise IOFailure(f"Unable to write {part}: {exc.strerror or exc}") from exc
            except BaseException:
                part.unlink(missing_ok=True)
                raise

        try:
            part.replace(target)
        except OSError as exc:
            raise IOFailure(f"Unable to move {part} to {target}: {exc.strerror or exc}") from exc

        warnings = list(getattr(self.reporter, "warnings", []))[warnings_before:]
        log.info("xml_to_flat.done", target=str(target), patients=patients, lines=lines)
        return ConversionResult(
            source=source,
            target=target,
            patient_count=patients,
            tumor_count=tumors,
            line_count=lines,
            warnings=warnings,
            layout_file=layout_file,
        )


def xml_to_flat(
    options: ConversionOptions,
    *,
    reporter: Optional[Reporter] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> ConversionResult:
    """Run an :class:`XmlToFlatJob`."""
    return XmlToFlatJob(options, reporter=reporter, cancel_check=cancel_check).run()

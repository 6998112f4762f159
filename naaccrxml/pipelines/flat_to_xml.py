"""
High-level "flat → NAACCR XML" conversion.

:class:`FlatToXmlJob` wires the whole path for one job:

1. resolve the runtime dictionary (base version + user dictionaries);
2. select the active fields (explicit list or item file);
3. optionally write the layout descriptor;
4. decode each line, group tumors into patients and stream them through
   :class:`~naaccrxml.io.xml_writer.PatientXmlWriter`.

The XML is written to a ``.part`` sibling and moved over the target only
once the root element is closed, so a failed or cancelled job never leaves
an unterminated document behind.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import structlog

from naaccrxml.config.schema import ConversionOptions
from naaccrxml.dictionary import (
    load_user_dictionary,
    read_requested_fields,
    resolve_dictionary,
    select_fields,
)
from naaccrxml.dictionary.sources import UserDictionary
from naaccrxml.io.flat import decode_line, iter_flat_lines, write_layout_descriptor
from naaccrxml.io.xml_writer import PatientXmlWriter
from naaccrxml.models import ActiveFieldSet, NaaccrData, RuntimeDictionary
from naaccrxml.utils.errors import ConfigError, ConversionCancelled, IOFailure
from naaccrxml.utils.reporting import LogReporter, Reporter

from .grouping import PatientGrouper
from .types import ConversionResult

__all__ = ["FlatToXmlJob", "flat_to_xml", "load_user_dictionaries", "requested_items"]

log = structlog.get_logger()

_PART_SUFFIX = ".part"


# ─────────────────────────────────────────────────────────────────────────────
# Shared helpers (also used by the XML → flat job and the CLI)
# ─────────────────────────────────────────────────────────────────────────────
def load_user_dictionaries(options: ConversionOptions) -> List[UserDictionary]:
    """Read every user dictionary named in *options*, in order."""
    return [load_user_dictionary(d.path, d.uri) for d in options.dictionaries]


def requested_items(options: ConversionOptions) -> Optional[List[str]]:
    """Return the allow-list from ``items`` and/or ``items_file`` (``None`` = all)."""
    if options.items is None and options.items_file is None:
        return None
    ids: List[str] = list(options.items or [])
    if options.items_file is not None:
        ids.extend(read_requested_fields(options.items_file))
    return ids


def _part_path(target: Path) -> Path:
    return target.with_name(target.name + _PART_SUFFIX)


# ─────────────────────────────────────────────────────────────────────────────
# Job
# ─────────────────────────────────────────────────────────────────────────────
class FlatToXmlJob:
    """One flat → XML conversion.

    Args:
        options: Validated job options; ``source`` and ``target`` are required
            by :meth:`run`.
        reporter: Receives line-length warnings.  Defaults to a
            :class:`LogReporter`.
        cancel_check: Called between records; returning *True* aborts the
            job with :class:`ConversionCancelled`.
        dictionary: Pre-resolved dictionary to share between jobs.  When
            omitted it is resolved from *options*.
    """

    def __init__(
        self,
        options: ConversionOptions,
        *,
        reporter: Optional[Reporter] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        dictionary: Optional[RuntimeDictionary] = None,
    ) -> None:
        self.options = options
        self.reporter = reporter if reporter is not None else LogReporter()
        self._cancel_check = cancel_check
        self._dictionary = dictionary
        self._fields: Optional[ActiveFieldSet] = None
        self._temporary: List[Path] = []
        if options.source_is_temporary:
            self._temporary.extend(
                p for p in (options.source, options.layout_file) if p is not None
            )

    # ------------------------------------------------------------------ #
    # Dictionary / fields
    # ------------------------------------------------------------------ #
    @property
    def dictionary(self) -> RuntimeDictionary:
        if self._dictionary is None:
            self._dictionary = resolve_dictionary(
                self.options.naaccr_version,
                self.options.record_type,
                load_user_dictionaries(self.options),
            )
        return self._dictionary

    @property
    def fields(self) -> ActiveFieldSet:
        if self._fields is None:
            self._fields = select_fields(self.dictionary, requested_items(self.options))
            log.info(
                "fields.selected",
                fields=len(self._fields),
                expected_line_length=self._fields.expected_line_length,
            )
        return self._fields

    # ------------------------------------------------------------------ #
    # Layout descriptor
    # ------------------------------------------------------------------ #
    def create_layout_descriptor(self, path: Optional[Path] = None) -> Path:
        """Write the layout descriptor for the active fields and return its path."""
        target = path or self.options.layout_file
        if not target:
            raise ConfigError("No layout descriptor path was provided")
        path = Path(target)
        write_layout_descriptor(path, self.fields)
        log.info(
            "layout.written",
            path=str(path),
            fields=len(self.fields),
            expected_line_length=self.fields.expected_line_length,
        )
        return path

    # ------------------------------------------------------------------ #
    # Conversion
    # ------------------------------------------------------------------ #
    def _check_cancelled(self, line_number: int) -> None:
        if self._cancel_check is not None and self._cancel_check():
            raise ConversionCancelled(
                f"conversion cancelled after {line_number - 1} line(s)",
                line_number=line_number,
            )

    def run(self) -> ConversionResult:
        """Convert ``options.source`` into ``options.target``.

        Returns:
            Counts and the warnings collected while decoding.

        Raises:
            ConfigError: Source or target missing from the options.
            ConversionCancelled: *cancel_check* asked to stop.
            NaaccrXmlError: Any fatal dictionary, attribute or I/O failure.
        """
        source, target = self.options.source, self.options.target
        if source is None or target is None:
            raise ConfigError("Both a source flat file and a target XML file are required")
        if not target.parent.exists():
            raise IOFailure(f"Parent directory for target XML path doesn't exist: {target.parent}")

        fields = self.fields
        layout_file = None
        if self.options.layout_file is not None:
            layout_file = self.create_layout_descriptor(self.options.layout_file)

        warnings_before = len(getattr(self.reporter, "warnings", []))
        log.info(
            "flat_to_xml.start",
            source=str(source),
            target=str(target),
            group_tumors=self.options.group_tumors,
        )

        expected = fields.expected_line_length
        grouper = PatientGrouper(
            fields,
            group_tumors=self.options.group_tumors,
            patient_key=self.options.patient_key,
        )
        records = (
            decode_line(line, fields, self.reporter, expected)
            for line in iter_flat_lines(source, self.options.encoding)
        )

        part = _part_path(target)
        writer: Optional[PatientXmlWriter] = None
        try:
            first = next(records, None)
            if first is not None:
                self._check_cancelled(first.line_number)
                grouper.feed(first)

            root = NaaccrData(
                base_dictionary_uri=self.dictionary.base_dictionary_uri,
                user_dictionary_uri=self.dictionary.user_dictionary_uri,
                record_type=self.dictionary.record_type,
                items=grouper.root_items,
            )
            writer = PatientXmlWriter(
                part, root, self.dictionary, write_numbers=self.options.write_numbers
            )
            for record in records:
                self._check_cancelled(record.line_number)
                finished = grouper.feed(record)
                if finished is not None:
                    writer.write_patient(finished)
            last = grouper.finish()
            if last is not None:
                writer.write_patient(last)
            writer.close()
        except BaseException:
            if writer is not None and not writer.finalized:
                writer.abort()
            part.unlink(missing_ok=True)
            raise

        try:
            part.replace(target)
        except OSError as exc:
            raise IOFailure(f"Unable to move {part} to {target}: {exc.strerror or exc}") from exc

        warnings = list(getattr(self.reporter, "warnings", []))[warnings_before:]
        log.info(
            "flat_to_xml.done",
            target=str(target),
            patients=writer.patient_count,
            tumors=writer.tumor_count,
            warnings=len(warnings),
        )
        return ConversionResult(
            source=source,
            target=target,
            patient_count=writer.patient_count,
            tumor_count=writer.tumor_count,
            line_count=grouper.tumor_count,
            warnings=warnings,
            layout_file=layout_file,
        )

    # ------------------------------------------------------------------ #
    # Temporary artifacts
    # ------------------------------------------------------------------ #
    @property
    def temporary_files(self) -> List[Path]:
        return list(self._temporary)

    def cleanup(self) -> List[Path]:
        """Delete job-owned temporary artifacts unless ``options.cleanup`` is off.

        Returns:
            The files that were removed.
        """
        if not self.options.cleanup:
            log.info("cleanup.skipped", files=[str(p) for p in self._temporary])
            return []
        removed: List[Path] = []
        for path in self._temporary:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                self.reporter.error(
                    "cleanup.failed",
                    path=str(path),
                    reason=exc.strerror or str(exc),
                )
                continue
            removed.append(path)
        self._temporary = [p for p in self._temporary if p not in removed]
        log.info("cleanup.done", files=[str(p) for p in removed])
        return removed


def flat_to_xml(
    options: ConversionOptions,
    *,
    reporter: Optional[Reporter] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> ConversionResult:
    """Run a :class:`FlatToXmlJob` and clean up its temporary artifacts."""
    job = FlatToXmlJob(options, reporter=reporter, cancel_check=cancel_check)
    result = job.run()
    job.cleanup()
    return result

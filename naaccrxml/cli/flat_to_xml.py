"""
CLI wrapper around :pymod:`naaccrxml.pipelines.flat_to_xml`.

Reads a fixed-width NAACCR flat file, groups consecutive tumor lines that
share a patient key and streams the result as NAACCR XML.  Line-length
problems are reported and counted; they never abort the run.
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from naaccrxml.pipelines.flat_to_xml import FlatToXmlJob
from naaccrxml.utils.display import echo_banner, echo_detail, echo_success, echo_warning
from naaccrxml.utils.errors import NaaccrXmlError

from ._options import dictionary_options, job_options

log = structlog.get_logger()


@click.command(
    name="flat-to-xml",
    help="Convert a NAACCR fixed-width flat file into NAACCR XML.",
)
@click.argument("source", type=click.Path(dir_okay=False, exists=True, path_type=Path))
@click.argument("target", type=click.Path(dir_okay=False, path_type=Path))
@dictionary_options
# ───────── output toggles ──────────────────────────────────────────────────
@click.option(
    "--write-numbers/--no-write-numbers",
    default=None,
    help="Add naaccrNum attributes to items [default: off].",
)
@click.option(
    "--group-tumors/--no-group-tumors",
    default=None,
    help="Group consecutive lines with the same patient key [default: on].",
)
@click.option("--patient-key", help="Field used to group tumors into patients.")
@click.option(
    "--layout-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the column layout descriptor here.",
)
@click.option(
    "--cleanup/--no-cleanup",
    default=None,
    help="Delete job-owned temporary files afterwards [default: on].",
)
@click.option(
    "--temporary-source/--no-temporary-source",
    "source_is_temporary",
    default=None,
    help="SOURCE (and --layout-file) are intermediate files owned by this run [default: off].",
)
@click.pass_obj
def cli(  # noqa: D401 – Click callback name semantics
    ctx_obj,
    source: Path,
    target: Path,
    naaccr_version: str | None,
    record_type: str | None,
    dictionaries: tuple[str, ...],
    dictionary_uris: tuple[str, ...],
    items: str | None,
    items_file: Path | None,
    write_numbers: bool | None,
    group_tumors: bool | None,
    patient_key: str | None,
    layout_file: Path | None,
    cleanup: bool | None,
    source_is_temporary: bool | None,
) -> None:
    """Entry-point executed by *naaccrxml-cli flat-to-xml*."""
    options = job_options(
        ctx_obj,
        source=source,
        target=target,
        naaccr_version=naaccr_version,
        record_type=record_type,
        dictionaries=dictionaries,
        dictionary_uris=dictionary_uris,
        items=items,
        items_file=items_file,
        write_numbers=write_numbers,
        group_tumors=group_tumors,
        patient_key=patient_key,
        layout_file=layout_file,
        cleanup=cleanup,
        source_is_temporary=source_is_temporary,
    )

    echo_banner("Flat → NAACCR XML")
    echo_detail("source", options.source)
    echo_detail("version / record type", f"{options.naaccr_version} / {options.record_type}")

    job = FlatToXmlJob(options)
    try:
        result = job.run()
        job.cleanup()
    except NaaccrXmlError as exc:
        log.error("flat_to_xml.failed", error=exc.describe())
        raise click.ClickException(exc.describe()) from exc

    if result.warnings:
        echo_warning(f"{len(result.warnings)} line(s) had an unexpected length")
    if result.layout_file is not None:
        echo_detail("layout", result.layout_file)
    echo_success(
        f"{result.patient_count} patient(s), {result.tumor_count} tumor(s) → {result.target}"
    )

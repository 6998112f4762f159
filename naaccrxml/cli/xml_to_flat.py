"""
CLI wrapper around :pymod:`naaccrxml.pipelines.xml_to_flat`.

The NAACCR version and record type come from the XML root, so only the
user dictionaries and the item selection are configurable here.
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from naaccrxml.pipelines.xml_to_flat import XmlToFlatJob
from naaccrxml.utils.display import echo_banner, echo_detail, echo_success, echo_warning
from naaccrxml.utils.errors import NaaccrXmlError

from ._options import dictionary_options, job_options

log = structlog.get_logger()


@click.command(
    name="xml-to-flat",
    help="Convert a NAACCR XML file into a fixed-width flat file (one line per tumor).",
)
@click.argument("source", type=click.Path(dir_okay=False, exists=True, path_type=Path))
@click.argument("target", type=click.Path(dir_okay=False, path_type=Path))
@dictionary_options
@click.option(
    "--layout-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the column layout descriptor here.",
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
    layout_file: Path | None,
) -> None:
    """Entry-point executed by *naaccrxml-cli xml-to-flat*."""
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
        layout_file=layout_file,
    )

    echo_banner("NAACCR XML → flat")
    echo_detail("source", options.source)

    try:
        result = XmlToFlatJob(options).run()
    except NaaccrXmlError as exc:
        log.error("xml_to_flat.failed", error=exc.describe())
        raise click.ClickException(exc.describe()) from exc

    if result.warnings:
        echo_warning(f"{len(result.warnings)} value(s) were cut to their column width")
    echo_success(
        f"{result.patient_count} patient(s), {result.line_count} line(s) → {result.target}"
    )

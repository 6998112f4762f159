"""``naaccrxml-cli layout`` – write the column layout descriptor only."""

from __future__ import annotations

from pathlib import Path

import click

from naaccrxml.pipelines.flat_to_xml import FlatToXmlJob
from naaccrxml.utils.display import echo_banner, echo_detail, echo_success
from naaccrxml.utils.errors import NaaccrXmlError

from ._options import dictionary_options, job_options


@click.command(
    name="layout",
    help="Write the '@offset key $length.' layout descriptor for the selected fields.",
)
@click.argument("target", type=click.Path(dir_okay=False, path_type=Path))
@dictionary_options
@click.pass_obj
def cli(
    ctx_obj,
    target: Path,
    naaccr_version: str | None,
    record_type: str | None,
    dictionaries: tuple[str, ...],
    dictionary_uris: tuple[str, ...],
    items: str | None,
    items_file: Path | None,
) -> None:
    options = job_options(
        ctx_obj,
        naaccr_version=naaccr_version,
        record_type=record_type,
        dictionaries=dictionaries,
        dictionary_uris=dictionary_uris,
        items=items,
        items_file=items_file,
    )
    echo_banner("Layout descriptor")
    job = FlatToXmlJob(options)
    try:
        path = job.create_layout_descriptor(target)
    except NaaccrXmlError as exc:
        raise click.ClickException(exc.describe()) from exc
    echo_detail("fields", len(job.fields))
    echo_detail("line length", job.fields.expected_line_length)
    echo_success(f"Wrote {path}")

"""``naaccrxml-cli fields`` – list the active fields as a table."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from naaccrxml.dictionary import resolve_dictionary, select_fields
from naaccrxml.pipelines.flat_to_xml import load_user_dictionaries, requested_items
from naaccrxml.utils.errors import NaaccrXmlError

from ._options import dictionary_options, job_options


@click.command(name="fields", help="Show the fields, offsets and widths of the flat layout.")
@dictionary_options
@click.pass_obj
def cli(
    ctx_obj,
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
    try:
        dictionary = resolve_dictionary(
            options.naaccr_version, options.record_type, load_user_dictionaries(options)
        )
        fields = select_fields(dictionary, requested_items(options))
    except NaaccrXmlError as exc:
        raise click.ClickException(exc.describe()) from exc

    table = Table(title=f"NAACCR {dictionary.version} – record type {dictionary.record_type}")
    for column in ("Offset", "Column key", "NAACCR #", "Length", "Parent", "Source"):
        table.add_column(column)
    offset = 1
    for field in fields:
        table.add_row(
            str(offset),
            field.truncated_id,
            str(field.naaccr_num or ""),
            str(field.length),
            field.parent.value,
            field.source,
        )
        offset += field.length
    Console(width=160).print(table)
    click.echo(f"{len(fields)} field(s), line length {fields.expected_line_length}")

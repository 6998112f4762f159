"""
Shared Click options and helpers for the conversion sub-commands.

The decorators below keep option names identical across *flat-to-xml*,
*xml-to-flat* and *layout*; :func:`job_options` turns their values into a
validated :class:`~naaccrxml.config.ConversionOptions` (packaged defaults,
then the job file, then the command line).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import click

from naaccrxml.config import ConversionOptions, load_config
from naaccrxml.utils.errors import NaaccrXmlError


def split_separated(ctx, param, value):
    """Flatten repeated ``--opt a;b --opt c`` values into one tuple."""
    out: list[str] = []
    for chunk in value or ():
        out.extend(p.strip() for p in chunk.split(";") if p.strip())
    return tuple(out)


def dictionary_options(func: Callable) -> Callable:
    """Attach ``--naaccr-version``, ``--record-type`` and dictionary flags."""
    decorators = [
        click.option(
            "--naaccr-version",
            help="NAACCR version (140, 150, 160, 180, 210, 220 or 230).",
        ),
        click.option("--record-type", help="Record type: A, M, C or I."),
        click.option(
            "--dictionary",
            "dictionaries",
            multiple=True,
            callback=split_separated,
            type=str,
            metavar="<path>",
            help="User dictionary (CSV or XML). Repeatable or ';'-separated; last wins.",
        ),
        click.option(
            "--dictionary-uri",
            "dictionary_uris",
            multiple=True,
            callback=split_separated,
            type=str,
            metavar="<uri>",
            help="URI for the matching --dictionary, by position.",
        ),
        click.option("--items", help="Comma/semicolon separated item ids to keep."),
        click.option(
            "--items-file",
            type=click.Path(dir_okay=False, exists=True, path_type=Path),
            help="CSV/TSV whose first column lists the item ids to keep.",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def job_options(ctx_obj: Optional[dict], **values: Any) -> ConversionOptions:
    """Return validated options for a sub-command.

    Raises:
        click.ClickException: When the configuration is invalid.
    """
    dictionaries = values.pop("dictionaries", ()) or ()
    uris = values.pop("dictionary_uris", ()) or ()
    if dictionaries:
        values["dictionaries"] = [
            {"path": p, "uri": uris[i] if i < len(uris) else None}
            for i, p in enumerate(dictionaries)
        ]
    elif uris:
        raise click.BadParameter("--dictionary-uri needs a matching --dictionary")

    config_path = (ctx_obj or {}).get("config_path")
    try:
        return load_config(config_path, **values)
    except NaaccrXmlError as exc:
        raise click.ClickException(exc.describe()) from exc

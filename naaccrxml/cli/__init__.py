"""Expose the project-wide Click group for the ``naaccrxml-cli`` script.

The module:

* declares a single Click *group* called :pyfunc:`main`;
* wires the global flags (job file, verbosity, log files);
* sets up logging via :pyfunc:`naaccrxml.utils.logging.setup_logging`;
* registers every sub-command located in sibling modules.

Sub-commands load their own :class:`~naaccrxml.config.ConversionOptions`
because most options are command specific; the group only records where
the job file lives.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict

import click

from naaccrxml import __version__
from naaccrxml.utils.logging import setup_logging


class LazyGroup(click.Group):
    """Click group that imports sub-commands lazily."""

    def __init__(self, *args, **kwargs):
        self._lazy: dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def set_lazy_command(self, name: str, target: str) -> None:
        """Register *name* to be imported from ``target`` on first use."""
        self._lazy[name] = target

    def list_commands(self, ctx):
        return sorted(set(super().list_commands(ctx)) | set(self._lazy))

    def get_command(self, ctx, cmd_name):  # noqa: D401 - Click signature
        """Resolve *cmd_name* from the eager map or import table."""
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd
        target = self._lazy.get(cmd_name)
        if not target:
            return None
        module_name, attr = target.split(":", 1)
        module = importlib.import_module(module_name)
        cmd = getattr(module, attr)
        self.add_command(cmd, name=cmd_name)
        return cmd


# ─────────────────────────────────────────────────────────────────────────────
# Context settings shared by the entire Click hierarchy
# ─────────────────────────────────────────────────────────────────────────────
_CTX: Dict[str, Any] = dict(
    help_option_names=["-h", "--help"],
    show_default=True,
    max_content_width=120,
)


# ─────────────────────────────────────────────────────────────────────────────
# Top-level Click *group*
# ─────────────────────────────────────────────────────────────────────────────
@click.group(
    cls=LazyGroup,
    context_settings=_CTX,
    help="""\b
naaccrxml-cli – NAACCR flat file ⇄ NAACCR XML converter.

""",
)
@click.version_option(__version__)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="YAML job file (else $NAACCRXML_CONFIG, else packaged defaults).",
)
@click.option("-v", "--verbose", is_flag=True, help="INFO-level console output.")
@click.option("--debug", is_flag=True, help="DEBUG console output.")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the rotating JSON log (or $NAACCRXML_LOG_DIR).",
)
@click.option(
    "--save-logfile",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Mirror console output into this plain-text file.",
)
@click.option("--plain", is_flag=True, help="Plain stderr logging instead of Rich.")
@click.pass_context
def main(  # noqa: D401 – Click requires the callback to be named “main”.
    ctx: click.Context,
    config_path: Path | None,
    verbose: bool,
    debug: bool,
    log_dir: Path | None,
    save_logfile: Path | None,
    plain: bool,
) -> None:
    """Root command executed by *naaccrxml-cli*.

    Args:
        ctx: Click runtime context that carries objects across sub-commands.
        config_path: Explicit job file given with ``--config``.
        verbose: Emit INFO-level messages.
        debug: Emit DEBUG-level messages.
        log_dir: Directory for the JSON log file.
        save_logfile: Optional plain-text mirror of the console output.
        plain: Use a plain stream handler (CI, redirected output).
    """
    # Logging must be configured before any output is produced
    setup_logging(
        log_dir=log_dir,
        verbose=verbose,
        debug=debug,
        plain=plain,
        extra_text_log=save_logfile,
    )
    ctx.obj = {
        "config_path": config_path,
        "verbose": verbose,
        "debug": debug,
    }


main.set_lazy_command("flat-to-xml", "naaccrxml.cli.flat_to_xml:cli")
main.set_lazy_command("xml-to-flat", "naaccrxml.cli.xml_to_flat:cli")
main.set_lazy_command("layout", "naaccrxml.cli.layout:cli")
main.set_lazy_command("fields", "naaccrxml.cli.fields:cli")

# The public symbol exported by this module.  Required for ``python -m`` entry-points.
cli = main
__all__: list[str] = ["main"]

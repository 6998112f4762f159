"""
Package-level logging configuration.

* Rich console output (colourised, nicely formatted).
* Rotating **JSON** log file inside ``$NAACCRXML_LOG_DIR`` (or an explicit
  ``log_dir``) when one is known.
* Optional plain-text mirror controlled via ``--save-logfile`` on the CLI.

The public helper :func:`setup_logging` wires everything and should be the
sole entry-point used by sub-commands.  Library modules only ever call
``structlog.get_logger()`` / ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import structlog
from rich.logging import RichHandler
from structlog.dev import ConsoleRenderer as StructlogConsoleRenderer
from structlog.stdlib import LoggerFactory

__all__ = ["setup_logging"]


# --------------------------------------------------------------------------- #
# Internal helpers – file-based handlers                                      #
# --------------------------------------------------------------------------- #
def _json_file_handler(log_dir: Path | None, level: int) -> logging.Handler | None:
    """Return a rotating *JSON* file handler or *None* without a log directory.

    Args:
        log_dir: Explicit directory; ``NAACCRXML_LOG_DIR`` wins when set.
        level: Log-level for the handler.
    """
    env_dir = os.environ.get("NAACCRXML_LOG_DIR")
    if env_dir:
        logdir = Path(env_dir).expanduser()
    elif log_dir is not None:
        logdir = log_dir
    else:
        return None
    logdir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=logdir / "naaccrxml.log",
        maxBytes=5_000_000,  # ~5 MB before rollover
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _plain_text_file_handler(
    path: Optional[Path], level: int
) -> logging.Handler | None:
    """Return a plain-text file handler or *None* when *path* is *None*."""
    if path is None:
        return None

    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8", mode="a")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    # Ensure the buffer is flushed on interpreter exit.
    atexit.register(handler.close)
    return handler


# --------------------------------------------------------------------------- #
# Public API – main entry-point                                               #
# --------------------------------------------------------------------------- #
def setup_logging(
    *,
    log_dir: Path | None = None,
    verbose: bool = False,
    debug: bool = False,
    plain: bool = False,
    extra_text_log: Optional[Path] = None,
) -> None:
    """Configure console logging and optional file mirrors.

    Args:
        log_dir: Directory for the rotating JSON log.
        verbose: Emit INFO-level messages to the console.
        debug: Emit DEBUG-level messages plus rich tracebacks.
        plain: Use a minimal ``[LEVEL] message`` console without rich markup
            (handy when the output is piped into another tool).
        extra_text_log: Optional path for a plain-text mirror of console output.
    """
    console_lvl = (
        logging.DEBUG
        if debug
        else logging.INFO if verbose else logging.WARNING
    )
    file_lvl = logging.DEBUG if debug else logging.INFO

    handlers: list[logging.Handler] = []

    # --- Rich or minimal console handler ---------------------------------------
    if plain:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(console_lvl)
        console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    else:
        console = RichHandler(
            level=console_lvl,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
    handlers.append(console)

    json_handler = _json_file_handler(log_dir, file_lvl)
    if json_handler:
        handlers.append(json_handler)

    txt_handler = _plain_text_file_handler(extra_text_log, console_lvl)
    if txt_handler:
        handlers.append(txt_handler)

    # --- Configure root logger --------------------------------------------------
    # force=True lets repeated CLI invocations in one process rebind handlers.
    logging.basicConfig(
        level=logging.DEBUG,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    # --- structlog binds --------------------------------------------------------
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            (
                StructlogConsoleRenderer(colors=not plain)
                if verbose or debug or plain
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(console_lvl),
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=False,
    )

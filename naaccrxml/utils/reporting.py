"""Injected reporter used by the decoder and the conversion jobs.

Components never reach for a global sink; they receive a :class:`Reporter`
from the job that owns them.  :class:`LogReporter` is the default
implementation: it forwards to structlog and keeps every warning so the job
can hand them back alongside its result.
"""

from __future__ import annotations

from typing import Any, List, Protocol

import structlog

from naaccrxml.models import LineLengthMismatch

__all__ = ["Reporter", "LogReporter", "NullReporter"]


class Reporter(Protocol):
    """Capability passed into each component that can raise warnings."""

    def warn(self, warning: LineLengthMismatch) -> None: ...

    def error(self, message: str, **context: Any) -> None: ...


class LogReporter:
    """Reporter that logs through structlog and records warnings.

    Args:
        logger: Optional bound logger; defaults to the module logger.
    """

    def __init__(self, logger: Any = None) -> None:
        self._log = logger or structlog.get_logger("naaccrxml")
        self.warnings: List[LineLengthMismatch] = []

    def warn(self, warning: LineLengthMismatch) -> None:
        self.warnings.append(warning)
        self._log.warning(
            "line_length_mismatch",
            line=warning.line_number,
            expected=warning.expected,
            actual=warning.actual,
            action=warning.action,
        )

    def error(self, message: str, **context: Any) -> None:
        self._log.error(message, **context)


class NullReporter:
    """Reporter that keeps warnings but logs nothing (tests, library use)."""

    def __init__(self) -> None:
        self.warnings: List[LineLengthMismatch] = []
        self.errors: List[str] = []

    def warn(self, warning: LineLengthMismatch) -> None:
        self.warnings.append(warning)

    def error(self, message: str, **context: Any) -> None:
        self.errors.append(message)

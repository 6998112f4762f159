"""
Typed, immutable value objects returned by the conversion pipelines.

Every class inherits from :class:`pydantic.BaseModel` with ``frozen=True``
so results can be logged, compared and cached without accidental mutation.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from naaccrxml.models import LineLengthMismatch


class ConversionResult(BaseModel, frozen=True):
    """Outcome of one conversion job.

    Attributes
    ----------
    source
        File that was read.
    target
        File that was written.
    patient_count
        ``Patient`` elements written (flat → XML) or read (XML → flat).
    tumor_count
        ``Tumor`` elements written or read.
    line_count
        Flat lines read or written.
    warnings
        Recoverable issues met on the way, in input order.
    layout_file
        Layout descriptor written alongside, when requested.
    """

    source: Path
    target: Path
    patient_count: int = 0
    tumor_count: int = 0
    line_count: int = 0
    warnings: List[LineLengthMismatch] = Field(default_factory=list)
    layout_file: Optional[Path] = None

"""
YAML job-configuration loader.

:func:`load_config` layers three sources before validating the result into
a :class:`naaccrxml.config.schema.ConversionOptions` instance:

1. The packaged ``default_job.yaml`` (always read).
2. A job file: the explicit *path* argument (``--config`` on the CLI), else
   ``$NAACCRXML_CONFIG`` when set.  Relative paths inside the job file are
   resolved against the job file's directory.
3. Keyword overrides (CLI options); ``None`` values are ignored.

All resolution logic is concentrated here so the rest of *naaccrxml* treats
configuration as an already-validated object.
"""

from __future__ import annotations

import os
from importlib.resources import files
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from naaccrxml.utils.errors import ConfigError

from .schema import ConversionOptions

_DEFAULT_JOB = files("naaccrxml.resources") / "default_job.yaml"
_PATH_KEYS = ("source", "target", "items_file", "layout_file")


def _load_yaml(text: str, origin: str) -> dict:
    """Parse *text*; an empty document yields an empty dict."""
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{origin}: invalid YAML – {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{origin}: top level must be a mapping")
    return data


def _job_file(explicit: Optional[str | Path]) -> Optional[Path]:
    """Return the job file to overlay on the defaults, if any."""
    candidate = explicit or os.environ.get("NAACCRXML_CONFIG")
    if not candidate:
        return None
    path = Path(candidate).expanduser().resolve()
    if not path.is_file():
        raise ConfigError(f"Job configuration not found: {path}")
    return path


def _anchor_paths(data: dict, base: Path) -> dict:
    """Resolve relative file paths in *data* against *base*."""
    for key in _PATH_KEYS:
        if data.get(key):
            data[key] = str((base / Path(data[key]).expanduser()).resolve())
    dictionaries = data.get("dictionaries")
    if isinstance(dictionaries, list):
        for entry in dictionaries:
            if isinstance(entry, dict) and entry.get("path"):
                entry["path"] = str((base / Path(entry["path"]).expanduser()).resolve())
    return data


def load_config(path: Optional[str | Path] = None, **overrides: Any) -> ConversionOptions:
    """Return fully validated :class:`ConversionOptions`.

    Args:
        path: Explicit job file.  ``None`` falls back to
            ``$NAACCRXML_CONFIG`` and then to the packaged defaults only.
        **overrides: Option values taking precedence over every file.

    Returns:
        A :class:`ConversionOptions` ready for a pipeline job.

    Raises:
        ConfigError: When a file is missing, unparsable, or the merged
            options fail validation.
        UnsupportedVersion / UnsupportedRecordType: For invalid version or
            record-type tokens.
    """
    merged: dict = _load_yaml(_DEFAULT_JOB.read_text(encoding="utf-8"), "default_job.yaml")

    job_file = _job_file(path)
    if job_file is not None:
        job = _load_yaml(job_file.read_text(encoding="utf-8"), str(job_file))
        merged.update(_anchor_paths(job, job_file.parent))

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ConversionOptions(**merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration – {exc}") from exc

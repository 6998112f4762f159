"""
Configuration package façade.

Exports the small, stable surface that external callers rely on:

* :func:`load_config` – Merge the packaged defaults, an optional job file
  and explicit overrides into a :class:`ConversionOptions` instance.
* :class:`ConversionOptions` / :class:`DictionarySource` – Pydantic models
  representing a validated job.
"""

from .loader import load_config  # noqa: F401
from .schema import ConversionOptions, DictionarySource  # noqa: F401

__all__: list[str] = ["load_config", "ConversionOptions", "DictionarySource"]

"""
Dictionary package façade.

* :func:`resolve_dictionary` – merge the base dictionary for a version with
  optional user dictionaries.
* :func:`load_user_dictionary` – read a CSV or XML user dictionary.
* :func:`select_fields` / :func:`read_requested_fields` – build the active
  field set from an optional allow-list.
"""

from .resolver import (  # noqa: F401
    base_fields,
    normalize_record_type,
    normalize_version,
    resolve_dictionary,
)
from .selector import (  # noqa: F401
    parse_requested_fields,
    read_requested_fields,
    select_fields,
)
from .sources import FieldRow, UserDictionary, load_user_dictionary  # noqa: F401

__all__: list[str] = [
    "resolve_dictionary",
    "base_fields",
    "normalize_version",
    "normalize_record_type",
    "select_fields",
    "read_requested_fields",
    "parse_requested_fields",
    "load_user_dictionary",
    "UserDictionary",
    "FieldRow",
]

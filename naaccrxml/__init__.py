"""
naaccrxml package initialisation.

1. **Expose the version string**
   ``naaccrxml.__version__`` is resolved at import-time from the installed
   distribution metadata.

2. **Re-export the public YAML loader**
   :func:`naaccrxml.config.load_config` is available at the top level::

       from naaccrxml import load_config
"""

from importlib.metadata import PackageNotFoundError, version

# --------------------------------------------------------------------------- #
# Version resolution
# --------------------------------------------------------------------------- #
try:
    __version__: str = version("naaccrxml")
except PackageNotFoundError:
    # Source tree without an installed wheel.
    __version__ = "0.0.0"

# --------------------------------------------------------------------------- #
# Public re-exports
# --------------------------------------------------------------------------- #
from .config import load_config  # noqa: E402

__all__: list[str] = ["load_config", "__version__"]

"""
Module entry-point that makes the package runnable with

    python -m naaccrxml
    python -m naaccrxml.cli

The behaviour is identical to the *naaccrxml-cli* console script because the
Click **group** imported below performs all CLI dispatching.
"""

from naaccrxml.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()

"""Module wrapper so running ``python -m naaccrxml.cli`` matches the console script."""

from naaccrxml.cli import main


if __name__ == "__main__":  # pragma: no cover
    main()

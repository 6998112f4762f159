"""Packaged data: base NAACCR dictionaries and the default job configuration."""

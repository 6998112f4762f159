"""
Readers and writers for the two NAACCR representations.

* :mod:`naaccrxml.io.flat` – fixed-width decode/encode and layout descriptor.
* :mod:`naaccrxml.io.xml_writer` – streaming :class:`PatientXmlWriter`.
* :mod:`naaccrxml.io.xml_reader` – streaming :class:`PatientXmlReader`.
"""

from .flat import decode_line, encode_record, iter_flat_lines, write_layout_descriptor  # noqa: F401
from .xml_reader import PatientXmlReader  # noqa: F401
from .xml_writer import PatientXmlWriter, escape_attribute, escape_text  # noqa: F401

__all__: list[str] = [
    "decode_line",
    "encode_record",
    "iter_flat_lines",
    "write_layout_descriptor",
    "PatientXmlReader",
    "PatientXmlWriter",
    "escape_text",
    "escape_attribute",
]

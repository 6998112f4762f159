"""
Conversion pipelines.

* :mod:`naaccrxml.pipelines.grouping` – tumor → patient grouping engine.
* :mod:`naaccrxml.pipelines.flat_to_xml` – :class:`FlatToXmlJob`.
* :mod:`naaccrxml.pipelines.xml_to_flat` – :class:`XmlToFlatJob`.
"""

from .flat_to_xml import FlatToXmlJob, flat_to_xml  # noqa: F401
from .grouping import PatientGrouper, iter_patients  # noqa: F401
from .types import ConversionResult  # noqa: F401
from .xml_to_flat import XmlToFlatJob, flatten_patient, xml_to_flat  # noqa: F401

__all__: list[str] = [
    "FlatToXmlJob",
    "XmlToFlatJob",
    "flat_to_xml",
    "xml_to_flat",
    "flatten_patient",
    "PatientGrouper",
    "iter_patients",
    "ConversionResult",
]

"""Tests for the streaming NAACCR XML reader."""

import io

import pytest

from naaccrxml.io.xml_reader import PatientXmlReader
from naaccrxml.io.xml_writer import PatientXmlWriter
from naaccrxml.models import Item, NaaccrData, Patient, Tumor, base_dictionary_uri
from naaccrxml.utils.errors import (
    MalformedUnderlyingStream,
    MissingRequiredAttribute,
    NaaccrXmlError,
)

_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<NaaccrData baseDictionaryUri="http://naaccr.org/naaccrxml/naaccr-dictionary-180.xml"
            recordType="I" specificationVersion="1.3" registryNote="demo"
            xmlns="http://naaccr.org/naaccrxml">
    <Item naaccrId="registryId">0000001234</Item>
    <!-- comments are ignored -->
    <Patient>
        <Item naaccrId="patientIdNumber">00000001</Item>
        <Tumor>
            <Item naaccrId="primarySite">C509</Item>
        </Tumor>
        <Tumor>
            <Item naaccrId="primarySite">C180</Item>
        </Tumor>
    </Patient>
    <Patient>
        <Item naaccrId="patientIdNumber">00000002</Item>
    </Patient>
</NaaccrData>
"""


def _reader(text: str) -> PatientXmlReader:
    return PatientXmlReader(io.BytesIO(text.encode("utf-8")))


def test_root_is_read_up_front():
    reader = _reader(_DOCUMENT)

    assert reader.root.base_dictionary_uri.endswith("naaccr-dictionary-180.xml")
    assert reader.root.record_type == "I"
    assert reader.root.specification_version == "1.3"
    assert reader.root.extra_attributes == {"registryNote": "demo"}
    assert reader.root.item_value("registryId") == "0000001234"
    assert reader.dictionary.version == "180"
    assert reader.dictionary.record_type == "I"


def test_patients_are_streamed():
    patients = _reader(_DOCUMENT).read_all()

    assert [p.item_value("patientIdNumber") for p in patients] == ["00000001", "00000002"]
    assert [t.item_value("primarySite") for t in patients[0].tumors] == ["C509", "C180"]
    assert patients[1].tumors == []


def test_writer_output_reads_back(tmp_path, dictionary):
    target = tmp_path / "round.xml"
    root = NaaccrData(
        base_dictionary_uri=base_dictionary_uri("230"),
        record_type="I",
        items=[Item(naaccr_id="registryId", value="0000001234")],
    )
    patient = Patient(
        items=[Item(naaccr_id="patientIdNumber", value="00000001")],
        tumors=[Tumor(items=[Item(naaccr_id="primarySite", value="A&B")])],
    )
    with PatientXmlWriter(target, root, dictionary) as writer:
        writer.write_patient(patient)

    with PatientXmlReader(target) as reader:
        [read] = list(reader)
        assert reader.root.specification_version == "1.7"
        assert reader.root.time_generated is not None

    assert read.item_value("patientIdNumber") == "00000001"
    assert read.tumors[0].item_value("primarySite") == "A&B"


def test_blank_items_are_dropped():
    text = _DOCUMENT.replace("0000001234", "   ").replace(">C180<", ">  <")
    reader = _reader(text)
    patients = reader.read_all()

    assert reader.root.items == []
    assert patients[0].tumors[1].items == []
    assert patients[0].tumors[0].item_value("primarySite") == "C509"


def test_empty_root():
    reader = _reader(
        '<NaaccrData baseDictionaryUri="http://naaccr.org/naaccrxml/naaccr-dictionary-230.xml"'
        ' recordType="A" xmlns="http://naaccr.org/naaccrxml"/>'
    )
    assert reader.read_all() == []
    assert reader.root.record_type == "A"


def test_missing_record_type():
    with pytest.raises(MissingRequiredAttribute):
        _reader(
            '<NaaccrData baseDictionaryUri="http://naaccr.org/naaccrxml/naaccr-dictionary-230.xml"'
            ' xmlns="http://naaccr.org/naaccrxml"/>'
        )


def test_wrong_root_element():
    with pytest.raises(NaaccrXmlError, match="root element"):
        _reader("<Registry/>")


def test_unknown_item():
    text = _DOCUMENT.replace('naaccrId="primarySite">C180', 'naaccrId="madeUp">C180')
    with pytest.raises(NaaccrXmlError, match="unknown NAACCR ID: madeUp") as excinfo:
        _reader(text).read_all()
    assert excinfo.value.path == "/NaaccrData/Patient[1]/Tumor[2]"


def test_malformed_document_reports_location():
    text = _DOCUMENT.replace("C180</Item>", "C180</Itm>")
    with pytest.raises(MalformedUnderlyingStream) as excinfo:
        _reader(text).read_all()
    assert excinfo.value.line_number == 13


def test_missing_file(tmp_path):
    with pytest.raises(NaaccrXmlError):
        PatientXmlReader(tmp_path / "missing.xml")

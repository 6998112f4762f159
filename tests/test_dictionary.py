"""Tests for dictionary resolution, user dictionaries and field selection."""

from pathlib import Path

import pytest

from naaccrxml.dictionary import (
    load_user_dictionary,
    normalize_record_type,
    normalize_version,
    parse_requested_fields,
    read_requested_fields,
    resolve_dictionary,
    select_fields,
)
from naaccrxml.models import RECORD_TYPES, SUPPORTED_VERSIONS, ParentLevel
from naaccrxml.utils.errors import (
    ColumnKeyCollision,
    InvalidDictionary,
    UnsupportedRecordType,
    UnsupportedVersion,
)


def _user_csv(path: Path, *rows: str) -> Path:
    """Write a user dictionary CSV with the standard header."""
    header = "naaccrId,naaccrNum,length,parentXmlElement,recordTypes\n"
    path.write_text(header + "".join(r + "\n" for r in rows), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Base dictionaries
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("version", SUPPORTED_VERSIONS)
@pytest.mark.parametrize("record_type", RECORD_TYPES)
def test_every_packaged_dictionary_resolves(version, record_type):
    """Each (version, record type) pair resolves with unique column keys."""
    d = resolve_dictionary(version, record_type)

    assert d.version == version
    assert d.record_type == record_type
    assert d.base_dictionary_uri == (
        f"http://naaccr.org/naaccrxml/naaccr-dictionary-{version}.xml"
    )
    assert len(d) > 0
    keys = [f.truncated_id for f in d]
    assert len(keys) == len(set(keys))
    assert all(record_type in f.record_types for f in d)
    assert "patientIdNumber" in d
    assert d.user_dictionary_uri is None


def test_record_type_filters_fields():
    """Text and confidential fields disappear from smaller record types."""
    abstract = resolve_dictionary("230", "A")
    confidential = resolve_dictionary("230", "C")
    incidence = resolve_dictionary("230", "I")

    assert "textRemarks" in abstract
    assert "textRemarks" not in confidential
    assert "nameLast" in confidential
    assert "nameLast" not in incidence


def test_versions_differ():
    """Older layouts keep retired fields and narrower name columns."""
    old = resolve_dictionary("140", "A")
    new = resolve_dictionary("230", "A")

    assert "censusTract2000" in old and "censusTract2010" not in old
    assert "rxSummSurgPrimSite2023" in new and "rxSummSurgPrimSite2023" not in old
    assert old.get("nameLast").length == 25
    assert new.get("nameLast").length == 40


def test_fields_keep_their_parent_level(dictionary):
    assert dictionary.get("registryId").parent is ParentLevel.ROOT
    assert dictionary.get("patientIdNumber").parent is ParentLevel.PATIENT
    assert dictionary.get("primarySite").parent is ParentLevel.TUMOR
    assert dictionary.get("patientIdNumber").naaccr_num == 20


@pytest.mark.parametrize("version", ["999", "", None, "23"])
def test_unsupported_version(version):
    with pytest.raises(UnsupportedVersion):
        resolve_dictionary(version, "I")


@pytest.mark.parametrize("record_type", ["X", "", None, "AM"])
def test_unsupported_record_type(record_type):
    with pytest.raises(UnsupportedRecordType):
        resolve_dictionary("230", record_type)


def test_tokens_are_normalised():
    assert normalize_version(180) == "180"
    assert normalize_version(" 210 ") == "210"
    assert normalize_record_type("i") == "I"


# ---------------------------------------------------------------------------
# User dictionaries
# ---------------------------------------------------------------------------
def test_user_dictionary_overrides_length(tmp_path):
    """A user row changes only the attributes it sets."""
    user = load_user_dictionary(
        _user_csv(tmp_path / "user.csv", "primarySite,,6,,"), "http://registry.org/dict-1.xml"
    )
    base = resolve_dictionary("230", "I")
    merged = resolve_dictionary("230", "I", [user])

    site = merged.get("primarySite")
    assert site.length == 6
    assert site.naaccr_num == 400
    assert site.parent is ParentLevel.TUMOR
    assert site.source == "http://registry.org/dict-1.xml"
    assert [f.naaccr_id for f in merged] == [f.naaccr_id for f in base]
    assert merged.get("patientIdNumber") == base.get("patientIdNumber")
    assert merged.user_dictionary_uri == "http://registry.org/dict-1.xml"


def test_last_user_dictionary_wins(tmp_path):
    first = load_user_dictionary(_user_csv(tmp_path / "a.csv", "primarySite,,5,,"), "http://a")
    second = load_user_dictionary(_user_csv(tmp_path / "b.csv", "primarySite,,7,,"), "http://b")

    merged = resolve_dictionary("230", "I", [first, second])

    assert merged.get("primarySite").length == 7
    assert merged.user_dictionary_uris == ("http://a", "http://b")
    assert merged.user_dictionary_uri == "http://a http://b"


def test_new_user_field_is_appended(tmp_path):
    user = load_user_dictionary(
        _user_csv(tmp_path / "user.csv", 'myRegistryField,9001,5,Tumor,"A,M,C,I"'), "http://a"
    )
    merged = resolve_dictionary("230", "I", [user])

    assert merged.fields[-1].naaccr_id == "myRegistryField"
    assert merged.fields[-1].length == 5


def test_new_user_field_for_other_record_type_is_dropped(tmp_path):
    user = load_user_dictionary(
        _user_csv(tmp_path / "user.csv", "abstractOnly,9002,5,Tumor,A"), "http://a"
    )
    assert "abstractOnly" not in resolve_dictionary("230", "I", [user])
    assert "abstractOnly" in resolve_dictionary("230", "A", [user])


def test_new_user_field_needs_length_and_parent(tmp_path):
    user = load_user_dictionary(_user_csv(tmp_path / "user.csv", "incomplete,9003,,,"), "http://a")
    with pytest.raises(InvalidDictionary, match="incomplete"):
        resolve_dictionary("230", "I", [user])


def test_column_key_collision(tmp_path):
    """Two long ids sharing their first 32 characters cannot coexist."""
    prefix = "x" * 32
    user = load_user_dictionary(
        _user_csv(
            tmp_path / "user.csv",
            f"{prefix}One,9004,2,Tumor,I",
            f"{prefix}Two,9005,2,Tumor,I",
        ),
        "http://a",
    )
    with pytest.raises(ColumnKeyCollision) as excinfo:
        resolve_dictionary("230", "I", [user])
    assert f"{prefix}One" in str(excinfo.value)
    assert f"{prefix}Two" in str(excinfo.value)


def test_user_csv_defaults_to_file_uri(tmp_path):
    path = _user_csv(tmp_path / "user.csv", "primarySite,,6,,")
    user = load_user_dictionary(path)
    assert user.uri == path.resolve().as_uri()


def test_user_csv_rejects_bad_cells(tmp_path):
    with pytest.raises(InvalidDictionary):
        load_user_dictionary(_user_csv(tmp_path / "a.csv", "primarySite,,wide,,"), "http://a")
    with pytest.raises(InvalidDictionary):
        load_user_dictionary(_user_csv(tmp_path / "b.csv", "primarySite,,4,Registry,"), "http://a")
    with pytest.raises(InvalidDictionary):
        load_user_dictionary(_user_csv(tmp_path / "c.csv", "primarySite,,4,Tumor,Z"), "http://a")


def test_missing_user_dictionary(tmp_path):
    with pytest.raises(InvalidDictionary, match="Invalid dictionary path"):
        load_user_dictionary(tmp_path / "missing.csv")


_XML_DICTIONARY = """<?xml version="1.0" encoding="UTF-8"?>
<NaaccrDictionary dictionaryUri="http://registry.org/naaccrxml/user-dictionary.xml"
                  xmlns="http://naaccr.org/naaccrxml">
    <ItemDefs>
        <ItemDef naaccrId="myPatientFlag" naaccrNum="9100" length="3"
                 parentXmlElement="Patient" recordTypes="A,M,C,I"/>
    </ItemDefs>
</NaaccrDictionary>
"""


def test_xml_user_dictionary(tmp_path):
    path = tmp_path / "user-dictionary.xml"
    path.write_text(_XML_DICTIONARY, encoding="utf-8")

    user = load_user_dictionary(path)
    merged = resolve_dictionary("180", "I", [user])

    assert user.uri == "http://registry.org/naaccrxml/user-dictionary.xml"
    flag = merged.get("myPatientFlag")
    assert flag.parent is ParentLevel.PATIENT
    assert flag.length == 3
    assert flag.naaccr_num == 9100


def test_xml_user_dictionary_uri_mismatch(tmp_path):
    path = tmp_path / "user-dictionary.xml"
    path.write_text(_XML_DICTIONARY, encoding="utf-8")
    with pytest.raises(InvalidDictionary, match="does not match"):
        load_user_dictionary(path, "http://elsewhere.org/dictionary.xml")


def test_malformed_xml_user_dictionary(tmp_path):
    path = tmp_path / "broken.xml"
    path.write_text("<NaaccrDictionary><ItemDef></NaaccrDictionary>", encoding="utf-8")
    with pytest.raises(InvalidDictionary):
        load_user_dictionary(path)


# ---------------------------------------------------------------------------
# Field selection
# ---------------------------------------------------------------------------
def test_select_all_fields(dictionary):
    selected = select_fields(dictionary)
    assert selected.fields == dictionary.fields


def test_selection_keeps_dictionary_order(dictionary):
    selected = select_fields(dictionary, ["primarySite", "registryId", "patientIdNumber"])
    assert [f.naaccr_id for f in selected] == ["registryId", "patientIdNumber", "primarySite"]
    assert selected.expected_line_length == 22


def test_unknown_requested_ids_are_ignored(dictionary):
    selected = select_fields(dictionary, ["primarySite", "noSuchItem"])
    assert [f.naaccr_id for f in selected] == ["primarySite"]


def test_selection_can_be_empty(dictionary):
    selected = select_fields(dictionary, [])
    assert len(selected) == 0
    assert selected.expected_line_length == 0


def test_parse_requested_fields():
    assert parse_requested_fields("a, b;c  d") == ["a", "b", "c", "d"]
    assert parse_requested_fields(" ") is None
    assert parse_requested_fields(None) is None


def test_read_requested_fields(tmp_path):
    csv_file = tmp_path / "items.csv"
    csv_file.write_text("naaccrId,comment\nprimarySite,site\n\npatientIdNumber,id\n")
    tsv_file = tmp_path / "items.tsv"
    tsv_file.write_text("item\tcomment\nregistryId\tx\n")

    assert read_requested_fields(csv_file) == ["primarySite", "patientIdNumber"]
    assert read_requested_fields(tsv_file) == ["registryId"]

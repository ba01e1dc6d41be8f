from __future__ import annotations

from datetime import date

import pytest
import yaml

from sis_sync.mapping import (
    DEFAULT_MAPPING_PATH,
    MappingLoadError,
    RemoteRecordDecoder,
    get_active_mapping,
    load_mapping,
)
from sis_sync.models import RemoteContact, RemoteStudent


def _write_mapping(tmp_path, mutate=None):
    raw = yaml.safe_load(DEFAULT_MAPPING_PATH.read_text(encoding="utf-8"))
    if mutate:
        mutate(raw)
    path = tmp_path / "mapping.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")
    return path


def test_default_mapping_loads_every_entity():
    mapping = load_mapping(DEFAULT_MAPPING_PATH)
    assert mapping.adapter == "powerschool"
    assert set(mapping.entities) == {"student", "contact", "email", "phone", "address", "relationship"}
    assert len(mapping.checksum) == 64
    assert mapping.spec_for("student").query


def test_decoder_reads_nested_paths_and_applies_transforms():
    spec = load_mapping(DEFAULT_MAPPING_PATH).spec_for("student")
    result = RemoteRecordDecoder(spec).decode(
        {
            "id": 55,
            "local_id": 1001,
            "name": {"first_name": " Ann ", "last_name": "Lee"},
            "demographics": {"birth_date": "2012-01-02T00:00:00"},
            "school_enrollment": {"entry_date": "2024-08-19", "grade_level": 5},
            "lunch_status": "F",
        }
    )

    assert result.errors == []
    record = result.record
    assert isinstance(record, RemoteStudent)
    assert record.student_number == 1001
    assert record.first_name == "Ann"
    assert record.dob == date(2012, 1, 2)
    assert record.entry_date == date(2024, 8, 19)
    assert record.grade_level == 5
    assert result.unmapped_fields == {"lunch_status": "F"}


def test_decoder_applies_boolean_defaults():
    spec = load_mapping(DEFAULT_MAPPING_PATH).spec_for("contact")
    result = RemoteRecordDecoder(spec).decode({"person_id": 10, "contact_identifier": "C1", "is_active": "0"})
    assert result.record == RemoteContact(person_id=10, contact_identifier="C1", is_active=False)

    defaulted = RemoteRecordDecoder(spec).decode({"person_id": 11, "contact_identifier": "C2"})
    assert defaulted.record.is_active is True


def test_decoder_reports_missing_required_and_bad_transforms():
    spec = load_mapping(DEFAULT_MAPPING_PATH).spec_for("phone")
    result = RemoteRecordDecoder(spec).decode({"person_id": 10, "priority_order": "first"})
    assert any("phone_number" in error for error in result.errors)
    assert any("to_int" in error for error in result.errors)
    assert result.record.priority_order is None


def test_unknown_transform_rejected(tmp_path):
    def mutate(raw):
        raw["entities"]["email"]["fields"][1]["transform"] = "titlecase"

    with pytest.raises(MappingLoadError, match="Unknown transform"):
        load_mapping(_write_mapping(tmp_path, mutate))


def test_unknown_target_rejected(tmp_path):
    def mutate(raw):
        raw["entities"]["email"]["fields"].append({"source": "x", "target": "not_a_field"})

    with pytest.raises(MappingLoadError, match="Unknown target"):
        load_mapping(_write_mapping(tmp_path, mutate))


def test_missing_entity_rejected(tmp_path):
    def mutate(raw):
        del raw["entities"]["relationship"]

    with pytest.raises(MappingLoadError, match="missing entities: relationship"):
        load_mapping(_write_mapping(tmp_path, mutate))


def test_missing_file_rejected(tmp_path):
    with pytest.raises(MappingLoadError, match="not found"):
        load_mapping(tmp_path / "nope.yaml")


def test_active_mapping_is_cached_per_path(app, tmp_path):
    path = _write_mapping(tmp_path)
    app.config["SIS_MAPPING_PATH"] = str(path)

    first = get_active_mapping()
    second = get_active_mapping()

    assert first is second
    assert first.path == path

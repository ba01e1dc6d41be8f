from __future__ import annotations

import json
from datetime import date

import pytest

from sis_sync.models import Contact, DatasetLoadError, Student, dataset_from_payload, group_by, load_dataset


def test_payload_builds_typed_records():
    dataset = dataset_from_payload(
        {
            "students": [{"student_number": 1001, "first_name": "Anne", "dob": "2012-01-02T00:00:00"}],
            "contacts": [{"contact_identifier": "C1", "is_active": "no"}],
            "emails": [{"contact_identifier": "C1", "email_address": "a@example.org", "is_primary": 1}],
        }
    )

    assert dataset.students == (Student(student_number=1001, first_name="Anne", dob=date(2012, 1, 2)),)
    assert dataset.contacts == (Contact(contact_identifier="C1", is_active=False),)
    assert dataset.emails[0].is_primary is True
    assert dataset.counts()["phones"] == 0


def test_unknown_collection_rejected():
    with pytest.raises(DatasetLoadError, match="Unknown dataset collections: pets"):
        dataset_from_payload({"pets": []})


def test_unknown_field_rejected():
    with pytest.raises(DatasetLoadError, match=r"students\[0\] has unknown fields: shoe_size"):
        dataset_from_payload({"students": [{"student_number": 1, "shoe_size": 4}]})


def test_missing_required_field_rejected():
    with pytest.raises(DatasetLoadError, match="incomplete"):
        dataset_from_payload({"contacts": [{"first_name": "Pat"}]})


@pytest.mark.parametrize(
    "row, message",
    [
        ({"student_number": 1, "dob": "01/02/2012"}, "Invalid date"),
        ({"contact_identifier": "C1", "is_active": "maybe"}, "boolean"),
    ],
)
def test_bad_values_rejected(row, message):
    collection = "students" if "student_number" in row else "contacts"
    with pytest.raises(DatasetLoadError, match=message):
        dataset_from_payload({collection: [row]})


def test_load_dataset_from_file(tmp_path):
    path = tmp_path / "local.json"
    path.write_text(json.dumps({"students": [{"student_number": "01001"}]}), encoding="utf-8")

    dataset = load_dataset(path)

    assert dataset.students[0].student_number == "01001"


def test_load_dataset_errors(tmp_path):
    with pytest.raises(DatasetLoadError, match="not found"):
        load_dataset(tmp_path / "missing.json")

    path = tmp_path / "list.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(DatasetLoadError, match="JSON object"):
        load_dataset(path)


def test_group_by_keeps_order():
    contacts = [Contact(contact_identifier="A", first_name="1"), Contact(contact_identifier="B"), Contact(contact_identifier="A", first_name="2")]
    grouped = group_by(contacts, "contact_identifier")
    assert [c.first_name for c in grouped["A"]] == ["1", "2"]
    assert list(grouped) == ["A", "B"]

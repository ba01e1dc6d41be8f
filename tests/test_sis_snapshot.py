from __future__ import annotations

import json
import logging
from datetime import date

import pytest

from sis_sync.adapters.powerschool import RemoteSnapshot, SnapshotLoadError, fetch_remote_snapshot, load_snapshot
from sis_sync.cancellation import CancellationToken
from sis_sync.errors import OperationCancelled
from sis_sync.mapping import DEFAULT_MAPPING_PATH, load_mapping


@pytest.fixture
def mapping():
    return load_mapping(DEFAULT_MAPPING_PATH)


RAW = {
    "student": [
        {"id": 1, "local_id": 1001, "name": {"first_name": "Ann"}, "demographics": {"birth_date": "2012-01-02"}},
    ],
    "contact": [{"person_id": 10, "contact_identifier": "C1", "first_name": "Pat"}],
    "email": [{"person_id": 10, "email_address": "pat@example.org", "is_primary": "1"}],
    "phone": [],
    "address": [],
    "relationship": [{"person_id": 10, "student_number": 1001, "has_custody": "true"}],
}


class FakePager:
    def __init__(self, rows_by_query):
        self.rows_by_query = rows_by_query
        self.queries = []

    def fetch_all(self, query, *, cancel_token=None):
        self.queries.append(query)
        return self.rows_by_query.get(query, [])


def test_from_raw_decodes_every_collection(mapping):
    snapshot = RemoteSnapshot.from_raw(RAW, mapping)

    assert snapshot.students[0].first_name == "Ann"
    assert snapshot.students[0].dob == date(2012, 1, 2)
    assert snapshot.contacts[0].is_active is True
    assert snapshot.emails[0].is_primary is True
    assert snapshot.relationships[0].has_custody is True
    assert snapshot.relationships[0].lives_with is False
    assert snapshot.counts() == {
        "students": 1,
        "contacts": 1,
        "emails": 1,
        "phones": 0,
        "addresses": 0,
        "relationships": 1,
    }
    assert snapshot.mapping_checksum == mapping.checksum


def test_decode_errors_are_logged_not_raised(mapping, caplog):
    raw = {"email": [{"person_id": 10}]}

    with caplog.at_level(logging.WARNING):
        snapshot = RemoteSnapshot.from_raw(raw, mapping)

    assert snapshot.emails[0].email_address is None
    assert "email_address" in caplog.text


def test_non_object_rows_rejected(mapping):
    with pytest.raises(SnapshotLoadError, match="student row 0"):
        RemoteSnapshot.from_raw({"student": ["not-a-row"]}, mapping)


def test_save_and_reload(mapping, tmp_path):
    snapshot = RemoteSnapshot.from_raw(RAW, mapping)
    path = snapshot.save(tmp_path / "out" / "snapshot.json")

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["mapping_checksum"] == mapping.checksum
    assert payload["records"]["contact"] == RAW["contact"]

    reloaded = load_snapshot(path, mapping)
    assert reloaded.students == snapshot.students
    assert reloaded.relationships == snapshot.relationships


def test_checksum_mismatch_warns(mapping, tmp_path, caplog):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"mapping_checksum": "abc", "records": RAW}), encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        load_snapshot(path, mapping)

    assert "different mapping" in caplog.text


@pytest.mark.parametrize("content", ["{not json", json.dumps({"students": []}), json.dumps([1, 2])])
def test_bad_snapshot_files(mapping, tmp_path, content):
    path = tmp_path / "snapshot.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SnapshotLoadError):
        load_snapshot(path, mapping)


def test_missing_snapshot_file(mapping, tmp_path):
    with pytest.raises(SnapshotLoadError, match="not found"):
        load_snapshot(tmp_path / "missing.json", mapping)


def test_fetch_remote_snapshot_queries_each_entity(mapping):
    rows = {mapping.spec_for(entity).query: RAW[entity] for entity in RAW}
    pager = FakePager(rows)

    snapshot = fetch_remote_snapshot(pager, mapping)

    assert pager.queries == [mapping.spec_for(entity).query for entity in RAW]
    assert snapshot.contacts[0].contact_identifier == "C1"
    assert snapshot.raw["student"] == RAW["student"]


def test_fetch_remote_snapshot_honours_cancellation(mapping):
    token = CancellationToken()
    token.cancel()
    pager = FakePager({})

    with pytest.raises(OperationCancelled):
        fetch_remote_snapshot(pager, mapping, cancel_token=token)
    assert pager.queries == []

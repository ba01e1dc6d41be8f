from __future__ import annotations

import logging

from sis_sync.adapters.powerschool import RemoteSnapshot
from sis_sync.models import (
    Address,
    Contact,
    EmailAddress,
    NormalizedDataSet,
    PhoneNumber,
    RemoteAddress,
    RemoteContact,
    RemoteEmail,
    RemotePhone,
    RemoteRelationship,
    StudentContactRelationship,
)
from sis_sync.reconcile import reconcile_contacts

HOME = dict(address_type="Home", street="12 Oak St", city="Springfield", state="IL", postal_code="62701")
WORK = dict(address_type="Work", street="1 Main St", city="Springfield", state="IL", postal_code="62701")


def _local(**collections):
    return NormalizedDataSet(contacts=(Contact(contact_identifier="C1", first_name="Pat"),), **collections)


def _remote(**collections):
    return RemoteSnapshot(
        contacts=(RemoteContact(person_id=10, contact_identifier="C1", first_name="Pat", is_active=True),),
        **collections,
    )


def test_unchanged_contact_with_matching_children():
    local = _local(
        emails=(EmailAddress(contact_identifier="C1", email_address="Pat@Example.org", is_primary=True),),
        addresses=(Address(contact_identifier="C1", **HOME),),
    )
    remote = _remote(
        emails=(RemoteEmail(person_id=10, email_address="pat@example.org", is_primary=1),),
        addresses=(RemoteAddress(person_id=10, **HOME),),
    )

    result = reconcile_contacts(local, remote)

    assert len(result.unchanged) == 1
    assert not result.has_changes


def test_added_email_makes_contact_modified():
    local = _local(emails=(EmailAddress(contact_identifier="C1", email_address="pat@example.org"),))
    remote = _remote()

    result = reconcile_contacts(local, remote)

    assert len(result.modified) == 1
    matched = result.modified[0]
    assert matched.changes == ()
    emails = matched.children["Emails"]
    assert [e.email_address for e in emails.added] == ["pat@example.org"]


def test_removed_address_without_spurious_modification():
    local = _local(addresses=(Address(contact_identifier="C1", **HOME),))
    remote = _remote(
        addresses=(RemoteAddress(person_id=10, **HOME), RemoteAddress(person_id=10, **WORK)),
    )

    result = reconcile_contacts(local, remote)

    addresses = result.modified[0].children["Addresses"]
    assert [a.street for a in addresses.removed] == ["1 Main St"]
    assert len(addresses.unchanged) == 1
    assert addresses.modified == []


def test_sub_records_are_scoped_to_their_contact():
    local = NormalizedDataSet(
        contacts=(Contact(contact_identifier="C1"), Contact(contact_identifier="C2")),
        phones=(PhoneNumber(contact_identifier="C2", phone_number="555-0100"),),
    )
    remote = RemoteSnapshot(
        contacts=(
            RemoteContact(person_id=10, contact_identifier="C1", is_active=True),
            RemoteContact(person_id=20, contact_identifier="C2", is_active=True),
        ),
        phones=(RemotePhone(person_id=10, phone_number="(555) 0100"),),
    )

    result = reconcile_contacts(local, remote)

    by_key = {item.key: item for item in result.modified}
    assert [p.phone_number for p in by_key["C1"].children["Phones"].removed] == ["(555) 0100"]
    assert [p.phone_number for p in by_key["C2"].children["Phones"].added] == ["555-0100"]


def test_relationship_flag_change():
    local = _local(
        relationships=(
            StudentContactRelationship(contact_identifier="C1", student_number="01001", has_custody=True),
        )
    )
    flags = dict(is_legal_guardian=0, lives_with=0, school_pickup=0, is_emergency=0, receives_mail=0)
    remote = _remote(
        relationships=(RemoteRelationship(person_id=10, student_number=1001, has_custody=0, **flags),)
    )

    result = reconcile_contacts(local, remote)

    rel = result.modified[0].children["Relationships"]
    assert [(c.field, c.old_value, c.new_value) for c in rel.modified[0].changes] == [
        ("HasCustody", "false", "true")
    ]


def test_new_and_removed_contacts_carry_their_children():
    local = NormalizedDataSet(
        contacts=(Contact(contact_identifier="NEW"),),
        emails=(EmailAddress(contact_identifier="NEW", email_address="new@example.org"),),
    )
    remote = RemoteSnapshot(
        contacts=(RemoteContact(person_id=30, contact_identifier="GONE", is_active=True),),
        phones=(RemotePhone(person_id=30, phone_number="5550199"),),
    )

    result = reconcile_contacts(local, remote)

    assert [c.contact_identifier for c in result.added] == ["NEW"]
    assert [c.contact_identifier for c in result.removed] == ["GONE"]
    added_children = result.children_for_added(result.added[0])
    removed_children = result.children_for_removed(result.removed[0])
    assert len(added_children["Emails"].added) == 1
    assert len(removed_children["Phones"].removed) == 1


def test_remote_person_id_matches_across_types():
    local = _local(emails=(EmailAddress(contact_identifier="C1", email_address="pat@example.org"),))
    remote = _remote(emails=(RemoteEmail(person_id="10", email_address="pat@example.org", is_primary=0),))

    result = reconcile_contacts(local, remote)

    assert len(result.unchanged) == 1
    assert len(result.unchanged[0].children["Emails"].unchanged) == 1
    assert result.skipped == []


def test_local_identifier_whitespace_still_finds_children():
    local = NormalizedDataSet(
        contacts=(Contact(contact_identifier=" C1", first_name="Pat"),),
        emails=(EmailAddress(contact_identifier="C1", email_address="pat@example.org"),),
    )
    remote = _remote(emails=(RemoteEmail(person_id=10, email_address="pat@example.org", is_primary=0),))

    result = reconcile_contacts(local, remote)

    assert len(result.unchanged) == 1
    assert result.unchanged[0].children["Emails"].removed == []


def test_orphan_sub_records_are_reported_as_skipped(caplog):
    caplog.set_level(logging.WARNING, logger="sis_sync.reconcile.contacts")
    local = _local(phones=(PhoneNumber(contact_identifier="C9", phone_number="5550100"),))
    remote = _remote(emails=(RemoteEmail(person_id=99, email_address="stray@example.org"),))

    result = reconcile_contacts(local, remote)

    assert len(result.unchanged) == 1
    skipped = {(item.side, item.reason) for item in result.skipped}
    assert skipped == {
        ("local", "no reconciled local contact for contact_identifier 'C9'"),
        ("remote", "no reconciled remote contact for person_id '99'"),
    }
    assert "Skipping 1 remote email record(s)" in caplog.text

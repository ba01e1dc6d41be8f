# sis_sync/models/remote.py
"""
Structural records for data retrieved from the SIS.

Each record is built by the mapping decoder from one JSON object returned by a
named query. Attribute names line up with the local entities so the field
tables can address both sides the same way. Contact sub-records reference
their contact through the SIS ``person_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RemoteStudent:
    id: Any = None
    student_number: Any = None
    school_id: Any = None
    fteid: Any = None
    first_name: Any = None
    middle_name: Any = None
    last_name: Any = None
    gender: Any = None
    dob: Any = None
    enroll_status: Any = None
    entry_date: Any = None
    exit_date: Any = None
    grade_level: Any = None
    street: Any = None
    city: Any = None
    state: Any = None
    zip: Any = None
    mailing_street: Any = None
    mailing_city: Any = None
    mailing_state: Any = None
    mailing_zip: Any = None
    home_room: Any = None
    next_school: Any = None
    sched_next_year_grade: Any = None
    sched_year_of_graduation: Any = None
    family_ident: Any = None


@dataclass(frozen=True)
class RemoteContact:
    person_id: Any = None
    contact_identifier: Any = None
    first_name: Any = None
    middle_name: Any = None
    last_name: Any = None
    gender: Any = None
    employer: Any = None
    is_active: Any = None


@dataclass(frozen=True)
class RemoteEmail:
    person_id: Any = None
    email_address: Any = None
    is_primary: Any = None


@dataclass(frozen=True)
class RemotePhone:
    person_id: Any = None
    phone_number: Any = None
    phone_type: Any = None
    priority_order: Any = None
    is_preferred: Any = None
    is_sms: Any = None


@dataclass(frozen=True)
class RemoteAddress:
    person_id: Any = None
    address_type: Any = None
    street: Any = None
    line_two: Any = None
    unit: Any = None
    city: Any = None
    state: Any = None
    postal_code: Any = None
    priority_order: Any = None


@dataclass(frozen=True)
class RemoteRelationship:
    person_id: Any = None
    student_number: Any = None
    relationship_type: Any = None
    relationship_note: Any = None
    priority_order: Any = None
    is_legal_guardian: Any = None
    has_custody: Any = None
    lives_with: Any = None
    school_pickup: Any = None
    is_emergency: Any = None
    receives_mail: Any = None


REMOTE_RECORD_TYPES: dict[str, type] = {
    "student": RemoteStudent,
    "contact": RemoteContact,
    "email": RemoteEmail,
    "phone": RemotePhone,
    "address": RemoteAddress,
    "relationship": RemoteRelationship,
}

# sis_sync/models/entities.py
"""
Local entity records produced by the CSV importer.

Records are frozen once built. Contact sub-records point back at their
contact through ``contact_identifier`` only; nothing here owns anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Union

StudentNumber = Union[int, str]


@dataclass(frozen=True)
class Student:
    """One student row from the CSV export."""

    student_number: StudentNumber | None = None
    school_id: int | str | None = None
    fteid: int | str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    dob: date | None = None
    enroll_status: int | str | None = None
    entry_date: date | None = None
    exit_date: date | None = None
    grade_level: int | str | None = None
    # Physical address block
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    # Mailing address block
    mailing_street: str | None = None
    mailing_city: str | None = None
    mailing_state: str | None = None
    mailing_zip: str | None = None
    # Scheduling
    home_room: str | None = None
    next_school: int | str | None = None
    sched_next_year_grade: int | str | None = None
    sched_year_of_graduation: int | str | None = None
    family_ident: int | str | None = None


@dataclass(frozen=True)
class Contact:
    """A person related to one or more students."""

    contact_identifier: str
    contact_id: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    employer: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class EmailAddress:
    contact_identifier: str
    email_address: str | None = None
    is_primary: bool = False


@dataclass(frozen=True)
class PhoneNumber:
    contact_identifier: str
    phone_number: str | None = None
    phone_type: str | None = None
    priority_order: int | None = None
    is_preferred: bool = False
    is_sms: bool = False


@dataclass(frozen=True)
class Address:
    contact_identifier: str
    address_type: str | None = None
    street: str | None = None
    line_two: str | None = None
    unit: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    priority_order: int | None = None


@dataclass(frozen=True)
class StudentContactRelationship:
    """Links a contact to a student; (contact_identifier, student_number) is the natural key."""

    contact_identifier: str
    student_number: StudentNumber | None = None
    relationship_type: str | None = None
    relationship_note: str | None = None
    priority_order: int | None = None
    is_legal_guardian: bool = False
    has_custody: bool = False
    lives_with: bool = False
    school_pickup: bool = False
    is_emergency: bool = False
    receives_mail: bool = False

"""
Field tables checked for each entity type.

Key fields are left out of the sub-entity tables: once a pair matched on its
key, those values are equal up to the formatting the key already ignores.
"""

from __future__ import annotations

from .differ import DiffField

STUDENT_FIELDS: tuple[DiffField, ...] = (
    DiffField("FirstName", "first_name"),
    DiffField("MiddleName", "middle_name"),
    DiffField("LastName", "last_name"),
    DiffField("Gender", "gender"),
    DiffField("DOB", "dob", kind="date"),
    DiffField("SchoolID", "school_id"),
    DiffField("EnrollStatus", "enroll_status"),
    DiffField("GradeLevel", "grade_level"),
    DiffField("EntryDate", "entry_date", kind="date"),
    DiffField("ExitDate", "exit_date", kind="date"),
    DiffField("Street", "street"),
    DiffField("City", "city"),
    DiffField("State", "state"),
    DiffField("Zip", "zip"),
    DiffField("MailingStreet", "mailing_street"),
    DiffField("MailingCity", "mailing_city"),
    DiffField("MailingState", "mailing_state"),
    DiffField("MailingZip", "mailing_zip"),
    DiffField("HomeRoom", "home_room"),
    DiffField("NextSchool", "next_school"),
    DiffField("SchedNextYearGrade", "sched_next_year_grade"),
    DiffField("SchedYearOfGraduation", "sched_year_of_graduation"),
    DiffField("FamilyIdent", "family_ident"),
)

CONTACT_FIELDS: tuple[DiffField, ...] = (
    DiffField("FirstName", "first_name"),
    DiffField("MiddleName", "middle_name"),
    DiffField("LastName", "last_name"),
    DiffField("Gender", "gender"),
    DiffField("Employer", "employer"),
    DiffField("IsActive", "is_active", kind="bool"),
)

EMAIL_FIELDS: tuple[DiffField, ...] = (DiffField("IsPrimary", "is_primary", kind="bool"),)

PHONE_FIELDS: tuple[DiffField, ...] = (
    DiffField("PhoneType", "phone_type"),
    DiffField("PriorityOrder", "priority_order"),
    DiffField("IsPreferred", "is_preferred", kind="bool"),
    DiffField("IsSMS", "is_sms", kind="bool"),
)

ADDRESS_FIELDS: tuple[DiffField, ...] = (
    DiffField("AddressType", "address_type"),
    DiffField("LineTwo", "line_two"),
    DiffField("Unit", "unit"),
    DiffField("State", "state"),
    DiffField("PriorityOrder", "priority_order"),
)

RELATIONSHIP_FIELDS: tuple[DiffField, ...] = (
    DiffField("RelationshipType", "relationship_type"),
    DiffField("RelationshipNote", "relationship_note"),
    DiffField("PriorityOrder", "priority_order"),
    DiffField("IsLegalGuardian", "is_legal_guardian", kind="bool"),
    DiffField("HasCustody", "has_custody", kind="bool"),
    DiffField("LivesWith", "lives_with", kind="bool"),
    DiffField("SchoolPickup", "school_pickup", kind="bool"),
    DiffField("IsEmergency", "is_emergency", kind="bool"),
    DiffField("ReceivesMail", "receives_mail", kind="bool"),
)

"""
Change-detection engine: normalization, match keys, field diffing and the
per-entity reconcilers that feed the change report.
"""

from .collection import (
    Comparison,
    KeyCollision,
    MatchedRecord,
    ReconcileResult,
    SkippedRecord,
    reconcile_collection,
)
from .contacts import ContactReconciler, ContactReconcileResult, reconcile_contacts
from .differ import DiffField, FieldChange, FieldDiffer
from .keys import (
    MatchKey,
    address_key,
    contact_identifier_key,
    email_key,
    fteid_key,
    phone_key,
    relationship_key,
    student_match_key,
    student_number_key,
)
from .normalize import digits_only, normalize, normalize_bool
from .report import ChangeReport, EntitySummary, assemble_report, summarize
from .students import reconcile_students

__all__ = [
    "ChangeReport",
    "Comparison",
    "ContactReconcileResult",
    "ContactReconciler",
    "DiffField",
    "EntitySummary",
    "FieldChange",
    "FieldDiffer",
    "KeyCollision",
    "MatchKey",
    "MatchedRecord",
    "ReconcileResult",
    "SkippedRecord",
    "address_key",
    "assemble_report",
    "contact_identifier_key",
    "digits_only",
    "email_key",
    "fteid_key",
    "normalize",
    "normalize_bool",
    "phone_key",
    "reconcile_collection",
    "reconcile_contacts",
    "reconcile_students",
    "relationship_key",
    "student_match_key",
    "student_number_key",
    "summarize",
]

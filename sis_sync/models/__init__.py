# sis_sync/models/__init__.py
"""
Entity records for both sides of a reconciliation.
"""

from .dataset import (
    DatasetLoadError,
    NormalizedDataSet,
    dataset_from_payload,
    group_by,
    load_dataset,
)
from .entities import (
    Address,
    Contact,
    EmailAddress,
    PhoneNumber,
    Student,
    StudentContactRelationship,
)
from .remote import (
    REMOTE_RECORD_TYPES,
    RemoteAddress,
    RemoteContact,
    RemoteEmail,
    RemotePhone,
    RemoteRelationship,
    RemoteStudent,
)

__all__ = [
    "Address",
    "Contact",
    "DatasetLoadError",
    "EmailAddress",
    "NormalizedDataSet",
    "PhoneNumber",
    "REMOTE_RECORD_TYPES",
    "RemoteAddress",
    "RemoteContact",
    "RemoteEmail",
    "RemotePhone",
    "RemoteRelationship",
    "RemoteStudent",
    "Student",
    "StudentContactRelationship",
    "dataset_from_payload",
    "group_by",
    "load_dataset",
]

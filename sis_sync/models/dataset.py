# sis_sync/models/dataset.py
"""
The local snapshot handed to the reconciliation engine, plus JSON loading.

The JSON format is the interchange written by the CSV importer: one list per
collection, each element keyed by entity attribute names. Type coercion for
dates and booleans happens here so the engine only ever sees typed values.
"""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

from .entities import (
    Address,
    Contact,
    EmailAddress,
    PhoneNumber,
    Student,
    StudentContactRelationship,
)

T = TypeVar("T")

_DATE_FIELDS = frozenset({"dob", "entry_date", "exit_date"})
_BOOL_FIELDS = frozenset(
    {
        "is_active",
        "is_primary",
        "is_preferred",
        "is_sms",
        "is_legal_guardian",
        "has_custody",
        "lives_with",
        "school_pickup",
        "is_emergency",
        "receives_mail",
    }
)
_TRUE_TOKENS = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_TOKENS = frozenset({"0", "false", "f", "no", "n", "off", ""})

COLLECTIONS: Mapping[str, type] = {
    "students": Student,
    "contacts": Contact,
    "emails": EmailAddress,
    "phones": PhoneNumber,
    "addresses": Address,
    "relationships": StudentContactRelationship,
}


class DatasetLoadError(ValueError):
    """Raised when a serialized dataset cannot be turned into entities."""


@dataclass(frozen=True)
class NormalizedDataSet:
    """Ordered collections from one CSV import, consumed by one reconciliation."""

    students: tuple[Student, ...] = ()
    contacts: tuple[Contact, ...] = ()
    emails: tuple[EmailAddress, ...] = ()
    phones: tuple[PhoneNumber, ...] = ()
    addresses: tuple[Address, ...] = ()
    relationships: tuple[StudentContactRelationship, ...] = ()

    def counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in COLLECTIONS}


def group_by(
    records: Iterable[T], attribute: str, key: Callable[[Any], Any] | None = None
) -> dict[Any, list[T]]:
    """Bucket records by one attribute (optionally reduced by ``key``), keeping their original order."""

    grouped: dict[Any, list[T]] = defaultdict(list)
    for record in records:
        value = getattr(record, attribute)
        grouped[key(value) if key is not None else value].append(record)
    return dict(grouped)


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    token = str(value).strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise DatasetLoadError(f"Cannot interpret {value!r} as a boolean")


def coerce_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        if isinstance(value, datetime):
            return value.date()
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise DatasetLoadError(f"Invalid date value {value!r}") from exc


def _build_record(record_cls: type[T], payload: Mapping[str, Any], *, collection: str, index: int) -> T:
    if not isinstance(payload, Mapping):
        raise DatasetLoadError(f"{collection}[{index}] must be an object, got {type(payload).__name__}")
    known = {item.name for item in fields(record_cls)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise DatasetLoadError(f"{collection}[{index}] has unknown fields: {', '.join(unknown)}")
    values: dict[str, Any] = {}
    for name, value in payload.items():
        if name in _DATE_FIELDS:
            value = coerce_date(value)
        elif name in _BOOL_FIELDS:
            value = coerce_bool(value)
        values[name] = value
    try:
        return record_cls(**values)
    except TypeError as exc:
        raise DatasetLoadError(f"{collection}[{index}] is incomplete: {exc}") from exc


def dataset_from_payload(payload: Mapping[str, Sequence[Mapping[str, Any]]]) -> NormalizedDataSet:
    """Build a dataset from the importer's JSON payload."""

    unknown = sorted(set(payload) - set(COLLECTIONS))
    if unknown:
        raise DatasetLoadError(f"Unknown dataset collections: {', '.join(unknown)}")
    built: dict[str, tuple] = {}
    for name, record_cls in COLLECTIONS.items():
        rows = payload.get(name) or ()
        built[name] = tuple(
            _build_record(record_cls, row, collection=name, index=index) for index, row in enumerate(rows)
        )
    return NormalizedDataSet(**built)


def load_dataset(path: str | Path) -> NormalizedDataSet:
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise DatasetLoadError(f"Dataset file not found at {path}") from exc
    except json.JSONDecodeError as exc:
        raise DatasetLoadError(f"Dataset file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise DatasetLoadError(f"Dataset file {path} must contain a JSON object")
    return dataset_from_payload(payload)

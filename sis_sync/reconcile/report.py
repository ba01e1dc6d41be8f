"""
Change report assembly.

Summaries are computed only by counting the classified lists, never tracked
separately, so the totals always agree with the lists they describe.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .collection import MatchedRecord, ReconcileResult
from .contacts import SUB_COLLECTION_LABELS, ContactReconcileResult


@dataclass(frozen=True)
class EntitySummary:
    total_local: int
    total_remote: int
    new: int
    updated: int
    unchanged: int
    removed: int
    match_field: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "TotalLocal": self.total_local,
            "TotalRemote": self.total_remote,
            "New": self.new,
            "Updated": self.updated,
            "Unchanged": self.unchanged,
            "Removed": self.removed,
            "MatchField": self.match_field,
        }


def summarize(result: ReconcileResult) -> EntitySummary:
    return EntitySummary(
        total_local=result.total_local,
        total_remote=result.total_remote,
        new=len(result.added),
        updated=len(result.modified),
        unchanged=len(result.unchanged),
        removed=len(result.removed),
        match_field=result.match_field,
    )


def _plain(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def record_payload(record: Any) -> dict[str, Any]:
    """Render an entity or remote record as a JSON-ready mapping."""

    if is_dataclass(record) and not isinstance(record, type):
        return _plain(asdict(record))
    if isinstance(record, Mapping):
        return _plain(dict(record))
    raise TypeError(f"Cannot render {type(record).__name__} in a change report")


def _matched_payload(item: MatchedRecord, *, include_changes: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {"Key": item.key, "Local": record_payload(item.local)}
    if include_changes:
        payload["Remote"] = record_payload(item.remote)
        payload["Changes"] = [change.as_dict() for change in item.changes]
    return payload


def _sub_payload(children: Mapping[str, ReconcileResult]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for label in SUB_COLLECTION_LABELS:
        child = children.get(label)
        if child is None:
            continue
        payload[label] = {
            "Added": [record_payload(record) for record in child.added],
            "Modified": [_matched_payload(item, include_changes=True) for item in child.modified],
            "Removed": [record_payload(record) for record in child.removed],
        }
    return payload


def _diagnostics(result: ReconcileResult) -> dict[str, Any]:
    return {
        "SkippedLocal": sum(1 for item in result.skipped if item.side == "local"),
        "SkippedRemote": sum(1 for item in result.skipped if item.side == "remote"),
        "KeyCollisions": len(result.collisions),
    }


def _sub_entity_totals(children_sets: Iterable[Mapping[str, ReconcileResult]]) -> dict[str, dict[str, int]]:
    totals = {label: {"New": 0, "Updated": 0, "Unchanged": 0, "Removed": 0} for label in SUB_COLLECTION_LABELS}
    for children in children_sets:
        for label, child in children.items():
            bucket = totals.setdefault(label, {"New": 0, "Updated": 0, "Unchanged": 0, "Removed": 0})
            bucket["New"] += len(child.added)
            bucket["Updated"] += len(child.modified)
            bucket["Unchanged"] += len(child.unchanged)
            bucket["Removed"] += len(child.removed)
    return totals


@dataclass(frozen=True)
class ChangeReport:
    """Aggregate output of one reconciliation pass."""

    students: ReconcileResult
    contacts: ContactReconcileResult

    @property
    def student_summary(self) -> EntitySummary:
        return summarize(self.students)

    @property
    def contact_summary(self) -> EntitySummary:
        return summarize(self.contacts)

    @property
    def has_changes(self) -> bool:
        return self.students.has_changes or self.contacts.has_changes

    def _all_contact_children(self) -> list[Mapping[str, ReconcileResult]]:
        children = [item.children for item in (*self.contacts.modified, *self.contacts.unchanged)]
        children.extend(self.contacts.added_children.values())
        children.extend(self.contacts.removed_children.values())
        return children

    def sub_entity_totals(self) -> dict[str, dict[str, int]]:
        return _sub_entity_totals(self._all_contact_children())

    def _students_dict(self) -> dict[str, Any]:
        result = self.students
        return {
            "Added": [record_payload(record) for record in result.added],
            "Modified": [_matched_payload(item, include_changes=True) for item in result.modified],
            "Removed": [record_payload(record) for record in result.removed],
            "Unchanged": [_matched_payload(item, include_changes=False) for item in result.unchanged],
            "Summary": self.student_summary.as_dict(),
            "Diagnostics": _diagnostics(result),
        }

    def _contacts_dict(self) -> dict[str, Any]:
        result = self.contacts
        added = []
        for contact in result.added:
            entry = {"Record": record_payload(contact)}
            entry.update(_sub_payload(result.children_for_added(contact)))
            added.append(entry)
        removed = []
        for remote_contact in result.removed:
            entry = {"Record": record_payload(remote_contact)}
            entry.update(_sub_payload(result.children_for_removed(remote_contact)))
            removed.append(entry)
        modified = []
        for item in result.modified:
            entry = _matched_payload(item, include_changes=True)
            entry.update(_sub_payload(item.children))
            modified.append(entry)
        summary = self.contact_summary.as_dict()
        summary["SubEntities"] = self.sub_entity_totals()
        return {
            "Added": added,
            "Modified": modified,
            "Removed": removed,
            "Unchanged": [_matched_payload(item, include_changes=False) for item in result.unchanged],
            "Summary": summary,
            "Diagnostics": _diagnostics(result),
        }

    def to_dict(self) -> dict[str, Any]:
        return {"Students": self._students_dict(), "Contacts": self._contacts_dict()}

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def summary_lines(self) -> list[str]:
        lines = []
        for label, summary in (("Students", self.student_summary), ("Contacts", self.contact_summary)):
            lines.append(
                f"{label:<9}: local={summary.total_local} remote={summary.total_remote} "
                f"new={summary.new} updated={summary.updated} unchanged={summary.unchanged} "
                f"removed={summary.removed} (match: {summary.match_field})"
            )
        for label, totals in self.sub_entity_totals().items():
            lines.append(
                f"  {label:<13}: new={totals['New']} updated={totals['Updated']} "
                f"unchanged={totals['Unchanged']} removed={totals['Removed']}"
            )
        return lines


def assemble_report(students: ReconcileResult, contacts: ContactReconcileResult) -> ChangeReport:
    return ChangeReport(students=students, contacts=contacts)

"""
Remote snapshot: every SIS collection needed for one reconciliation pass.

The raw query rows are kept next to the decoded records so a fetched snapshot
can be written to disk and reconciled again offline.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.mapping import MappingFile, RemoteRecordDecoder
from sis_sync.metrics import record_unmapped
from sis_sync.models import (
    REMOTE_RECORD_TYPES,
    RemoteAddress,
    RemoteContact,
    RemoteEmail,
    RemotePhone,
    RemoteRelationship,
    RemoteStudent,
)

from .paging import QueryPager

logger = logging.getLogger(__name__)

SNAPSHOT_ENTITIES: tuple[str, ...] = tuple(REMOTE_RECORD_TYPES)

_COLLECTION_ATTRS: Mapping[str, str] = {
    "student": "students",
    "contact": "contacts",
    "email": "emails",
    "phone": "phones",
    "address": "addresses",
    "relationship": "relationships",
}


class SnapshotLoadError(ValueError):
    """Raised when a persisted snapshot file cannot be read."""


@dataclass(frozen=True)
class RemoteSnapshot:
    students: Sequence[RemoteStudent] = ()
    contacts: Sequence[RemoteContact] = ()
    emails: Sequence[RemoteEmail] = ()
    phones: Sequence[RemotePhone] = ()
    addresses: Sequence[RemoteAddress] = ()
    relationships: Sequence[RemoteRelationship] = ()
    raw: Mapping[str, Sequence[Mapping[str, Any]]] = field(default_factory=dict)
    mapping_checksum: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Sequence[Mapping[str, Any]]], mapping: MappingFile) -> "RemoteSnapshot":
        """Decode raw query rows (keyed by entity name) with ``mapping``."""

        decoded: dict[str, tuple[Any, ...]] = {}
        for entity in SNAPSHOT_ENTITIES:
            rows = raw.get(entity) or []
            decoder = RemoteRecordDecoder(mapping.spec_for(entity))
            unmapped: Counter[str] = Counter()
            records = []
            for index, row in enumerate(rows):
                if not isinstance(row, Mapping):
                    raise SnapshotLoadError(f"{entity} row {index} is not an object")
                result = decoder.decode(row)
                if result.errors:
                    logger.warning(
                        "Decoded %s row %s with errors: %s",
                        entity,
                        index,
                        "; ".join(result.errors),
                        extra={"entity": entity, "decode_errors": result.errors},
                    )
                unmapped.update(result.unmapped_fields.keys())
                records.append(result.record)
            for field_name, count in unmapped.items():
                record_unmapped(entity, field_name, count)
            if unmapped:
                logger.debug(
                    "Unmapped %s fields: %s",
                    entity,
                    ", ".join(sorted(unmapped)),
                    extra={"entity": entity, "unmapped_fields": dict(unmapped)},
                )
            decoded[_COLLECTION_ATTRS[entity]] = tuple(records)

        return cls(
            **decoded,
            raw={entity: list(raw.get(entity) or []) for entity in SNAPSHOT_ENTITIES},
            mapping_checksum=mapping.checksum,
        )

    def counts(self) -> dict[str, int]:
        return {attr: len(getattr(self, attr)) for attr in _COLLECTION_ATTRS.values()}

    def to_payload(self) -> dict[str, Any]:
        return {"mapping_checksum": self.mapping_checksum, "records": dict(self.raw)}

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_payload(), indent=2, default=str), encoding="utf-8")
        return path


def load_snapshot(path: str | Path, mapping: MappingFile) -> RemoteSnapshot:
    """Read a snapshot written by :meth:`RemoteSnapshot.save` and decode it."""

    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SnapshotLoadError(f"Snapshot file not found at {path}") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotLoadError(f"Snapshot file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping) or not isinstance(payload.get("records"), Mapping):
        raise SnapshotLoadError(f"Snapshot file {path} has no 'records' mapping")

    saved_checksum = payload.get("mapping_checksum")
    if saved_checksum and saved_checksum != mapping.checksum:
        logger.warning(
            "Snapshot %s was captured with a different mapping (checksum %s, current %s)",
            path,
            saved_checksum,
            mapping.checksum,
        )
    return RemoteSnapshot.from_raw(payload["records"], mapping)


def fetch_remote_snapshot(
    pager: QueryPager,
    mapping: MappingFile,
    *,
    cancel_token: CancellationToken | None = None,
) -> RemoteSnapshot:
    """Fetch every remote collection through ``pager`` and decode it."""

    raw: dict[str, list[Mapping[str, Any]]] = {}
    for entity in SNAPSHOT_ENTITIES:
        check_cancelled(cancel_token, f"{entity} fetch")
        spec = mapping.spec_for(entity)
        raw[entity] = pager.fetch_all(spec.query, cancel_token=cancel_token)
    snapshot = RemoteSnapshot.from_raw(raw, mapping)
    logger.info(
        "Fetched remote snapshot: %s",
        ", ".join(f"{name}={count}" for name, count in snapshot.counts().items()),
        extra={"counts": snapshot.counts()},
    )
    return snapshot

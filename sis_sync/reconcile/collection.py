"""
Generic keyed-collection reconciliation.

Every entity type goes through :func:`reconcile_collection`; only the match
key and the comparison differ between them. The algorithm:

1. index remote records by key (later record wins on collision)
2. index local records the same way
3. walk local records in order: no key -> skipped, key in the remote index ->
   compared (Unchanged or Modified), otherwise Added
4. walk remote records: key not in the local index -> Removed
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Literal, Mapping, Sequence, TypeVar, Union

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.errors import DuplicateKeyWarning, MatchKeyError

from .differ import FieldChange
from .keys import MatchKey

logger = logging.getLogger(__name__)

L = TypeVar("L")
R = TypeVar("R")

Side = Literal["local", "remote"]


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing one matched pair, optionally with nested collections."""

    changes: tuple[FieldChange, ...] = ()
    children: Mapping[str, "ReconcileResult"] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes) or any(child.has_changes for child in self.children.values())


Comparer = Callable[[Any, Any], Union[Comparison, Sequence[FieldChange]]]


@dataclass(frozen=True)
class MatchedRecord(Generic[L, R]):
    """A local record paired with its remote counterpart."""

    key: str
    local: L
    remote: R
    changes: tuple[FieldChange, ...] = ()
    children: Mapping[str, "ReconcileResult"] = field(default_factory=dict)


@dataclass(frozen=True)
class KeyCollision:
    side: Side
    key: str
    kept: Any
    replaced: Any


@dataclass(frozen=True)
class SkippedRecord:
    side: Side
    record: Any
    reason: str


@dataclass
class ReconcileResult(Generic[L, R]):
    """Four-way classification of one entity collection."""

    entity: str
    match_field: str
    added: list[L] = field(default_factory=list)
    modified: list[MatchedRecord[L, R]] = field(default_factory=list)
    removed: list[R] = field(default_factory=list)
    unchanged: list[MatchedRecord[L, R]] = field(default_factory=list)
    collisions: list[KeyCollision] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    @property
    def total_local(self) -> int:
        return len(self.added) + len(self.modified) + len(self.unchanged)

    @property
    def total_remote(self) -> int:
        # Local duplicates can pair with the same remote record; count it once.
        matched_remote = {id(item.remote) for item in (*self.modified, *self.unchanged)}
        return len(self.removed) + len(matched_remote)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "removed": len(self.removed),
            "unchanged": len(self.unchanged),
        }


def _as_comparison(outcome: Comparison | Sequence[FieldChange]) -> Comparison:
    if isinstance(outcome, Comparison):
        return outcome
    return Comparison(changes=tuple(outcome))


def _build_index(
    records: Iterable[Any],
    *,
    side: Side,
    match_key: MatchKey,
    result: ReconcileResult,
) -> tuple[dict[str, Any], list[tuple[str, Any]]]:
    index: dict[str, Any] = {}
    keyed: list[tuple[str, Any]] = []
    for record in records:
        try:
            key = match_key.key_for(record, side)
        except MatchKeyError as exc:
            result.skipped.append(SkippedRecord(side=side, record=record, reason=exc.reason))
            logger.debug(
                "Skipping %s %s record without a match key: %s",
                side,
                match_key.entity,
                exc.reason,
                extra={"entity": match_key.entity, "side": side},
            )
            continue
        previous = index.get(key)
        if previous is not None:
            result.collisions.append(KeyCollision(side=side, key=key, kept=record, replaced=previous))
            logger.warning(
                "Duplicate %s key %r on %s side; later record wins",
                match_key.entity,
                key,
                side,
                extra={"entity": match_key.entity, "side": side, "match_key": key},
            )
            warnings.warn(
                f"Duplicate {match_key.entity} key {key!r} on {side} side",
                DuplicateKeyWarning,
                stacklevel=3,
            )
        index[key] = record
        keyed.append((key, record))
    return index, keyed


def reconcile_collection(
    local: Iterable[L],
    remote: Iterable[R],
    *,
    match_key: MatchKey,
    compare: Comparer,
    entity: str | None = None,
    cancel_token: CancellationToken | None = None,
) -> ReconcileResult[L, R]:
    """Classify local and remote records into Added / Modified / Removed / Unchanged."""

    entity_name = entity or match_key.entity
    check_cancelled(cancel_token, f"{entity_name} reconciliation")
    result: ReconcileResult[L, R] = ReconcileResult(entity=entity_name, match_field=match_key.name)

    remote_index, remote_keyed = _build_index(remote, side="remote", match_key=match_key, result=result)
    local_index, local_keyed = _build_index(local, side="local", match_key=match_key, result=result)

    for key, local_record in local_keyed:
        remote_record = remote_index.get(key)
        if remote_record is None:
            result.added.append(local_record)
            continue
        comparison = _as_comparison(compare(local_record, remote_record))
        matched = MatchedRecord(
            key=key,
            local=local_record,
            remote=remote_record,
            changes=comparison.changes,
            children=dict(comparison.children),
        )
        if comparison.has_changes:
            result.modified.append(matched)
        else:
            result.unchanged.append(matched)

    for key, remote_record in remote_keyed:
        # A replaced duplicate is never reported; only the surviving record can be Removed.
        if key not in local_index and remote_index[key] is remote_record:
            result.removed.append(remote_record)

    logger.debug(
        "Reconciled %s: added=%s modified=%s removed=%s unchanged=%s skipped=%s collisions=%s",
        entity_name,
        len(result.added),
        len(result.modified),
        len(result.removed),
        len(result.unchanged),
        len(result.skipped),
        len(result.collisions),
    )
    return result

"""
Contact reconciliation with per-contact email, phone, address and
relationship sub-reconcilers.

Contacts pair on their identifier. Sub-records are scoped by lookup: local
ones by ``contact_identifier``, remote ones by the SIS ``person_id`` of the
paired remote contact, both compared after normalization. Sub-records
that belong to no reconciled contact are reported as skipped. A contact only
counts as unchanged when its core fields and every sub-collection are unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.models import Contact, NormalizedDataSet, RemoteContact, group_by

from .collection import Comparison, ReconcileResult, SkippedRecord, reconcile_collection
from .differ import FieldDiffer
from .fields import ADDRESS_FIELDS, CONTACT_FIELDS, EMAIL_FIELDS, PHONE_FIELDS, RELATIONSHIP_FIELDS
from .keys import MatchKey, address_key, contact_identifier_key, email_key, phone_key, relationship_key
from .normalize import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubCollection:
    """How one kind of contact sub-record is located and compared."""

    label: str
    local_attr: str
    remote_attr: str
    match_key: MatchKey
    differ: FieldDiffer


SUB_COLLECTION_LABELS: tuple[str, ...] = ("Emails", "Phones", "Addresses", "Relationships")


def default_sub_collections(*, student_number_numeric: bool = True) -> tuple[SubCollection, ...]:
    return (
        SubCollection("Emails", "emails", "emails", email_key(), FieldDiffer(EMAIL_FIELDS)),
        SubCollection("Phones", "phones", "phones", phone_key(), FieldDiffer(PHONE_FIELDS)),
        SubCollection("Addresses", "addresses", "addresses", address_key(), FieldDiffer(ADDRESS_FIELDS)),
        SubCollection(
            "Relationships",
            "relationships",
            "relationships",
            relationship_key(numeric=student_number_numeric),
            FieldDiffer(RELATIONSHIP_FIELDS),
        ),
    )


@dataclass
class ContactReconcileResult(ReconcileResult[Contact, RemoteContact]):
    """
    Contact classification plus sub-record results for unpaired contacts.

    Paired contacts carry their sub-results on ``MatchedRecord.children``. New
    and removed contacts keep theirs here, keyed by contact identifier, so the
    report can show every email/phone/address/relationship that goes with them.
    """

    added_children: dict[str, Mapping[str, ReconcileResult]] = field(default_factory=dict)
    removed_children: dict[str, Mapping[str, ReconcileResult]] = field(default_factory=dict)

    def children_for_added(self, contact: Contact) -> Mapping[str, ReconcileResult]:
        return self.added_children.get(normalize(contact.contact_identifier) or "", {})

    def children_for_removed(self, contact: RemoteContact) -> Mapping[str, ReconcileResult]:
        return self.removed_children.get(normalize(contact.contact_identifier) or "", {})


class ContactReconciler:
    """Reconcile local contacts against SIS persons, sub-collections included."""

    def __init__(
        self,
        *,
        match_key: MatchKey | None = None,
        differ: FieldDiffer | None = None,
        sub_collections: Sequence[SubCollection] | None = None,
        student_number_numeric: bool = True,
    ) -> None:
        self.match_key = match_key or contact_identifier_key()
        self.differ = differ or FieldDiffer(CONTACT_FIELDS)
        self.sub_collections = tuple(
            sub_collections or default_sub_collections(student_number_numeric=student_number_numeric)
        )

    def reconcile(
        self,
        local: NormalizedDataSet,
        remote: Any,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ContactReconcileResult:
        """
        ``remote`` is any object exposing ``contacts`` and the sub-record
        collections (``emails``, ``phones``, ``addresses``, ``relationships``),
        normally a :class:`~sis_sync.adapters.powerschool.snapshot.RemoteSnapshot`.
        """

        check_cancelled(cancel_token, "contact reconciliation")
        local_groups = {
            sub.label: group_by(getattr(local, sub.local_attr), "contact_identifier", key=normalize)
            for sub in self.sub_collections
        }
        remote_groups = {
            sub.label: group_by(getattr(remote, sub.remote_attr), "person_id", key=normalize)
            for sub in self.sub_collections
        }

        def _lookup(groups: Mapping[Any, list], reference: Any) -> Sequence[Any]:
            owner = normalize(reference)
            return groups.get(owner, ()) if owner is not None else ()

        def _children(local_contact: Contact | None, remote_contact: RemoteContact | None):
            children: dict[str, ReconcileResult] = {}
            for sub in self.sub_collections:
                local_records = (
                    _lookup(local_groups[sub.label], local_contact.contact_identifier)
                    if local_contact is not None
                    else ()
                )
                remote_records = (
                    _lookup(remote_groups[sub.label], remote_contact.person_id) if remote_contact is not None else ()
                )
                children[sub.label] = reconcile_collection(
                    local_records,
                    remote_records,
                    match_key=sub.match_key,
                    compare=sub.differ.diff,
                    entity=sub.match_key.entity,
                    cancel_token=cancel_token,
                )
            return children

        def compare(local_contact: Contact, remote_contact: RemoteContact) -> Comparison:
            return Comparison(
                changes=self.differ.diff(local_contact, remote_contact),
                children=_children(local_contact, remote_contact),
            )

        generic = reconcile_collection(
            local.contacts,
            remote.contacts,
            match_key=self.match_key,
            compare=compare,
            entity="contact",
            cancel_token=cancel_token,
        )
        result = ContactReconcileResult(
            entity=generic.entity,
            match_field=generic.match_field,
            added=generic.added,
            modified=generic.modified,
            removed=generic.removed,
            unchanged=generic.unchanged,
            collisions=generic.collisions,
            skipped=generic.skipped,
        )
        for contact in result.added:
            result.added_children[self._key(contact, "local")] = _children(contact, None)
        for remote_contact in result.removed:
            result.removed_children[self._key(remote_contact, "remote")] = _children(None, remote_contact)
        paired = result.modified + result.unchanged
        local_owners = {normalize(c.contact_identifier) for c in result.added}
        local_owners.update(normalize(m.local.contact_identifier) for m in paired)
        remote_owners = {normalize(c.person_id) for c in result.removed}
        remote_owners.update(normalize(m.remote.person_id) for m in paired)
        self._record_orphans(result, local_groups, local_owners, "local", "contact_identifier")
        self._record_orphans(result, remote_groups, remote_owners, "remote", "person_id")

        logger.info(
            "Contact reconciliation: new=%s updated=%s removed=%s unchanged=%s",
            len(result.added),
            len(result.modified),
            len(result.removed),
            len(result.unchanged),
            extra={"entity": "contact", "match_field": self.match_key.name, "counts": result.counts()},
        )
        return result

    def _record_orphans(
        self,
        result: ContactReconcileResult,
        groups: Mapping[str, Mapping[Any, list]],
        owners: set,
        side: str,
        reference: str,
    ) -> None:
        """Record sub-records whose reference matches no reconciled contact as skipped."""
        for sub in self.sub_collections:
            for owner, records in groups[sub.label].items():
                if owner is not None and owner in owners:
                    continue
                if owner is None:
                    reason = f"missing {reference}"
                else:
                    reason = f"no reconciled {side} contact for {reference} {owner!r}"
                result.skipped.extend(SkippedRecord(side=side, record=record, reason=reason) for record in records)
                logger.warning(
                    "Skipping %s %s %s record(s): %s",
                    len(records),
                    side,
                    sub.match_key.entity,
                    reason,
                    extra={"entity": sub.match_key.entity, "side": side, "reference": owner},
                )

    def _key(self, record: Any, side: str) -> str:
        # Only called for classified records, which always have a key.
        return self.match_key.key_for(record, side)  # type: ignore[arg-type]


def reconcile_contacts(
    local: NormalizedDataSet,
    remote: Any,
    *,
    student_number_numeric: bool = True,
    cancel_token: CancellationToken | None = None,
) -> ContactReconcileResult:
    reconciler = ContactReconciler(student_number_numeric=student_number_numeric)
    return reconciler.reconcile(local, remote, cancel_token=cancel_token)

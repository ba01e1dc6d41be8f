"""
Reconciliation run orchestration.

A run is read-only: it fetches (or is handed) the remote snapshot, reconciles
students and contacts, and returns a :class:`ChangeReport`. Nothing is written
back to either system.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from sis_sync.adapters.powerschool import RemoteSnapshot, create_query_pager, fetch_remote_snapshot
from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.mapping import MappingFile
from sis_sync.metrics import record_reconciliation
from sis_sync.models import NormalizedDataSet
from sis_sync.reconcile import (
    ChangeReport,
    MatchKey,
    assemble_report,
    reconcile_contacts,
    reconcile_students,
    student_match_key,
)

logger = logging.getLogger(__name__)


def run_reconciliation(
    local: NormalizedDataSet,
    remote: RemoteSnapshot,
    *,
    student_key: MatchKey | None = None,
    student_number_numeric: bool = True,
    cancel_token: CancellationToken | None = None,
) -> ChangeReport:
    """Reconcile a local dataset against an already-fetched remote snapshot."""

    started = time.perf_counter()
    student_key = student_key or student_match_key(numeric=student_number_numeric)

    check_cancelled(cancel_token, "student reconciliation")
    students = reconcile_students(local.students, remote.students, match_key=student_key, cancel_token=cancel_token)
    record_reconciliation("student", students.counts())

    check_cancelled(cancel_token, "contact reconciliation")
    contacts = reconcile_contacts(
        local,
        remote,
        student_number_numeric=student_number_numeric,
        cancel_token=cancel_token,
    )
    record_reconciliation("contact", contacts.counts())

    report = assemble_report(students, contacts)
    logger.info(
        "Reconciliation finished in %.2fs",
        time.perf_counter() - started,
        extra={
            "students": report.student_summary.as_dict(),
            "contacts": report.contact_summary.as_dict(),
            "has_changes": report.has_changes,
        },
    )
    return report


def student_key_from_config(config: Mapping[str, Any], field: str | None = None) -> MatchKey:
    return student_match_key(
        field or config.get("SIS_STUDENT_MATCH_FIELD", "student_number"),
        numeric=bool(config.get("SIS_STUDENT_NUMBER_NUMERIC", True)),
    )


def fetch_snapshot_from_config(
    config: Mapping[str, Any],
    mapping: MappingFile,
    *,
    cancel_token: CancellationToken | None = None,
    **pager_kwargs: Any,
) -> RemoteSnapshot:
    """Build a pager from ``SIS_*`` settings and fetch a full remote snapshot."""

    pager = create_query_pager(config, **pager_kwargs)
    try:
        return fetch_remote_snapshot(pager, mapping, cancel_token=cancel_token)
    finally:
        pager.client.session.close()

"""Student population reconciliation."""

from __future__ import annotations

import logging
from typing import Sequence

from sis_sync.cancellation import CancellationToken
from sis_sync.models import RemoteStudent, Student

from .collection import ReconcileResult, reconcile_collection
from .differ import FieldDiffer
from .fields import STUDENT_FIELDS
from .keys import MatchKey, student_match_key

logger = logging.getLogger(__name__)

STUDENT_DIFFER = FieldDiffer(STUDENT_FIELDS)


def reconcile_students(
    local: Sequence[Student],
    remote: Sequence[RemoteStudent],
    *,
    match_key: MatchKey | None = None,
    differ: FieldDiffer = STUDENT_DIFFER,
    cancel_token: CancellationToken | None = None,
) -> ReconcileResult[Student, RemoteStudent]:
    """Reconcile the full student population using the configured match key."""

    match_key = match_key or student_match_key()
    result = reconcile_collection(
        local,
        remote,
        match_key=match_key,
        compare=differ.diff,
        entity="student",
        cancel_token=cancel_token,
    )
    logger.info(
        "Student reconciliation by %s: new=%s updated=%s removed=%s unchanged=%s",
        match_key.name,
        len(result.added),
        len(result.modified),
        len(result.removed),
        len(result.unchanged),
        extra={"entity": "student", "match_field": match_key.name, "counts": result.counts()},
    )
    return result

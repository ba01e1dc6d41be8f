from __future__ import annotations

import pytest

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.errors import OperationCancelled, SisSyncError
from sis_sync.models import NormalizedDataSet, Student
from sis_sync.adapters.powerschool import RemoteSnapshot
from sis_sync.service import run_reconciliation


def test_token_starts_uncancelled():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled("anything")


def test_cancel_message_includes_stage_and_reason():
    token = CancellationToken()
    token.cancel("operator request")

    with pytest.raises(OperationCancelled) as exc:
        token.raise_if_cancelled("page 2 of students")

    assert str(exc.value) == "Operation cancelled before page 2 of students: operator request"
    assert isinstance(exc.value, SisSyncError)


def test_child_token_follows_parent_but_not_the_reverse():
    parent = CancellationToken()
    child = CancellationToken(parent=parent)
    child.cancel("page 3 failed")

    assert child.cancelled and not parent.cancelled

    sibling = CancellationToken(parent=parent)
    parent.cancel("operator request")

    assert sibling.cancelled
    with pytest.raises(OperationCancelled, match="operator request"):
        sibling.raise_if_cancelled("page 1 of students")


def test_check_cancelled_accepts_none():
    check_cancelled(None, "fetch")


def test_reconciliation_stops_when_cancelled():
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        run_reconciliation(
            NormalizedDataSet(students=(Student(student_number=1),)),
            RemoteSnapshot(),
            cancel_token=token,
        )

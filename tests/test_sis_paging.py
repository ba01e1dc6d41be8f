from __future__ import annotations

import threading
import time

import pytest

from sis_sync.adapters.powerschool import QueryPager
from sis_sync.cancellation import CancellationToken
from sis_sync.errors import FatalFetchError, OperationCancelled, PaginationError


class FakeQueryClient:
    """Answers count and page requests for a single named query."""

    def __init__(self, total, pages, *, on_count=None):
        self.total = total
        self.pages = pages
        self.on_count = on_count
        self.calls = []
        self._lock = threading.Lock()

    def post(self, path, params=None, json=None, cancel_token=None):
        with self._lock:
            self.calls.append((path, dict(params or {})))
        if path.endswith("/count"):
            if self.on_count:
                self.on_count()
            return {"count": self.total}
        return {"record": self.pages.get(params["page"], [])}


def _rows(start, stop):
    return [{"id": n} for n in range(start, stop)]


def test_pages_follow_count():
    client = FakeQueryClient(5, {1: _rows(0, 2), 2: _rows(2, 4), 3: _rows(4, 5)})

    records = QueryPager(client, page_size=2).fetch_all("students")

    assert [r["id"] for r in records] == [0, 1, 2, 3, 4]
    assert client.calls[0] == ("query/students/count", {})
    assert client.calls[1:] == [
        ("query/students", {"page": 1, "pagesize": 2}),
        ("query/students", {"page": 2, "pagesize": 2}),
        ("query/students", {"page": 3, "pagesize": 2}),
    ]


def test_zero_count_makes_no_page_requests():
    client = FakeQueryClient(0, {})

    assert QueryPager(client).fetch_all("students") == []
    assert len(client.calls) == 1


def test_short_page_fails_the_fetch():
    client = FakeQueryClient(250, {1: _rows(0, 100), 2: _rows(100, 200), 3: _rows(200, 240)})

    with pytest.raises(PaginationError, match="page 3 returned 40 records, expected 50"):
        QueryPager(client, page_size=100).fetch_all("students")


def test_short_middle_page_fails_the_fetch():
    client = FakeQueryClient(4, {1: _rows(0, 2), 2: _rows(2, 3)})

    with pytest.raises(PaginationError, match="page 2"):
        QueryPager(client, page_size=2).fetch_all("students")


def test_last_page_past_count_fails_the_fetch():
    client = FakeQueryClient(3, {1: _rows(0, 2), 2: _rows(2, 4)})

    with pytest.raises(PaginationError, match="4 retrieved but only 3 counted"):
        QueryPager(client, page_size=2).fetch_all("students")


def test_oversized_page_fails_before_duplicates_are_kept():
    client = FakeQueryClient(3, {1: _rows(0, 3), 2: _rows(2, 3)})

    with pytest.raises(PaginationError, match="page 1 returned 3 records, more than the page size 2"):
        QueryPager(client, page_size=2).fetch_all("students")

    assert [params for _, params in client.calls[1:]] == [{"page": 1, "pagesize": 2}]


@pytest.mark.parametrize("payload", [{}, {"count": "many"}, {"count": -1}])
def test_invalid_count_rejected(payload):
    class BadCount:
        def post(self, path, **kwargs):
            return payload

    with pytest.raises(PaginationError):
        QueryPager(BadCount()).count("students")


def test_page_without_record_list_rejected():
    class BadPage:
        def post(self, path, **kwargs):
            return {"count": 1} if path.endswith("/count") else {"record": "nope"}

    with pytest.raises(PaginationError, match="record list"):
        QueryPager(BadPage()).fetch_all("students")


def test_concurrent_pages_keep_page_order():
    pages = {n: _rows((n - 1) * 3, n * 3) for n in range(1, 8)}
    client = FakeQueryClient(21, pages)

    records = QueryPager(client, page_size=3, max_workers=4).fetch_all("students")

    assert [r["id"] for r in records] == list(range(21))


def test_concurrent_short_page_fails():
    pages = {1: _rows(0, 3), 2: _rows(3, 4), 3: _rows(6, 9)}
    client = FakeQueryClient(9, pages)

    with pytest.raises(PaginationError):
        QueryPager(client, page_size=3, max_workers=3).fetch_all("students")


def test_failed_page_cancels_the_other_workers():
    second_started = threading.Event()
    observed = []

    class OnePageFails(FakeQueryClient):
        def post(self, path, params=None, json=None, cancel_token=None):
            if path.endswith("/count"):
                return super().post(path, params, json, cancel_token)
            if params["page"] == 1:
                second_started.wait(5)
                raise FatalFetchError("Request failed: 500", uri=path, status_code=500)
            second_started.set()
            deadline = time.monotonic() + 5
            while not cancel_token.cancelled and time.monotonic() < deadline:
                time.sleep(0.01)
            observed.append(cancel_token.cancelled)
            cancel_token.raise_if_cancelled("retry")
            return {"record": _rows(2, 4)}

    caller_token = CancellationToken()

    with pytest.raises(FatalFetchError, match="500"):
        QueryPager(OnePageFails(4, {}), page_size=2, max_workers=2).fetch_all("students", cancel_token=caller_token)

    assert observed == [True]
    assert not caller_token.cancelled


def test_cancellation_stops_before_pages():
    token = CancellationToken()
    client = FakeQueryClient(4, {1: _rows(0, 2), 2: _rows(2, 4)}, on_count=lambda: token.cancel("shutdown"))

    with pytest.raises(OperationCancelled, match="shutdown"):
        QueryPager(client, page_size=2).fetch_all("students", cancel_token=token)

    assert [path for path, _ in client.calls] == ["query/students/count"]


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        QueryPager(FakeQueryClient(0, {}), page_size=0)

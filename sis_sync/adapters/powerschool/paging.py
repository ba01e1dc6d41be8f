"""
Count-then-page retrieval of PowerSchool named queries.

The record count is fetched first and fixes the number of pages; paging stops
once that many records are in hand. A page holding fewer or more records than
expected aborts the fetch with :class:`~sis_sync.errors.PaginationError`, so a
partial or padded record set is never returned.
"""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Mapping

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.errors import PaginationError
from sis_sync.metrics import record_fetch_duration, record_page

from .client import ResilientClient

DEFAULT_PAGE_SIZE = 100


class QueryPager:
    """Fetch every record of a named query, one page per request."""

    def __init__(
        self,
        client: ResilientClient,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_workers: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.client = client
        self.page_size = page_size
        self.max_workers = max(1, int(max_workers))
        self.logger = logger or logging.getLogger(__name__)

    def count(self, query: str, *, cancel_token: CancellationToken | None = None) -> int:
        payload = self.client.post(f"query/{query}/count", json={}, cancel_token=cancel_token)
        raw = payload.get("count") if isinstance(payload, Mapping) else None
        try:
            total = int(raw)
        except (TypeError, ValueError) as exc:
            raise PaginationError(f"Count for query {query} is missing or invalid: {raw!r}") from exc
        if total < 0:
            raise PaginationError(f"Count for query {query} is negative: {total}")
        return total

    def fetch_all(self, query: str, *, cancel_token: CancellationToken | None = None) -> list[Mapping[str, Any]]:
        """Return all records of ``query`` in page order."""

        started = time.perf_counter()
        total = self.count(query, cancel_token=cancel_token)
        page_count = math.ceil(total / self.page_size)
        self.logger.info(
            "Fetching %s records of %s in %s pages",
            total,
            query,
            page_count,
            extra={"query": query, "total": total, "page_size": self.page_size, "pages": page_count},
        )

        records: list[Mapping[str, Any]] = []
        if self.max_workers == 1 or page_count <= 1:
            for number in range(1, page_count + 1):
                if len(records) >= total:
                    break
                page = self._fetch_page(query, number, cancel_token)
                self._check_page(query, number, page, retrieved=len(records), total=total, page_count=page_count)
                records.extend(page)
        else:
            pages = self._fetch_concurrently(query, page_count, cancel_token)
            for number, page in enumerate(pages, start=1):
                self._check_page(query, number, page, retrieved=len(records), total=total, page_count=page_count)
                records.extend(page)

        record_fetch_duration(time.perf_counter() - started)
        return records

    def _check_page(
        self,
        query: str,
        number: int,
        page: list[Mapping[str, Any]],
        *,
        retrieved: int,
        total: int,
        page_count: int,
    ) -> None:
        if len(page) > self.page_size:
            raise PaginationError(
                f"Query {query} page {number} returned {len(page)} records, more than the page size {self.page_size}"
            )
        if retrieved + len(page) > total:
            raise PaginationError(
                f"Query {query} page {number} returned {len(page)} records, "
                f"{retrieved + len(page)} retrieved but only {total} counted"
            )
        expected = self.page_size if number < page_count else total - (page_count - 1) * self.page_size
        if len(page) < expected:
            raise PaginationError(
                f"Query {query} page {number} returned {len(page)} records, expected {expected} "
                f"({retrieved + len(page)} of {total} retrieved)"
            )

    def _fetch_concurrently(
        self,
        query: str,
        page_count: int,
        cancel_token: CancellationToken | None,
    ) -> list[list[Mapping[str, Any]]]:
        results: dict[int, list[Mapping[str, Any]]] = {}
        # Cancelled when one page fails so the others stop retrying.
        page_token = CancellationToken(parent=cancel_token)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="sis-page") as executor:
            futures = {
                executor.submit(self._fetch_page, query, number, page_token): number
                for number in range(1, page_count + 1)
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = sorted((futures[f], f) for f in done if f.exception() is not None)
            if failed:
                number, future = failed[0]
                page_token.cancel(f"page {number} of {query} failed")
                # Queued pages never start; running ones stop at their next attempt.
                for other in pending:
                    other.cancel()
                raise future.exception()
            for future in done:
                results[futures[future]] = future.result()
        return [results[number] for number in range(1, page_count + 1)]

    def _fetch_page(
        self,
        query: str,
        number: int,
        cancel_token: CancellationToken | None,
    ) -> list[Mapping[str, Any]]:
        check_cancelled(cancel_token, f"page {number} of {query}")
        payload = self.client.post(
            f"query/{query}",
            params={"page": number, "pagesize": self.page_size},
            json={},
            cancel_token=cancel_token,
        )
        records = payload.get("record", []) if isinstance(payload, Mapping) else None
        if not isinstance(records, list):
            raise PaginationError(f"Query {query} page {number} did not contain a record list")
        record_page(query)
        self.logger.debug(
            "Fetched page %s of %s (%s records)",
            number,
            query,
            len(records),
            extra={"query": query, "page": number, "records": len(records)},
        )
        return records

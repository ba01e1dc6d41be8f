"""Prometheus metrics helpers for SIS fetches and reconciliation."""

from __future__ import annotations

from typing import Literal, Mapping

from prometheus_client import Counter, Gauge, Histogram

_sync_enabled_gauge = Gauge(
    "sis_sync_enabled",
    "Whether SIS synchronization is enabled (1) or disabled (0).",
)
_request_counter = Counter(
    "sis_sync_requests_total",
    "SIS API request attempts by outcome.",
    ["outcome"],
)
_retry_counter = Counter(
    "sis_sync_retries_total",
    "SIS API retries scheduled, by reason.",
    ["reason"],
)
_page_counter = Counter(
    "sis_sync_pages_total",
    "Pages fetched from SIS named queries.",
    ["query"],
)
_fetch_duration = Histogram(
    "sis_sync_fetch_duration_seconds",
    "Duration of a complete paginated SIS query fetch in seconds.",
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300, 600),
)
_reconcile_counter = Counter(
    "sis_sync_reconciled_records_total",
    "Records classified by reconciliation, by entity and classification.",
    ["entity", "classification"],
)
_unmapped_counter = Counter(
    "sis_sync_mapping_unmapped_total",
    "Unmapped SIS fields encountered while decoding query records.",
    ["entity", "field"],
)


def record_sync_status(enabled: bool) -> None:
    """Set the sync enabled gauge."""

    _sync_enabled_gauge.set(1 if enabled else 0)


def record_request(outcome: Literal["success", "transient", "fatal"]) -> None:
    _request_counter.labels(outcome=outcome).inc()


def record_retry(reason: str) -> None:
    """Increment the retry counter; ``reason`` is a status code or error class name."""

    _retry_counter.labels(reason=reason).inc()


def record_page(query: str) -> None:
    _page_counter.labels(query=query).inc()


def record_fetch_duration(duration_seconds: float) -> None:
    _fetch_duration.observe(duration_seconds)


def record_reconciliation(entity: str, counts: Mapping[str, int]) -> None:
    """Capture classification totals for one reconciled entity."""

    for classification, count in counts.items():
        if count:
            _reconcile_counter.labels(entity=entity, classification=classification).inc(count)


def record_unmapped(entity: str, field: str, count: int = 1) -> None:
    _unmapped_counter.labels(entity=entity, field=field).inc(count)

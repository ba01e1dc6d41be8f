"""PowerSchool adapter readiness checks and client construction."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Tuple

import requests

from sis_sync.mapping import DEFAULT_MAPPING_PATH, MappingLoadError, load_mapping

from .client import DEFAULT_INITIAL_DELAY_SECONDS, DEFAULT_MAX_RETRIES, ResilientClient, parse_retry_after
from .paging import DEFAULT_PAGE_SIZE, QueryPager
from .session import DEFAULT_TIMEOUT_SECONDS, ApiSession, RateLimitGate, static_token
from .snapshot import RemoteSnapshot, SnapshotLoadError, fetch_remote_snapshot, load_snapshot

REQUIRED_SETTINGS: Tuple[str, ...] = ("SIS_BASE_URL", "SIS_ACCESS_TOKEN")


class SisAdapterError(RuntimeError):
    """Base error for SIS adapter readiness issues."""


class SisAdapterConfigError(SisAdapterError):
    """Raised when required settings are missing or the mapping cannot be loaded."""


@dataclass(frozen=True)
class SisAdapterReadiness:
    missing_settings: Tuple[str, ...]
    mapping_path: str
    mapping_error: str | None = None
    mapping_checksum: str | None = None
    notes: Tuple[str, ...] = ()

    @property
    def status(self) -> str:
        if self.missing_settings:
            return "missing-config"
        if self.mapping_error:
            return "mapping-error"
        return "ready"

    def messages(self) -> Tuple[str, ...]:
        messages: list[str] = []
        if self.missing_settings:
            messages.append(f"Missing required SIS settings: {', '.join(self.missing_settings)}")
        if self.mapping_error:
            messages.append(self.mapping_error)
        if self.notes:
            messages.extend(self.notes)
        return tuple(messages)

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "status": self.status,
            "missing_settings": list(self.missing_settings),
            "mapping_path": self.mapping_path,
            "messages": list(self.messages()),
        }
        if self.mapping_checksum:
            payload["mapping_checksum"] = self.mapping_checksum
        if self.mapping_error:
            payload["mapping_error"] = self.mapping_error
        return payload


def check_sis_adapter_readiness(config: Mapping[str, Any]) -> SisAdapterReadiness:
    """
    Perform a non-raising readiness check for the PowerSchool adapter.

    Args:
        config: Application config (or any mapping) holding the ``SIS_*`` settings.

    Returns:
        SisAdapterReadiness describing configuration and mapping status.
    """

    missing = tuple(sorted(key for key in REQUIRED_SETTINGS if not config.get(key)))
    mapping_path = str(config.get("SIS_MAPPING_PATH") or DEFAULT_MAPPING_PATH)
    mapping_error: str | None = None
    checksum: str | None = None
    try:
        checksum = load_mapping(mapping_path).checksum
    except MappingLoadError as exc:
        mapping_error = f"SIS mapping could not be loaded: {exc}"

    notes: Tuple[str, ...] = ()
    if int(config.get("SIS_FETCH_WORKERS") or 1) > 1:
        notes = (
            "Concurrent page fetches enabled; the SIS rate limit applies to all workers.",
        )
    return SisAdapterReadiness(
        missing_settings=missing,
        mapping_path=mapping_path,
        mapping_error=mapping_error,
        mapping_checksum=checksum,
        notes=notes,
    )


def ensure_sis_adapter_ready(config: Mapping[str, Any]) -> SisAdapterReadiness:
    """
    Validate adapter readiness, raising actionable errors when not ready.
    """

    readiness = check_sis_adapter_readiness(config)
    if readiness.missing_settings:
        raise SisAdapterConfigError(
            "SIS adapter configured but missing required settings: "
            + ", ".join(readiness.missing_settings)
            + ". Set these in the environment or .env file."
        )
    if readiness.mapping_error:
        raise SisAdapterConfigError(readiness.mapping_error)
    return readiness


def create_query_pager(
    config: Mapping[str, Any],
    *,
    token_provider: Callable[[], str] | None = None,
    http: requests.Session | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> QueryPager:
    """Build the session, retrying client and pager from ``SIS_*`` settings."""

    if token_provider is None:
        ensure_sis_adapter_ready(config)
        token_provider = static_token(config["SIS_ACCESS_TOKEN"])
    session = ApiSession(
        config.get("SIS_BASE_URL") or "",
        token_provider,
        http=http,
        timeout=float(config.get("SIS_REQUEST_TIMEOUT") or DEFAULT_TIMEOUT_SECONDS),
    )
    client = ResilientClient(
        session,
        max_retries=int(config.get("SIS_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
        initial_delay=float(config.get("SIS_INITIAL_RETRY_DELAY", DEFAULT_INITIAL_DELAY_SECONDS)),
        sleep_fn=sleep_fn,
    )
    return QueryPager(
        client,
        page_size=int(config.get("SIS_PAGE_SIZE") or DEFAULT_PAGE_SIZE),
        max_workers=int(config.get("SIS_FETCH_WORKERS") or 1),
    )


__all__ = [
    "REQUIRED_SETTINGS",
    "ApiSession",
    "QueryPager",
    "RateLimitGate",
    "RemoteSnapshot",
    "ResilientClient",
    "SisAdapterConfigError",
    "SisAdapterError",
    "SisAdapterReadiness",
    "SnapshotLoadError",
    "check_sis_adapter_readiness",
    "create_query_pager",
    "ensure_sis_adapter_ready",
    "fetch_remote_snapshot",
    "load_snapshot",
    "parse_retry_after",
    "static_token",
]

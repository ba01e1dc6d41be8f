"""
Error taxonomy shared by the SIS fetch layer and the reconciliation engine.

Fetch errors are hard failures: a run that raises one never produces a report.
Match-key problems are soft and only ever surface as log diagnostics.
"""

from __future__ import annotations


class SisSyncError(RuntimeError):
    """Base error for SIS sync failures."""


class OperationCancelled(SisSyncError):
    """Raised when a fetch or reconciliation is cancelled before completion."""


# Fetch errors ------------------------------------------------------------------


class RequestError(SisSyncError):
    """Base error for a remote request that did not produce a usable response."""

    def __init__(
        self,
        message: str,
        *,
        uri: str | None = None,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.uri = uri
        self.status_code = status_code
        self.attempts = attempts


class TransientFetchError(RequestError):
    """Retryable failure: HTTP 429, any 5xx, or a network-level error."""

    def __init__(
        self,
        message: str,
        *,
        uri: str | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message, uri=uri, status_code=status_code, attempts=attempts)
        self.retry_after = retry_after


class FatalFetchError(RequestError):
    """Non-retryable failure such as an auth error or a bad request."""


class RetriesExhaustedError(FatalFetchError):
    """Raised when every attempt of a request failed with a retryable error."""

    def __init__(self, last_error: TransientFetchError, *, attempts: int) -> None:
        status = last_error.status_code if last_error.status_code is not None else "no response"
        super().__init__(
            f"Request to {last_error.uri} failed after {attempts} attempts (last status: {status}): {last_error}",
            uri=last_error.uri,
            status_code=last_error.status_code,
            attempts=attempts,
        )
        self.last_error = last_error


class PaginationError(FatalFetchError):
    """Raised when a paginated fetch cannot assemble the full record set."""


# Soft reconciliation diagnostics ----------------------------------------------


class MatchKeyError(ValueError):
    """A record lacks the data needed to compute its match key."""

    def __init__(self, entity: str, reason: str) -> None:
        super().__init__(f"{entity}: {reason}")
        self.entity = entity
        self.reason = reason


class DuplicateKeyWarning(UserWarning):
    """Two records on the same side produced the same match key."""


__all__ = [
    "SisSyncError",
    "OperationCancelled",
    "RequestError",
    "TransientFetchError",
    "FatalFetchError",
    "RetriesExhaustedError",
    "PaginationError",
    "MatchKeyError",
    "DuplicateKeyWarning",
]

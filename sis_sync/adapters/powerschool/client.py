"""
Retrying HTTP client for the PowerSchool API.

HTTP 429, any 5xx, timeouts, connection errors and responses cut off while
the body is read are retried; every other 4xx fails immediately. A
server-supplied ``Retry-After`` wins over the exponential backoff and is
shared with concurrent page fetches through the session's rate-limit gate.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Mapping

import requests

from sis_sync.cancellation import CancellationToken, check_cancelled
from sis_sync.errors import FatalFetchError, RetriesExhaustedError, TransientFetchError
from sis_sync.metrics import record_request, record_retry

from .session import ApiSession

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_SECONDS = 5.0
MIN_RETRY_AFTER_SECONDS = 1.0


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """
    Interpret a ``Retry-After`` header as a delay in seconds.

    Accepts delta-seconds or an HTTP-date. Returns ``None`` when the header is
    absent or unparseable; otherwise the delay is at least one second.
    """

    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        seconds = float(text)
    except ValueError:
        try:
            moment = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return None
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        seconds = (moment - (now or datetime.now(timezone.utc))).total_seconds()
    return max(MIN_RETRY_AFTER_SECONDS, seconds)


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code <= 599


class ResilientClient:
    """Send requests through an :class:`ApiSession`, retrying transient failures."""

    def __init__(
        self,
        session: ApiSession,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY_SECONDS,
        sleep_fn: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.session = session
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.sleep = sleep_fn
        self.logger = logger or logging.getLogger(__name__)

    # Public API -----------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        cancel_token: CancellationToken | None = None,
    ) -> Any:
        """Send one logical request and return its decoded JSON body."""

        uri = self.session.url(path)
        attempts_allowed = self.max_retries + 1
        last_error: TransientFetchError | None = None

        for attempt in range(1, attempts_allowed + 1):
            check_cancelled(cancel_token, f"{method} {uri}")
            self._wait_for_gate()
            try:
                payload = self._send(method, uri, params=params, json=json, attempt=attempt)
            except TransientFetchError as exc:
                record_request("transient")
                last_error = exc
                if attempt == attempts_allowed:
                    break
                self._schedule_retry(exc, attempt=attempt)
                continue
            except FatalFetchError:
                record_request("fatal")
                raise
            record_request("success")
            return payload

        assert last_error is not None
        self.logger.error(
            "SIS request failed after %s attempts: %s %s",
            attempts_allowed,
            method,
            uri,
            extra={"uri": uri, "status_code": last_error.status_code, "attempts": attempts_allowed},
        )
        raise RetriesExhaustedError(last_error, attempts=attempts_allowed)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    # Internal helpers -----------------------------------------------------------

    def _wait_for_gate(self) -> None:
        delay = self.session.gate.remaining()
        if delay > 0:
            self.logger.debug("Waiting %.2fs for SIS rate limit window", delay)
            self.sleep(delay)

    def _schedule_retry(self, error: TransientFetchError, *, attempt: int) -> None:
        reason = str(error.status_code) if error.status_code is not None else type(error.__cause__).__name__
        record_retry(reason)
        if error.retry_after is not None:
            delay = error.retry_after
            # Every worker on this session holds off until the window passes.
            self.session.gate.defer(delay)
        else:
            delay = self.initial_delay * (2 ** (attempt - 1))
        self.logger.warning(
            "SIS request to %s failed (%s); retrying in %.1fs (attempt %s of %s)",
            error.uri,
            reason,
            delay,
            attempt + 1,
            self.max_retries + 1,
            extra={"uri": error.uri, "status_code": error.status_code, "retry_delay": delay, "attempt": attempt},
        )
        if error.retry_after is None:
            self.sleep(delay)

    def _send(
        self,
        method: str,
        uri: str,
        *,
        params: Mapping[str, Any] | None,
        json: Any,
        attempt: int,
    ) -> Any:
        try:
            response = self.session.http.request(
                method,
                uri,
                headers=dict(self.session.headers()),
                params=params,
                json=json,
                timeout=self.session.timeout,
            )
        except requests.Timeout as exc:
            raise TransientFetchError(f"Timed out calling {uri}", uri=uri, attempts=attempt) from exc
        except requests.ConnectionError as exc:
            raise TransientFetchError(f"Connection error calling {uri}: {exc}", uri=uri, attempts=attempt) from exc
        except (requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as exc:
            # The connection dropped or garbled the body after the status line.
            raise TransientFetchError(f"Response from {uri} was cut short: {exc}", uri=uri, attempts=attempt) from exc
        except requests.RequestException as exc:
            raise FatalFetchError(f"Request to {uri} failed: {exc}", uri=uri, attempts=attempt) from exc

        status = response.status_code
        if _is_transient_status(status):
            raise TransientFetchError(
                f"SIS returned HTTP {status}",
                uri=uri,
                status_code=status,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                attempts=attempt,
            )
        if status >= 400:
            body = (response.text or "")[:500]
            self.logger.error(
                "SIS request rejected with HTTP %s",
                status,
                extra={"uri": uri, "status_code": status, "response_body": body},
            )
            raise FatalFetchError(f"SIS returned HTTP {status}: {body}", uri=uri, status_code=status, attempts=attempt)
        if status == 204 or not (response.text or "").strip():
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise FatalFetchError(
                f"SIS returned a non-JSON body for {uri}", uri=uri, status_code=status, attempts=attempt
            ) from exc

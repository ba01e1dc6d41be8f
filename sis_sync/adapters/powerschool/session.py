"""
Authenticated connection to the PowerSchool API.

The bearer token is never stored here: ``token_provider`` is called for every
request so a refreshed token is picked up without rebuilding the session.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Mapping

import requests

DEFAULT_TIMEOUT_SECONDS = 30.0


class RateLimitGate:
    """Shared "not before" instant honoured by every request on one session."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._not_before = 0.0

    def defer(self, seconds: float) -> None:
        """Hold all requests for at least ``seconds`` from now."""

        with self._lock:
            self._not_before = max(self._not_before, self._clock() + seconds)

    def remaining(self) -> float:
        with self._lock:
            return max(0.0, self._not_before - self._clock())


class ApiSession:
    """Base URL, credentials and HTTP transport for one SIS instance."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str],
        *,
        http: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.http = http or requests.Session()
        self.timeout = timeout
        self.gate = RateLimitGate(clock)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self) -> Mapping[str, str]:
        return {
            "Authorization": f"Bearer {self.token_provider()}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "ApiSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def static_token(token: str) -> Callable[[], str]:
    """Token provider for a fixed access token from configuration."""

    def provider() -> str:
        return token

    return provider

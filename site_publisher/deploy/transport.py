"""HTTP transport used by the hosting-platform targets."""

from __future__ import annotations

import json as jsonlib
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from site_publisher import __version__
from site_publisher.deploy.errors import TransportError
from site_publisher.deploy.runtime import CancelToken
from site_publisher.logging_utils import get_logger

logger = get_logger("transport")

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for idempotent reads; mutating requests are never retried."""

    max_retries: int = 2
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 4.0

    def delay(self, attempt: int) -> float:
        """Return the backoff delay before the next attempt."""
        return min(self.base_delay_seconds * (2 ** (attempt - 1)), self.max_delay_seconds)


@dataclass(frozen=True)
class HttpResponse:
    """Status, headers and body of a completed request."""

    status_code: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Return whether the status code is 2xx."""
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body as JSON, returning None for empty or invalid bodies."""
        if not self.text:
            return None
        try:
            return jsonlib.loads(self.text)
        except ValueError:
            return None

    def json_object(self) -> dict[str, Any]:
        """Return the decoded body when it is a JSON object, else an empty dict."""
        body = self.json()
        return body if isinstance(body, dict) else {}


def first_object(items: Any) -> dict[str, Any] | None:
    """Return the first element of a JSON list when it is an object."""
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


class HttpTransport:
    """Thin wrapper around ``httpx.Client`` with deadlines, cancellation and read retries."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self.retry = retry or RetryPolicy()

    @property
    def client(self) -> httpx.Client:
        """Return the underlying client, creating it on first use."""
        if self._client is None:
            self._client = httpx.Client(
                headers={"User-Agent": f"site-publisher/{__version__}"},
                follow_redirects=True,
            )
        return self._client

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: bytes | None = None,
        data: Mapping[str, Any] | None = None,
        files: Any = None,
        cancel: CancelToken | None = None,
    ) -> HttpResponse:
        """Send one request and return the response.

        GET/HEAD/OPTIONS are retried on transport errors and 5xx responses
        according to the retry policy. Raises ``TransportError`` when no
        response could be obtained.
        """
        verb = method.upper()
        attempts = 1 + self.retry.max_retries if verb in _IDEMPOTENT_METHODS else 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                response = self.client.request(
                    verb,
                    url,
                    headers=dict(headers or {}),
                    params=params,
                    json=json,
                    content=content,
                    data=data,
                    files=files,
                    timeout=timeout,
                )
            except httpx.HTTPError as exc:
                last_error = exc
                if attempt >= attempts:
                    break
                logger.warning(
                    "%s %s failed (attempt %s/%s): %s", verb, url, attempt, attempts, exc
                )
                self._sleep(attempt, cancel)
                continue
            if response.status_code >= 500 and attempt < attempts:
                logger.warning(
                    "%s %s returned HTTP %s (attempt %s/%s)",
                    verb,
                    url,
                    response.status_code,
                    attempt,
                    attempts,
                )
                self._sleep(attempt, cancel)
                continue
            return HttpResponse(
                status_code=response.status_code,
                text=response.text,
                headers=dict(response.headers),
            )
        raise TransportError(f"{verb} {url} failed: {last_error}") from last_error

    def get(self, url: str, **kwargs: Any) -> HttpResponse:
        """Send a GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> HttpResponse:
        """Send a POST request (never retried)."""
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        """Close the underlying client if one was created."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _sleep(self, attempt: int, cancel: CancelToken | None) -> None:
        delay = self.retry.delay(attempt)
        if cancel is not None:
            cancel.wait(delay)
            cancel.raise_if_cancelled()
            return
        time.sleep(delay)


def bearer(token: str) -> dict[str, str]:
    """Return an Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}

"""Retrying HTTP GET for registry requests.

Every registry call goes through RetryingFetcher.get, which issues up to
``retry_count + 1`` attempts with a linear back-off between them. Each
attempt has its own wall-clock deadline covering the send and the whole body
read.

Failure classes:
    | Failure                      | Retried | Surfaces as          |
    |------------------------------|---------|----------------------|
    | HTTP 200                     | -       | body returned        |
    | HTTP >= 500                  | yes     | HTTPStatusError      |
    | any other HTTP status        | no      | HTTPStatusError      |
    | attempt timeout              | yes     | RegistryTimeoutError |
    | connection / transport error | config  | NetworkError         |

Retry Timeline (defaults: retry_count=10, backoff_seconds=1):
    - Attempt 1: Immediate
    - Attempt 2: 1s delay
    - Attempt 3: 2s delay
    - ...
    - Attempt 11: 10s delay

Example:
    >>> from newest_image_tag.config import RetryConfig
    >>> with RetryingFetcher(RetryConfig(retry_count=3)) as fetcher:
    ...     body = fetcher.get("https://quay.io/v2/org/app/tags/list")
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import httpx
import structlog

from newest_image_tag.config import RegistryCredentials, RetryConfig
from newest_image_tag.errors import (
    HTTPStatusError,
    NetworkError,
    RegistryError,
    RegistryTimeoutError,
    ResolutionCancelledError,
)

if TYPE_CHECKING:
    from types import TracebackType

logger = structlog.get_logger(__name__)

USER_AGENT = "newest-image-tag"


class RetryingFetcher:
    """GET with bounded attempts, per-attempt timeout and linear back-off.

    Thread Safety:
        One instance is shared by all resolver workers. The underlying
        httpx.Client is safe for concurrent use and nothing else is mutated
        after construction.

    Attributes:
        config: RetryConfig with attempt budget, timeout and back-off.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize RetryingFetcher.

        Args:
            config: Retry configuration. Uses defaults if None.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
        """
        self._config = config or RetryConfig()
        self._client = httpx.Client(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            headers={"User-Agent": USER_AGENT},
            transport=transport,
            follow_redirects=True,
        )

    @property
    def config(self) -> RetryConfig:
        """Return the retry configuration."""
        return self._config

    def calculate_delay(self, attempt: int) -> float:
        """Return the wait before *attempt* (0-indexed); the first attempt never waits."""
        return self._config.backoff_seconds * attempt

    def get(
        self,
        url: str,
        credentials: RegistryCredentials | None = None,
        *,
        headers: dict[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> str:
        """Fetch *url* and return the response body.

        Args:
            url: Absolute URL to GET.
            credentials: Basic-auth credentials, sent only when complete.
            headers: Extra request headers.
            cancel_event: When set during a back-off wait or a body read, stop.

        Returns:
            Response body text of the 200 response.

        Raises:
            HTTPStatusError: Non-200 response (immediately for < 500,
                after the retry budget for >= 500).
            RegistryTimeoutError: Every remaining attempt timed out.
            NetworkError: Transport failure.
            ResolutionCancelledError: cancel_event was set.
        """
        auth = credentials.auth if credentials is not None else None
        max_attempts = self._config.max_attempts
        last_error: RegistryError | None = None

        for attempt in range(max_attempts):
            if attempt > 0:
                delay = self.calculate_delay(attempt)
                logger.debug(
                    "retrying_request",
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    delay_seconds=delay,
                    error=str(last_error),
                )
                self._wait(delay, cancel_event)
            elif cancel_event is not None and cancel_event.is_set():
                raise ResolutionCancelledError()

            try:
                status_code, body = self._attempt(url, auth, headers, cancel_event)
            except RegistryTimeoutError as e:
                last_error = e
                continue
            except httpx.TimeoutException:
                last_error = RegistryTimeoutError(url, self._config.timeout_seconds)
                continue
            except httpx.TransportError as e:
                last_error = NetworkError(url, str(e) or type(e).__name__)
                if not self._config.retry_transport_errors:
                    raise last_error from e
                continue

            if status_code == 200:
                return body

            status_error = HTTPStatusError(url, status_code)
            if not status_error.retryable:
                raise status_error
            last_error = status_error

        logger.warning(
            "retry_exhausted",
            url=url,
            attempts=max_attempts,
            error=str(last_error),
        )
        if last_error is None:
            raise RuntimeError("Retry exhausted without exception")
        raise last_error

    def _attempt(
        self,
        url: str,
        auth: tuple[str, str] | None,
        headers: dict[str, str] | None,
        cancel_event: threading.Event | None,
    ) -> tuple[int, str]:
        """Send one GET and read the body within the attempt deadline.

        httpx timeouts bound each connect and read separately, so a body that
        trickles in could hold the attempt open indefinitely. The deadline
        covers the whole attempt from send to the last byte.

        Returns:
            Status code and body text. The body is only read for 200.

        Raises:
            RegistryTimeoutError: The attempt ran past timeout_seconds.
            ResolutionCancelledError: cancel_event was set mid-read.
        """
        timeout = self._config.timeout_seconds
        deadline = time.monotonic() + timeout
        with self._client.stream("GET", url, auth=auth, headers=headers) as response:
            if response.status_code != 200:
                return response.status_code, ""

            chunks: list[bytes] = []
            for chunk in response.iter_bytes():
                if time.monotonic() > deadline:
                    raise RegistryTimeoutError(url, timeout)
                if cancel_event is not None and cancel_event.is_set():
                    raise ResolutionCancelledError()
                chunks.append(chunk)
            if time.monotonic() > deadline:
                raise RegistryTimeoutError(url, timeout)

            return 200, b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")

    def _wait(self, delay: float, cancel_event: threading.Event | None) -> None:
        """Sleep for *delay* seconds, waking early if the pool is cancelled."""
        if cancel_event is None:
            if delay > 0:
                time.sleep(delay)
            return

        if cancel_event.wait(delay):
            raise ResolutionCancelledError()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> RetryingFetcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["USER_AGENT", "RetryingFetcher"]

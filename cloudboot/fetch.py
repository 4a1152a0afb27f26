"""A small HTTP client with retrying for reading configuration endpoints."""

from __future__ import annotations

import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable

log = logging.getLogger(__name__)


class FetchError(Exception):
    """A resource could not be fetched."""

    def __init__(self, message: str, *, url: str = "", status: int | None = None,
                 retryable: bool = False) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.retryable = retryable


class NotFoundError(FetchError):
    """The server reported that the resource does not exist."""


class RequestTimeoutError(FetchError):
    """The request did not complete in time."""


class HttpClient:
    """Fetches resources over HTTP(S), optionally retrying transient failures."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        max_attempts: int = 5,
        initial_backoff: float = 0.1,
        max_backoff: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep

    def get(self, url: str) -> bytes:
        """Fetch ``url`` once and return the response body."""
        scheme = urllib.parse.urlsplit(url).scheme
        if scheme not in ("http", "https"):
            raise FetchError(f"unsupported protocol scheme {scheme!r}", url=url)
        request = urllib.request.Request(url, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.read()
        except urllib.error.HTTPError as err:
            err.close()
            if err.code == 404:
                raise NotFoundError(f"not found: {url!r}", url=url, status=404) from err
            raise FetchError(
                f"unexpected status {err.code} from {url!r}",
                url=url,
                status=err.code,
                retryable=err.code >= 500,
            ) from err
        except urllib.error.URLError as err:
            if isinstance(err.reason, TimeoutError):
                raise RequestTimeoutError(
                    f"timed out fetching {url!r}", url=url, retryable=True
                ) from err
            raise FetchError(f"failed fetching {url!r}: {err.reason}", url=url,
                             retryable=True) from err
        except TimeoutError as err:
            raise RequestTimeoutError(f"timed out fetching {url!r}", url=url,
                                      retryable=True) from err
        except (OSError, ValueError) as err:
            raise FetchError(f"failed fetching {url!r}: {err}", url=url,
                             retryable=True) from err

    def get_retry(self, url: str) -> bytes:
        """Fetch ``url``, retrying transient failures with exponential backoff."""
        delay = self.initial_backoff
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.get(url)
            except NotFoundError:
                raise
            except FetchError as err:
                if not err.retryable or attempt == self.max_attempts:
                    raise
                log.info("Attempt %d to fetch %s failed: %s; retrying in %.2fs",
                         attempt, url, err, delay)
                self._sleep(delay)
                delay = min(delay * 2, self.max_backoff)
        raise AssertionError("unreachable")
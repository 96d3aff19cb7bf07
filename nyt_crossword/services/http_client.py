"""HTTP client service with cookie authentication and bounded retries."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from http.cookiejar import CookieJar, LoadError, MozillaCookieJar
from pathlib import Path
from typing import Any, TypeVar

import httpx
import structlog

from .. import __version__
from .errors import CookieFileError, DownloadError, FetchError

log = structlog.stdlib.get_logger()

T = TypeVar("T")

USER_AGENT = f"nyt-crossword/{__version__}"
# Upper bound on a server-requested Retry-After wait, in seconds
MAX_RETRY_AFTER = 60.0


def fixed_backoff(delay: float) -> Callable[[int], float]:
    """Backoff function that waits the same delay after every failed attempt."""
    def backoff(attempt: int) -> float:
        return delay
    return backoff


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy for network operations.

    Attributes:
        max_attempts: Total attempts, including the first one
        backoff: Maps the 1-based number of the failed attempt to a delay in seconds
        sleep: Coroutine used to wait between attempts (replace with a fake in tests)
    """
    max_attempts: int = 3
    backoff: Callable[[int], float] = field(default_factory=lambda: fixed_backoff(2.0))
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


def is_retryable(error: Exception) -> bool:
    """Transport failures, timeouts, 429 and 5xx are retried; other 4xx are not."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return isinstance(error, httpx.RequestError)


def load_cookie_jar(path: Path) -> MozillaCookieJar:
    """Load a Netscape-format cookies.txt exported from a browser session.

    Raises:
        CookieFileError: If the file is missing or is not a Netscape cookie file
    """
    if not path.is_file():
        raise CookieFileError(f"cookie file not found: {path}", path=str(path))

    jar = MozillaCookieJar(str(path))
    try:
        jar.load(ignore_discard=True, ignore_expires=True)
    except (LoadError, OSError) as e:
        raise CookieFileError(
            f"cookie file could not be read as Netscape cookies.txt: {path}",
            path=str(path),
            original_error=e,
        ) from e

    log.debug("Cookies loaded", path=str(path), count=len(jar))
    return jar


class HttpClientService:
    """HTTP client service with cookie auth, retry policy and timeout handling."""

    def __init__(
        self,
        cookies: CookieJar | None = None,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            cookies: Session cookies sent with every request
            timeout: Per-attempt request timeout in seconds
            retry_policy: Retry policy for failed requests
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            cookies=cookies,
            follow_redirects=True,
            transport=transport,
        )

        log.debug(
            "HTTP client service initialized",
            timeout=timeout,
            max_attempts=self.retry_policy.max_attempts,
        )

    async def get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """GET a JSON object, retrying per the retry policy.

        Raises:
            FetchError: If every attempt fails, the request is rejected, or the
                body is not a JSON object
        """
        async def attempt() -> httpx.Response:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response

        try:
            response = await self._with_retries(attempt, "GET", url)
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Failed to fetch puzzle list (HTTP {e.response.status_code}). "
                "Check network, cookie freshness, and that you are authenticated.",
                original_error=e,
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                "Failed to fetch puzzle list. Check network, cookie freshness, and that you are authenticated.",
                original_error=e,
                url=url,
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(
                "Puzzle list response is not valid JSON. Your cookies may have expired.",
                original_error=e,
                url=url,
            ) from e

        if not isinstance(data, dict):
            raise FetchError(
                f"Puzzle list response must be a JSON object, got {type(data).__name__}",
                url=url,
            )
        return data

    async def download_file(
        self,
        url: str,
        path: Path,
        chunk_size: int = 8192
    ) -> int:
        """Download a file, retrying per the retry policy.

        Args:
            url: The URL to download from
            path: Local path to save the file
            chunk_size: Size of chunks to read/write in bytes

        Returns:
            Number of bytes written

        Raises:
            DownloadError: If every attempt fails or the file cannot be written
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        async def attempt() -> int:
            downloaded = 0
            try:
                async with self._client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(path, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size):
                            f.write(chunk)
                            downloaded += len(chunk)
            except BaseException:
                # Clean up partial file before the next attempt
                if path.exists():
                    try:
                        path.unlink()
                        log.debug("Cleaned up partial download", path=str(path))
                    except OSError:
                        log.warning("Failed to clean up partial download", path=str(path))
                raise
            return downloaded

        try:
            size = await self._with_retries(attempt, "download", url)
        except httpx.HTTPStatusError as e:
            raise DownloadError(
                "Failed to download PDF. Possible causes: expired cookies, access denied, or URL changed.",
                file_name=path.name,
                url=url,
                status_code=e.response.status_code,
                original_error=e,
            ) from e
        except (httpx.RequestError, OSError) as e:
            raise DownloadError(
                "Failed to download PDF. Check your network connection and free disk space.",
                file_name=path.name,
                url=url,
                original_error=e,
            ) from e

        log.info("File download completed", url=url, path=str(path), size=size)
        return size

    async def _with_retries(
        self,
        action: Callable[[], Awaitable[T]],
        operation: str,
        url: str,
    ) -> T:
        """Run an HTTP action until it succeeds or the retry policy is exhausted."""
        policy = self.retry_policy

        for attempt in range(1, policy.max_attempts + 1):
            try:
                log.debug(
                    "Making HTTP request",
                    operation=operation,
                    url=url,
                    attempt=attempt,
                    max_attempts=policy.max_attempts
                )
                return await action()

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                log.warning(
                    "HTTP request failed",
                    operation=operation,
                    url=url,
                    attempt=attempt,
                    error=str(e),
                    error_type=type(e).__name__
                )

                if not is_retryable(e):
                    log.debug("Error is not retryable", url=url)
                    raise

                if attempt == policy.max_attempts:
                    log.error(
                        "HTTP request failed after all retries",
                        operation=operation,
                        url=url,
                        total_attempts=policy.max_attempts
                    )
                    raise

                delay = policy.backoff(attempt)
                if isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429:
                    retry_after = e.response.headers.get("retry-after")
                    if retry_after:
                        try:
                            delay = max(0.0, min(float(retry_after), MAX_RETRY_AFTER))
                        except ValueError:
                            pass

                log.info("Retrying after delay", operation=operation, delay=delay, next_attempt=attempt + 1)
                await policy.sleep(delay)

        raise RuntimeError("Unexpected end of retry loop")

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

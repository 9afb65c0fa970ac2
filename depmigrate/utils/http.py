"""
HTTP client utilities for depmigrate.

An asynchronous client around :class:`httpx.AsyncClient` with retry and
backoff for transient failures, ``Retry-After`` handling for HTTP 429, and
a semaphore bounding the number of requests in flight.

Client errors (4xx other than 429) are returned to the caller untouched so
that callers can turn e.g. a 404 into a domain error; server errors and
transport failures are retried and finally raised as ``NetworkError``.
"""

from __future__ import annotations

import httpx
import random
import asyncio
from typing import Any, Dict, Mapping, Optional

from depmigrate.utils.logger import get_logger
from depmigrate.__version__ import __version__
from depmigrate.exceptions import NetworkError
from depmigrate.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_CONCURRENT_LIMIT,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with retries and concurrency control.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Retries after the first attempt for transient errors.
        verify_ssl: Whether to verify SSL certificates.
        headers: Extra headers sent with every request.
        max_concurrency: Maximum number of concurrent requests.

    Example:
        >>> async with HTTPClient() as client:
        ...     response = await client.get("https://pub.dev/api/packages/http")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        verify_ssl: bool = True,
        headers: Optional[Mapping[str, str]] = None,
        max_concurrency: int = DEFAULT_CONCURRENT_LIMIT,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.headers: Dict[str, str] = {
            "User-Agent": USER_AGENT_TEMPLATE.format(version=__version__),
        }
        self.headers.update(headers or {})

        self._client: Optional[httpx.AsyncClient] = None
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Initialize the underlying httpx client if needed."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers=self.headers,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        await self._ensure_client()
        assert self._client is not None

        last_exc: Optional[Exception] = None
        retry_429_count = 0
        attempt = 0

        while attempt <= self.max_retries:
            try:
                async with self._semaphore:
                    response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )
            except httpx.TransportError as exc:
                last_exc = exc
                logger.warning(
                    "Network error (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    exc,
                )
            else:
                if response.status_code == 429:
                    retry_429_count += 1
                    if retry_429_count > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=url,
                            status_code=429,
                        )
                    retry_after = _retry_after_seconds(response)
                    logger.warning(
                        "Rate limited (429), retrying after %ds (%d/%d)",
                        retry_after,
                        retry_429_count,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(retry_after)
                    # 429 retries do not consume the transient-error budget
                    continue

                if response.status_code < 500:
                    return response

                last_exc = NetworkError(
                    f"HTTP {response.status_code} error for {url}",
                    url=url,
                    status_code=response.status_code,
                    response_body=response.text,
                )
                logger.warning(
                    "HTTP %d error (%d/%d): %s",
                    response.status_code,
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )

            if attempt < self.max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)
            attempt += 1

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {url}",
            url=url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request with retry logic."""
        return await self._request_with_retry("GET", url, **kwargs)


def _retry_after_seconds(response: httpx.Response) -> int:
    """Parse ``Retry-After`` as whole seconds, defaulting to one."""
    try:
        return max(int(response.headers.get("Retry-After", "1")), 0)
    except ValueError:
        return 1

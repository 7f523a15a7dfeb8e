"""
HTTP document fetcher with retry and exponential backoff.

Every page the pipeline reads (league home, game detail, stats leaders,
player detail) goes through ``HttpFetcher.fetch``. Transient failures
(timeouts, connection errors, 429 and 5xx) are retried; anything else, or
exhausting the retries, raises ``TransportError``.
"""

import httpx
import asyncio
from typing import Dict, Optional
from core.config import settings
from core.exceptions import TransportError
import logging

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class HttpFetcher:
    """
    Fetch documents as decoded text.

    Attributes:
        max_retries: Maximum number of attempts per URL (default: settings.MAX_RETRIES)
        retry_delay: Initial backoff in seconds, doubled each attempt
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        default_headers: Optional[Dict[str, str]] = None
    ):
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.default_headers = default_headers or {
            "User-Agent": settings.USER_AGENT,
            "Accept-Language": settings.ACCEPT_LANGUAGE,
            "Accept": "text/html,application/xhtml+xml",
        }
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """
        Fetch ``url`` and return the response body as text.

        Raises:
            TransportError: non-success status or network failure after retries
        """
        request_headers = dict(self.default_headers)
        if headers:
            request_headers.update(headers)

        client = self._get_client()
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            delay = self.retry_delay * (2 ** attempt)
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{self.max_retries})")
                response = await client.get(url, headers=request_headers, timeout=self.timeout)
            except httpx.TimeoutException as e:
                last_exception = e
                if is_last:
                    raise TransportError(
                        f"Request timeout after {self.max_retries} attempts",
                        context={"url": url, "timeout": self.timeout, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Timeout fetching {url}. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue
            except httpx.HTTPError as e:
                last_exception = e
                if is_last:
                    raise TransportError(
                        f"Network error after {self.max_retries} attempts",
                        context={"url": url, "retry_count": attempt + 1},
                        original_exception=e
                    )
                logger.warning(f"Network error fetching {url}. Retrying in {delay} seconds: {e}")
                await asyncio.sleep(delay)
                continue

            if response.status_code in RETRYABLE_STATUS and not is_last:
                if response.status_code == 429:
                    retry_after = response.headers.get("Retry-After", "")
                    if retry_after.isascii() and retry_after.isdigit():
                        delay = float(retry_after)
                logger.warning(
                    f"HTTP {response.status_code} from {url}. "
                    f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code < 200 or response.status_code >= 300:
                raise TransportError(
                    f"HTTP {response.status_code} for {url}",
                    status_code=response.status_code,
                    context={
                        "url": url,
                        "retry_count": attempt + 1,
                        "response_body": response.text[:500]
                    }
                )

            return response.text

        # Should never reach here, but just in case
        raise TransportError(
            "Max retries exceeded",
            context={"url": url},
            original_exception=last_exception
        )

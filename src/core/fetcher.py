#!/usr/bin/env python3
"""
Async chart page fetcher.

Issues single HTTP GETs with browser-like headers. Failures are returned as
FetchFailure values instead of raised, and nothing is retried here; the
run orchestrator owns the retry policy.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import aiohttp

from core.exceptions import ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)

BROWSER_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'ko-KR,ko;q=0.9,en;q=0.8',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1'
}

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Document:
    """Raw markup returned by a successful fetch."""
    url: str
    status: int
    text: str


@dataclass(frozen=True)
class FetchFailure:
    """Typed fetch failure."""
    url: str
    reason: ErrorKind
    status: Optional[int] = None
    detail: Optional[str] = None

    def describe(self) -> str:
        if self.reason == ErrorKind.HTTP_STATUS:
            return f"HTTP {self.status}"
        return f"{self.reason.value}: {self.detail}"


FetchOutcome = Union[Document, FetchFailure]


class ChartFetcher:
    """
    Async HTTP fetcher shared by all sources in one run.

    Use as an async context manager so the underlying session is opened and
    closed inside the running event loop.
    """

    def __init__(self,
                 timeout: float = 15,
                 user_agent: str = DEFAULT_USER_AGENT,
                 max_body_bytes: int = 5 * 1024 * 1024,
                 session=None):
        """
        Initialize fetcher.

        Args:
            timeout: Total request timeout in seconds
            user_agent: User-Agent header sent with every request
            max_body_bytes: Responses larger than this are rejected
            session: Pre-built session (tests); owned by the caller
        """
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes
        self.headers = dict(BROWSER_HEADERS)
        self.headers['User-Agent'] = user_agent

        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def build_headers(self, overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Merge caller headers over the browser defaults; caller values win."""
        headers = dict(self.headers)
        if overrides:
            headers.update(overrides)
        return headers

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchOutcome:
        """
        Fetch a page.

        Args:
            url: Page URL
            headers: Header overrides for this request

        Returns:
            Document on a 2xx response, FetchFailure otherwise
        """
        if self._session is None:
            raise RuntimeError("ChartFetcher must be used as async context manager")

        try:
            logger.debug(f"Fetching {url}")
            async with self._session.get(url, headers=self.build_headers(headers)) as response:
                if not 200 <= response.status < 300:
                    logger.error(f"HTTP Error: {response.status} for {url}")
                    return FetchFailure(url=url, reason=ErrorKind.HTTP_STATUS, status=response.status)

                body = bytearray()
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    body.extend(chunk)
                    if len(body) > self.max_body_bytes:
                        logger.error(f"Response from {url} exceeds {self.max_body_bytes} bytes")
                        return FetchFailure(
                            url=url,
                            reason=ErrorKind.TOO_LARGE,
                            status=response.status,
                            detail=f"body larger than {self.max_body_bytes} bytes"
                        )

                try:
                    text = bytes(body).decode(response.charset or 'utf-8', errors='replace')
                except LookupError:
                    text = bytes(body).decode('utf-8', errors='replace')
                logger.debug(f"Fetched {url} ({len(text)} chars)")
                return Document(url=url, status=response.status, text=text)

        except asyncio.TimeoutError:
            logger.error(f"Timeout fetching {url}")
            return FetchFailure(url=url, reason=ErrorKind.TRANSPORT, detail=f"timed out after {self.timeout}s")
        except (aiohttp.ClientError, OSError) as e:
            logger.error(f"Request failed for {url}: {e}")
            return FetchFailure(url=url, reason=ErrorKind.TRANSPORT, detail=str(e) or e.__class__.__name__)

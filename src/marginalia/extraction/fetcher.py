"""HTTP fetcher for source pages."""

import asyncio
import logging

import httpx
from bs4 import UnicodeDammit

from ..config import Settings
from .base import FetchedPage, FetchFailed

logger = logging.getLogger(__name__)


class Fetcher:
    """Retrieves raw page text over HTTP.

    Failures are raised immediately as FetchFailed; nothing is retried.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    def get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.fetch_timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.9",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch a URL and return its decoded body.

        The whole request, body included, runs under one ``fetch_timeout``
        deadline, and the body is read no further than ``max_content_bytes``.

        Raises:
            FetchFailed: On transport errors, timeouts, non-2xx status or an
                oversized body.
        """
        try:
            return await asyncio.wait_for(self._fetch(url), timeout=self.settings.fetch_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"[FETCH] Timed out fetching {url}")
            raise FetchFailed(
                f"Request timed out after {self.settings.fetch_timeout}s"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[FETCH] Request to {url} failed: {e}")
            raise FetchFailed(f"Could not fetch the page: {type(e).__name__}") from e

    async def _fetch(self, url: str) -> FetchedPage:
        client = self.get_client()
        max_bytes = self.settings.max_content_bytes

        async with client.stream("GET", url) as response:
            if not response.is_success:
                logger.warning(f"[FETCH] {url} returned HTTP {response.status_code}")
                raise FetchFailed(
                    f"Could not fetch the page: HTTP {response.status_code}",
                    status_code=response.status_code,
                )

            too_large = FetchFailed(
                f"Page too large (limit {max_bytes} bytes)",
                status_code=response.status_code,
            )
            content_length = response.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                raise too_large

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise too_large

            content = bytes(body)
            text = decode_body(content, response.charset_encoding)

        logger.debug(f"[FETCH] {url} -> {response.status_code} ({len(content)} bytes)")
        return FetchedPage(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            text=text,
            content=content,
        )


def decode_body(content: bytes, charset: str | None = None) -> str:
    """Decode an HTML body.

    A charset from the Content-Type header wins. Without one, the document's
    own ``<meta charset>`` (or a BOM) is honoured before falling back to
    UTF-8 and windows-1252.
    """
    if charset:
        try:
            return content.decode(charset, errors="replace")
        except LookupError:
            logger.debug(f"[FETCH] Unknown charset {charset!r}, sniffing the body")
    dammit = UnicodeDammit(content, is_html=True, user_encodings=["utf-8", "windows-1252"])
    if dammit.unicode_markup is None:
        return content.decode("utf-8", errors="replace")
    return dammit.unicode_markup

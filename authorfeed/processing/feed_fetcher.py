"""
Author Feed Fetcher
===================

Retrieves the raw feed document for one author over HTTP. Transport-level
success or failure only: no retries, no parsing.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from typing import Optional

import aiohttp
import certifi

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, ErrorCode
from ..utils.validators import UsernameValidator, FeedUrlTemplateValidator


class FeedFetcher:
    """Fetches an author's feed document."""

    def __init__(
        self,
        url_template: Optional[str] = None,
        timeout: Optional[int] = None,
        user_agent: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize feed fetcher.

        Args:
            url_template: Feed URL template containing ``{username}`` (default from config)
            timeout: Request timeout in seconds (default from config)
            user_agent: User-Agent header (default from config)
            session: Caller-owned session; when given it is used as-is and never closed
        """
        if url_template is None or timeout is None or user_agent is None:
            feed_settings = get_settings().feed
            url_template = url_template or feed_settings.url_template
            timeout = timeout or feed_settings.request_timeout
            user_agent = user_agent or feed_settings.user_agent

        self.url_template = FeedUrlTemplateValidator.validate_template(url_template)
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    def build_feed_url(self, username: str) -> str:
        """Build the feed URL for an author.

        Raises:
            ValidationError: If the username cannot be used in a URL
        """
        username = UsernameValidator.validate_username(username)
        return self.url_template.replace(FeedUrlTemplateValidator.PLACEHOLDER, username)

    @asynccontextmanager
    async def get_session(self):
        """Yield the injected session or a short-lived configured one."""
        if self.session is not None:
            yield self.session
            return

        connector = aiohttp.TCPConnector(ssl=self.ssl_context)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch(self, username: str, deadline: Optional[float] = None) -> bytes:
        """Fetch the raw feed bytes for an author.

        Args:
            username: Author identifier
            deadline: Optional overall limit in seconds, on top of the transport timeout

        Returns:
            Response body as bytes

        Raises:
            ValidationError: If the username is invalid
            FetchError: On transport errors, timeouts or a non-2xx status
        """
        feed_url = self.build_feed_url(username)

        if deadline is None:
            return await self._fetch_url(feed_url)

        try:
            return await asyncio.wait_for(self._fetch_url(feed_url), timeout=deadline)
        except asyncio.TimeoutError as e:
            self.logger.warning(f"Feed fetch exceeded deadline of {deadline}s: {feed_url}")
            raise FetchError(
                f"Failed to fetch feed: deadline of {deadline}s exceeded",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e

    async def _fetch_url(self, feed_url: str) -> bytes:
        self.logger.debug(f"Fetching feed: {feed_url}")

        try:
            async with self.get_session() as session:
                async with session.get(feed_url) as response:
                    if not 200 <= response.status < 300:
                        self.logger.warning(
                            f"Feed fetch failed for {feed_url}: HTTP {response.status} {response.reason}"
                        )
                        raise FetchError(
                            f"Failed to fetch feed: HTTP {response.status} {response.reason}",
                            feed_url=feed_url,
                            status=response.status,
                            error_code=_status_error_code(response.status),
                        )

                    body = await response.read()

        except asyncio.TimeoutError as e:
            self.logger.warning(f"Feed fetch timeout for {feed_url} after {self.timeout}s")
            raise FetchError(
                f"Failed to fetch feed: request timeout after {self.timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e

        except aiohttp.ClientError as e:
            self.logger.warning(f"Feed fetch failed for {feed_url}: {e}")
            raise FetchError(
                f"Failed to fetch feed: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        self.logger.info(f"Fetched {len(body)} bytes from {feed_url}")
        return body


def _status_error_code(status: int) -> ErrorCode:
    if status == 404:
        return ErrorCode.FEED_NOT_FOUND
    if status in (401, 403):
        return ErrorCode.FEED_ACCESS_DENIED
    return ErrorCode.FEED_BAD_STATUS

"""
KKEX Connector - HTTP Transport.

Issues one request and returns the decoded JSON body. No retries:
failures surface as TransportError.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from .exceptions import RateLimitError, TransportError
from .logging_utils import mask_body, mask_headers, mask_url


logger = logging.getLogger(__name__)


class HttpTransport:
    """aiohttp-backed transport: request(url, method, headers, body) -> JSON."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "kkex-connector/1.0",
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._user_agent = user_agent

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "Accept": "application/json",
                    "User-Agent": self._user_agent,
                },
            )
            self._owns_session = True
        return self._session

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> Any:
        """Make HTTP request with error handling."""
        session = await self._get_session()
        logger.debug(
            f"[kkex] {method} {mask_url(url)} headers={mask_headers(headers)} body={mask_body(body)}"
        )

        start_time = time.time()
        try:
            async with session.request(method, url, headers=headers, data=body) as response:
                latency_ms = (time.time() - start_time) * 1000

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        request_url=mask_url(url),
                    )

                if response.status >= 400:
                    text = await response.text()
                    raise TransportError(
                        message=f"HTTP {response.status}",
                        status_code=response.status,
                        response_body=text[:1000],
                        request_url=mask_url(url),
                    )

                data = await response.json(content_type=None)
                logger.debug(f"[kkex] Request completed in {latency_ms:.1f}ms")
                return data

        except aiohttp.ClientError as e:
            raise TransportError(
                message=f"Connection error: {e}",
                request_url=mask_url(url),
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                message="Request timeout",
                request_url=mask_url(url),
                original_error=e,
            )
        except ValueError as e:
            raise TransportError(
                message=f"Response is not valid JSON: {e}",
                request_url=mask_url(url),
                original_error=e,
            )

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

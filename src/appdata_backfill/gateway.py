"""
IPFS gateway HTTP client.

Gateway behavior when a CID cannot be found is inconsistent:

- The public ipfs.io gateway responds "504 Gateway Timeout" after 2 minutes.
- The public cloudflare gateway responds "524" after 20 seconds.
- A private Pinata gateway responds "404 Not Found" after 2 minutes.

IpfsGateway therefore treats every status except "200 OK" as an error and is
meant to be used with a short timeout.
"""

import asyncio
import logging
import time
from typing import Optional
from urllib.parse import quote

import aiohttp

from core.errors import ConfigurationError, ErrorCategory, GatewayError
from core.logging import LoggedClass
from core.security import validate_gateway_url

DEFAULT_TIMEOUT_SECONDS = 4.0
DEFAULT_MAX_CONNECTIONS = 32

# Longest body excerpt kept on a GatewayError
MAX_ERROR_BODY_CHARS = 200


class IpfsGateway(LoggedClass):
    """
    Async client that fetches raw content from an IPFS HTTP gateway.

    Usage:
        async with IpfsGateway("https://ipfs.io") as gateway:
            content = await gateway.fetch("bafybei...")

        # Private gateway with token passed as query string
        gateway = IpfsGateway(url, query="pinataGatewayToken=...")

    Configuration:
        base_url: Gateway base URL; "/ipfs/{cid}" is appended
        query: Optional raw query string added to every request
        timeout_seconds: Total request timeout (default: 4)
        max_connections: Connection pool size (default: 32)
    """

    log_component = "ipfs"

    def __init__(
        self,
        base_url: str,
        query: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        is_valid, error = validate_gateway_url(base_url)
        if not is_valid:
            raise ConfigurationError(f"Invalid gateway URL {base_url!r}: {error}")

        self.base_url = base_url.rstrip("/")
        self.query = query or None
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections

        self._session = session
        self._owns_session = session is None

        super().__init__()

    async def __aenter__(self) -> "IpfsGateway":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create aiohttp session if not exists."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections,
            )
            self._session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def prepare_url(self, cid: str) -> str:
        """Build the gateway URL for a CID, including the configured query."""
        url = f"{self.base_url}/ipfs/{quote(cid, safe='')}"
        if self.query:
            url = f"{url}?{self.query}"
        return url

    async def fetch(self, cid: str) -> bytes:
        """
        Fetch the content stored under a CID.

        Args:
            cid: Content identifier

        Returns:
            Raw response body

        Raises:
            GatewayError: On any non-200 status, timeout or transport failure
        """
        session = await self._ensure_session()
        url = self.prepare_url(cid)
        start = time.perf_counter()

        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                status = response.status
                body = await response.read()
        except asyncio.TimeoutError as e:
            raise GatewayError(
                f"timeout after {self.timeout_seconds}s",
                cause=e,
                category=ErrorCategory.TRANSIENT,
            ) from e
        except aiohttp.ClientError as e:
            raise GatewayError("send", cause=e) from e

        duration_ms = int((time.perf_counter() - start) * 1000)

        if status != 200:
            body_text = body.decode("utf-8", errors="replace")
            excerpt = body_text[:MAX_ERROR_BODY_CHARS]
            error = GatewayError(
                f"status {status}, body {excerpt!r}",
                status_code=status,
                body=excerpt,
            )
            self._log(
                logging.DEBUG,
                "Gateway returned non-200 status",
                cid=cid,
                http_status=status,
                error_category=error.category.value,
                duration_ms=duration_ms,
            )
            raise error

        self._log(
            logging.DEBUG,
            "Fetched content from gateway",
            cid=cid,
            http_status=status,
            bytes_fetched=len(body),
            duration_ms=duration_ms,
        )
        return body

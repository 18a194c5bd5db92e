"""Asynchronous HTTP client for the Google Cloud REST APIs.

This module provides GcpClient, a thin wrapper over httpx.AsyncClient that
attaches bearer tokens, retries transient failures with capped exponential
backoff and turns responses into parsed JSON or typed errors.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx

from tgcp.gcp.auth import TokenSource
from tgcp.gcp.client.core import (
    ClientConfig,
    calculate_backoff,
    parse_response,
    should_retry,
)
from tgcp.gcp.client.errors import ConnectionError, TimeoutError
from tgcp.gcp.operations import OperationStatus, parse_operation_status
from tgcp.logging import get_logger

logger = get_logger(__name__)


class GcpClient:
    """Asynchronous HTTP client for GCP APIs.

    Usage:
        async with GcpClient(credentials) as client:
            instances = await client.get(url)

    Attributes:
        config: Immutable client configuration
    """

    def __init__(
        self,
        credentials: TokenSource,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Source of bearer tokens
            config: Retry/timeout configuration, defaults to ClientConfig()
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Coroutine used between retries
        """
        self.credentials = credentials
        self.config = config or ClientConfig()
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GcpClient":
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the underlying httpx.AsyncClient if needed."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers={"User-Agent": self.config.user_agent},
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(
        self,
        method: str,
        url: str,
        json: Any,
        params: Optional[Any],
        token: str,
    ) -> httpx.Response:
        assert self._client is not None
        return await self._client.request(
            method=method,
            url=url,
            json=json,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def _make_request(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[Any] = None,
    ) -> Any:
        """Make HTTP request with retry handling.

        Args:
            method: HTTP method (GET, POST, DELETE)
            url: Absolute API URL
            json: JSON request body
            params: Query parameters (mapping or list of pairs)

        Returns:
            Parsed JSON response, or NO_CONTENT for an empty 2xx body

        Raises:
            ConnectionError: Cannot connect after all retries
            TimeoutError: Request timed out after all retries
            APIError: Server returned an error response
            ResponseParseError: 2xx body is not JSON
        """
        await self.open()

        retries = self.config.max_retries
        attempt = 0
        token = await self.credentials.get_token()
        refreshed = False

        while True:
            logger.debug(f"{method} {url} (attempt {attempt + 1})")
            try:
                response = await self._send(method, url, json, params, token)
            except httpx.ConnectError as e:
                if attempt < retries:
                    await self._backoff(attempt, f"connect error: {e}")
                    attempt += 1
                    continue
                raise ConnectionError(
                    message="Could not connect to the Google Cloud API",
                    details={"url": url, "error": str(e)},
                ) from e
            except httpx.TimeoutException as e:
                if attempt < retries:
                    await self._backoff(attempt, "timeout")
                    attempt += 1
                    continue
                raise TimeoutError(
                    message=f"Request timed out after {self.config.timeout}s",
                    details={"url": url, "timeout": self.config.timeout},
                ) from e

            if response.status_code == 401 and not refreshed:
                # Token may have been revoked or expired early; one refresh, one replay
                logger.info("Received 401, refreshing access token")
                token = await self.credentials.refresh_token()
                refreshed = True
                continue

            if should_retry(response.status_code, attempt, retries):
                await self._backoff(attempt, f"status {response.status_code}")
                attempt += 1
                continue

            return parse_response(response)

    async def _backoff(self, attempt: int, reason: str) -> None:
        delay = calculate_backoff(
            attempt, self.config.base_delay, self.config.max_delay
        )
        logger.warning(f"Retrying in {delay:.2f}s after {reason}")
        await self._sleep(delay)

    async def get(self, url: str, params: Optional[Any] = None) -> Any:
        """Make GET request.

        Args:
            url: Absolute API URL
            params: Query parameters

        Returns:
            Parsed JSON response
        """
        return await self._make_request("GET", url, params=params)

    async def post(self, url: str, body: Any = None) -> Any:
        """Make POST request.

        Args:
            url: Absolute API URL
            body: Optional JSON body

        Returns:
            Parsed JSON response, or NO_CONTENT
        """
        return await self._make_request("POST", url, json=body)

    async def delete(self, url: str) -> Any:
        """Make DELETE request.

        Args:
            url: Absolute API URL

        Returns:
            Parsed JSON response, or NO_CONTENT
        """
        return await self._make_request("DELETE", url)

    async def poll_operation(self, operation_url: str) -> OperationStatus:
        """Fetch an operation and classify its status.

        Args:
            operation_url: selfLink of a long-running operation

        Returns:
            The operation's current status
        """
        response = await self.get(operation_url)
        return parse_operation_status(response)

"""
Failover Transport - JSON-RPC over HTTP with endpoint rotation.

One logical call makes a single pass over the endpoint pool, starting at
the pool's rotation pointer and wrapping around once. The first endpoint
that answers wins and becomes the new rotation start.
"""

import asyncio
import itertools
from typing import Any

import aiohttp
from loguru import logger

from app.config.constants import JSONRPC_VERSION, RPC_TIMEOUT
from app.utils.exceptions import AllEndpointsFailedError, EndpointError
from app.utils.security import mask_url

from .endpoint_pool import EndpointPool


class FailoverTransport:
    """
    Execute JSON-RPC requests with automatic endpoint failover.

    Features:
    - Rotation from the last successful endpoint
    - Hard per-attempt timeout, no overall deadline
    - Each endpoint tried at most once per call
    - Per-endpoint error collection for diagnostics

    Usage:
        pool = EndpointPool(["https://rpc-a", "https://rpc-b"])
        transport = FailoverTransport(pool, timeout=10.0)

        block_hex = await transport.execute("eth_blockNumber", [])
    """

    def __init__(
        self,
        pool: EndpointPool,
        timeout: float = RPC_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize failover transport.

        Args:
            pool: Endpoint pool to rotate over
            timeout: Per-attempt timeout in seconds
            session: Optional shared aiohttp session (created lazily otherwise)
        """
        self.pool = pool
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

        # Track failover statistics
        self._success_count = 0
        self._failure_count = 0
        self._failover_count = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def execute(self, method: str, params: list | None = None) -> Any:
        """
        Execute one logical RPC call with failover.

        Args:
            method: JSON-RPC method name
            params: JSON-RPC params

        Returns:
            The `result` member of the first successful response

        Raises:
            AllEndpointsFailedError: If every endpoint failed
        """
        endpoints = self.pool.list()
        start = self.pool.start_index()
        errors: list[EndpointError] = []

        for attempt in range(len(endpoints)):
            idx = (start + attempt) % len(endpoints)
            url = endpoints[idx]

            try:
                result = await self._send(url, method, params or [])
            except EndpointError as e:
                errors.append(e)
                self._failure_count += 1
                logger.warning(
                    f"[{method}] RPC request failed for {mask_url(url)}: {e.message}"
                )
                continue

            self.pool.record_success(idx)
            self._success_count += 1
            if attempt > 0:
                self._failover_count += 1
                logger.info(
                    f"[{method}] Failed over to {mask_url(url)} after {attempt} failed attempts"
                )
            return result

        error = AllEndpointsFailedError(method, errors)
        logger.error(str(error))
        raise error from error.last_error

    async def _send(self, url: str, method: str, params: list) -> Any:
        """
        Issue a single JSON-RPC request to one endpoint.

        Args:
            url: Endpoint URL
            method: JSON-RPC method name
            params: JSON-RPC params

        Returns:
            Response `result` member

        Raises:
            EndpointError: On any transport or protocol failure
        """
        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            session = await self._get_session()
            async with session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            ) as response:
                if not 200 <= response.status < 300:
                    raise EndpointError(url, f"HTTP error! Status: {response.status}")
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise EndpointError(url, f"Invalid JSON response: {e}") from e
        except asyncio.TimeoutError as e:
            raise EndpointError(url, f"Timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise EndpointError(url, f"{type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise EndpointError(url, "Malformed JSON-RPC response")

        if data.get("error"):
            rpc_error = data["error"]
            message = rpc_error.get("message") if isinstance(rpc_error, dict) else None
            raise EndpointError(url, message or "RPC error")

        return data.get("result")

    def get_stats(self) -> dict[str, Any]:
        """
        Get failover execution statistics.

        Returns:
            Dict with endpoint count, current endpoint and counters
        """
        return {
            "endpoints_count": len(self.pool),
            "current_endpoint": mask_url(self.pool.current()),
            "success_count": self._success_count,
            "failure_count": self._failure_count,
            "failover_count": self._failover_count,
        }

    async def close(self) -> None:
        """Close the owned HTTP session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            logger.debug("FailoverTransport session closed")

"""
Attestation client.

Polls the guardian network's public API for the signed VAA of a
published bridge message. Only fetches the attestation; producing or
verifying signatures is left to the guardians and the destination contract.
"""

import asyncio
import base64

import aiohttp
from loguru import logger

from app.config.constants import (
    BRIDGE_ATTESTATION_POLL_INTERVAL,
    BRIDGE_ATTESTATION_TIMEOUT,
    BRIDGE_HTTP_TIMEOUT,
)
from app.utils.exceptions import AttestationTimeoutError


def emitter_address(contract_address: str) -> str:
    """
    Left-pad a 20-byte contract address to the 32-byte emitter form.

    Args:
        contract_address: 0x-prefixed EVM address

    Returns:
        64 lowercase hex characters without 0x
    """
    return contract_address.lower().removeprefix("0x").rjust(64, "0")


class AttestationClient:
    """Fetch signed VAAs from the attestation API."""

    def __init__(
        self,
        api_url: str,
        timeout: float = BRIDGE_ATTESTATION_TIMEOUT,
        poll_interval: float = BRIDGE_ATTESTATION_POLL_INTERVAL,
    ) -> None:
        """
        Initialize attestation client.

        Args:
            api_url: Attestation API base URL
            timeout: Overall wait for the attestation in seconds
            poll_interval: Seconds between polls
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def get_signed_vaa(self, chain: int, emitter: str, sequence: int) -> bytes | None:
        """
        Fetch the signed VAA once.

        Args:
            chain: Emitter chain (bridge chain id)
            emitter: 32-byte emitter address (hex, no 0x)
            sequence: Message sequence

        Returns:
            VAA bytes, or None if not signed yet / temporarily unavailable
        """
        url = f"{self.api_url}/v1/signed_vaa/{chain}/{emitter}/{sequence}"
        try:
            session = await self._get_session()
            async with session.get(
                url, timeout=aiohttp.ClientTimeout(total=BRIDGE_HTTP_TIMEOUT)
            ) as response:
                if response.status == 404:
                    return None
                if response.status != 200:
                    logger.warning(f"Attestation API error: HTTP {response.status}")
                    return None
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Attestation request failed: {e}")
            return None

        vaa = data.get("vaaBytes") if isinstance(data, dict) else None
        if not vaa:
            return None
        return base64.b64decode(vaa)

    async def wait_for_vaa(self, chain: int, emitter: str, sequence: int) -> bytes:
        """
        Poll until the VAA is signed.

        Raises:
            AttestationTimeoutError: If not available within the timeout
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        logger.info(f"Getting attestation for {chain}/{emitter[-8:]}/{sequence}")
        while True:
            vaa = await self.get_signed_vaa(chain, emitter, sequence)
            if vaa:
                logger.success(f"Got attestation for sequence {sequence} ({len(vaa)} bytes)")
                return vaa

            if loop.time() >= deadline:
                raise AttestationTimeoutError(
                    f"Attestation for sequence {sequence} not available after {self.timeout}s"
                )
            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

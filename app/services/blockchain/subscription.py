"""
New block subscription over WebSocket.

Uses the standard subscribe/notify envelope:
- eth_subscribe("newHeads") answers with a subscription id
- eth_subscription pushes carry that id plus the block header
"""

import asyncio
import itertools
import json
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, AsyncIterator

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed

from app.config.constants import (
    JSONRPC_VERSION,
    MONITOR_SUBSCRIBE_TIMEOUT,
    MONITOR_WS_PING_INTERVAL,
    MONITOR_WS_PING_TIMEOUT,
)
from app.utils.exceptions import ConfigurationError, SubscriptionError
from app.utils.security import mask_url


@dataclass(frozen=True)
class HeadNotification:
    """A pushed new-block header."""

    subscription_id: str
    block_number: int | None = None
    block_hash: str | None = None


def parse_notification(message: Any) -> HeadNotification | None:
    """
    Extract a head notification from a decoded frame.

    Frames of the wrong shape are not notifications. A header whose block
    number cannot be read still yields a notification without one.

    Args:
        message: Decoded JSON frame

    Returns:
        HeadNotification, or None if the frame is not a subscription push
    """
    if not isinstance(message, dict) or message.get("method") != "eth_subscription":
        return None

    params = message.get("params")
    if not isinstance(params, dict):
        return None

    subscription_id = params.get("subscription")
    if not subscription_id or not isinstance(subscription_id, str):
        return None

    header = params.get("result")
    if not isinstance(header, dict):
        header = {}

    block_hash = header.get("hash")
    return HeadNotification(
        subscription_id=subscription_id,
        block_number=_parse_block_number(header.get("number")),
        block_hash=block_hash if isinstance(block_hash, str) else None,
    )


def _parse_block_number(number: Any) -> int | None:
    if isinstance(number, int) and not isinstance(number, bool):
        return number
    if isinstance(number, str):
        try:
            return int(number, 16)
        except ValueError:
            return None
    return None


class NewHeadsSubscription:
    """
    One WebSocket connection carrying one newHeads subscription.

    Usage:
        async with NewHeadsSubscription(url) as sub:
            sub_id = await sub.subscribe()
            async for head in sub:
                ...

    Iteration ends when the connection closes, which callers treat as
    a disconnect.
    """

    SUBSCRIBE_REQUEST_ID = 1

    def __init__(
        self,
        url: str,
        ping_interval: float = MONITOR_WS_PING_INTERVAL,
        ping_timeout: float = MONITOR_WS_PING_TIMEOUT,
        subscribe_timeout: float = MONITOR_SUBSCRIBE_TIMEOUT,
    ) -> None:
        self.url = url
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.subscribe_timeout = subscribe_timeout
        self.subscription_id: str | None = None
        self._ws: Any = None
        self._ids = itertools.count(self.SUBSCRIBE_REQUEST_ID + 1)

    async def __aenter__(self) -> "NewHeadsSubscription":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the WebSocket connection."""
        self._ws = await websockets.connect(
            self.url,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
        )
        logger.info(f"WebSocket connected to {mask_url(self.url)}")

    async def subscribe(self) -> str:
        """
        Subscribe to new block headers.

        Returns:
            Subscription id

        Raises:
            SubscriptionError: If the node rejects the subscription or
                does not confirm it within subscribe_timeout
            ConnectionClosed: If the socket closes before confirmation
        """
        await self._ws.send(json.dumps({
            "jsonrpc": JSONRPC_VERSION,
            "id": self.SUBSCRIBE_REQUEST_ID,
            "method": "eth_subscribe",
            "params": ["newHeads"],
        }))

        try:
            message = await asyncio.wait_for(
                self._await_confirmation(), timeout=self.subscribe_timeout
            )
        except asyncio.TimeoutError:
            raise SubscriptionError(
                f"eth_subscribe not confirmed by {mask_url(self.url)} "
                f"within {self.subscribe_timeout}s"
            ) from None

        result = message.get("result")
        if message.get("error") or not result or not isinstance(result, str):
            raise SubscriptionError(
                f"eth_subscribe rejected by {mask_url(self.url)}: {message.get('error')}"
            )

        self.subscription_id = result
        logger.info(f"Subscription confirmed: {self.subscription_id}")
        return self.subscription_id

    async def _await_confirmation(self) -> dict[str, Any]:
        while True:
            message = self._decode(await self._ws.recv())
            if message is not None and message.get("id") == self.SUBSCRIBE_REQUEST_ID:
                return message

    def _decode(self, raw: Any) -> dict[str, Any] | None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug(f"Skipping undecodable frame from {mask_url(self.url)}")
            return None

        if not isinstance(message, dict):
            logger.debug(f"Skipping non-object frame from {mask_url(self.url)}")
            return None
        return message

    def __aiter__(self) -> AsyncIterator[HeadNotification]:
        return self._notifications()

    async def _notifications(self) -> AsyncIterator[HeadNotification]:
        try:
            async for raw in self._ws:
                message = self._decode(raw)
                if message is None:
                    continue

                notification = parse_notification(message)
                if notification is not None:
                    yield notification
                elif message.get("method") == "eth_subscription":
                    logger.debug(f"Skipping malformed notification from {mask_url(self.url)}")
        except ConnectionClosed as e:
            logger.warning(f"WebSocket connection closed: {e}")

    async def close(self) -> None:
        """Unsubscribe (best-effort) and close the socket."""
        ws, self._ws = self._ws, None
        if ws is None:
            return

        if self.subscription_id:
            with suppress(ConnectionClosed):
                await ws.send(json.dumps({
                    "jsonrpc": JSONRPC_VERSION,
                    "id": next(self._ids),
                    "method": "eth_unsubscribe",
                    "params": [self.subscription_id],
                }))
        self.subscription_id = None
        await ws.close()


class SubscriptionFactory:
    """
    Produce a fresh subscription per connection attempt.

    Rotates through the configured WebSocket endpoints so a reconnect
    after a dropped connection lands on the next endpoint.
    """

    def __init__(
        self,
        urls: list[str],
        ping_interval: float = MONITOR_WS_PING_INTERVAL,
        ping_timeout: float = MONITOR_WS_PING_TIMEOUT,
        subscribe_timeout: float = MONITOR_SUBSCRIBE_TIMEOUT,
    ) -> None:
        if not urls:
            raise ConfigurationError("No WebSocket endpoints configured")
        self.urls = list(urls)
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.subscribe_timeout = subscribe_timeout
        self._attempts = 0

    def __call__(self) -> NewHeadsSubscription:
        url = self.urls[self._attempts % len(self.urls)]
        self._attempts += 1
        return NewHeadsSubscription(
            url, self.ping_interval, self.ping_timeout, self.subscribe_timeout
        )

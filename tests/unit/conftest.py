"""
Shared fixtures for unit tests.

This module provides test doubles used across multiple test modules:
- Fake aiohttp session and response
- Fake WebSocket connection
- Fake newHeads subscription for monitor tests
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from websockets.exceptions import ConnectionClosed

from app.services.blockchain.subscription import HeadNotification


class FakeResponse:
    """aiohttp response stand-in usable as `async with session.post(...)`."""

    def __init__(self, status: int = 200, payload=None, raises: Exception | None = None):
        self.status = status
        self.payload = payload
        self.raises = raises

    async def __aenter__(self):
        if self.raises is not None:
            raise self.raises
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """aiohttp ClientSession stand-in returning canned responses per URL."""

    closed = False

    def __init__(self, responses):
        self.responses = responses
        self.calls: list[tuple[str, str, dict]] = []

    def _respond(self, verb: str, url: str, kwargs: dict) -> FakeResponse:
        self.calls.append((verb, url, kwargs))
        if isinstance(self.responses, FakeResponse):
            return self.responses
        return self.responses[url]

    def post(self, url, **kwargs):
        return self._respond("POST", url, kwargs)

    def get(self, url, **kwargs):
        return self._respond("GET", url, kwargs)

    async def close(self):
        self.closed = True


class FakeWebSocket:
    """WebSocket connection replaying queued frames, then closing (or hanging if hold)."""

    def __init__(self, frames: list[str], hold: bool = False):
        self.frames = list(frames)
        self.hold = hold
        self.sent: list[dict] = []
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def recv(self) -> str:
        if not self.frames:
            if self.hold:
                await asyncio.Event().wait()
            raise ConnectionClosed(None, None)
        return self.frames.pop(0)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while self.frames:
            yield self.frames.pop(0)
        raise ConnectionClosed(None, None)

    async def close(self) -> None:
        self.closed = True


class FakeSubscription:
    """
    newHeads subscription double for BalanceMonitor.

    Args:
        heads: Notifications delivered after subscribing
        subscription_id: Id returned by subscribe()
        fail_connect: Raise on enter, like a refused connection
        hold: Keep the connection open after delivering heads
    """

    def __init__(
        self,
        heads: list[HeadNotification] | None = None,
        subscription_id: str = "0xsub",
        fail_connect: bool = False,
        hold: bool = False,
    ):
        self.heads = list(heads or [])
        self.subscription_id = subscription_id
        self.fail_connect = fail_connect
        self.hold = hold
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        if self.fail_connect:
            raise OSError("Connection refused")
        self.entered = True
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True
        return False

    async def subscribe(self) -> str:
        return self.subscription_id

    def __aiter__(self):
        return self._heads()

    async def _heads(self):
        for head in self.heads:
            yield head
        if self.hold:
            await asyncio.Event().wait()


@pytest.fixture
def fake_response():
    """FakeResponse class."""
    return FakeResponse


@pytest.fixture
def fake_session():
    """FakeSession class."""
    return FakeSession


@pytest.fixture
def fake_websocket():
    """FakeWebSocket class."""
    return FakeWebSocket


@pytest.fixture
def fake_subscription():
    """FakeSubscription class."""
    return FakeSubscription


@pytest.fixture
def subscription_factory():
    """
    Build a MagicMock factory returning the given subscriptions in order.

    Returns:
        Callable taking subscriptions and returning the factory mock
    """
    def build(*subscriptions):
        return MagicMock(side_effect=list(subscriptions))

    return build

"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings() at import time
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("RPC_URLS", "https://rpc-a.example.org,https://rpc-b.example.org")
os.environ.setdefault("MONITOR_RPC_URLS", "https://fuji-a.example.org,https://fuji-b.example.org")
os.environ.setdefault("MONITOR_WS_URLS", "wss://fuji-ws-a.example.org,wss://fuji-ws-b.example.org")
os.environ.setdefault("MONITOR_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from eth_account import Account
from unittest.mock import AsyncMock, MagicMock


TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture
def private_key() -> str:
    """Throwaway signing key."""
    return TEST_PRIVATE_KEY


@pytest.fixture
def wallet_address(private_key) -> str:
    """Checksum address of the throwaway signing key."""
    return Account.from_key(private_key).address


@pytest.fixture
def mock_chain_client():
    """Mock ChainClient."""
    client = AsyncMock()
    client.name = "Avalanche"
    client.get_balance = AsyncMock(return_value=0)
    client.send_transaction = AsyncMock(return_value="0x" + "ab" * 32)
    client.wait_for_receipt = AsyncMock(return_value={"status": 1, "logs": []})
    client.call = AsyncMock(return_value="0x" + "0" * 64)
    return client


@pytest.fixture
def mock_bot():
    """Mock Telegram Bot."""
    bot = AsyncMock()
    bot.send_message = AsyncMock()
    bot.session = AsyncMock()
    bot.session.close = AsyncMock()
    return bot


@pytest.fixture
def mock_redis():
    """Mock async Redis client."""
    redis_client = AsyncMock()
    redis_client.get = AsyncMock(return_value=None)
    redis_client.set = AsyncMock(return_value=True)
    redis_client.exists = AsyncMock(return_value=0)
    redis_client.aclose = AsyncMock()
    return redis_client


@pytest.fixture
def mock_notifier():
    """Mock BridgeNotifier."""
    notifier = MagicMock()
    notifier.bridge_started = AsyncMock()
    notifier.bridge_finished = AsyncMock()
    return notifier

"""Unit tests for WalletKeyStore."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.services.wallet.key_store import WalletKeyStore, address_key, wallet_key
from app.utils.encryption import EncryptionService
from app.utils.exceptions import SecurityError


@pytest.fixture
def encryption():
    return EncryptionService(EncryptionService.generate_key())


class TestWalletKeyStore:
    """Tests for key lookup and storage."""

    def test_key_layout(self):
        """Redis keys follow wallet:{user_id}[:address]."""
        assert wallet_key(5) == "wallet:5"
        assert address_key(5) == "wallet:5:address"

    @pytest.mark.asyncio
    async def test_reads_encrypted_key(self, mock_redis, encryption, private_key):
        """Stored ciphertext is decrypted."""
        mock_redis.get = AsyncMock(return_value=encryption.encrypt(private_key))
        store = WalletKeyStore(mock_redis, encryption)

        assert await store.get_private_key(5) == private_key
        mock_redis.get.assert_awaited_once_with("wallet:5")

    @pytest.mark.asyncio
    async def test_fallback_key(self, mock_redis, encryption, private_key):
        """Configured key is used when Redis has none."""
        store = WalletKeyStore(mock_redis, encryption, fallback_keys={1: private_key})

        assert await store.get_private_key(1) == private_key
        assert await store.get_private_key(2) is None

    @pytest.mark.asyncio
    async def test_redis_error_falls_back(self, mock_redis, encryption, private_key):
        """Unavailable Redis does not block the configured key."""
        mock_redis.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        store = WalletKeyStore(mock_redis, encryption, fallback_keys={1: private_key})

        assert await store.get_private_key(1) == private_key

    @pytest.mark.asyncio
    async def test_without_redis(self, encryption, private_key):
        """Redis-less store serves only configured keys."""
        store = WalletKeyStore(None, encryption, fallback_keys={1: private_key})

        assert await store.get_private_key(1) == private_key
        assert await store.has_wallet(1)
        assert not await store.has_wallet(2)

    @pytest.mark.asyncio
    async def test_corrupted_ciphertext(self, mock_redis, encryption):
        """Undecryptable entry raises SecurityError."""
        mock_redis.get = AsyncMock(return_value="not-a-token")
        store = WalletKeyStore(mock_redis, encryption)

        with pytest.raises(SecurityError):
            await store.get_private_key(5)

    @pytest.mark.asyncio
    async def test_save_private_key(self, mock_redis, encryption, private_key, wallet_address):
        """Key is stored encrypted next to its address."""
        store = WalletKeyStore(mock_redis, encryption)

        assert await store.save_private_key(5, private_key) == wallet_address

        stored = {call.args[0]: call.args[1] for call in mock_redis.set.await_args_list}
        assert stored["wallet:5:address"] == wallet_address
        assert stored["wallet:5"] != private_key
        assert encryption.decrypt(stored["wallet:5"]) == private_key

    @pytest.mark.asyncio
    async def test_save_requires_redis(self, encryption, private_key):
        """Saving without Redis is refused."""
        store = WalletKeyStore(None, encryption)

        with pytest.raises(RuntimeError):
            await store.save_private_key(5, private_key)

    @pytest.mark.asyncio
    async def test_has_wallet_checks_redis(self, mock_redis, encryption):
        """Existence is looked up in Redis."""
        mock_redis.exists = AsyncMock(return_value=1)
        store = WalletKeyStore(mock_redis, encryption)

        assert await store.has_wallet(5)
        mock_redis.exists.assert_awaited_once_with("wallet:5")

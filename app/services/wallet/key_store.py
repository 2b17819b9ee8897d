"""
Wallet key store.

Per-user signing keys live in Redis, Fernet-encrypted:
- wallet:{user_id}          - encrypted private key
- wallet:{user_id}:address  - checksum address

Configured fallback keys (the single-address monitor) are consulted when
Redis has no entry for a user.
"""

from eth_account import Account
from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config.constants import WALLET_KEY_PREFIX
from app.utils.encryption import EncryptionService


def wallet_key(user_id: int) -> str:
    return f"{WALLET_KEY_PREFIX}:{user_id}"


def address_key(user_id: int) -> str:
    return f"{WALLET_KEY_PREFIX}:{user_id}:address"


class WalletKeyStore:
    """Custodial key lookup for bridge signing."""

    def __init__(
        self,
        redis_client: Redis | None,
        encryption: EncryptionService,
        fallback_keys: dict[int, str] | None = None,
    ) -> None:
        """
        Initialize key store.

        Args:
            redis_client: Async Redis client (None disables Redis lookup)
            encryption: Encryption service for keys at rest
            fallback_keys: user_id -> private key used when Redis has none
        """
        self.redis = redis_client
        self.encryption = encryption
        self.fallback_keys = dict(fallback_keys or {})

    async def get_private_key(self, user_id: int) -> str | None:
        """
        Get decrypted private key for user.

        Args:
            user_id: User identity

        Returns:
            Private key or None if the user has no wallet

        Raises:
            SecurityError: If the stored key cannot be decrypted
        """
        if self.redis is not None:
            try:
                encrypted = await self.redis.get(wallet_key(user_id))
            except RedisError as e:
                logger.warning(f"Failed to read wallet for user {user_id} from Redis: {e}")
                encrypted = None

            if encrypted:
                return self.encryption.decrypt(encrypted)

        return self.fallback_keys.get(user_id)

    async def save_private_key(self, user_id: int, private_key: str) -> str:
        """
        Encrypt and store a user's private key.

        Args:
            user_id: User identity
            private_key: Private key to store

        Returns:
            Wallet address

        Raises:
            RuntimeError: If Redis is not configured
        """
        if self.redis is None:
            raise RuntimeError("Redis is not configured for wallet storage")

        address = Account.from_key(private_key).address
        await self.redis.set(wallet_key(user_id), self.encryption.encrypt(private_key))
        await self.redis.set(address_key(user_id), address)
        logger.info(f"Stored wallet for user {user_id}")
        return address

    async def has_wallet(self, user_id: int) -> bool:
        """Check if a user has a stored or configured wallet."""
        if user_id in self.fallback_keys:
            return True
        if self.redis is None:
            return False
        return bool(await self.redis.exists(wallet_key(user_id)))

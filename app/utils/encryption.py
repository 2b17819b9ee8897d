"""Encryption utilities for stored wallet keys."""

import base64

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from app.utils.exceptions import SecurityError


class EncryptionService:
    """
    Encryption service for wallet private keys at rest.

    Uses Fernet (symmetric encryption). Without a key the service runs
    in passthrough mode, which is refused in production.
    """

    def __init__(
        self,
        encryption_key: str | None = None,
        environment: str = "development",
    ) -> None:
        """
        Initialize encryption service.

        Args:
            encryption_key: Base64-encoded Fernet key
            environment: Deployment environment name

        Raises:
            SecurityError: If key is missing or invalid in production
        """
        self.environment = environment
        self.fernet: Fernet | None = None

        if encryption_key:
            try:
                self.fernet = Fernet(encryption_key.encode())
            except (ValueError, TypeError) as e:
                logger.error(f"Invalid encryption key: {e}")
                if environment == "production":
                    raise SecurityError(
                        "Invalid encryption key in production environment."
                    ) from e
        elif environment == "production":
            raise SecurityError(
                "Encryption key not configured in production environment. "
                "Set ENCRYPTION_KEY in .env file."
            )

    @property
    def enabled(self) -> bool:
        return self.fernet is not None

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext.

        Args:
            plaintext: Text to encrypt

        Returns:
            Encrypted text (base64), or plaintext in development passthrough
        """
        if not self.fernet:
            logger.warning("Encryption disabled - storing plaintext (DEV ONLY)")
            return plaintext

        encrypted = self.fernet.encrypt(plaintext.encode())
        return base64.b64encode(encrypted).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt ciphertext.

        Args:
            ciphertext: Encrypted text (base64)

        Returns:
            Decrypted text

        Raises:
            SecurityError: If the ciphertext cannot be decrypted
        """
        if not self.fernet:
            logger.warning("Encryption disabled - returning ciphertext as-is (DEV ONLY)")
            return ciphertext

        try:
            encrypted = base64.b64decode(ciphertext.encode())
            return self.fernet.decrypt(encrypted).decode()
        except (InvalidToken, ValueError) as e:
            raise SecurityError(f"Decryption failed: {type(e).__name__}") from e

    @staticmethod
    def generate_key() -> str:
        """
        Generate new Fernet key.

        Returns:
            Base64-encoded key
        """
        return Fernet.generate_key().decode()

"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""


class SecurityError(Exception):
    """Raised when a security-critical operation fails."""
    pass


class BlockchainError(Exception):
    """Base exception for blockchain errors."""
    pass


class ConfigurationError(BlockchainError):
    """Raised when required configuration is missing or empty."""
    pass


class EndpointError(BlockchainError):
    """
    A single endpoint failed to serve a request.

    Covers timeouts, connection errors, non-2xx responses, undecodable
    bodies and JSON-RPC error members.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        self.message = message
        super().__init__(message)


class AllEndpointsFailedError(BlockchainError):
    """Raised when every endpoint in the pool failed for one logical call."""

    def __init__(self, method: str, errors: list[EndpointError]) -> None:
        self.method = method
        self.errors = list(errors)
        self.last_error = self.errors[-1] if self.errors else None
        super().__init__(
            f"All {len(self.errors)} endpoints failed for '{method}'. "
            f"Last error: {self.last_error}"
        )


class SubscriptionError(BlockchainError):
    """Raised when a subscription request is rejected or malformed."""
    pass


class TransactionFailedError(BlockchainError):
    """Raised when a transaction reverts or its receipt never appears."""

    def __init__(self, tx_hash: str, message: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class BridgeError(Exception):
    """Base exception for cross-chain bridge failures."""
    pass


class AttestationTimeoutError(BridgeError):
    """Raised when the signed attestation is not available in time."""
    pass

"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask sensitive information like:
- Wallet addresses
- Transaction hashes
- RPC endpoint URLs (provider API keys live in path or query)
"""

from urllib.parse import urlsplit


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 0x1234...5678

    Args:
        address: Wallet address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_tx_hash(tx_hash: str | None) -> str:
    """
    Mask transaction hash for logging.

    Args:
        tx_hash: Transaction hash to mask

    Returns:
        Masked hash showing first 10 and last 6 characters

    Examples:
        >>> mask_tx_hash("0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef")
        '0x12345678...abcdef'
    """
    if not tx_hash or len(tx_hash) < 16:
        return "***"
    return f"{tx_hash[:10]}...{tx_hash[-6:]}"


def mask_url(url: str | None) -> str:
    """
    Mask RPC endpoint URL, keeping only scheme and host.

    Hosted node providers embed API keys in the path or query string,
    so only the host is safe to log.

    Args:
        url: Endpoint URL

    Returns:
        'scheme://host/***' or '***' if unparsable

    Examples:
        >>> mask_url("https://eth-mainnet.g.alchemy.com/v2/abcdef123456")
        'https://eth-mainnet.g.alchemy.com/***'
        >>> mask_url("https://rpc.example.org")
        'https://rpc.example.org'
    """
    if not url:
        return "***"
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        return "***"
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    base = f"{parts.scheme}://{host}"
    if parts.path.strip("/") or parts.query:
        return f"{base}/***"
    return base

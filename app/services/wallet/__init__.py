"""Wallet services."""

from .key_store import WalletKeyStore


__all__ = ["WalletKeyStore"]

"""
Chain Client - read/write operations over the failover transport.

This module handles:
- Chain metadata (chain id, block number, gas price, blocks)
- Native balance queries
- Transaction building, signing and submission
- Receipt polling
"""

import asyncio
from decimal import Decimal
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address
from loguru import logger

from app.config.constants import (
    GAS_ESTIMATE_MARGIN,
    NATIVE_DECIMALS,
    RECEIPT_POLL_INTERVAL,
    RECEIPT_TIMEOUT,
)
from app.utils.exceptions import TransactionFailedError
from app.utils.security import mask_address, mask_tx_hash

from .failover_transport import FailoverTransport


def to_native(wei: int, decimals: int = NATIVE_DECIMALS) -> Decimal:
    """Convert smallest-unit integer amount to a native-unit Decimal."""
    return Decimal(wei) / Decimal(10**decimals)


def to_wei(amount: Decimal, decimals: int = NATIVE_DECIMALS) -> int:
    """Convert native-unit Decimal to smallest-unit integer (truncating)."""
    return int(amount * Decimal(10**decimals))


def _hex_to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


class ChainClient:
    """
    Thin chain adapter built on FailoverTransport.

    Every call is one logical failover pass; callers that need repeated
    attempts simply call again.
    """

    def __init__(
        self,
        transport: FailoverTransport,
        chain_id: int | None = None,
        name: str = "",
    ) -> None:
        """
        Initialize chain client.

        Args:
            transport: Failover transport
            chain_id: Expected chain id (queried lazily when None)
            name: Chain name for logging
        """
        self.transport = transport
        self.chain_id = chain_id
        self.name = name or "chain"

    async def get_chain_id(self) -> int:
        """Get chain id reported by the node."""
        return _hex_to_int(await self.transport.execute("eth_chainId", []))

    async def get_block_number(self) -> int:
        """Get current block number."""
        return _hex_to_int(await self.transport.execute("eth_blockNumber", []))

    async def get_gas_price(self) -> int:
        """Get current gas price in wei."""
        return _hex_to_int(await self.transport.execute("eth_gasPrice", []))

    async def get_balance(self, address: str, block: str = "latest") -> int:
        """
        Get native balance for address.

        Args:
            address: Wallet address
            block: Block tag or hex number

        Returns:
            Balance in wei
        """
        address = to_checksum_address(address)
        return _hex_to_int(await self.transport.execute("eth_getBalance", [address, block]))

    async def get_block(
        self, block: str = "latest", full_transactions: bool = False
    ) -> dict[str, Any]:
        """
        Get block by tag or hex number.

        Args:
            block: Block tag ("latest", "pending") or hex number
            full_transactions: Include full transaction objects

        Returns:
            Block dict with `number` and `timestamp` decoded to int
        """
        raw = await self.transport.execute("eth_getBlockByNumber", [block, full_transactions])
        if raw is None:
            return {}
        block_data = dict(raw)
        for field in ("number", "timestamp", "gasUsed", "gasLimit", "baseFeePerGas"):
            if block_data.get(field) is not None:
                block_data[field] = _hex_to_int(block_data[field])
        return block_data

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Get account nonce (pending by default)."""
        address = to_checksum_address(address)
        return _hex_to_int(
            await self.transport.execute("eth_getTransactionCount", [address, block])
        )

    async def call(self, to: str, data: str, block: str = "latest") -> str:
        """Execute a read-only contract call and return the raw hex result."""
        return await self.transport.execute(
            "eth_call", [{"to": to_checksum_address(to), "data": data}, block]
        )

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        """Estimate gas for a call object (hex-encoded fields)."""
        return _hex_to_int(await self.transport.execute("eth_estimateGas", [tx]))

    async def send_raw_transaction(self, raw_tx: str | bytes) -> str:
        """
        Submit a signed transaction.

        Args:
            raw_tx: Signed transaction bytes or 0x-hex

        Returns:
            Transaction hash
        """
        if isinstance(raw_tx, bytes):
            raw_tx = "0x" + raw_tx.hex()
        return await self.transport.execute("eth_sendRawTransaction", [raw_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Get transaction receipt or None while pending."""
        receipt = await self.transport.execute("eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            return None
        receipt = dict(receipt)
        for field in ("status", "blockNumber", "gasUsed"):
            if receipt.get(field) is not None:
                receipt[field] = _hex_to_int(receipt[field])
        return receipt

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = RECEIPT_TIMEOUT,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> dict[str, Any]:
        """
        Poll until the transaction is mined.

        Args:
            tx_hash: Transaction hash
            timeout: Maximum seconds to wait
            poll_interval: Seconds between checks

        Returns:
            Successful receipt

        Raises:
            TransactionFailedError: On timeout or reverted transaction
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                if receipt.get("status") == 0:
                    raise TransactionFailedError(
                        tx_hash, f"Transaction {mask_tx_hash(tx_hash)} reverted"
                    )
                return receipt

            if loop.time() >= deadline:
                raise TransactionFailedError(
                    tx_hash,
                    f"Transaction {mask_tx_hash(tx_hash)} not mined after {timeout}s",
                )
            await asyncio.sleep(poll_interval)

    async def send_transaction(
        self,
        private_key: str,
        to: str,
        value: int = 0,
        data: str = "0x",
        gas: int | None = None,
    ) -> str:
        """
        Build, sign and submit a legacy transaction.

        Args:
            private_key: Signing key
            to: Recipient / contract address
            value: Native value in wei
            data: Call data (0x-hex)
            gas: Gas limit (estimated with margin when None)

        Returns:
            Transaction hash
        """
        account = Account.from_key(private_key)
        sender = account.address
        to = to_checksum_address(to)

        chain_id = self.chain_id
        if chain_id is None:
            chain_id = await self.get_chain_id()
            self.chain_id = chain_id

        nonce = await self.get_transaction_count(sender, "pending")
        gas_price = await self.get_gas_price()

        if gas is None:
            estimated = await self.estimate_gas(
                {"from": sender, "to": to, "value": hex(value), "data": data}
            )
            gas = int(estimated * GAS_ESTIMATE_MARGIN)

        tx = {
            "chainId": chain_id,
            "nonce": nonce,
            "to": to,
            "value": value,
            "data": data,
            "gas": gas,
            "gasPrice": gas_price,
        }

        signed = Account.sign_transaction(tx, private_key)
        tx_hash = await self.send_raw_transaction(signed.raw_transaction)

        logger.info(
            f"[{self.name}] Sent tx {mask_tx_hash(tx_hash)} from {mask_address(sender)} "
            f"to {mask_address(to)} (nonce={nonce}, gas={gas})"
        )
        return tx_hash

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.transport.close()

"""
Native token bridge transfer.

Three-phase lifecycle:
1. initiate - wrap and lock native funds on the source token bridge
2. attest   - wait for the guardian-signed VAA of the published message
3. redeem   - complete the transfer and unwrap on the destination chain

The balance monitor fires this in the background and only ever sees the
final BridgeResult.
"""

import secrets
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Any

from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, keccak
from loguru import logger

from app.config.constants import NATIVE_DECIMALS
from app.config.settings import Settings
from app.services.blockchain.chain_client import ChainClient, to_wei
from app.services.wallet.key_store import WalletKeyStore
from app.utils.exceptions import BlockchainError, BridgeError, SecurityError
from app.utils.security import mask_address, mask_tx_hash

from .attestation import AttestationClient, emitter_address
from .notifier import BridgeNotifier
from .trigger import BridgeRequest, BridgeResult


WRAP_AND_TRANSFER_ETH = "wrapAndTransferETH(uint16,bytes32,uint256,uint32)"
COMPLETE_TRANSFER_AND_UNWRAP_ETH = "completeTransferAndUnwrapETH(bytes)"
MESSAGE_FEE = "messageFee()"
LOG_MESSAGE_PUBLISHED_TOPIC = "0x" + keccak(
    text="LogMessagePublished(address,uint64,uint32,bytes,uint8)"
).hex()

# Token bridge normalizes amounts to 8 decimals; anything below is dust
BRIDGE_AMOUNT_DECIMALS = 8


def encode_call(signature: str, types: list[str], args: list[Any]) -> str:
    """ABI-encode a function call to 0x-hex call data."""
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(types, args)).hex()


def address_to_bytes32(address: str) -> bytes:
    """Left-pad an EVM address to 32 bytes."""
    return bytes.fromhex(emitter_address(address))


def parse_sequence(receipt: dict[str, Any], core_bridge: str) -> int:
    """
    Extract the published message sequence from a receipt.

    Args:
        receipt: Source chain transaction receipt
        core_bridge: Core bridge contract address emitting LogMessagePublished

    Returns:
        Message sequence

    Raises:
        BridgeError: If no LogMessagePublished event is present
    """
    for log in receipt.get("logs") or []:
        topics = log.get("topics") or []
        if (
            str(log.get("address", "")).lower() == core_bridge.lower()
            and topics
            and str(topics[0]).lower() == LOG_MESSAGE_PUBLISHED_TOPIC
        ):
            data = bytes.fromhex(str(log["data"]).removeprefix("0x"))
            sequence, _nonce, _payload, _consistency = decode(
                ["uint64", "uint32", "bytes", "uint8"], data
            )
            return sequence

    raise BridgeError("LogMessagePublished event not found in source receipt")


def normalize_amount(amount: Decimal) -> Decimal:
    """Truncate to the precision the token bridge carries across."""
    return amount.quantize(Decimal(1).scaleb(-BRIDGE_AMOUNT_DECIMALS), rounding=ROUND_DOWN)


@dataclass(frozen=True)
class TokenBridgeConfig:
    """Contract addresses and chain identifiers for one bridge route."""

    source_token_bridge: str
    source_core_bridge: str
    destination_token_bridge: str | None
    source_chain: int
    destination_chain: int
    destination_name: str = "Monad"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenBridgeConfig":
        return cls(
            source_token_bridge=settings.bridge_source_token_bridge,
            source_core_bridge=settings.bridge_source_core_bridge,
            destination_token_bridge=settings.bridge_destination_token_bridge,
            source_chain=settings.bridge_source_wormhole_chain,
            destination_chain=settings.bridge_destination_wormhole_chain,
            destination_name=settings.chain_name,
        )


class TokenBridgeTrigger:
    """
    Bridge native funds from the monitored chain to the destination chain.

    Features:
    - Signing key lookup per user
    - Message fee added on top of the bridged amount
    - Attestation wait with timeout
    - Outcome notification (optional)
    """

    def __init__(
        self,
        key_store: WalletKeyStore,
        source_client: ChainClient,
        destination_client: ChainClient,
        config: TokenBridgeConfig,
        attestation_client: AttestationClient,
        notifier: BridgeNotifier | None = None,
    ) -> None:
        """
        Initialize bridge trigger.

        Args:
            key_store: Wallet key store for signing credentials
            source_client: Client of the chain funds leave from
            destination_client: Client of the chain funds arrive on
            config: Bridge route configuration
            attestation_client: Signed VAA fetcher
            notifier: Optional user notifier
        """
        self.key_store = key_store
        self.source_client = source_client
        self.destination_client = destination_client
        self.config = config
        self.attestation_client = attestation_client
        self.notifier = notifier

    async def bridge(self, request: BridgeRequest) -> BridgeResult:
        """
        Run the full initiate/attest/redeem lifecycle.

        Known failure modes are reported as an unsuccessful BridgeResult;
        nothing is retried here, a second attempt could double-bridge.

        Args:
            request: Bridge request

        Returns:
            BridgeResult
        """
        result = BridgeResult(success=False, amount=normalize_amount(request.amount))

        if self.notifier:
            await self.notifier.bridge_started(request)

        try:
            await self._transfer(request, result)
            result.success = True
            logger.success(
                f"Bridge completed for user {request.user_id}: {result.amount} "
                f"{request.source_chain} -> {self.config.destination_name}"
            )
        except (BridgeError, BlockchainError, SecurityError) as e:
            result.error = str(e)
            logger.error(
                f"Bridge failed for user {request.user_id} "
                f"({mask_address(request.address)}): {type(e).__name__}: {e}"
            )

        if self.notifier:
            await self.notifier.bridge_finished(request, result)
        return result

    async def _transfer(self, request: BridgeRequest, result: BridgeResult) -> None:
        if result.amount <= 0:
            raise BridgeError(f"Amount {request.amount} is below bridge precision")
        if not self.config.destination_token_bridge:
            raise BridgeError("Destination token bridge address not configured")

        private_key = await self.key_store.get_private_key(request.user_id)
        if not private_key:
            raise BridgeError(f"Private key not found for user {request.user_id}")
        recipient = Account.from_key(private_key).address

        # 1) Initiate on source chain
        logger.info(
            f"Starting transfer of {result.amount} from {request.source_chain} "
            f"to {self.config.destination_name}"
        )
        fee_hex = await self.source_client.call(
            self.config.source_core_bridge, encode_call(MESSAGE_FEE, [], [])
        )
        message_fee = int(fee_hex, 16) if fee_hex and fee_hex != "0x" else 0

        data = encode_call(
            WRAP_AND_TRANSFER_ETH,
            ["uint16", "bytes32", "uint256", "uint32"],
            [
                self.config.destination_chain,
                address_to_bytes32(recipient),
                0,
                secrets.randbits(32),
            ],
        )
        source_tx = await self.source_client.send_transaction(
            private_key,
            self.config.source_token_bridge,
            value=to_wei(result.amount, NATIVE_DECIMALS) + message_fee,
            data=data,
        )
        result.source_tx = source_tx
        receipt = await self.source_client.wait_for_receipt(source_tx)
        result.sequence = parse_sequence(receipt, self.config.source_core_bridge)
        logger.info(
            f"{request.source_chain} transaction {mask_tx_hash(source_tx)} "
            f"published sequence {result.sequence}"
        )

        # 2) Wait for the signed VAA
        vaa = await self.attestation_client.wait_for_vaa(
            self.config.source_chain,
            emitter_address(self.config.source_token_bridge),
            result.sequence,
        )

        # 3) Redeem on destination chain
        logger.info(f"Completing transfer on {self.config.destination_name}")
        destination_tx = await self.destination_client.send_transaction(
            private_key,
            self.config.destination_token_bridge,
            data=encode_call(COMPLETE_TRANSFER_AND_UNWRAP_ETH, ["bytes"], [vaa]),
        )
        result.destination_tx = destination_tx
        await self.destination_client.wait_for_receipt(destination_tx)

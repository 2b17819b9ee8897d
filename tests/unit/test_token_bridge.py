"""Unit tests for the token bridge workflow."""

import base64
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from app.config.constants import FUJI_CORE_BRIDGE_ADDRESS, FUJI_TOKEN_BRIDGE_ADDRESS
from app.services.blockchain.chain_client import to_wei
from app.services.bridge.attestation import AttestationClient, emitter_address
from app.services.bridge.token_bridge import (
    LOG_MESSAGE_PUBLISHED_TOPIC,
    MESSAGE_FEE,
    TokenBridgeConfig,
    TokenBridgeTrigger,
    address_to_bytes32,
    encode_call,
    normalize_amount,
    parse_sequence,
)
from app.services.bridge.trigger import BridgeRequest
from app.utils.exceptions import AttestationTimeoutError, BridgeError


DESTINATION_TOKEN_BRIDGE = "0x" + "77" * 20


def published_log(sequence: int, address: str = FUJI_CORE_BRIDGE_ADDRESS) -> dict:
    data = encode(["uint64", "uint32", "bytes", "uint8"], [sequence, 1, b"payload", 1])
    return {
        "address": address.lower(),
        "topics": [LOG_MESSAGE_PUBLISHED_TOPIC, "0x" + "00" * 32],
        "data": "0x" + data.hex(),
    }


@pytest.fixture
def config():
    return TokenBridgeConfig(
        source_token_bridge=FUJI_TOKEN_BRIDGE_ADDRESS,
        source_core_bridge=FUJI_CORE_BRIDGE_ADDRESS,
        destination_token_bridge=DESTINATION_TOKEN_BRIDGE,
        source_chain=6,
        destination_chain=48,
        destination_name="Monad",
    )


@pytest.fixture
def request_():
    return BridgeRequest(
        source_chain="Avalanche",
        amount=Decimal("1.5"),
        user_id=42,
        address="0x" + "ab" * 20,
    )


@pytest.fixture
def key_store(private_key):
    store = AsyncMock()
    store.get_private_key = AsyncMock(return_value=private_key)
    return store


@pytest.fixture
def attestation():
    client = AsyncMock()
    client.wait_for_vaa = AsyncMock(return_value=b"signed-vaa")
    return client


@pytest.fixture
def source_client(mock_chain_client):
    mock_chain_client.call = AsyncMock(return_value="0x" + hex(1000)[2:].rjust(64, "0"))
    mock_chain_client.send_transaction = AsyncMock(return_value="0x" + "aa" * 32)
    mock_chain_client.wait_for_receipt = AsyncMock(
        return_value={"status": 1, "logs": [published_log(1234)]}
    )
    return mock_chain_client


@pytest.fixture
def destination_client():
    client = AsyncMock()
    client.send_transaction = AsyncMock(return_value="0x" + "bb" * 32)
    client.wait_for_receipt = AsyncMock(return_value={"status": 1})
    return client


@pytest.fixture
def trigger(key_store, source_client, destination_client, config, attestation, mock_notifier):
    return TokenBridgeTrigger(
        key_store, source_client, destination_client, config, attestation, mock_notifier
    )


class TestEncoding:
    """Tests for ABI helpers."""

    def test_encode_call_selector(self):
        """Call data starts with the function selector."""
        data = encode_call(MESSAGE_FEE, [], [])

        assert data == "0x" + function_signature_to_4byte_selector(MESSAGE_FEE).hex()

    def test_address_to_bytes32(self):
        """Address is left-padded to 32 bytes."""
        padded = address_to_bytes32("0x" + "11" * 20)

        assert len(padded) == 32
        assert padded[:12] == b"\x00" * 12
        assert padded[12:] == b"\x11" * 20

    def test_emitter_address(self):
        """Emitter form is 64 lowercase hex characters."""
        emitter = emitter_address(FUJI_TOKEN_BRIDGE_ADDRESS)

        assert len(emitter) == 64
        assert emitter.endswith(FUJI_TOKEN_BRIDGE_ADDRESS[2:].lower())

    def test_normalize_amount(self):
        """Amounts are truncated to 8 decimals."""
        assert normalize_amount(Decimal("1.123456789123")) == Decimal("1.12345678")
        assert normalize_amount(Decimal("0.000000009")) == Decimal(0)


class TestParseSequence:
    """Tests for extracting the published message sequence."""

    def test_finds_sequence(self):
        """Sequence is decoded from the core bridge log."""
        receipt = {"logs": [{"address": "0x" + "99" * 20, "topics": [], "data": "0x"}, published_log(77)]}

        assert parse_sequence(receipt, FUJI_CORE_BRIDGE_ADDRESS) == 77

    def test_ignores_other_emitters(self):
        """Same event from another contract does not count."""
        receipt = {"logs": [published_log(77, address="0x" + "99" * 20)]}

        with pytest.raises(BridgeError):
            parse_sequence(receipt, FUJI_CORE_BRIDGE_ADDRESS)

    def test_missing_logs(self):
        """Receipt without logs raises BridgeError."""
        with pytest.raises(BridgeError):
            parse_sequence({"logs": []}, FUJI_CORE_BRIDGE_ADDRESS)


class TestTokenBridgeTrigger:
    """Tests for the initiate/attest/redeem lifecycle."""

    @pytest.mark.asyncio
    async def test_full_transfer(
        self, trigger, request_, source_client, destination_client, attestation, mock_notifier
    ):
        """Successful run reports both transactions and the sequence."""
        result = await trigger.bridge(request_)

        assert result.success
        assert result.amount == Decimal("1.5")
        assert result.sequence == 1234
        assert result.source_tx == "0x" + "aa" * 32
        assert result.destination_tx == "0x" + "bb" * 32
        assert result.error is None

        send_kwargs = source_client.send_transaction.await_args.kwargs
        assert send_kwargs["value"] == to_wei(Decimal("1.5")) + 1000

        attestation.wait_for_vaa.assert_awaited_once_with(
            6, emitter_address(FUJI_TOKEN_BRIDGE_ADDRESS), 1234
        )
        redeem_args = destination_client.send_transaction.await_args
        assert redeem_args.args[1] == DESTINATION_TOKEN_BRIDGE

        mock_notifier.bridge_started.assert_awaited_once_with(request_)
        mock_notifier.bridge_finished.assert_awaited_once_with(request_, result)

    @pytest.mark.asyncio
    async def test_missing_key(self, trigger, request_, key_store, source_client, mock_notifier):
        """No signing key means no transaction and a failed result."""
        key_store.get_private_key = AsyncMock(return_value=None)

        result = await trigger.bridge(request_)

        assert not result.success
        assert "Private key not found" in result.error
        source_client.send_transaction.assert_not_awaited()
        mock_notifier.bridge_finished.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_destination_not_configured(self, trigger, request_, source_client, config):
        """Missing destination bridge fails before touching the source chain."""
        trigger.config = TokenBridgeConfig(
            source_token_bridge=config.source_token_bridge,
            source_core_bridge=config.source_core_bridge,
            destination_token_bridge=None,
            source_chain=6,
            destination_chain=48,
        )

        result = await trigger.bridge(request_)

        assert not result.success
        source_client.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attestation_timeout(self, trigger, request_, attestation, destination_client):
        """Timeout keeps the source tx on record and skips redeem."""
        attestation.wait_for_vaa = AsyncMock(side_effect=AttestationTimeoutError("not signed"))

        result = await trigger.bridge(request_)

        assert not result.success
        assert result.source_tx == "0x" + "aa" * 32
        assert result.sequence == 1234
        assert result.destination_tx is None
        destination_client.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dust_amount(self, trigger, source_client):
        """Amounts below bridge precision are refused."""
        result = await trigger.bridge(
            BridgeRequest("Avalanche", Decimal("0.000000001"), 42, "0x" + "ab" * 20)
        )

        assert not result.success
        source_client.send_transaction.assert_not_awaited()


class TestAttestationClient:
    """Tests for signed VAA polling."""

    @pytest.mark.asyncio
    async def test_get_signed_vaa(self, fake_session, fake_response):
        """VAA bytes are base64-decoded from the API response."""
        client = AttestationClient("https://api.test/")
        client._session = fake_session(
            fake_response(payload={"data": {}, "vaaBytes": base64.b64encode(b"vaa").decode()})
        )

        assert await client.get_signed_vaa(6, "00" * 32, 5) == b"vaa"
        verb, url, _ = client._session.calls[0]
        assert (verb, url) == ("GET", f"https://api.test/v1/signed_vaa/6/{'00' * 32}/5")

    @pytest.mark.asyncio
    async def test_not_signed_yet(self, fake_session, fake_response):
        """404 means not available yet."""
        client = AttestationClient("https://api.test")
        client._session = fake_session(fake_response(status=404))

        assert await client.get_signed_vaa(6, "00" * 32, 5) is None

    @pytest.mark.asyncio
    async def test_wait_polls_until_available(self, monkeypatch):
        """Polling continues until a VAA appears."""
        client = AttestationClient("https://api.test", timeout=60, poll_interval=0)
        get_vaa = AsyncMock(side_effect=[None, None, b"vaa"])
        monkeypatch.setattr(client, "get_signed_vaa", get_vaa)

        assert await client.wait_for_vaa(6, "00" * 32, 5) == b"vaa"
        assert get_vaa.await_count == 3

    @pytest.mark.asyncio
    async def test_wait_times_out(self, monkeypatch):
        """No VAA within the timeout raises AttestationTimeoutError."""
        client = AttestationClient("https://api.test", timeout=0, poll_interval=0)
        monkeypatch.setattr(client, "get_signed_vaa", AsyncMock(return_value=None))

        with pytest.raises(AttestationTimeoutError):
            await client.wait_for_vaa(6, "00" * 32, 5)

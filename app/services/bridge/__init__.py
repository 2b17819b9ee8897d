"""
Bridge services module.

- trigger.py       - BridgeRequest / BridgeResult / BridgeTrigger contract
- token_bridge.py  - Initiate, attest, redeem workflow
- attestation.py   - Signed VAA polling
- notifier.py      - Telegram outcome notifications
"""

from .attestation import AttestationClient, emitter_address
from .notifier import BridgeNotifier, TelegramBridgeNotifier
from .token_bridge import TokenBridgeConfig, TokenBridgeTrigger
from .trigger import BridgeRequest, BridgeResult, BridgeTrigger


__all__ = [
    "AttestationClient",
    "BridgeNotifier",
    "BridgeRequest",
    "BridgeResult",
    "BridgeTrigger",
    "TelegramBridgeNotifier",
    "TokenBridgeConfig",
    "TokenBridgeTrigger",
    "emitter_address",
]

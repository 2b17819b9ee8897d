"""
Bridge trigger contract.

The balance monitor only knows this interface: hand over an amount and a
user identity, get back a success/failure outcome. The multi-phase
cross-chain lifecycle stays behind it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class BridgeRequest:
    """Cross-chain transfer request raised by a detected deposit."""

    source_chain: str
    amount: Decimal
    user_id: int
    address: str


@dataclass
class BridgeResult:
    """Outcome of a bridge transfer."""

    success: bool
    amount: Decimal
    source_tx: str | None = None
    destination_tx: str | None = None
    sequence: int | None = None
    error: str | None = None


class BridgeTrigger(Protocol):
    """Anything that can move native funds from the source chain."""

    async def bridge(self, request: BridgeRequest) -> BridgeResult:
        ...

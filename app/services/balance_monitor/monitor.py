"""
Balance monitor.

Watches one address on one chain. Every new block header pushed by the
WebSocket subscription triggers a balance read; an increase above the
configured minimum dispatches a bridge in the background.

Connection lifecycle:
    DISCONNECTED -> CONNECTING -> SUBSCRIBED
    SUBSCRIBED --(socket closed / error)--> CONNECTING
    CONNECTING --(attempts exhausted)--> DISCONNECTED
"""

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from eth_utils import to_checksum_address
from loguru import logger

from app.config.constants import NATIVE_DECIMALS
from app.services.blockchain.chain_client import ChainClient, to_native
from app.services.blockchain.subscription import NewHeadsSubscription
from app.services.bridge.trigger import BridgeRequest, BridgeTrigger
from app.utils.exceptions import BlockchainError
from app.utils.security import mask_address

from .policy import BridgePolicy


class ConnectionState(str, Enum):
    """Subscription connection state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


@dataclass(frozen=True)
class MonitorKey:
    """Identity of a monitored (chain, address) pair."""

    chain: str
    address: str

    @classmethod
    def create(cls, chain: str, address: str) -> "MonitorKey":
        return cls(chain=chain, address=to_checksum_address(address))

    def __str__(self) -> str:
        return f"{self.chain}:{mask_address(self.address)}"


class BalanceMonitor:
    """Detect native balance increases and hand them to a bridge trigger."""

    def __init__(
        self,
        key: MonitorKey,
        chain_client: ChainClient,
        bridge_trigger: BridgeTrigger,
        subscription_factory: Callable[[], NewHeadsSubscription],
        *,
        user_id: int,
        min_increase: Decimal,
        policy: BridgePolicy,
        reconnect_interval: float,
        max_reconnect_attempts: int,
        decimals: int = NATIVE_DECIMALS,
    ) -> None:
        """
        Initialize monitor.

        Args:
            key: Monitored chain and address
            chain_client: Client for balance reads on the monitored chain
            bridge_trigger: Bridge to dispatch on detected increases
            subscription_factory: Returns a fresh subscription per connection
            user_id: Identity passed through to the bridge
            min_increase: Increase must be strictly greater to trigger
            policy: Bridge amount policy
            reconnect_interval: Seconds between reconnect attempts
            max_reconnect_attempts: Consecutive failures before giving up
            decimals: Native token decimals
        """
        self.key = key
        self.chain_client = chain_client
        self.bridge_trigger = bridge_trigger
        self.subscription_factory = subscription_factory
        self.user_id = user_id
        self.min_increase = Decimal(min_increase)
        self.policy = policy
        self.reconnect_interval = reconnect_interval
        self.max_reconnect_attempts = max_reconnect_attempts
        self.decimals = decimals

        self.state = ConnectionState.DISCONNECTED
        self.subscription_id: str | None = None
        self.reconnect_attempts = 0
        self.last_balance: Decimal | None = None

        self._task: asyncio.Task | None = None
        self._bridge_tasks: set[asyncio.Task] = set()

    @property
    def address(self) -> str:
        return self.key.address

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_bridges(self) -> int:
        return len(self._bridge_tasks)

    async def _read_balance(self) -> Decimal:
        wei = await self.chain_client.get_balance(self.address)
        return to_native(wei, self.decimals)

    async def start(self) -> None:
        """
        Read the baseline balance and start listening for new blocks.

        Calling start on a running monitor does nothing.

        Raises:
            BlockchainError: If the baseline balance cannot be read
        """
        if self.is_running:
            logger.debug(f"Balance monitor {self.key} already running")
            return

        self.last_balance = await self._read_balance()
        logger.info(
            f"Initial balance for {mask_address(self.address)} on {self.key.chain}: "
            f"{self.last_balance}"
        )

        self.reconnect_attempts = 0
        self.state = ConnectionState.CONNECTING
        self._task = asyncio.create_task(
            self._run(), name=f"balance-monitor:{self.key.chain}:{self.address}"
        )

    async def _run(self) -> None:
        while True:
            self.state = ConnectionState.CONNECTING
            try:
                await self._listen()
            except Exception as e:
                logger.warning(
                    f"Subscription for {self.key} failed: {type(e).__name__}: {e}"
                )

            self.subscription_id = None
            self.state = ConnectionState.CONNECTING

            if self.reconnect_attempts >= self.max_reconnect_attempts:
                self.state = ConnectionState.DISCONNECTED
                logger.error(
                    f"Max reconnect attempts ({self.max_reconnect_attempts}) reached "
                    f"for {self.key}, monitoring stopped"
                )
                return

            self.reconnect_attempts += 1
            logger.info(
                f"Reconnecting {self.key} in {self.reconnect_interval}s "
                f"({self.reconnect_attempts}/{self.max_reconnect_attempts})"
            )
            await asyncio.sleep(self.reconnect_interval)

    async def _listen(self) -> None:
        async with self.subscription_factory() as subscription:
            subscription_id = await subscription.subscribe()
            self.subscription_id = subscription_id
            self.state = ConnectionState.SUBSCRIBED
            self.reconnect_attempts = 0
            logger.success(f"Monitoring {self.key} for balance increases")

            async for head in subscription:
                if head.subscription_id != subscription_id:
                    continue
                await self.check_balance(head.block_number)

        logger.warning(f"Subscription for {self.key} closed")

    async def check_balance(self, block_number: int | None = None) -> Decimal | None:
        """
        Compare the current balance against the last observed one.

        Read failures are logged and leave the last observed balance intact.

        Args:
            block_number: Block that prompted the check (logging only)

        Returns:
            Current balance, or None if it could not be read
        """
        try:
            current = await self._read_balance()
        except BlockchainError as e:
            logger.error(f"Balance check for {self.key} failed at block {block_number}: {e}")
            return None

        if self.last_balance is None:
            self.last_balance = current
            return current

        delta = current - self.last_balance
        if delta > self.min_increase:
            logger.info(
                f"Balance increase on {self.key}: {self.last_balance} -> {current} (+{delta})"
            )
            amount = self.policy.amount_for(delta)
            if amount > 0:
                self._dispatch_bridge(amount)
            else:
                logger.warning(f"Bridge amount for +{delta} rounds to zero, skipping")

        self.last_balance = current
        return current

    def _dispatch_bridge(self, amount: Decimal) -> None:
        request = BridgeRequest(
            source_chain=self.key.chain,
            amount=amount,
            user_id=self.user_id,
            address=self.address,
        )
        task = asyncio.create_task(self._run_bridge(request))
        self._bridge_tasks.add(task)
        task.add_done_callback(self._bridge_tasks.discard)

    async def _run_bridge(self, request: BridgeRequest) -> None:
        logger.info(f"Triggering bridge of {request.amount} from {self.key}")
        try:
            result = await self.bridge_trigger.bridge(request)
        except Exception as e:
            logger.exception(f"Bridge for {self.key} raised: {e}")
            return

        if result.success:
            logger.success(f"Bridge of {result.amount} from {self.key} completed")
        else:
            logger.error(f"Bridge of {result.amount} from {self.key} failed: {result.error}")

    async def stop(self) -> None:
        """
        Stop listening. Safe to call more than once.

        In-flight bridges are left to finish.
        """
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            logger.info(f"Balance monitor {self.key} stopped")

        self.subscription_id = None
        self.state = ConnectionState.DISCONNECTED

    async def wait_for_bridges(self, timeout: float) -> int:
        """
        Give dispatched bridges up to timeout seconds to finish.

        Returns:
            Number of bridges still running afterwards
        """
        pending = set(self._bridge_tasks)
        if not pending:
            return 0

        logger.info(f"Waiting up to {timeout}s for {len(pending)} bridge(s) from {self.key}")
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.warning(
                f"{len(still_running)} bridge(s) from {self.key} still running after {timeout}s"
            )
        return len(still_running)

    def status(self) -> dict[str, Any]:
        return {
            "chain": self.key.chain,
            "address": self.address,
            "state": self.state.value,
            "subscription_id": self.subscription_id,
            "reconnect_attempts": self.reconnect_attempts,
            "last_balance": str(self.last_balance) if self.last_balance is not None else None,
            "pending_bridges": self.pending_bridges,
        }

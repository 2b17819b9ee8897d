"""
Balance monitoring entry points.

Builds monitors from settings and registers them in the process-wide
registry.
"""

from decimal import Decimal
from typing import Callable

from eth_account import Account
from loguru import logger

from app.config.settings import Settings, settings as app_settings
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.singleton import get_chain_client
from app.services.blockchain.subscription import NewHeadsSubscription, SubscriptionFactory
from app.services.bridge.trigger import BridgeTrigger
from app.utils.exceptions import BlockchainError
from app.utils.security import mask_address

from .monitor import BalanceMonitor, MonitorKey
from .policy import BridgePolicy
from .registry import MonitorRegistry


_registry = MonitorRegistry()


def get_monitor_registry() -> MonitorRegistry:
    """Get the process-wide monitor registry."""
    return _registry


async def monitor_native_balance(
    user_id: int,
    address: str,
    bridge_trigger: BridgeTrigger,
    *,
    min_increase: Decimal | str | None = None,
    bridge_amount: str | None = None,
    chain_client: ChainClient | None = None,
    subscription_factory: Callable[[], NewHeadsSubscription] | None = None,
    registry: MonitorRegistry | None = None,
    settings: Settings | None = None,
) -> BalanceMonitor:
    """
    Start monitoring an address on the monitored chain.

    Returns the running monitor if the address is already monitored.

    Args:
        user_id: Identity passed to the bridge
        address: Address to watch
        bridge_trigger: Bridge to dispatch on increases
        min_increase: Trigger threshold (defaults to MONITOR_MIN_INCREASE)
        bridge_amount: '50%' or fixed amount (defaults to MONITOR_BRIDGE_AMOUNT)
        chain_client: Balance client (defaults to the monitored chain singleton)
        subscription_factory: Subscription source (defaults to MONITOR_WS_URLS)
        registry: Registry (defaults to the process-wide one)
        settings: Settings (defaults to the loaded application settings)

    Returns:
        Running BalanceMonitor

    Raises:
        BlockchainError: If the initial balance cannot be read
        ValueError: If bridge_amount is invalid
    """
    cfg = settings or app_settings
    registry = registry or _registry
    key = MonitorKey.create(cfg.monitor_chain, address)

    policy = BridgePolicy.parse(bridge_amount or cfg.monitor_bridge_amount)
    threshold = Decimal(min_increase) if min_increase is not None else cfg.monitor_min_increase

    def build() -> BalanceMonitor:
        return BalanceMonitor(
            key,
            chain_client or get_chain_client(cfg.monitor_chain),
            bridge_trigger,
            subscription_factory or SubscriptionFactory(cfg.get_monitor_ws_urls()),
            user_id=user_id,
            min_increase=threshold,
            policy=policy,
            reconnect_interval=cfg.monitor_reconnect_interval,
            max_reconnect_attempts=cfg.monitor_max_reconnect_attempts,
        )

    return await registry.start_monitoring(key, build)


async def start_single_address_monitoring(
    bridge_trigger: BridgeTrigger,
    *,
    registry: MonitorRegistry | None = None,
    settings: Settings | None = None,
) -> BalanceMonitor | None:
    """
    Start monitoring the address of MONITOR_PRIVATE_KEY.

    Returns:
        Running monitor, or None if not configured or the start failed
    """
    cfg = settings or app_settings
    if not cfg.monitor_private_key:
        logger.error("MONITOR_PRIVATE_KEY not set, single-address monitoring disabled")
        return None

    address = Account.from_key(cfg.monitor_private_key).address
    logger.info(f"Starting balance monitoring for {mask_address(address)} on {cfg.monitor_chain}")

    try:
        return await monitor_native_balance(
            cfg.monitor_user_id,
            address,
            bridge_trigger,
            registry=registry,
            settings=cfg,
        )
    except BlockchainError as e:
        logger.error(f"Failed to start balance monitoring: {e}")
        return None

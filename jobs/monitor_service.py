"""
Balance monitor service entry point.

Wires chain clients, key store, bridge and monitor registry together,
starts single-address monitoring when enabled and runs until SIGINT or
SIGTERM.

Usage:
    python -m jobs.monitor_service
"""

import asyncio
import signal
import sys
from pathlib import Path

from aiogram import Bot
from loguru import logger


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import Settings, settings  # noqa: E402
from app.services.balance_monitor import (  # noqa: E402
    MonitorRegistry,
    get_monitor_registry,
    start_single_address_monitoring,
)
from app.services.blockchain import (  # noqa: E402
    close_chain_clients,
    get_chain_client,
    init_chain_clients,
)
from app.services.bridge import (  # noqa: E402
    AttestationClient,
    TelegramBridgeNotifier,
    TokenBridgeConfig,
    TokenBridgeTrigger,
)
from app.services.wallet import WalletKeyStore  # noqa: E402
from app.utils.encryption import EncryptionService  # noqa: E402
from app.utils.logging import setup_logging  # noqa: E402
from app.utils.redis_utils import get_redis_client, get_redis_url_masked  # noqa: E402


def build_bridge_trigger(
    cfg: Settings,
    key_store: WalletKeyStore,
    attestation_client: AttestationClient,
    notifier: TelegramBridgeNotifier | None = None,
) -> TokenBridgeTrigger:
    """Build the bridge trigger from initialized chain clients."""
    return TokenBridgeTrigger(
        key_store=key_store,
        source_client=get_chain_client(cfg.monitor_chain),
        destination_client=get_chain_client(cfg.chain_name),
        config=TokenBridgeConfig.from_settings(cfg),
        attestation_client=attestation_client,
        notifier=notifier,
    )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def shutdown(
    registry: MonitorRegistry,
    attestation_client: AttestationClient,
    notifier: TelegramBridgeNotifier | None,
    redis_client,
    bridge_timeout: float = 0,
) -> None:
    """
    Stop monitors and release network resources.

    In-flight bridges get up to bridge_timeout seconds before the clients
    they use are closed.
    """
    logger.info("Graceful shutdown initiated...")

    unfinished = await registry.stop_all(bridge_timeout=bridge_timeout)
    if unfinished:
        logger.error(
            f"{unfinished} bridge(s) still running at shutdown, "
            f"check for locked transfers awaiting redemption"
        )
    logger.info("Balance monitors stopped")

    await attestation_client.close()
    await close_chain_clients()

    if notifier is not None:
        await notifier.close()

    if redis_client is not None:
        await redis_client.aclose()

    logger.info("Graceful shutdown complete")


async def main(cfg: Settings = settings) -> None:
    """Run the monitor service until a termination signal arrives."""
    setup_logging(cfg.log_level)
    logger.info(f"Starting monitor service ({cfg.environment})")

    init_chain_clients(cfg)

    redis_client = get_redis_client(cfg)
    logger.info(f"Wallet key store on {get_redis_url_masked(cfg)}")

    fallback_keys = {}
    if cfg.monitor_private_key:
        fallback_keys[cfg.monitor_user_id] = cfg.monitor_private_key

    key_store = WalletKeyStore(
        redis_client,
        EncryptionService(cfg.encryption_key, cfg.environment),
        fallback_keys=fallback_keys,
    )
    attestation_client = AttestationClient(
        cfg.bridge_attestation_api,
        timeout=cfg.bridge_attestation_timeout,
        poll_interval=cfg.bridge_attestation_poll_interval,
    )

    notifier = None
    if cfg.telegram_bot_token:
        notifier = TelegramBridgeNotifier(Bot(token=cfg.telegram_bot_token), cfg.chain_name)
    else:
        logger.info("TELEGRAM_BOT_TOKEN not set, bridge notifications disabled")

    bridge_trigger = build_bridge_trigger(cfg, key_store, attestation_client, notifier)
    registry = get_monitor_registry()

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    try:
        if cfg.monitor_enabled:
            await start_single_address_monitoring(
                bridge_trigger, registry=registry, settings=cfg
            )
        else:
            logger.info("MONITOR_ENABLED is false, no address monitored at startup")

        logger.success("Monitor service started")
        await stop_event.wait()
    finally:
        await shutdown(
            registry,
            attestation_client,
            notifier,
            redis_client,
            bridge_timeout=cfg.shutdown_bridge_timeout,
        )


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Monitor service stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Monitor service crashed: {e}")
        sys.exit(1)

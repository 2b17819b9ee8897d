"""
Singleton access to chain clients.

Provides global access to one ChainClient per configured chain:
- the destination chain (failover over RPC_URLS)
- the monitored source chain (failover over MONITOR_RPC_URLS)
"""

from loguru import logger

from app.config.settings import Settings

from .chain_client import ChainClient
from .endpoint_pool import EndpointPool
from .failover_transport import FailoverTransport


_chain_clients: dict[str, ChainClient] = {}


def build_chain_client(
    name: str, urls: list[str], timeout: float, chain_id: int | None = None
) -> ChainClient:
    """
    Build a chain client over a new endpoint pool.

    Args:
        name: Chain name
        urls: HTTP endpoints in failover order
        timeout: Per-attempt timeout in seconds
        chain_id: Expected chain id

    Returns:
        ChainClient instance

    Raises:
        ConfigurationError: If urls is empty
    """
    pool = EndpointPool(urls, name=name)
    transport = FailoverTransport(pool, timeout=timeout)
    return ChainClient(transport, chain_id=chain_id, name=name)


def init_chain_clients(settings: Settings) -> dict[str, ChainClient]:
    """
    Initialize chain client singletons from settings.

    Args:
        settings: Application settings

    Returns:
        Mapping of chain name to client
    """
    _chain_clients[settings.chain_name] = build_chain_client(
        settings.chain_name,
        settings.get_rpc_urls(),
        settings.rpc_timeout,
        settings.chain_id,
    )
    _chain_clients[settings.monitor_chain] = build_chain_client(
        settings.monitor_chain,
        settings.get_monitor_rpc_urls(),
        settings.rpc_timeout,
        settings.monitor_chain_id,
    )

    logger.info(f"Chain clients initialized: {', '.join(_chain_clients)}")
    return dict(_chain_clients)


def get_chain_client(name: str) -> ChainClient:
    """
    Get the chain client for a chain name.

    Returns:
        ChainClient instance

    Raises:
        RuntimeError: If not initialized
    """
    client = _chain_clients.get(name)
    if client is None:
        raise RuntimeError(
            f"ChainClient '{name}' not initialized. "
            "Call init_chain_clients() first."
        )
    return client


async def close_chain_clients() -> None:
    """Close and forget all chain clients."""
    for client in list(_chain_clients.values()):
        await client.close()
    _chain_clients.clear()

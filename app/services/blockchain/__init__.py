"""
Blockchain services module.

Provides failover RPC access and new block subscriptions:
- endpoint_pool.py       - Ordered endpoints with rotation pointer
- failover_transport.py  - JSON-RPC with endpoint failover
- chain_client.py        - Chain read/write facade
- subscription.py        - WebSocket newHeads subscription
- singleton.py           - Global chain clients
"""

from .chain_client import ChainClient, to_native, to_wei
from .endpoint_pool import EndpointPool
from .failover_transport import FailoverTransport
from .singleton import (
    build_chain_client,
    close_chain_clients,
    get_chain_client,
    init_chain_clients,
)
from .subscription import HeadNotification, NewHeadsSubscription, SubscriptionFactory


__all__ = [
    "ChainClient",
    "EndpointPool",
    "FailoverTransport",
    "HeadNotification",
    "NewHeadsSubscription",
    "SubscriptionFactory",
    "build_chain_client",
    "close_chain_clients",
    "get_chain_client",
    "init_chain_clients",
    "to_native",
    "to_wei",
]

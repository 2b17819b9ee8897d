"""
Balance monitor module.

- policy.py    - Bridge amount policy (fixed or percentage)
- monitor.py   - Per-address monitor with reconnect state machine
- registry.py  - One monitor per (chain, address)
- service.py   - Settings-driven entry points
"""

from .monitor import BalanceMonitor, ConnectionState, MonitorKey
from .policy import BridgePolicy
from .registry import MonitorRegistry
from .service import (
    get_monitor_registry,
    monitor_native_balance,
    start_single_address_monitoring,
)


__all__ = [
    "BalanceMonitor",
    "BridgePolicy",
    "ConnectionState",
    "MonitorKey",
    "MonitorRegistry",
    "get_monitor_registry",
    "monitor_native_balance",
    "start_single_address_monitoring",
]

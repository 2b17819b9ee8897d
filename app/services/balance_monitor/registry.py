"""
Monitor registry.

At most one monitor per (chain, address). Concurrent start requests for
the same key share one instance.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from loguru import logger

from .monitor import BalanceMonitor, MonitorKey


class MonitorRegistry:
    """Owns running balance monitors."""

    def __init__(self) -> None:
        self._monitors: dict[MonitorKey, BalanceMonitor] = {}
        self._locks: dict[MonitorKey, asyncio.Lock] = {}

    @asynccontextmanager
    async def _key_lock(self, key: MonitorKey) -> AsyncIterator[None]:
        # A lock dropped while we waited on it is stale; retry on the current one
        while True:
            lock = self._locks.setdefault(key, asyncio.Lock())
            async with lock:
                if self._locks.get(key) is lock:
                    yield
                    return

    def _release_key(self, key: MonitorKey) -> None:
        """Drop the key's lock once nothing is registered under it."""
        if key not in self._monitors:
            self._locks.pop(key, None)

    async def start_monitoring(
        self, key: MonitorKey, factory: Callable[[], BalanceMonitor]
    ) -> BalanceMonitor:
        """
        Return the monitor for key, creating and starting it if needed.

        Args:
            key: Monitored chain and address
            factory: Builds the monitor when none exists yet

        Returns:
            Running monitor

        Raises:
            BlockchainError: If a new monitor cannot read its baseline balance
        """
        async with self._key_lock(key):
            existing = self._monitors.get(key)
            if existing is not None:
                logger.debug(f"Monitor for {key} already registered")
                if not existing.is_running:
                    await existing.start()
                return existing

            monitor = factory()
            try:
                await monitor.start()
            except Exception:
                self._release_key(key)
                raise

            self._monitors[key] = monitor
            logger.info(f"Registered balance monitor for {key}")
            return monitor

    async def stop_monitoring(self, key: MonitorKey) -> bool:
        """
        Stop and forget the monitor for key.

        Returns:
            True if a monitor was registered
        """
        async with self._key_lock(key):
            monitor = self._monitors.pop(key, None)
            if monitor is None:
                self._release_key(key)
                return False
            await monitor.stop()
            self._release_key(key)
            logger.info(f"Unregistered balance monitor for {key}")
            return True

    async def stop_all(self, bridge_timeout: float = 0) -> int:
        """
        Stop every monitor, then wait for their in-flight bridges.

        Args:
            bridge_timeout: Seconds to let dispatched bridges finish (0 skips waiting)

        Returns:
            Number of bridges still running when the wait ended
        """
        monitors = list(self._monitors.values())
        for key in list(self._monitors):
            await self.stop_monitoring(key)

        if bridge_timeout <= 0 or not monitors:
            return 0

        remaining = await asyncio.gather(
            *(monitor.wait_for_bridges(bridge_timeout) for monitor in monitors)
        )
        return sum(remaining)

    def get(self, key: MonitorKey) -> BalanceMonitor | None:
        return self._monitors.get(key)

    def keys(self) -> list[MonitorKey]:
        return list(self._monitors)

    def __contains__(self, key: MonitorKey) -> bool:
        return key in self._monitors

    def __len__(self) -> int:
        return len(self._monitors)

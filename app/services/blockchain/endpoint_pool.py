"""
Endpoint Pool - ordered RPC endpoint list with a rotation pointer.

The pointer remembers the last endpoint that served a request so the next
logical call starts there instead of retrying a degraded endpoint first.
"""

from collections.abc import Iterable

from loguru import logger

from app.utils.exceptions import ConfigurationError
from app.utils.security import mask_url


class EndpointPool:
    """
    Ordered, deduplicated endpoint URLs fixed at construction.

    The rotation start is a plain attribute shared by all concurrent callers.
    Updates are last-writer-wins; it is a latency hint, not a correctness value.
    """

    def __init__(self, endpoints: Iterable[str], name: str = "rpc") -> None:
        """
        Initialize endpoint pool.

        Args:
            endpoints: Endpoint URLs in preference order
            name: Pool name for logging

        Raises:
            ConfigurationError: If no usable endpoint is supplied
        """
        unique: list[str] = []
        for url in endpoints:
            if url is None:
                continue
            url = url.strip()
            if url and url not in unique:
                unique.append(url)

        if not unique:
            raise ConfigurationError(f"Endpoint pool '{name}' has no endpoints configured")

        self.name = name
        self._endpoints: tuple[str, ...] = tuple(unique)
        self._start_index = 0

        logger.info(
            f"EndpointPool '{name}' initialized with {len(unique)} endpoints: "
            f"{', '.join(mask_url(u) for u in unique)}"
        )

    def __len__(self) -> int:
        return len(self._endpoints)

    def list(self) -> list[str]:
        """Return the full ordered endpoint list."""
        return list(self._endpoints)

    def start_index(self) -> int:
        """Index the next failover pass should start from."""
        return self._start_index

    def record_success(self, index: int) -> None:
        """
        Remember the endpoint that just served a request.

        Args:
            index: Endpoint index (reduced modulo pool size)
        """
        self._start_index = index % len(self._endpoints)

    def current(self) -> str:
        """Endpoint currently preferred by the rotation pointer."""
        return self._endpoints[self._start_index]

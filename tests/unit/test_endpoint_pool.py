"""Unit tests for EndpointPool."""

import pytest

from app.services.blockchain.endpoint_pool import EndpointPool
from app.utils.exceptions import ConfigurationError


class TestEndpointPool:
    """Tests for endpoint list handling and the rotation pointer."""

    def test_preserves_order_and_drops_duplicates(self):
        """Duplicates and blanks are removed, first occurrence wins."""
        pool = EndpointPool(["https://a", " https://b ", "", "https://a", "https://c"])

        assert pool.list() == ["https://a", "https://b", "https://c"]
        assert len(pool) == 3

    def test_empty_pool_rejected(self):
        """A pool needs at least one endpoint."""
        with pytest.raises(ConfigurationError):
            EndpointPool([])

        with pytest.raises(ConfigurationError):
            EndpointPool(["", "   "])

    def test_starts_at_first_endpoint(self):
        """Fresh pool starts from index 0."""
        pool = EndpointPool(["https://a", "https://b"])

        assert pool.start_index() == 0
        assert pool.current() == "https://a"

    def test_record_success_moves_pointer(self):
        """Successful endpoint becomes the next start."""
        pool = EndpointPool(["https://a", "https://b", "https://c"])

        pool.record_success(2)

        assert pool.start_index() == 2
        assert pool.current() == "https://c"

    def test_record_success_wraps_index(self):
        """Out-of-range index is reduced modulo the pool size."""
        pool = EndpointPool(["https://a", "https://b", "https://c"])

        pool.record_success(4)

        assert pool.start_index() == 1

    def test_list_is_a_copy(self):
        """Mutating the returned list does not change the pool."""
        pool = EndpointPool(["https://a"])

        endpoints = pool.list()
        endpoints.append("https://evil")

        assert pool.list() == ["https://a"]

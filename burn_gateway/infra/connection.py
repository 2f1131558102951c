"""
Cached RPC connection

Holds one lazily created RpcClient. Consumers that observe a failure call
invalidate(); the next get() builds a fresh handle.
"""

import logging
import threading
from typing import Callable, Optional

from .rpc import RpcClient, RpcClientConfig
from ..errors import ConfigurationError
from ..config import RpcConfig, get_config

logger = logging.getLogger(__name__)


class ConnectionCache:
    """
    Memoized, self-healing RPC handle

    get() never holds the lock across a network call. A reader that took a
    handle just before another thread invalidated it keeps using that handle
    and sees whatever failure triggered the invalidation. Evicted handles are
    therefore not closed here; an RpcClient releases its connection pool
    when the last reader drops it.

    Usage:
        cache = ConnectionCache()
        accounts = cache.get().get_token_accounts_by_owner(owner, mint)

        # after a transient failure
        cache.invalidate()
    """

    def __init__(
        self,
        rpc_config: Optional[RpcConfig] = None,
        client_config: Optional[RpcClientConfig] = None,
        factory: Optional[Callable[[], RpcClient]] = None,
    ):
        """
        Args:
            rpc_config: Endpoint settings (defaults to global config.rpc)
            client_config: Per-handle runtime settings
            factory: Optional handle constructor, replaces the default
                     endpoint-based construction
        """
        self._rpc_config = rpc_config
        self._client_config = client_config
        self._factory = factory or self._build
        self._handle: Optional[RpcClient] = None
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of handles built so far"""
        return self._generation

    def _build(self) -> RpcClient:
        rpc_config = self._rpc_config or get_config().rpc
        endpoint = rpc_config.endpoint
        if not endpoint:
            raise ConfigurationError.missing("HELIUS_API_KEY")
        client_config = self._client_config or RpcClientConfig(
            timeout_seconds=rpc_config.timeout_seconds,
            commitment=rpc_config.commitment,
        )
        return RpcClient(endpoint, config=client_config)

    def get(self) -> RpcClient:
        """
        Get the cached handle, building it on first use or after invalidate()

        Raises:
            ConfigurationError: RPC credential is not configured
        """
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            # Double-check after acquiring lock
            if self._handle is None:
                self._handle = self._factory()
                self._generation += 1
                logger.debug(f"RPC connection created (generation {self._generation})")
            return self._handle

    def invalidate(self) -> None:
        """Drop the cached handle so the next get() rebuilds it"""
        with self._lock:
            if self._handle is not None:
                logger.info("Resetting RPC connection")
            self._handle = None

    def close(self) -> None:
        """Close and drop the current handle"""
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

"""
GatewayClient - Unified entry point for gateway operations

Wires one ConnectionCache and one RetryExecutor into the functional
modules (balances, transfers, settlement). Safe to share across request
threads.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Union, TYPE_CHECKING

from .config import Config, get_config
from .infra import ConnectionCache, RetryExecutor, RetryPolicy
from .types import BalanceResult, SubmissionOutcome, TransferDescriptor

if TYPE_CHECKING:
    from .modules import BalanceModule, TransferModule, SettlementModule


class GatewayClient:
    """
    Unified gateway client

    Provides access to operations through functional modules:
    - balances: Token balance lookups (holiday override in front)
    - transfers: Unsigned transfer preparation for the configured token
    - settlement: Signed transaction submission and confirmation

    Usage:
        client = GatewayClient()

        amount = client.balance(wallet, mint)
        descriptor = client.prepare_transfer(wallet)
        outcome = client.submit(signed_tx_base64)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        connection: Optional[ConnectionCache] = None,
        retry: Optional[RetryExecutor] = None,
    ):
        """
        Initialize GatewayClient

        Args:
            config: Configuration (defaults to get_config() at construction)
            connection: Connection cache (built from config.rpc if omitted)
            retry: Retry executor (built from config.retry if omitted)
        """
        self._config = config or get_config()
        self._connection = connection or ConnectionCache(rpc_config=self._config.rpc)
        self._retry = retry or RetryExecutor(
            self._connection,
            RetryPolicy(
                max_attempts=self._config.retry.max_attempts,
                backoff_seconds=self._config.retry.backoff_seconds,
            ),
        )

        # Lazy-loaded modules
        self._balances: Optional["BalanceModule"] = None
        self._transfers: Optional["TransferModule"] = None
        self._settlement: Optional["SettlementModule"] = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def connection(self) -> ConnectionCache:
        """Access to the cached RPC connection"""
        return self._connection

    @property
    def retry(self) -> RetryExecutor:
        """Access to the retry executor"""
        return self._retry

    @property
    def balances(self) -> "BalanceModule":
        """
        Balance module

        Provides:
        - get_balance(wallet, mint)
        - lookup(wallet, mint)
        - find_holding_accounts(wallet, mint)
        """
        if self._balances is None:
            from .modules.balance import BalanceModule
            self._balances = BalanceModule(self)
        return self._balances

    @property
    def transfers(self) -> "TransferModule":
        """Transfer preparation module"""
        if self._transfers is None:
            from .modules.transfer import TransferModule
            self._transfers = TransferModule(self)
        return self._transfers

    @property
    def settlement(self) -> "SettlementModule":
        """Transaction submission module"""
        if self._settlement is None:
            from .modules.settlement import SettlementModule
            self._settlement = SettlementModule(self)
        return self._settlement

    # Shortcuts

    def balance(self, wallet: str, mint: str) -> Decimal:
        return self.balances.get_balance(wallet, mint)

    def balance_result(self, wallet: str, mint: str) -> BalanceResult:
        return self.balances.lookup(wallet, mint)

    def prepare_transfer(self, wallet: str) -> TransferDescriptor:
        return self.transfers.prepare_transfer(wallet)

    def submit(self, serialized: Union[bytes, str]) -> SubmissionOutcome:
        return self.settlement.submit(serialized)

    def close(self):
        """Close the cached connection"""
        self._connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

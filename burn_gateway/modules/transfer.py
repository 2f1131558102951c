"""
Transfer Module

Prepares the inputs a client needs to build an unsigned burn/transfer of
the configured token. Transaction assembly and signing happen client-side.
"""

import logging
from typing import Optional, TYPE_CHECKING

from ..errors import ConfigurationError, ErrorCode, NoHoldingAccount, RpcError
from ..infra.retry import CorrelationContext
from ..types import TransferDescriptor

if TYPE_CHECKING:
    from ..client import GatewayClient

logger = logging.getLogger(__name__)


class TransferModule:
    """
    Unsigned transfer preparation

    Usage:
        descriptor = client.transfers.prepare_transfer(wallet)
        descriptor.to_dict()  # {"tokenAccount": ..., "recentBlockhash": ...}
    """

    def __init__(self, client: "GatewayClient", mint: Optional[str] = None):
        """
        Args:
            client: GatewayClient instance
            mint: Token mint (defaults to config.token.mint)
        """
        self._client = client
        self._mint = mint

    @property
    def mint(self) -> str:
        mint = self._mint or self._client.config.token.mint
        if not mint:
            raise ConfigurationError.missing("TOKEN_MINT")
        return mint

    def prepare_transfer(self, wallet: str) -> TransferDescriptor:
        """
        Resolve the wallet's token account and a recent blockhash

        Args:
            wallet: Owner address (base58)

        Returns:
            TransferDescriptor with the source token account and blockhash

        Raises:
            InvalidAddress: Wallet is malformed
            NoHoldingAccount: Wallet has no account for the token (no
                              blockhash is fetched in that case)
            ConfigurationError: Token mint is not configured
            ExhaustedRetries: Transient RPC failures outlasted the retry budget
        """
        mint = self.mint

        with CorrelationContext("prepare") as cid:
            accounts = self._client.balances.find_holding_accounts(wallet, mint)
            if not accounts:
                logger.info(f"[{cid}] No token account for {wallet}")
                raise NoHoldingAccount(wallet, mint)

            token_account = accounts[0].address
            connection = self._client.connection
            blockhash_info = self._client.retry.run(
                lambda: connection.get().get_latest_blockhash(),
                "getLatestBlockhash",
            )

            recent_blockhash = blockhash_info.get("blockhash")
            if not recent_blockhash:
                raise RpcError("RPC returned no blockhash", ErrorCode.RPC_INVALID_RESPONSE)

            logger.info(f"[{cid}] Prepared transfer from {token_account}")
            return TransferDescriptor(
                token_account=token_account,
                recent_blockhash=recent_blockhash,
                last_valid_block_height=blockhash_info.get("lastValidBlockHeight"),
            )

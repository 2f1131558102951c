"""
Balance Module

Token balance lookups for a wallet, with the end-of-year holiday override
applied in front of the RPC read path.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, TYPE_CHECKING

from ..config import HolidayConfig
from ..infra.retry import CorrelationContext
from ..types import BalanceResult, HoldingAccount, validate_address

if TYPE_CHECKING:
    from ..client import GatewayClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HolidayWindow:
    """
    Inclusive day range within one calendar month during which balance
    reads return a fixed amount instead of querying the chain.

    Defaults to 23-25 December.
    """
    month: int = 12
    start_day: int = 23
    end_day: int = 25
    amount: Decimal = Decimal(999_999_999)
    enabled: bool = True

    @classmethod
    def from_config(cls, holiday: HolidayConfig) -> "HolidayWindow":
        return cls(
            month=holiday.month,
            start_day=holiday.start_day,
            end_day=holiday.end_day,
            amount=Decimal(holiday.amount),
            enabled=holiday.enabled,
        )

    def contains(self, moment: datetime) -> bool:
        """True when the date of ``moment`` falls inside the window"""
        if not self.enabled:
            return False
        return moment.month == self.month and self.start_day <= moment.day <= self.end_day


class BalanceModule:
    """
    Token balance queries

    Provides:
    - get_balance(wallet, mint): UI balance of the first holding account
    - lookup(wallet, mint): Same, reporting whether the holiday override fired
    - find_holding_accounts(wallet, mint): All holding accounts, no override

    Usage:
        client = GatewayClient()
        amount = client.balances.get_balance(wallet, mint)
    """

    def __init__(
        self,
        client: "GatewayClient",
        holiday: Optional[HolidayWindow] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            client: GatewayClient instance
            holiday: Override window (defaults to client config)
            clock: Current-time source (injectable for tests)
        """
        self._client = client
        self._holiday = holiday or HolidayWindow.from_config(client.config.holiday)
        self._clock = clock

    @property
    def holiday(self) -> HolidayWindow:
        return self._holiday

    def is_holiday(self) -> bool:
        """True when the holiday override is active right now"""
        return self._holiday.contains(self._clock())

    def find_holding_accounts(self, wallet: str, mint: str) -> List[HoldingAccount]:
        """
        Resolve the wallet's token accounts for a mint

        Goes through the client's RetryExecutor and ConnectionCache.

        Args:
            wallet: Owner address (base58)
            mint: Token mint address (base58)

        Returns:
            Holding accounts, empty when the wallet never held the token

        Raises:
            InvalidAddress: Either identifier is malformed
            ExhaustedRetries: Transient RPC failures outlasted the retry budget
        """
        wallet = validate_address(wallet, "wallet")
        mint = validate_address(mint, "mint")

        connection = self._client.connection
        commitment = self._client.config.rpc.commitment

        entries = self._client.retry.run(
            lambda: connection.get().get_token_accounts_by_owner(
                wallet,
                mint=mint,
                commitment=commitment,
            ),
            "getTokenAccountsByOwner",
        )
        return [HoldingAccount.from_rpc(entry, owner=wallet, mint=mint) for entry in entries]

    def lookup(self, wallet: str, mint: str) -> BalanceResult:
        """
        Get token balance, flagging holiday overrides

        The holiday check runs before anything else, including address
        validation, and performs no RPC call.
        """
        if self.is_holiday():
            logger.info("Holiday period active - returning holiday balance")
            return BalanceResult(amount=self._holiday.amount, holiday_bonus=True)

        with CorrelationContext("balance") as cid:
            logger.debug(f"[{cid}] Fetching token accounts for {wallet}")
            accounts = self.find_holding_accounts(wallet, mint)

            if not accounts:
                logger.info(f"[{cid}] No token accounts found")
                return BalanceResult(amount=Decimal(0))

            balance = accounts[0].amount
            logger.info(f"[{cid}] Found balance: {balance}")
            return BalanceResult(amount=balance)

    def get_balance(self, wallet: str, mint: str) -> Decimal:
        """
        Get token balance in UI units

        Args:
            wallet: Owner address (base58)
            mint: Token mint address (base58)

        Returns:
            Balance of the first holding account, 0 when none exists,
            or the holiday amount while the override window is open
        """
        return self.lookup(wallet, mint).amount

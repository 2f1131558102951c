"""
Functional modules for Burn Gateway

- balance: Token balance queries (holiday override in front)
- transfer: Unsigned transfer preparation
- settlement: Signed transaction submission and confirmation
"""

from .balance import BalanceModule, HolidayWindow
from .transfer import TransferModule
from .settlement import SettlementModule, decode_transaction_error, deserialize_transaction

__all__ = [
    "BalanceModule",
    "HolidayWindow",
    "TransferModule",
    "SettlementModule",
    "decode_transaction_error",
    "deserialize_transaction",
]

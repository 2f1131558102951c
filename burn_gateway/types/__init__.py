"""
Type definitions for Burn Gateway
"""

from .account import HoldingAccount, TransferDescriptor, validate_address
from .result import BalanceResult, OutcomeStatus, RejectReason, SubmissionOutcome

__all__ = [
    "HoldingAccount",
    "TransferDescriptor",
    "validate_address",
    "BalanceResult",
    "OutcomeStatus",
    "RejectReason",
    "SubmissionOutcome",
]

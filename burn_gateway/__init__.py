"""
Burn Gateway

Resilient Solana RPC access for a token balance-check / burn workflow:
- Cached, self-healing RPC connection
- Retry with linear backoff for transient network failures
- Single-shot transaction submission with decoded outcomes

Usage:
    from burn_gateway import GatewayClient

    with GatewayClient() as client:
        amount = client.balance(wallet, mint)
        descriptor = client.prepare_transfer(wallet)
        outcome = client.submit(signed_tx_base64)
"""

from .client import GatewayClient
from .config import Config, get_config, reload_config, setup_logging, enable_file_logging
from .errors import (
    ErrorCode,
    GatewayError,
    RpcError,
    ExhaustedRetries,
    InvalidAddress,
    NoHoldingAccount,
    MalformedTransaction,
    ConfigurationError,
)
from .types import (
    BalanceResult,
    HoldingAccount,
    OutcomeStatus,
    RejectReason,
    SubmissionOutcome,
    TransferDescriptor,
)
from .infra import ConnectionCache, RetryExecutor, RetryPolicy, ErrorClass, classify_error
from .modules import BalanceModule, HolidayWindow, TransferModule, SettlementModule

__version__ = "0.1.0"

__all__ = [
    "GatewayClient",
    # Config
    "Config",
    "get_config",
    "reload_config",
    "setup_logging",
    "enable_file_logging",
    # Errors
    "ErrorCode",
    "GatewayError",
    "RpcError",
    "ExhaustedRetries",
    "InvalidAddress",
    "NoHoldingAccount",
    "MalformedTransaction",
    "ConfigurationError",
    # Types
    "BalanceResult",
    "HoldingAccount",
    "OutcomeStatus",
    "RejectReason",
    "SubmissionOutcome",
    "TransferDescriptor",
    # Infra
    "ConnectionCache",
    "RetryExecutor",
    "RetryPolicy",
    "ErrorClass",
    "classify_error",
    # Modules
    "BalanceModule",
    "HolidayWindow",
    "TransferModule",
    "SettlementModule",
]

"""
Error definitions for Burn Gateway
"""

from .exceptions import (
    ErrorCode,
    GatewayError,
    RpcError,
    ExhaustedRetries,
    InvalidAddress,
    NoHoldingAccount,
    MalformedTransaction,
    ConfigurationError,
)

__all__ = [
    "ErrorCode",
    "GatewayError",
    "RpcError",
    "ExhaustedRetries",
    "InvalidAddress",
    "NoHoldingAccount",
    "MalformedTransaction",
    "ConfigurationError",
]

"""
Infrastructure layer for Burn Gateway

Provides:
- RpcClient: HTTP JSON-RPC handle
- ConnectionCache: Lazily built, invalidatable RpcClient
- RetryExecutor: Bounded retry with transient/fatal classification
"""

from .rpc import RpcClient, RpcClientConfig
from .connection import ConnectionCache
from .retry import (
    RetryExecutor,
    RetryPolicy,
    ErrorClass,
    classify_error,
    CorrelationContext,
    get_correlation_id,
)

__all__ = [
    "RpcClient",
    "RpcClientConfig",
    "ConnectionCache",
    "RetryExecutor",
    "RetryPolicy",
    "ErrorClass",
    "classify_error",
    "CorrelationContext",
    "get_correlation_id",
]

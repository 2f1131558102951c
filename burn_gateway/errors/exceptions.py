"""
Exception definitions for Burn Gateway
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for gateway operations

    1xxx - RPC errors
    2xxx - Transaction errors
    3xxx - Account errors
    9xxx - Configuration errors
    """
    # RPC errors
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"
    RPC_RETRIES_EXHAUSTED = "1005"

    # Transaction errors
    TX_MALFORMED = "2001"
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"

    # Account errors
    ADDRESS_INVALID = "3001"
    HOLDING_ACCOUNT_NOT_FOUND = "3002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class GatewayError(Exception):
    """
    Root of every error the gateway raises

    Attributes:
        message: Text safe to show the caller
        code: Stable ErrorCode
        recoverable: True for conditions a later attempt may clear
        original_error: Wrapped lower-level exception, if any
        details: Extra structured context for logs and responses
    """

    # Error category reported to callers, overridden per subclass
    category = "gateway_error"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable

    def to_dict(self) -> dict:
        """Structured category plus human-readable detail for callers"""
        return {
            "error": self.category,
            "details": self.message,
            "code": self.code.value,
        }


class RpcError(GatewayError):
    """
    RPC-related errors

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - The endpoint answers with a JSON-RPC error object
    """

    category = "rpc_error"
    http_status = 502

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        rpc_code: Optional[int] = None,
        rpc_data: Optional[object] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=code in (ErrorCode.RPC_CONNECTION_FAILED, ErrorCode.RPC_TIMEOUT),
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint
        self.rpc_code = rpc_code
        self.rpc_data = rpc_data
        if rpc_code is not None:
            self.details["rpc_error_code"] = rpc_code
            self.details["rpc_error_data"] = rpc_data

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {error or endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float, error: Exception = None) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )

    @classmethod
    def http_error(cls, endpoint: str, status_code: int, error: Exception = None) -> "RpcError":
        return cls(
            f"HTTP error {status_code}",
            ErrorCode.RPC_INVALID_RESPONSE,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def rpc_response(cls, endpoint: str, error: dict) -> "RpcError":
        """Build from a JSON-RPC error object ({"code", "message", "data"})"""
        return cls(
            f"RPC error: {error.get('message', error)}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=endpoint,
            rpc_code=error.get("code"),
            rpc_data=error.get("data"),
        )


class ExhaustedRetries(GatewayError):
    """
    Transient failures persisted past the retry budget

    The last underlying error is kept in ``original_error`` and chained
    as ``__cause__``.
    """

    category = "retries_exhausted"
    http_status = 502

    def __init__(
        self,
        operation: str,
        attempts: int,
        last_error: Optional[Exception] = None,
    ):
        message = f"{operation} failed after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(
            message,
            ErrorCode.RPC_RETRIES_EXHAUSTED,
            recoverable=False,
            original_error=last_error,
            details={"operation": operation, "attempts": attempts},
        )
        self.operation = operation
        self.attempts = attempts


class InvalidAddress(GatewayError):
    """
    Malformed wallet or mint address - client input error, never retried
    """

    category = "invalid_address"
    http_status = 400

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            ErrorCode.ADDRESS_INVALID,
            recoverable=False,
            original_error=original_error,
            details={"address": address, "field": field},
        )
        self.address = address
        self.field = field

    @classmethod
    def missing(cls, field: str) -> "InvalidAddress":
        return cls(f"Missing required address: {field}", field=field)

    @classmethod
    def malformed(cls, field: str, address: str, error: Exception = None) -> "InvalidAddress":
        return cls(
            f"Invalid {field} address: {address!r}",
            address=address,
            field=field,
            original_error=error,
        )


class NoHoldingAccount(GatewayError):
    """
    Wallet holds no account for the configured token - nothing to transfer
    """

    category = "no_holding_account"
    http_status = 400

    def __init__(self, wallet: str, mint: str):
        super().__init__(
            f"No token account found for wallet {wallet} and mint {mint}",
            ErrorCode.HOLDING_ACCOUNT_NOT_FOUND,
            recoverable=False,
            details={"wallet": wallet, "mint": mint},
        )
        self.wallet = wallet
        self.mint = mint


class MalformedTransaction(GatewayError):
    """
    Submitted transaction bytes could not be decoded
    """

    category = "malformed_transaction"
    http_status = 400

    def __init__(self, reason: str, original_error: Optional[Exception] = None):
        super().__init__(
            f"Malformed transaction: {reason}",
            ErrorCode.TX_MALFORMED,
            recoverable=False,
            original_error=original_error,
        )
        self.reason = reason


class ConfigurationError(GatewayError):
    """
    Server-side setup problem (absent RPC credential, unusable value).
    Reported to callers as a misconfiguration, never as their fault.
    """

    category = "server_misconfigured"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"{param} is not configured", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"{param} is invalid: {reason}", ErrorCode.CONFIG_INVALID)

"""
Retry Logic Helper Module

Bounded retry with linear backoff for read-path RPC calls. Failures are
classified TRANSIENT or FATAL exactly once, here. Includes structured
logging with correlation IDs for request tracing.
"""

import errno
import logging
import time
import uuid
import contextvars
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

import httpx

from .connection import ConnectionCache
from ..errors import ErrorCode, ExhaustedRetries, GatewayError, RpcError
from ..config import get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("balance") as cid:
            logger.info(f"[{cid}] Starting lookup")
            executor.run(fetch, "getTokenAccountsByOwner")
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Args:
            prefix: Optional prefix for the correlation ID (e.g., "balance", "submit")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def _log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_attempts: Attempt budget
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_attempts is not None:
        parts.append(f"[{attempt}/{max_attempts}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


class ErrorClass(Enum):
    """Retry classification of a failure"""
    TRANSIENT = "transient"
    FATAL = "fatal"


# Transport failure text surfaced by fetch-style HTTP stacks
FETCH_FAILED_MESSAGE = "fetch failed"

TRANSIENT_RPC_CODES = (ErrorCode.RPC_TIMEOUT, ErrorCode.RPC_CONNECTION_FAILED)


def _is_timeout(error: BaseException) -> bool:
    """Request timeout, recognised by type or class name"""
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return True
    return type(error).__name__ == "TimeoutError"


def _is_connection_timeout(error: BaseException) -> bool:
    """Socket-level timeout, recognised by errno/code"""
    if isinstance(error, OSError) and error.errno == errno.ETIMEDOUT:
        return True
    return getattr(error, "code", None) == "ETIMEDOUT"


def _is_transport_failure(error: BaseException) -> bool:
    """Generic transport failure (request never produced a response)"""
    if isinstance(error, httpx.TransportError):
        return True
    return FETCH_FAILED_MESSAGE in str(error).lower()


def classify_error(error: BaseException) -> ErrorClass:
    """
    Classify an error as TRANSIENT or FATAL.

    TRANSIENT covers exactly three conditions: a request timeout, a
    socket-level ETIMEDOUT, and a transport failure. RpcError instances
    already carry the mapping from the httpx exception in their code.
    Everything else, including invalid addresses, JSON-RPC error objects,
    HTTP status errors and rate limiting, is FATAL.

    Args:
        error: The exception to classify

    Returns:
        ErrorClass.TRANSIENT or ErrorClass.FATAL
    """
    if isinstance(error, RpcError):
        if error.code in TRANSIENT_RPC_CODES:
            return ErrorClass.TRANSIENT
        return ErrorClass.FATAL

    # Gateway errors may echo caller input in their message
    if isinstance(error, GatewayError):
        return ErrorClass.FATAL

    if _is_timeout(error) or _is_connection_timeout(error) or _is_transport_failure(error):
        return ErrorClass.TRANSIENT
    return ErrorClass.FATAL


@dataclass
class RetryPolicy:
    """
    Retry executor runtime policy

    Pulls defaults from the global config (burn_gateway.config.RetryConfig).
    """
    max_attempts: int = None
    backoff_seconds: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.max_attempts is None:
            self.max_attempts = get_config().retry.max_attempts
        if self.backoff_seconds is None:
            self.backoff_seconds = get_config().retry.backoff_seconds


class RetryExecutor:
    """
    Runs a zero-argument remote operation with bounded retries

    On a TRANSIENT failure with attempts left, the cached connection is
    invalidated and the executor sleeps backoff_seconds * attempt before the
    next try (1x, 2x, 3x ...). FATAL failures propagate unchanged on the
    first occurrence. Exhausting the budget raises ExhaustedRetries chained
    from the last error.

    The operation should fetch its handle from the ConnectionCache on every
    call so that a retry uses the rebuilt connection.

    Usage:
        executor = RetryExecutor(cache)
        accounts = executor.run(
            lambda: cache.get().get_token_accounts_by_owner(owner, mint),
            "getTokenAccountsByOwner",
        )
    """

    def __init__(
        self,
        connection: Optional[ConnectionCache] = None,
        config: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            connection: Cache to invalidate on transient failures
            config: Attempt budget and backoff unit
            sleep: Sleep function (injectable for tests)
        """
        self._connection = connection
        self._config = config or RetryPolicy()
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    @property
    def backoff_seconds(self) -> float:
        return self._config.backoff_seconds

    def run(
        self,
        operation: Callable[[], T],
        operation_name: str = "rpc",
        max_attempts: Optional[int] = None,
        classify: Callable[[BaseException], ErrorClass] = classify_error,
    ) -> T:
        """
        Execute an operation with automatic retry for transient errors.

        Args:
            operation: Callable performing one remote call
            operation_name: Name for logging purposes
            max_attempts: Total attempts including the first (defaults to config)
            classify: Error classifier

        Returns:
            The operation's result

        Raises:
            ExhaustedRetries: Every attempt failed with a transient error
            Exception: The first fatal error, unchanged
        """
        attempts = max_attempts if max_attempts is not None else self._config.max_attempts
        attempts = max(attempts, 1)
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                result = operation()
                if attempt > 1:
                    _log_with_correlation(
                        logging.INFO,
                        f"Succeeded after {attempt} attempts",
                        operation_name,
                        attempt,
                        attempts,
                    )
                return result

            except Exception as e:
                if classify(e) is ErrorClass.FATAL:
                    _log_with_correlation(
                        logging.DEBUG,
                        f"Fatal error, not retrying: {e}",
                        operation_name,
                        attempt,
                        attempts,
                        error_type="fatal",
                    )
                    raise

                last_error = e
                if self._connection is not None:
                    self._connection.invalidate()

                if attempt < attempts:
                    delay = self._config.backoff_seconds * attempt
                    _log_with_correlation(
                        logging.WARNING,
                        f"Transient error, retrying in {delay:g}s: {e}",
                        operation_name,
                        attempt,
                        attempts,
                        error_type="transient",
                    )
                    self._sleep(delay)

        _log_with_correlation(
            logging.ERROR,
            f"Max attempts ({attempts}) exceeded. Last error: {last_error}",
            operation_name,
            attempts,
            attempts,
        )
        raise ExhaustedRetries(operation_name, attempts, last_error) from last_error

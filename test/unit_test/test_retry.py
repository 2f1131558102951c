"""
Unit tests for retry logic module
"""

import errno
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, Mock

import httpx

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from burn_gateway.infra.retry import (
    RetryExecutor,
    RetryPolicy,
    ErrorClass,
    classify_error,
    CorrelationContext,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from burn_gateway.errors import ExhaustedRetries, InvalidAddress, MalformedTransaction, NoHoldingAccount, RpcError


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_httpx_timeout_is_transient(self):
        """Request timeouts should be transient"""
        self.assertEqual(classify_error(httpx.ReadTimeout("timed out")), ErrorClass.TRANSIENT)

    def test_builtin_timeout_is_transient(self):
        """TimeoutError should be transient"""
        self.assertEqual(classify_error(TimeoutError()), ErrorClass.TRANSIENT)

    def test_timeout_by_class_name_is_transient(self):
        """Foreign exceptions named TimeoutError should be transient"""
        error_cls = type("TimeoutError", (Exception,), {})
        self.assertEqual(classify_error(error_cls("deadline")), ErrorClass.TRANSIENT)

    def test_etimedout_errno_is_transient(self):
        """Socket-level ETIMEDOUT should be transient"""
        error = OSError(errno.ETIMEDOUT, "Connection timed out")
        self.assertEqual(classify_error(error), ErrorClass.TRANSIENT)

    def test_etimedout_code_is_transient(self):
        """Errors carrying code='ETIMEDOUT' should be transient"""
        error = Exception("socket hang up")
        error.code = "ETIMEDOUT"
        self.assertEqual(classify_error(error), ErrorClass.TRANSIENT)

    def test_transport_failure_is_transient(self):
        """httpx transport failures and 'fetch failed' should be transient"""
        self.assertEqual(classify_error(httpx.ConnectError("refused")), ErrorClass.TRANSIENT)
        self.assertEqual(classify_error(Exception("TypeError: fetch failed")), ErrorClass.TRANSIENT)

    def test_rpc_error_codes(self):
        """RpcError is classified by its code"""
        self.assertEqual(classify_error(RpcError.timeout("rpc", 5)), ErrorClass.TRANSIENT)
        self.assertEqual(classify_error(RpcError.connection_failed("rpc")), ErrorClass.TRANSIENT)
        self.assertEqual(classify_error(RpcError.rate_limited("rpc")), ErrorClass.FATAL)
        self.assertEqual(
            classify_error(RpcError.rpc_response("rpc", {"code": -32602, "message": "Invalid param"})),
            ErrorClass.FATAL,
        )

    def test_other_errors_are_fatal(self):
        """Everything else is fatal"""
        self.assertEqual(classify_error(ValueError("bad")), ErrorClass.FATAL)
        self.assertEqual(classify_error(InvalidAddress.missing("wallet")), ErrorClass.FATAL)
        self.assertEqual(classify_error(Exception("Too many requests")), ErrorClass.FATAL)

    def test_gateway_errors_are_fatal_regardless_of_message(self):
        """Caller input echoed into a gateway error never makes it transient"""
        self.assertEqual(classify_error(InvalidAddress.malformed("wallet", "fetch failed")), ErrorClass.FATAL)
        self.assertEqual(classify_error(NoHoldingAccount("fetch failed", "fetch failed")), ErrorClass.FATAL)
        self.assertEqual(classify_error(MalformedTransaction("fetch failed")), ErrorClass.FATAL)

    def test_invalid_address_not_retried(self):
        """An invalid address with transport-like text propagates on the first attempt"""
        operation = Mock(side_effect=InvalidAddress.malformed("wallet", "TypeError: fetch failed"))
        connection = Mock()
        sleep = Mock()
        executor = RetryExecutor(connection, RetryPolicy(max_attempts=3, backoff_seconds=1.0), sleep=sleep)

        with self.assertRaises(InvalidAddress):
            executor.run(operation, "getTokenAccountsByOwner")

        self.assertEqual(operation.call_count, 1)
        connection.invalidate.assert_not_called()
        sleep.assert_not_called()


class TestCorrelationId(unittest.TestCase):
    """Tests for correlation ID helpers"""

    def test_generate_correlation_id(self):
        cid = generate_correlation_id()
        self.assertEqual(len(cid), 12)
        self.assertNotEqual(cid, generate_correlation_id())

    def test_correlation_context_sets_and_resets(self):
        self.assertIsNone(get_correlation_id())
        with CorrelationContext("balance") as cid:
            self.assertTrue(cid.startswith("balance_"))
            self.assertEqual(get_correlation_id(), cid)
        self.assertIsNone(get_correlation_id())

    def test_set_correlation_id(self):
        token = set_correlation_id("manual")
        try:
            self.assertEqual(get_correlation_id(), "manual")
        finally:
            from burn_gateway.infra.retry import _correlation_id
            _correlation_id.reset(token)


class TestRetryPolicy(unittest.TestCase):
    """Tests for RetryPolicy defaults"""

    def test_defaults_from_config(self):
        policy = RetryPolicy()
        self.assertGreaterEqual(policy.max_attempts, 1)
        self.assertGreaterEqual(policy.backoff_seconds, 0)

    def test_overrides(self):
        policy = RetryPolicy(max_attempts=5, backoff_seconds=0.5)
        self.assertEqual(policy.max_attempts, 5)
        self.assertEqual(policy.backoff_seconds, 0.5)


class TestRetryExecutor(unittest.TestCase):
    """Tests for RetryExecutor.run"""

    def setUp(self):
        self.connection = MagicMock()
        self.sleep = Mock()
        self.executor = RetryExecutor(
            self.connection,
            RetryPolicy(max_attempts=3, backoff_seconds=1.0),
            sleep=self.sleep,
        )

    def test_success_first_attempt(self):
        """Successful operation runs once, no sleep, no invalidation"""
        operation = Mock(return_value="ok")

        self.assertEqual(self.executor.run(operation, "test_op"), "ok")
        self.assertEqual(operation.call_count, 1)
        self.sleep.assert_not_called()
        self.connection.invalidate.assert_not_called()

    def test_transient_then_success(self):
        """Transient failures are retried with linear backoff"""
        operation = Mock(side_effect=[
            httpx.ConnectTimeout("timed out"),
            httpx.ConnectError("refused"),
            "ok",
        ])

        self.assertEqual(self.executor.run(operation, "test_op"), "ok")
        self.assertEqual(operation.call_count, 3)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [1.0, 2.0])
        self.assertEqual(self.connection.invalidate.call_count, 2)

    def test_fatal_error_propagates_immediately(self):
        """Fatal errors are raised unchanged after one attempt"""
        error = RpcError.rpc_response("rpc", {"code": -32602, "message": "Invalid param"})
        operation = Mock(side_effect=error)

        with self.assertRaises(RpcError) as ctx:
            self.executor.run(operation, "test_op")

        self.assertIs(ctx.exception, error)
        self.assertEqual(operation.call_count, 1)
        self.sleep.assert_not_called()
        self.connection.invalidate.assert_not_called()

    def test_exhausted_retries(self):
        """Persistent transient failures raise ExhaustedRetries chained to the last error"""
        errors = [TimeoutError("t1"), TimeoutError("t2"), TimeoutError("t3")]
        operation = Mock(side_effect=errors)

        with self.assertRaises(ExhaustedRetries) as ctx:
            self.executor.run(operation, "test_op")

        self.assertEqual(operation.call_count, 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIs(ctx.exception.__cause__, errors[-1])
        self.assertIs(ctx.exception.original_error, errors[-1])
        # No sleep after the final attempt
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [1.0, 2.0])
        self.assertEqual(self.connection.invalidate.call_count, 3)

    def test_max_attempts_override(self):
        """Per-call attempt budget overrides the policy"""
        operation = Mock(side_effect=TimeoutError("t"))

        with self.assertRaises(ExhaustedRetries):
            self.executor.run(operation, "test_op", max_attempts=1)

        self.assertEqual(operation.call_count, 1)
        self.sleep.assert_not_called()

    def test_custom_classifier(self):
        """A custom classifier can mark any error transient"""
        operation = Mock(side_effect=[KeyError("x"), "ok"])

        result = self.executor.run(
            operation,
            "test_op",
            classify=lambda e: ErrorClass.TRANSIENT,
        )

        self.assertEqual(result, "ok")
        self.assertEqual(operation.call_count, 2)

    def test_without_connection(self):
        """Executor works without a cache to invalidate"""
        executor = RetryExecutor(None, RetryPolicy(max_attempts=2, backoff_seconds=0), sleep=self.sleep)
        operation = Mock(side_effect=[TimeoutError("t"), "ok"])

        self.assertEqual(executor.run(operation), "ok")

    def test_properties(self):
        self.assertEqual(self.executor.max_attempts, 3)
        self.assertEqual(self.executor.backoff_seconds, 1.0)


if __name__ == "__main__":
    unittest.main()

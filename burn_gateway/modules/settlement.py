"""
Settlement Module

Submits client-signed transactions exactly once, waits for confirmation
and decodes the result into a SubmissionOutcome.

A signed transaction is never resent from here: if the network fails
mid-flight its fate is unknown, and sending it again could duplicate the
burn or be rejected as a duplicate depending on the provider.
"""

import base64
import binascii
import logging
from typing import Any, Optional, Tuple, Union, TYPE_CHECKING

from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ..errors import ErrorCode, MalformedTransaction, RpcError
from ..infra.retry import CorrelationContext
from ..types import RejectReason, SubmissionOutcome

if TYPE_CHECKING:
    from ..client import GatewayClient

logger = logging.getLogger(__name__)

# Transaction error the node reports when the blockhash has expired
BLOCKHASH_NOT_FOUND = "BlockhashNotFound"


def _custom_error_code(err: Any) -> Optional[int]:
    """
    Extract the custom program error code from a transaction error

    {"InstructionError": [0, {"Custom": 18}]} -> 18
    """
    if not isinstance(err, dict):
        return None
    instruction_error = err.get("InstructionError")
    if not isinstance(instruction_error, (list, tuple)) or len(instruction_error) < 2:
        return None
    detail = instruction_error[1]
    if isinstance(detail, dict) and isinstance(detail.get("Custom"), int):
        return detail["Custom"]
    return None


def decode_transaction_error(
    err: Any,
    insufficient_balance_code: int = 18,
    signature: Optional[str] = None,
) -> SubmissionOutcome:
    """
    Map an on-chain (or preflight) transaction error to an outcome

    Args:
        err: Transaction error as returned by the RPC (dict or string)
        insufficient_balance_code: Custom program code meaning "insufficient balance"
        signature: Transaction signature, when known

    Returns:
        REJECTED(INSUFFICIENT_BALANCE) for the configured custom code,
        REJECTED(OTHER) with the raw error for anything else
    """
    code = _custom_error_code(err)
    if code is not None and code == insufficient_balance_code:
        return SubmissionOutcome.rejected(
            RejectReason.INSUFFICIENT_BALANCE,
            detail=err,
            code=code,
            signature=signature,
        )
    return SubmissionOutcome.rejected(
        RejectReason.OTHER,
        detail=err,
        code=code,
        signature=signature,
    )


def _decode_preflight_error(
    error: RpcError,
    insufficient_balance_code: int,
    signature: Optional[str],
) -> SubmissionOutcome:
    """Outcome for a JSON-RPC error answer to sendTransaction"""
    data = error.rpc_data if isinstance(error.rpc_data, dict) else {}
    err = data.get("err")
    if err == BLOCKHASH_NOT_FOUND:
        return SubmissionOutcome.retryable("blockhash expired", signature=signature)
    if err:
        return decode_transaction_error(err, insufficient_balance_code, signature=signature)
    return SubmissionOutcome.rejected(
        RejectReason.OTHER,
        detail={"message": error.message, "code": error.rpc_code},
        signature=signature,
    )


def deserialize_transaction(serialized: Union[bytes, str]) -> Tuple[bytes, str]:
    """
    Decode a signed transaction

    Args:
        serialized: Raw wire bytes, or base64 text

    Returns:
        (wire_bytes, signature_base58)

    Raises:
        MalformedTransaction: Not decodable, or not signed
    """
    if not serialized:
        raise MalformedTransaction("missing serialized transaction")

    if isinstance(serialized, str):
        try:
            raw = base64.b64decode(serialized, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedTransaction("not valid base64", e) from e
    else:
        raw = bytes(serialized)

    try:
        tx = VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise MalformedTransaction(f"cannot deserialize: {e}", e) from e

    signatures = list(tx.signatures)
    if not signatures or signatures[0] == Signature.default():
        raise MalformedTransaction("transaction is not signed")

    return raw, str(signatures[0])


class SettlementModule:
    """
    Signed transaction submission

    State machine per submission:
        Submitted -> CONFIRMED | REJECTED | UNKNOWN_FAILURE
    plus RETRYABLE_FAILURE when the node refused it before broadcast
    (expired blockhash at preflight, or a provider rate-limit answer).

    Usage:
        outcome = client.settlement.submit(base64_tx)
        if outcome.is_confirmed:
            print(outcome.signature)
    """

    def __init__(self, client: "GatewayClient"):
        """
        Args:
            client: GatewayClient instance
        """
        self._client = client

    def submit(self, serialized: Union[bytes, str]) -> SubmissionOutcome:
        """
        Submit a signed transaction once and wait for its confirmation

        Args:
            serialized: Signed transaction, wire bytes or base64 text

        Returns:
            SubmissionOutcome

        Raises:
            MalformedTransaction: Transaction could not be decoded
            ConfigurationError: RPC credential is not configured
        """
        raw, signature = deserialize_transaction(serialized)
        tx_config = self._client.config.tx
        connection = self._client.connection
        rpc = connection.get()

        with CorrelationContext("submit") as cid:
            try:
                sent = rpc.send_transaction(
                    raw,
                    skip_preflight=tx_config.skip_preflight,
                    preflight_commitment=tx_config.preflight_commitment,
                    max_retries=tx_config.send_max_retries,
                )
            except RpcError as e:
                if e.code == ErrorCode.RPC_RATE_LIMITED:
                    logger.warning(f"[{cid}] Transaction refused, provider rate limit")
                    return SubmissionOutcome.retryable(e.message, signature=signature)
                if e.rpc_code is not None:
                    logger.warning(f"[{cid}] Transaction refused by node: {e.message}")
                    return _decode_preflight_error(e, tx_config.insufficient_balance_code, signature)
                return self._unknown(cid, e, signature)
            except Exception as e:
                return self._unknown(cid, e, signature)

            signature = sent or signature
            logger.info(f"[{cid}] Transaction sent: {signature}")

            try:
                status = rpc.confirm_transaction(
                    signature,
                    commitment=tx_config.preflight_commitment,
                    timeout_seconds=tx_config.confirmation_timeout,
                    poll_interval=tx_config.poll_interval,
                )
            except Exception as e:
                return self._unknown(cid, e, signature)

            err = status.get("err") if status else None
            if err:
                logger.error(f"[{cid}] Transaction failed: {err}")
                return decode_transaction_error(err, tx_config.insufficient_balance_code, signature=signature)

            logger.info(f"[{cid}] Transaction confirmed: {signature}")
            return SubmissionOutcome.confirmed(signature)

    def _unknown(self, cid: str, error: Exception, signature: Optional[str]) -> SubmissionOutcome:
        """Network-level failure: fate unknown, connection evicted"""
        logger.error(f"[{cid}] Transaction error ({type(error).__name__}): {error}")
        self._client.connection.invalidate()
        message = error.message if isinstance(error, RpcError) else str(error)
        return SubmissionOutcome.unknown(message or type(error).__name__, signature=signature)

"""
RPC Client for Solana

Provides the JSON-RPC handle the gateway talks to:
- One endpoint, one commitment level
- Per-call timeout (deadline) override
- Transport failures mapped to RpcError codes at the point of call

Retries are not done here; see infra.retry.RetryExecutor.
"""

from __future__ import annotations

import base64
import itertools
import logging
import time
import weakref
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from ..errors import ErrorCode, RpcError, ConfigurationError
from ..config import get_config

logger = logging.getLogger(__name__)

# Ordering of Solana commitment levels, lowest first
_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Pulls defaults from the global config (burn_gateway.config.RpcConfig)
    for any value left unset.

    Usage:
        config = RpcClientConfig(timeout_seconds=5)
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    commitment: str = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = get_config().rpc.timeout_seconds
        if self.commitment is None:
            self.commitment = get_config().rpc.commitment


class RpcClient:
    """
    Solana JSON-RPC handle

    Usage:
        rpc = RpcClient("https://mainnet.helius-rpc.com/?api-key=...")

        accounts = rpc.get_token_accounts_by_owner(owner, mint=mint)
        blockhash = rpc.get_latest_blockhash()["blockhash"]
        signature = rpc.send_transaction(signed_bytes, max_retries=3)
        status = rpc.confirm_transaction(signature)
    """

    def __init__(
        self,
        endpoint: str,
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL
            config: RPC configuration options
        """
        if not endpoint:
            raise ConfigurationError.missing("RPC endpoint")

        self._endpoint = endpoint
        self._config = config or RpcClientConfig()
        self._client = httpx.Client(
            timeout=self._config.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )
        self._request_ids = itertools.count(1)
        # Release the connection pool once the last reference is gone
        self._finalizer = weakref.finalize(self, self._client.close)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def display_endpoint(self) -> str:
        """Endpoint without query string, safe for logs (drops api-key)"""
        parts = urlsplit(self._endpoint)
        return f"{parts.scheme}://{parts.netloc}{parts.path}"

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make a single JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional deadline override in seconds

        Returns:
            RPC result

        Raises:
            RpcError: On transport failure, HTTP error or JSON-RPC error object
        """
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        endpoint = self.display_endpoint
        timeout_val = timeout or self._config.timeout_seconds

        try:
            response = self._client.post(
                self._endpoint,
                json=body,
                timeout=timeout_val,
            )

            if response.status_code == 429:
                logger.warning(f"Rate limited by {endpoint}")
                raise RpcError.rate_limited(endpoint)

            response.raise_for_status()
            result = response.json()

        except httpx.TimeoutException as e:
            logger.warning(f"RPC timeout ({method}): {endpoint}")
            raise RpcError.timeout(endpoint, timeout_val, e) from e

        except httpx.TransportError as e:
            logger.warning(f"RPC connection error ({method}): {e}")
            raise RpcError.connection_failed(endpoint, e) from e

        except httpx.HTTPStatusError as e:
            logger.warning(f"RPC HTTP error ({method}): {e.response.status_code}")
            raise RpcError.http_error(endpoint, e.response.status_code, e) from e

        except httpx.RequestError as e:
            raise RpcError(
                f"Request failed: {e}",
                ErrorCode.RPC_INVALID_RESPONSE,
                original_error=e,
                endpoint=endpoint,
            ) from e

        except ValueError as e:
            raise RpcError(
                f"Invalid JSON-RPC response: {e}",
                ErrorCode.RPC_INVALID_RESPONSE,
                original_error=e,
                endpoint=endpoint,
            ) from e

        if not isinstance(result, dict):
            raise RpcError(
                f"Invalid JSON-RPC response: expected an object, got {type(result).__name__}",
                ErrorCode.RPC_INVALID_RESPONSE,
                endpoint=endpoint,
            )

        if "error" in result:
            error = result["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise RpcError.rpc_response(endpoint, error)

        return result.get("result")

    def get_token_accounts_by_owner(
        self,
        owner: str,
        mint: str,
        encoding: str = "jsonParsed",
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get token accounts of one mint owned by an address

        Args:
            owner: Owner address
            mint: Mint filter
            encoding: Data encoding

        Returns:
            List of {"pubkey", "account"} entries, empty when none exist
        """
        params = [
            owner,
            {"mint": mint},
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getTokenAccountsByOwner", params, timeout=timeout)
        return (result or {}).get("value", []) or []

    def get_latest_blockhash(
        self,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        params = [{"commitment": commitment or self.commitment}]
        result = self.call("getLatestBlockhash", params, timeout=timeout)
        return (result or {}).get("value", {}) or {}

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Send signed transaction

        Args:
            transaction: Signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level
            max_retries: Rebroadcast budget for the provider

        Returns:
            Transaction signature (base58)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "skipPreflight": skip_preflight,
                "preflightCommitment": preflight_commitment or self.commitment,
                "encoding": "base64",
            },
        ]
        if max_retries is not None:
            params[1]["maxRetries"] = max_retries

        return self.call("sendTransaction", params, timeout=timeout)

    def get_signature_statuses(
        self,
        signatures: List[str],
        timeout: Optional[float] = None,
    ) -> List[Optional[Dict[str, Any]]]:
        """Get statuses for signatures (None entries for unknown signatures)"""
        result = self.call("getSignatureStatuses", [signatures], timeout=timeout)
        return (result or {}).get("value", []) or []

    def confirm_transaction(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout_seconds: float = 60.0,
        poll_interval: float = 1.0,
    ) -> Dict[str, Any]:
        """
        Wait for confirmation of one submitted transaction

        Polls the signature status until it carries an error or reaches the
        requested commitment. Errors from the status calls propagate.

        Args:
            signature: Transaction signature
            commitment: Commitment level to wait for
            timeout_seconds: Deadline for the whole wait

        Returns:
            Signature status dict; ``status["err"]`` is None on success

        Raises:
            RpcError: RPC_TIMEOUT when the deadline expires
        """
        target = _COMMITMENT_RANK.get(commitment or self.commitment, 1)
        deadline = time.monotonic() + timeout_seconds
        last_status: Optional[Dict[str, Any]] = None

        while True:
            statuses = self.get_signature_statuses([signature])
            status = statuses[0] if statuses else None
            if status:
                last_status = status
                if status.get("err"):
                    logger.warning(f"Transaction {signature} failed on-chain: {status.get('err')}")
                    return status
                conf = status.get("confirmationStatus")
                if _COMMITMENT_RANK.get(conf, -1) >= target:
                    return status

            if time.monotonic() >= deadline:
                break
            time.sleep(poll_interval)

        if last_status is None:
            logger.warning(f"Transaction {signature} was never seen on chain (dropped/expired)")
        else:
            logger.warning(
                f"Transaction {signature} timeout. Last status: {last_status.get('confirmationStatus', 'unknown')}"
            )
        raise RpcError.timeout(self.display_endpoint, timeout_seconds)

    def close(self):
        """Close HTTP client"""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

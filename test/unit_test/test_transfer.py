"""
Transfer Module Unit Tests

Tests unsigned transfer preparation without network access.
"""

import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from burn_gateway.client import GatewayClient
from burn_gateway.config import Config, HolidayConfig, RpcConfig, TokenConfig
from burn_gateway.errors import (
    ConfigurationError,
    ErrorCode,
    ExhaustedRetries,
    InvalidAddress,
    NoHoldingAccount,
    RpcError,
)
from burn_gateway.infra import ConnectionCache, RetryExecutor, RetryPolicy
from burn_gateway.modules.transfer import TransferModule

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
BLOCKHASH = "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"


def _entry(pubkey, amount="5"):
    return {
        "pubkey": pubkey,
        "account": {
            "data": {
                "parsed": {
                    "info": {
                        "mint": USDC_MINT,
                        "owner": WALLET,
                        "tokenAmount": {"amount": amount, "decimals": 0, "uiAmountString": amount},
                    },
                },
            },
        },
    }


@pytest.fixture
def rpc():
    handle = Mock()
    handle.get_latest_blockhash.return_value = {
        "blockhash": BLOCKHASH,
        "lastValidBlockHeight": 287_000_150,
    }
    return handle


@pytest.fixture
def client(rpc):
    # Holiday override must not affect transfer preparation
    config = Config(
        rpc=RpcConfig(api_key="test-key"),
        token=TokenConfig(mint=USDC_MINT),
        holiday=HolidayConfig(enabled=True, month=1, start_day=1, end_day=31),
    )
    connection = ConnectionCache(factory=lambda: rpc)
    retry = RetryExecutor(connection, RetryPolicy(max_attempts=3, backoff_seconds=0.0), sleep=Mock())
    return GatewayClient(config=config, connection=connection, retry=retry)


class TestPrepareTransfer:
    """Tests for TransferModule.prepare_transfer"""

    def test_descriptor(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("TokenAcct111")]

        descriptor = client.prepare_transfer(WALLET)

        assert descriptor.token_account == "TokenAcct111"
        assert descriptor.recent_blockhash == BLOCKHASH
        assert descriptor.to_dict() == {
            "tokenAccount": "TokenAcct111",
            "recentBlockhash": BLOCKHASH,
            "lastValidBlockHeight": 287_000_150,
        }

    def test_first_account_used(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("First"), _entry("Second")]

        assert client.prepare_transfer(WALLET).token_account == "First"

    def test_uses_configured_mint(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("TokenAcct111")]

        client.prepare_transfer(WALLET)

        args, kwargs = rpc.get_token_accounts_by_owner.call_args
        assert args[0] == WALLET
        assert kwargs["mint"] == USDC_MINT

    def test_zero_balance_account_still_prepared(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("Empty", "0")]

        descriptor = client.prepare_transfer(WALLET)

        assert descriptor.token_account == "Empty"
        assert client.balances.find_holding_accounts(WALLET, USDC_MINT)[0].amount == Decimal(0)

    def test_no_holding_account(self, client, rpc):
        """No account -> NoHoldingAccount and no blockhash fetch"""
        rpc.get_token_accounts_by_owner.return_value = []

        with pytest.raises(NoHoldingAccount) as exc_info:
            client.prepare_transfer(WALLET)

        assert exc_info.value.wallet == WALLET
        assert exc_info.value.mint == USDC_MINT
        rpc.get_latest_blockhash.assert_not_called()

    def test_invalid_wallet(self, client, rpc):
        with pytest.raises(InvalidAddress):
            client.prepare_transfer("not-a-wallet")

        rpc.get_token_accounts_by_owner.assert_not_called()
        rpc.get_latest_blockhash.assert_not_called()

    def test_missing_mint(self, rpc):
        client = GatewayClient(
            config=Config(rpc=RpcConfig(api_key="test-key"), token=TokenConfig(mint="")),
            connection=ConnectionCache(factory=lambda: rpc),
        )

        with pytest.raises(ConfigurationError):
            client.prepare_transfer(WALLET)

        rpc.get_token_accounts_by_owner.assert_not_called()

    def test_explicit_mint_overrides_config(self, client, rpc):
        other_mint = "So11111111111111111111111111111111111111112"
        rpc.get_token_accounts_by_owner.return_value = [_entry("WsolAcct")]

        TransferModule(client, mint=other_mint).prepare_transfer(WALLET)

        assert rpc.get_token_accounts_by_owner.call_args.kwargs["mint"] == other_mint

    def test_blockhash_retried(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("TokenAcct111")]
        rpc.get_latest_blockhash.side_effect = [
            TimeoutError("deadline exceeded"),
            {"blockhash": BLOCKHASH, "lastValidBlockHeight": 1},
        ]

        assert client.prepare_transfer(WALLET).recent_blockhash == BLOCKHASH
        assert rpc.get_latest_blockhash.call_count == 2

    def test_blockhash_exhausted(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("TokenAcct111")]
        rpc.get_latest_blockhash.side_effect = RpcError.timeout("rpc", 10)

        with pytest.raises(ExhaustedRetries) as exc_info:
            client.prepare_transfer(WALLET)

        assert exc_info.value.operation == "getLatestBlockhash"

    def test_empty_blockhash(self, client, rpc):
        rpc.get_token_accounts_by_owner.return_value = [_entry("TokenAcct111")]
        rpc.get_latest_blockhash.return_value = {}

        with pytest.raises(RpcError) as exc_info:
            client.prepare_transfer(WALLET)

        assert exc_info.value.code == ErrorCode.RPC_INVALID_RESPONSE

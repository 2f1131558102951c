"""
Token account and transfer descriptor types
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from ..errors import InvalidAddress


def validate_address(address: Optional[str], field: str) -> str:
    """
    Check that an identifier is a base58 Solana public key

    Args:
        address: Candidate address
        field: Parameter name used in the error (e.g. "wallet", "mint")

    Returns:
        The address, stripped of surrounding whitespace

    Raises:
        InvalidAddress: Missing or not a valid public key
    """
    if not address or not isinstance(address, str):
        raise InvalidAddress.missing(field)
    address = address.strip()
    try:
        Pubkey.from_string(address)
    except ValueError as e:
        raise InvalidAddress.malformed(field, address, e) from e
    return address


def _ui_amount(token_amount: Dict[str, Any]) -> Decimal:
    """Display amount from a jsonParsed ``tokenAmount`` object"""
    ui_str = token_amount.get("uiAmountString")
    if ui_str:
        try:
            return Decimal(ui_str)
        except InvalidOperation:
            pass

    amount_str = token_amount.get("amount")
    decimals = token_amount.get("decimals", 0) or 0
    if amount_str:
        return Decimal(amount_str) / Decimal(10 ** decimals)

    ui_amount = token_amount.get("uiAmount")
    if ui_amount is not None:
        return Decimal(str(ui_amount))
    return Decimal(0)


@dataclass(frozen=True)
class HoldingAccount:
    """
    Token account holding a specific mint for a wallet

    Attributes:
        address: Token account address (base58)
        mint: Token mint address
        owner: Wallet that owns the account
        amount: Balance in UI units, never negative
        decimals: Mint decimals
    """
    address: str
    mint: str
    owner: str
    amount: Decimal
    decimals: int = 0

    @classmethod
    def from_rpc(cls, entry: Dict[str, Any], owner: str, mint: str) -> "HoldingAccount":
        """
        Parse one ``getTokenAccountsByOwner`` (jsonParsed) entry

        Args:
            entry: {"pubkey": ..., "account": {"data": {"parsed": {"info": ...}}}}
            owner: Queried wallet (fallback when the payload omits it)
            mint: Queried mint (fallback when the payload omits it)
        """
        info = entry.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
        token_amount = info.get("tokenAmount", {}) or {}
        amount = _ui_amount(token_amount)
        return cls(
            address=entry.get("pubkey", ""),
            mint=info.get("mint") or mint,
            owner=info.get("owner") or owner,
            amount=max(amount, Decimal(0)),
            decimals=token_amount.get("decimals", 0) or 0,
        )


@dataclass(frozen=True)
class TransferDescriptor:
    """
    Data a client needs to assemble an unsigned transfer/burn

    The blockhash is valid only for a short provider-defined window; expiry
    is discovered at submission time.

    Attributes:
        token_account: Source token account address
        recent_blockhash: Recent blockhash (checkpoint reference)
        last_valid_block_height: Last block height the blockhash is valid for
    """
    token_account: str
    recent_blockhash: str
    last_valid_block_height: Optional[int] = None

    def to_dict(self) -> dict:
        payload = {
            "tokenAccount": self.token_account,
            "recentBlockhash": self.recent_blockhash,
        }
        if self.last_valid_block_height is not None:
            payload["lastValidBlockHeight"] = self.last_valid_block_height
        return payload

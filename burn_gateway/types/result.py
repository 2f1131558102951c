"""
Result type definitions for balance reads, transfer preparation and submission
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class OutcomeStatus(Enum):
    """Terminal state of a single transaction submission"""
    CONFIRMED = "confirmed"
    RETRYABLE_FAILURE = "retryable_failure"
    REJECTED = "rejected"
    UNKNOWN_FAILURE = "unknown_failure"


class RejectReason(Enum):
    """Why the chain (or the node's preflight) refused a transaction"""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    OTHER = "other"


def _describe(detail: Any) -> str:
    """Render a raw RPC error shape as display text"""
    if detail is None:
        return ""
    if isinstance(detail, str):
        return detail
    try:
        return json.dumps(detail, sort_keys=True)
    except (TypeError, ValueError):
        return str(detail)


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Outcome of SettlementModule.submit

    Every caller must handle all four statuses:
        CONFIRMED          - landed, ``signature`` set
        RETRYABLE_FAILURE  - refused before broadcast, safe to re-prepare and re-sign
        REJECTED           - refused by the chain, ``reason`` set, ``detail`` holds the raw error
        UNKNOWN_FAILURE    - network failure mid-flight, the transaction may or may not have landed

    Attributes:
        status: Terminal state
        signature: Transaction signature (base58) when known
        reason: Rejection subtype (REJECTED only)
        code: Custom program error code when the error carried one
        detail: Raw error shape or message
    """
    status: OutcomeStatus
    signature: Optional[str] = None
    reason: Optional[RejectReason] = None
    code: Optional[int] = None
    detail: Any = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == OutcomeStatus.CONFIRMED

    @property
    def is_rejected(self) -> bool:
        return self.status == OutcomeStatus.REJECTED

    @property
    def is_retryable(self) -> bool:
        return self.status == OutcomeStatus.RETRYABLE_FAILURE

    @property
    def is_unknown(self) -> bool:
        return self.status == OutcomeStatus.UNKNOWN_FAILURE

    @property
    def category(self) -> str:
        """Caller-facing failure category"""
        if self.status == OutcomeStatus.REJECTED and self.reason is not None:
            return self.reason.value
        return self.status.value

    @property
    def message(self) -> str:
        """Human-readable summary"""
        if self.is_confirmed:
            return f"Transaction confirmed: {self.signature}"
        if self.reason == RejectReason.INSUFFICIENT_BALANCE:
            return "Insufficient token balance"
        if self.is_rejected:
            return f"Transaction failed: {_describe(self.detail)}"
        if self.is_retryable:
            return f"Transaction not broadcast, retry with a fresh blockhash: {_describe(self.detail)}"
        return f"Transaction failed to submit: {_describe(self.detail)}"

    @classmethod
    def confirmed(cls, signature: str) -> "SubmissionOutcome":
        return cls(status=OutcomeStatus.CONFIRMED, signature=signature)

    @classmethod
    def retryable(cls, detail: Any, signature: Optional[str] = None) -> "SubmissionOutcome":
        return cls(status=OutcomeStatus.RETRYABLE_FAILURE, signature=signature, detail=detail)

    @classmethod
    def rejected(
        cls,
        reason: RejectReason,
        detail: Any = None,
        code: Optional[int] = None,
        signature: Optional[str] = None,
    ) -> "SubmissionOutcome":
        return cls(
            status=OutcomeStatus.REJECTED,
            signature=signature,
            reason=reason,
            code=code,
            detail=detail,
        )

    @classmethod
    def unknown(cls, message: str, signature: Optional[str] = None) -> "SubmissionOutcome":
        return cls(status=OutcomeStatus.UNKNOWN_FAILURE, signature=signature, detail=message)

    def to_dict(self) -> dict:
        """Serialize as success-with-signature or failure-with-{category, detail}"""
        if self.is_confirmed:
            return {"success": True, "signature": self.signature}
        payload = {
            "success": False,
            "error": self.message,
            "category": self.category,
            "details": self.detail,
        }
        if self.code is not None:
            payload["code"] = self.code
        if self.signature:
            payload["signature"] = self.signature
        return payload

    def __str__(self) -> str:
        if self.is_confirmed:
            sig_display = f"{self.signature[:16]}..." if self.signature else "no signature"
            return f"SubmissionOutcome(CONFIRMED, {sig_display})"
        return f"SubmissionOutcome({self.category}, detail={_describe(self.detail)})"


@dataclass(frozen=True)
class BalanceResult:
    """
    Balance read result

    Attributes:
        amount: Token balance in UI units
        holiday_bonus: True when the amount came from the holiday override
    """
    amount: Decimal
    holiday_bonus: bool = False

    @property
    def json_amount(self):
        """Amount as a JSON number: int when whole, float otherwise"""
        if self.amount == self.amount.to_integral_value():
            return int(self.amount)
        return float(self.amount)

    def to_dict(self) -> dict:
        """JSON-serializable payload"""
        payload = {"balance": self.json_amount, "success": True}
        if self.holiday_bonus:
            payload["isHolidayBonus"] = True
        return payload

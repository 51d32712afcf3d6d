"""
Execution errors and failure classification.

Submission failures never leave ``TransactionSubmitter.send_transaction`` as
exceptions; they are converted into ``TxResult`` objects carrying the
``ErrorDetails`` extracted here. ``classify_failure`` lets callers decide
whether re-submitting with an escalated gas price is worth it.
"""

from enum import Enum
from typing import Any, Optional

from .models import ErrorDetails, TxResult


class ExecutionError(Exception):
    """Base exception for execution errors."""
    pass


class RpcError(ExecutionError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data


class TransactionSubmitError(ExecutionError):
    """The node rejected the signed transaction or could not be reached."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    @classmethod
    def from_error(cls, error: BaseException) -> "TransactionSubmitError":
        message = getattr(error, "message", None) or str(error) or error.__class__.__name__
        return cls(message, code=getattr(error, "code", None), data=getattr(error, "data", None))


class TransactionRevertError(ExecutionError):
    """Transaction reverted on-chain."""

    def __init__(self, message: str, revert_reason: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.revert_reason = revert_reason
        self.reason = revert_reason
        self.tx_hash = tx_hash


class TransactionTimeoutError(ExecutionError):
    """Transaction receipt did not show up in time."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


def extract_error_details(error: BaseException) -> ErrorDetails:
    """Pull message/code/data/reason out of whatever the provider raised."""

    message = getattr(error, "message", None) or str(error) or error.__class__.__name__
    code = getattr(error, "code", None)
    data = getattr(error, "data", None)
    reason = getattr(error, "reason", None)

    return ErrorDetails(
        message=message,
        code=code if code is not None else "unknown",
        data=data if data is not None else "no data",
        reason=reason or "unknown reason",
    )


class FailureKind(str, Enum):
    """Categories of submission failures for retry decisions."""

    UNDERPRICED = "underpriced"
    NONCE = "nonce"
    TIMEOUT = "timeout"
    NETWORK = "network"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REVERTED = "reverted"
    UNKNOWN = "unknown"


RETRYABLE_FAILURES = frozenset({
    FailureKind.UNDERPRICED,
    FailureKind.NONCE,
    FailureKind.TIMEOUT,
    FailureKind.NETWORK,
})


_PATTERNS = (
    # Funds first: "insufficient funds for gas * price + value" mentions gas
    (FailureKind.INSUFFICIENT_FUNDS, ("insufficient funds", "insufficient balance", "exceeds balance")),
    (FailureKind.UNDERPRICED, (
        "underpriced",
        "fee too low",
        "max fee per gas less than block base fee",
        "gas price too low",
    )),
    (FailureKind.NONCE, ("nonce too low", "nonce too high", "invalid nonce", "already known")),
    (FailureKind.REVERTED, ("revert", "out of gas", "transaction failed")),
    (FailureKind.TIMEOUT, ("timeout", "timed out")),
    (FailureKind.NETWORK, (
        "connection",
        "network error",
        "unreachable",
        "refused",
        "too many requests",
        "rate limit",
        "429",
        "502",
        "503",
    )),
)


def classify_failure(result: TxResult) -> FailureKind:
    """Classify a failed result by its provider message."""

    if result.success:
        raise ValueError("Cannot classify a successful result")

    parts = [result.error or ""]
    if result.details:
        parts.append(str(result.details.message))
        parts.append(str(result.details.reason))
    message = " ".join(parts).lower()

    for kind, patterns in _PATTERNS:
        if any(p in message for p in patterns):
            return kind
    return FailureKind.UNKNOWN


def is_retryable(result: TxResult) -> bool:
    return not result.success and classify_failure(result) in RETRYABLE_FAILURES

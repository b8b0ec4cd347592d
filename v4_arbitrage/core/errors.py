from __future__ import annotations

from typing import Any


class ArbitrageError(Exception):
    pass


class FeedUnavailable(ArbitrageError):
    """Reference price source failed or returned an incomplete price set."""


class PoolNotFound(ArbitrageError):
    """StateView has no initialized pool for the given id."""

    def __init__(self, pool_id: str, reason: str | None = None):
        self.pool_id = pool_id
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Pool {pool_id} not found{detail}")


class ConversionInvalid(ArbitrageError, ValueError):
    pass


class TransientError(ArbitrageError):
    """RPC or network failure. Callers decide whether to try again."""


class ReceiptTimeout(TransientError):
    def __init__(self, txn_hash: str, timeout: float):
        self.txn_hash = txn_hash
        self.timeout = timeout
        super().__init__(
            f"Transaction {txn_hash} not included within {timeout:g}s; "
            "it may still be mined"
        )


class TransactionRevertedError(ArbitrageError):
    def __init__(
        self,
        txn_hash: str | None,
        receipt: dict[str, Any] | None = None,
        reason: str | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        self.reason = reason
        if message is None:
            message = f"Transaction reverted: {txn_hash}"
            if reason:
                message = f"{message} ({reason})"
        super().__init__(message)


class ApprovalFailed(TransactionRevertedError):
    pass


class SwapReverted(TransactionRevertedError):
    pass

"""Exceptions raised by the ledger reconciliation engine."""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for ledger processing errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class InvalidAmountError(LedgerError, ValueError):
    """An amount string could not be parsed as a number."""


class LiabilityTotalsError(LedgerError):
    """Pending liability totals are missing or not numeric."""

    def __init__(
        self,
        message: str,
        liability_type: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message, details=details)
        self.liability_type = liability_type

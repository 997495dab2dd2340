"""Reconciliation engine components."""

from .filters import (
    FilterResult,
    WindowedRecords,
    filter_records,
    get_closing_balances,
    remove_zero_records,
    remove_reversals,
    find_original_record_of_reversal,
    closing_balance_is_zero,
    get_records_in_window,
)
from .pairing import PairingEngine, pair_records
from .balancing import remove_balanced_records
from .attribution import ChangeAttributionEngine, AttributionResult
from .system_errors import SystemErrorDetector, SystemErrorResult
from .reason_string import ReasonStringGenerator, generate_change_reason_string
from .orchestrator import ReconciliationOrchestrator

__all__ = [
    "FilterResult",
    "WindowedRecords",
    "filter_records",
    "get_closing_balances",
    "remove_zero_records",
    "remove_reversals",
    "find_original_record_of_reversal",
    "closing_balance_is_zero",
    "get_records_in_window",
    "PairingEngine",
    "pair_records",
    "remove_balanced_records",
    "ChangeAttributionEngine",
    "AttributionResult",
    "SystemErrorDetector",
    "SystemErrorResult",
    "ReasonStringGenerator",
    "generate_change_reason_string",
    "ReconciliationOrchestrator",
]

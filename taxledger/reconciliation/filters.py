"""
Filter pipeline.

Siphons off closing balances, drops zero-value rows and cancels reversal
pairs. Every function returns a new list; the input is never modified.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence, Set

import structlog

from ..models import NarrationGroup, NarrationType, ParsedLedgerRecord

logger = structlog.get_logger()


# Period start -> closing balance record of that period
ClosingBalanceMap = Dict[Optional[date], ParsedLedgerRecord]


@dataclass
class FilterResult:
    """Records that survived filtering plus the siphoned closing balances."""
    records: List[ParsedLedgerRecord] = field(default_factory=list)
    closing_balances: ClosingBalanceMap = field(default_factory=dict)
    zero_removed: int = 0
    reversals_removed: int = 0


def get_closing_balances(records: Sequence[ParsedLedgerRecord]) -> ClosingBalanceMap:
    """Extract closing balance records keyed by the start of their period."""
    balances: ClosingBalanceMap = {}
    for record in records:
        if record.narration.type == NarrationType.CLOSING_BALANCE:
            balances[record.from_date] = record
    return balances


def remove_meta_records(records: Sequence[ParsedLedgerRecord]) -> List[ParsedLedgerRecord]:
    return [r for r in records if r.narration.group != NarrationGroup.META]


def remove_zero_records(records: Sequence[ParsedLedgerRecord]) -> List[ParsedLedgerRecord]:
    """
    Remove records whose debit and credit are both zero or empty.
    This is often the case when original returns are backdated.
    """
    return [r for r in records if (r.debit or 0) != 0 or (r.credit or 0) != 0]


def closing_balance_is_zero(record: ParsedLedgerRecord) -> bool:
    """Whether a closing balance is zero; empty columns count as zero."""
    return not record.debit and not record.credit


def _serial_number_key(record: ParsedLedgerRecord):
    sr_no = record.sr_no.strip()
    if sr_no.isdigit():
        return (0, int(sr_no), sr_no)
    return (1, 0, sr_no)


def sort_records_by_serial_number(records: Sequence[ParsedLedgerRecord]) -> List[ParsedLedgerRecord]:
    return sorted(records, key=_serial_number_key)


def record_matches_reversal_record(record: ParsedLedgerRecord, reversal: ParsedLedgerRecord) -> bool:
    """Whether reversal cancels record: same variant, swapped amounts, equal metadata."""
    if record.narration.type != reversal.narration.type:
        return False
    if record.debit != reversal.credit or record.credit != reversal.debit:
        return False
    return record.narration.meta == reversal.narration.meta


def find_original_record_of_reversal(
    records: Sequence[ParsedLedgerRecord],
    reversal: ParsedLedgerRecord,
    excluded: Optional[Set[str]] = None,
) -> Optional[ParsedLedgerRecord]:
    """
    Find the nearest record preceding reversal that it cancels.

    Args:
        records: Records in serial number order
        reversal: The reversal record; must be an element of records
        excluded: Serial numbers that can no longer be matched

    Returns:
        The original record or None
    """
    excluded = excluded or set()
    index = next((i for i, r in enumerate(records) if r.sr_no == reversal.sr_no), None)
    if index is None:
        return None

    for candidate in reversed(records[:index]):
        if candidate.sr_no in excluded:
            continue
        if record_matches_reversal_record(candidate, reversal):
            return candidate
    return None


def remove_reversals(records: Sequence[ParsedLedgerRecord]) -> List[ParsedLedgerRecord]:
    """
    Remove reversals together with the records they reverse.

    Records are processed in serial number order regardless of how the
    input is sorted. Reversals without a matching original are kept.
    """
    ordered = sort_records_by_serial_number(records)
    removed: Set[str] = set()

    for record in ordered:
        if not record.narration.reversal or record.sr_no in removed:
            continue
        original = find_original_record_of_reversal(ordered, record, excluded=removed)
        if original is not None:
            removed.add(record.sr_no)
            removed.add(original.sr_no)
            logger.debug("Reversal pair removed", reversal=record.sr_no, original=original.sr_no)

    return [r for r in ordered if r.sr_no not in removed]


@dataclass
class WindowedRecords:
    """Records inside a date window, and those exactly on its start."""
    within: List[ParsedLedgerRecord] = field(default_factory=list)
    on_boundary: List[ParsedLedgerRecord] = field(default_factory=list)


def get_records_in_window(records: Sequence, start: date, end: date) -> WindowedRecords:
    """
    Records transacted between start and end, both inclusive.
    Records transacted exactly on start are also listed separately since
    boundary inclusion is a common source of discrepancies.
    """
    windowed = WindowedRecords()
    for record in records:
        transaction_date = record.transaction_date
        if transaction_date is None or not start <= transaction_date <= end:
            continue
        windowed.within.append(record)
        if transaction_date == start:
            windowed.on_boundary.append(record)
    return windowed


def filter_records(records: Sequence[ParsedLedgerRecord]) -> FilterResult:
    """Run the full filter pipeline: closing balances, zero values, reversals."""
    closing_balances = get_closing_balances(records)
    remaining = remove_meta_records(records)

    non_zero = remove_zero_records(remaining)
    zero_removed = len(remaining) - len(non_zero)

    without_reversals = remove_reversals(non_zero)
    reversals_removed = len(non_zero) - len(without_reversals)

    logger.info(
        "Ledger filtered",
        closing_balances=len(closing_balances),
        zero_removed=zero_removed,
        reversals_removed=reversals_removed,
        remaining=len(without_reversals),
    )

    return FilterResult(
        records=without_reversals,
        closing_balances=closing_balances,
        zero_removed=zero_removed,
        reversals_removed=reversals_removed,
    )

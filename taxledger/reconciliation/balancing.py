"""
Balance canceler.

A record is balanced when its own balance (debit - credit) and the sum of
its counterparts' balances cancel out, e.g. a return fully settled by its
payments. Balanced records and all of their counterparts are dropped, since
they cannot explain a change in pending liabilities.
"""

from typing import List, Sequence, Set

import structlog

from ..models import PairedLedgerRecord

logger = structlog.get_logger()


def get_balanced_serial_numbers(records: Sequence[PairedLedgerRecord]) -> Set[str]:
    """Serial numbers of balanced records and all of their counterparts."""
    removed: Set[str] = set()
    for record in records:
        if record.is_balanced:
            removed.add(record.sr_no)
            removed.update(record.counterparts)
    return removed


def remove_balanced_records(records: Sequence[PairedLedgerRecord]) -> List[PairedLedgerRecord]:
    """
    Remove records fully offset by their counterparts, together with those
    counterparts. Such records cannot explain a change in pending liabilities.
    """
    removed = get_balanced_serial_numbers(records)
    remaining = [r for r in records if r.sr_no not in removed]

    logger.info("Balanced records removed", removed=len(records) - len(remaining), remaining=len(remaining))
    return remaining

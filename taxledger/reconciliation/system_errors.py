"""
System error detector.

Flags two discrepancies known to be generated by the revenue authority's
system rather than by the tax payer:

- RETURN_ROUNDED_UP: the ledger rounded a return up to the next currency
  unit while its payments settled the exact amount. Confirmed against the
  acknowledgement of return receipts when a receipt lookup is available.
- UNALLOCATED_ADVANCE_PAYMENT: the period's closing balance is zero even
  though the return is unsettled, because an advance payment covered it
  without being allocated.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

import structlog

from ..config import get_settings
from ..models import (
    Diagnostic,
    DiagnosticCode,
    LedgerSystemError,
    LiabilityType,
    PairedLedgerRecord,
    TaxType,
)
from ..integrations.collaborators import ReceiptLookupCache
from .filters import ClosingBalanceMap, closing_balance_is_zero

logger = structlog.get_logger()


@dataclass
class SystemErrorResult:
    """System errors detected on one record plus any soft errors raised on the way."""
    system_errors: List[LedgerSystemError] = field(default_factory=list)
    processing_errors: List[Diagnostic] = field(default_factory=list)


def ceil_to_unit(amount: int, scale: int) -> int:
    """Round minor units up to a whole currency unit."""
    return -(-amount // scale) * scale


class SystemErrorDetector:
    """
    Detects system errors on return records.

    Args:
        tax_type: Tax type of the ledger, used for receipt lookups
        closing_balances: Closing balance records keyed by period start
        receipts: Per-run receipt lookup cache, or None when unavailable
        amount_scale: Minor units per currency unit
    """

    def __init__(
        self,
        tax_type: Union[TaxType, str],
        closing_balances: ClosingBalanceMap,
        receipts: Optional[ReceiptLookupCache] = None,
        amount_scale: Optional[int] = None,
    ):
        self.tax_type_id = tax_type.value if isinstance(tax_type, TaxType) else tax_type
        self.closing_balances = closing_balances
        self.receipts = receipts
        if amount_scale is None:
            amount_scale = get_settings().amount_scale
        self.amount_scale = amount_scale

    def is_rounding_candidate(self, liability_type: LiabilityType, difference: int) -> bool:
        return liability_type == LiabilityType.PRINCIPAL and 0 < difference < self.amount_scale

    async def detect(
        self,
        record: PairedLedgerRecord,
        liability_type: LiabilityType,
        difference: int,
    ) -> SystemErrorResult:
        """
        Detect system errors on a return record for a liability change.
        Only increases in liability can be caused by system errors.
        """
        result = SystemErrorResult()
        if difference <= 0:
            return result

        if self.is_rounding_candidate(liability_type, difference):
            if await self._detect_rounded_up(record, liability_type, result):
                result.system_errors.append(LedgerSystemError.RETURN_ROUNDED_UP)
        elif self._detect_unallocated_advance_payment(record, liability_type, result):
            result.system_errors.append(LedgerSystemError.UNALLOCATED_ADVANCE_PAYMENT)

        if result.system_errors:
            logger.info(
                "System error detected",
                sr_no=record.sr_no,
                system_errors=[e.value for e in result.system_errors],
                liability_type=liability_type.value,
            )
        return result

    async def _detect_rounded_up(
        self,
        record: PairedLedgerRecord,
        liability_type: LiabilityType,
        result: SystemErrorResult,
    ) -> bool:
        debit = record.debit or 0
        if ceil_to_unit(debit, self.amount_scale) != record.payments_sum:
            return False

        if self.receipts is None or not self.receipts.available:
            return True

        try:
            amounts = await self.receipts.get_amounts(
                record.sr_no,
                self.tax_type_id,
                record.from_date,
                record.to_date,
                record.transaction_date,
            )
        except Exception as e:
            logger.warning("Receipt lookup failed", sr_no=record.sr_no, error=str(e))
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.RECEIPT_LOOKUP_FAILED,
                message="Failed to fetch acknowledgement receipts",
                liability_type=liability_type,
                sr_nos=[record.sr_no],
                details={"error": str(e)},
            ))
            return True

        if not amounts:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.RECEIPT_NOT_FOUND,
                message="No acknowledgement receipt found for rounded up return",
                liability_type=liability_type,
                sr_nos=[record.sr_no],
            ))
            return True

        matches = [amount for amount in amounts if amount == record.payments_sum]
        if not matches:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.RECEIPT_MISMATCH,
                message="No acknowledgement receipt matches the return's payments",
                liability_type=liability_type,
                sr_nos=[record.sr_no],
                details={"receipt_amounts": list(amounts), "payments_sum": record.payments_sum},
            ))
            return False

        if len(matches) > 1:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.RECEIPT_AMBIGUOUS,
                message="Multiple acknowledgement receipts match the return's payments",
                liability_type=liability_type,
                sr_nos=[record.sr_no],
                details={"matches": len(matches)},
            ))
        return True

    def _detect_unallocated_advance_payment(
        self,
        record: PairedLedgerRecord,
        liability_type: LiabilityType,
        result: SystemErrorResult,
    ) -> bool:
        closing_balance = self.closing_balances.get(record.from_date)
        if closing_balance is None:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.MISSING_CLOSING_BALANCE,
                message="No closing balance found for the record's period",
                liability_type=liability_type,
                sr_nos=[record.sr_no],
                details={"from_date": record.from_date.isoformat() if record.from_date else None},
            ))
            return False

        return closing_balance_is_zero(closing_balance) and len(record.advance_payments) > 0

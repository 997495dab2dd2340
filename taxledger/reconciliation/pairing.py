"""
Pairing engine.

Links payments to the liability records they settle and advance payments
to the returns they precede. Records are kept in an arena (the ordered
input list) and all links live in a separate relation index keyed by
serial number, so no record object is ever mutated.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..config import get_settings
from ..models import (
    NARRATION_TYPES_BY_GROUP,
    NarrationGroup,
    NarrationType,
    PairedLedgerRecord,
    ParsedLedgerRecord,
    PeriodKey,
    RecordRelations,
)

logger = structlog.get_logger()

T = NarrationType

RETURN_TYPES = NARRATION_TYPES_BY_GROUP[NarrationGroup.RETURNS]
PROVISIONAL_RETURN_TYPES = (T.PROVISIONAL_RETURN, T.REVISED_PROVISIONAL_RETURN)

# Payment 'against' value -> narration types the payment can settle
PAYMENT_TARGET_TYPES: Dict[str, Tuple[NarrationType, ...]] = {
    "principal liability": RETURN_TYPES,
    "interest": (T.LATE_PAYMENT_INTEREST,),
    "payment penalty": (T.LATE_PAYMENT_PENALTY,),
    "late return penalty": (T.LATE_RETURN_PENALTY,),
    "assessment liability": NARRATION_TYPES_BY_GROUP[NarrationGroup.ASSESSMENTS],
    "assessment manual penalty": (T.AUDIT_ASSESSMENT_PENALTY, T.ADDITIONAL_ASSESSMENT_PENALTY),
}


def group_records_by_period(
    records: Sequence[ParsedLedgerRecord],
) -> "OrderedDict[PeriodKey, List[ParsedLedgerRecord]]":
    """Group records by (from_date, to_date), preserving ledger order."""
    groups: "OrderedDict[PeriodKey, List[ParsedLedgerRecord]]" = OrderedDict()
    for record in records:
        groups.setdefault(record.period_key, []).append(record)
    return groups


class PairingEngine:
    """
    Builds the relation index for a filtered ledger.

    Payments are matched backwards within their period to a record of the
    type their 'against' field names. A target whose accumulated payments
    plus the new payment would exceed its debit is skipped, so a payment
    is never over-attributed. The debit is first rounded up to a whole
    currency unit, matching returns the portal rounds up. A payment link
    also makes the two records counterparts of each other. Advance payments
    link to the nearest preceding return without becoming counterparts.
    """

    def __init__(self, amount_scale: Optional[int] = None):
        if amount_scale is None:
            amount_scale = get_settings().amount_scale
        self.amount_scale = amount_scale
        self.relations: Dict[str, RecordRelations] = {}

    def pair(self, records: Sequence[ParsedLedgerRecord]) -> List[PairedLedgerRecord]:
        """Pair records and return them, in input order, joined with their relations."""
        self.relations = {record.sr_no: RecordRelations() for record in records}

        payment_links = 0
        advance_links = 0

        for period_records in group_records_by_period(records).values():
            for index, record in enumerate(period_records):
                if record.narration.reversal:
                    continue
                preceding = period_records[:index]
                if record.narration.type == T.PAYMENT:
                    target = self.find_payment_target(record, preceding)
                    if target is not None:
                        self.link_payment(record, target)
                        payment_links += 1
                elif record.narration.type == T.ADVANCE_PAYMENT:
                    target = self.find_advance_payment_target(preceding)
                    if target is not None:
                        self.link_advance_payment(record, target)
                        advance_links += 1

        logger.info(
            "Pairing complete",
            records=len(records),
            payment_links=payment_links,
            advance_payment_links=advance_links,
        )

        return [
            PairedLedgerRecord.from_relations(record, self.relations.get(record.sr_no))
            for record in records
        ]

    def find_payment_target(
        self,
        payment: ParsedLedgerRecord,
        preceding: Sequence[ParsedLedgerRecord],
    ) -> Optional[ParsedLedgerRecord]:
        """
        Nearest preceding record this payment can settle.

        A candidate is skipped when its payments so far plus this payment
        would exceed its payable amount: the debit rounded up to a whole
        currency unit. A payment may therefore exceed the exact debit by
        less than one unit, which is how a rounded up return is settled.
        """
        against = (payment.narration.meta.get("against") or "").strip()
        target_types = PAYMENT_TARGET_TYPES.get(against)
        if not target_types:
            return None

        quarter = payment.narration.meta.get("quarter")
        amount = payment.credit or 0

        for candidate in reversed(preceding):
            if candidate.narration.reversal or candidate.narration.type not in target_types:
                continue
            if (
                quarter is not None
                and candidate.narration.type in PROVISIONAL_RETURN_TYPES
                and candidate.narration.meta.get("quarter") != quarter
            ):
                continue
            if self.relations[candidate.sr_no].payments_sum + amount > self._payable(candidate):
                continue
            return candidate
        return None

    def _payable(self, record: ParsedLedgerRecord) -> int:
        """Debit rounded up to a whole currency unit."""
        debit = record.debit or 0
        return -(-debit // self.amount_scale) * self.amount_scale

    @staticmethod
    def find_advance_payment_target(
        preceding: Sequence[ParsedLedgerRecord],
    ) -> Optional[ParsedLedgerRecord]:
        for candidate in reversed(preceding):
            if not candidate.narration.reversal and candidate.narration.group == NarrationGroup.RETURNS:
                return candidate
        return None

    def link_payment(self, payment: ParsedLedgerRecord, target: ParsedLedgerRecord) -> None:
        payment_relations = self.relations[payment.sr_no]
        target_relations = self.relations[target.sr_no]

        payment_relations.payment_of = target.sr_no
        target_relations.payments.append(payment.sr_no)
        target_relations.payments_sum += payment.credit or 0

        payment_relations.counterparts.append(target.sr_no)
        payment_relations.counterparts_sum += target.balance
        target_relations.counterparts.append(payment.sr_no)
        target_relations.counterparts_sum += payment.balance

    def link_advance_payment(self, advance_payment: ParsedLedgerRecord, target: ParsedLedgerRecord) -> None:
        target_relations = self.relations[target.sr_no]

        self.relations[advance_payment.sr_no].payment_of = target.sr_no
        target_relations.advance_payments.append(advance_payment.sr_no)
        target_relations.advance_payments_sum += advance_payment.credit or 0


def pair_records(records: Sequence[ParsedLedgerRecord]) -> List[PairedLedgerRecord]:
    return PairingEngine().pair(records)


def index_by_serial_number(records: Sequence[PairedLedgerRecord]) -> Dict[str, PairedLedgerRecord]:
    return {record.sr_no: record for record in records}

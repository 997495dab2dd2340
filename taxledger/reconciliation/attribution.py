"""
Change attribution engine.

For one liability type, finds the ledger records that explain the change
between two pending liability snapshots and turns them into evidence.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from ..config import get_settings
from ..ingestion.totals import parse_liability_total
from ..models import (
    ChangeReasonDetails,
    Diagnostic,
    DiagnosticCode,
    LedgerSystemError,
    LiabilityType,
    NarrationGroup,
    NarrationType,
    PairedLedgerRecord,
    TaxType,
)
from ..integrations.collaborators import ReceiptLookupCache
from .filters import ClosingBalanceMap, WindowedRecords, get_records_in_window
from .system_errors import SystemErrorDetector, SystemErrorResult

logger = structlog.get_logger()

T = NarrationType

INTEREST_AGAINST = ("interest",)
PENALTY_AGAINST = ("payment penalty", "late return penalty", "assessment manual penalty")


def get_record_liability_type(record: PairedLedgerRecord) -> Optional[LiabilityType]:
    """Which pending liability column a record affects."""
    narration = record.narration
    if narration.type is None:
        return None
    if narration.group == NarrationGroup.INTEREST:
        return LiabilityType.INTEREST
    if narration.group == NarrationGroup.PENALTIES or narration.type == T.PENALTY_FOR_AMENDED_ASSESSMENT:
        return LiabilityType.PENALTY
    if narration.type == T.PAYMENT:
        against = (narration.meta.get("against") or "").strip()
        if against in INTEREST_AGAINST:
            return LiabilityType.INTEREST
        if against in PENALTY_AGAINST:
            return LiabilityType.PENALTY
    return LiabilityType.PRINCIPAL


def build_change_reason_details(
    record: PairedLedgerRecord,
    paired_index: Mapping[str, PairedLedgerRecord],
    system_errors: Sequence[LedgerSystemError] = (),
) -> ChangeReasonDetails:
    """Collect the evidence a reason string needs from a record and the record it pays."""
    meta = record.narration.meta
    paid = paired_index.get(record.payment_of) if record.payment_of else None
    paid_meta = paid.narration.meta if paid is not None else {}

    prn = None
    if record.narration.group == NarrationGroup.PAYMENTS:
        prn = meta.get("prn") or meta.get("ref_prn")

    return ChangeReasonDetails(
        change=True,
        narration_type=record.narration.type,
        narration=record.record.raw.narration,
        reversal=record.narration.reversal,
        from_date=record.from_date,
        to_date=record.to_date,
        transaction_date=record.transaction_date,
        prn=prn,
        assessment_number=meta.get("assessment_number") or paid_meta.get("assessment_number"),
        quarter=meta.get("quarter") or paid_meta.get("quarter"),
        system_errors=tuple(system_errors),
        payment_of=paid.narration.type if paid is not None else None,
        sr_no=record.sr_no,
    )


def deduplicate_details(details: Sequence[ChangeReasonDetails]) -> List[ChangeReasonDetails]:
    """Drop repeated evidence, keeping first occurrences in order."""
    unique: List[ChangeReasonDetails] = []
    for detail in details:
        if detail not in unique:
            unique.append(detail)
    return unique


@dataclass
class AttributionResult:
    """Evidence for one liability type's change."""
    liability_type: LiabilityType
    difference: int = 0
    change_records: List[str] = field(default_factory=list)
    details: List[ChangeReasonDetails] = field(default_factory=list)
    processing_errors: List[Diagnostic] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.difference != 0


class ChangeAttributionEngine:
    """
    Explains pending liability changes using unbalanced ledger records.

    One engine serves all liability types of a run. attribute() only reads
    shared state, so it can run concurrently for different liability types.
    """

    def __init__(
        self,
        tax_type: Union[TaxType, str],
        records: Sequence[PairedLedgerRecord],
        paired_index: Mapping[str, PairedLedgerRecord],
        closing_balances: ClosingBalanceMap,
        receipts: Optional[ReceiptLookupCache] = None,
        change_window_days: Optional[int] = None,
        amount_scale: Optional[int] = None,
    ):
        """
        Args:
            tax_type: Tax type of the ledger
            records: Unbalanced records, the only possible causes of a change
            paired_index: Every paired record by serial number, for lineage
            closing_balances: Closing balances keyed by period start
            receipts: Per-run receipt lookup cache
            change_window_days: Window length when no previous date is given
            amount_scale: Minor units per currency unit
        """
        settings = get_settings()
        self.tax_type = tax_type
        self.records = list(records)
        self.paired_index = paired_index
        self.change_window_days = (
            settings.change_window_days if change_window_days is None else change_window_days
        )
        self.amount_scale = settings.amount_scale if amount_scale is None else amount_scale
        self.detector = SystemErrorDetector(
            tax_type,
            closing_balances,
            receipts=receipts,
            amount_scale=self.amount_scale,
        )

    def get_window(self, previous_date: Optional[date], current_date: date) -> Tuple[date, date]:
        start = previous_date or current_date - timedelta(days=self.change_window_days)
        return start, current_date

    def get_candidates(
        self,
        liability_type: LiabilityType,
        start: date,
        end: date,
    ) -> WindowedRecords:
        """In-window records of this liability type, excluding advance payments."""
        eligible = [
            record for record in self.records
            if record.narration.type not in (None, T.ADVANCE_PAYMENT)
            and get_record_liability_type(record) == liability_type
        ]
        return get_records_in_window(eligible, start, end)

    def resolve_lineage(self, record: PairedLedgerRecord) -> Optional[PairedLedgerRecord]:
        """The return behind a change record: itself, or the return it pays."""
        if record.narration.group == NarrationGroup.RETURNS:
            return record
        if record.payment_of:
            paid = self.paired_index.get(record.payment_of)
            if paid is not None and paid.narration.group == NarrationGroup.RETURNS:
                return paid
        return None

    async def attribute(
        self,
        liability_type: LiabilityType,
        previous_totals: Mapping[str, str],
        current_totals: Mapping[str, str],
        previous_date: Optional[date],
        current_date: date,
    ) -> AttributionResult:
        """
        Find the records that explain a liability type's change.

        Raises:
            LiabilityTotalsError: If either total is missing or not numeric
        """
        previous = parse_liability_total(previous_totals, liability_type, scale=self.amount_scale)
        current = parse_liability_total(current_totals, liability_type, scale=self.amount_scale)
        difference = current - previous

        result = AttributionResult(liability_type=liability_type, difference=difference)
        log = logger.bind(liability_type=liability_type.value, difference=difference)

        if difference == 0:
            result.details = [ChangeReasonDetails.no_change()]
            log.debug("No liability change")
            return result

        start, end = self.get_window(previous_date, current_date)
        windowed = self.get_candidates(liability_type, start, end)
        candidates = windowed.within

        exact = [record for record in candidates if record.balance == difference]
        if len(exact) == 1:
            change_records = exact
        else:
            if len(exact) > 1:
                result.processing_errors.append(Diagnostic(
                    code=DiagnosticCode.MULTIPLE_EXACT_MATCHES,
                    message="Multiple records exactly match the liability change",
                    liability_type=liability_type,
                    sr_nos=[r.sr_no for r in exact],
                    details={"difference": difference},
                ))
            change_records = candidates

        if not change_records:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.NO_CHANGE_RECORDS,
                message="No records found that explain the liability change",
                liability_type=liability_type,
                details={"difference": difference, "window": [start.isoformat(), end.isoformat()]},
            ))
            log.info("No change records found")
            return result

        total = sum(record.balance for record in change_records)
        if total != difference:
            result.processing_errors.append(Diagnostic(
                code=DiagnosticCode.CHANGE_SUM_MISMATCH,
                message="Change records do not add up to the liability change",
                liability_type=liability_type,
                sr_nos=[r.sr_no for r in windowed.on_boundary],
                details={"sum": total, "difference": difference, "window_start": start.isoformat()},
            ))

        detections = await self._detect_system_errors(change_records, liability_type, difference)
        for detection in detections.values():
            result.processing_errors.extend(detection.processing_errors)

        details = []
        for record in change_records:
            details.extend(self._select_evidence(record, detections))

        result.change_records = [r.sr_no for r in change_records]
        result.details = deduplicate_details(details)

        log.info(
            "Liability change attributed",
            change_records=len(change_records),
            details=len(result.details),
        )
        return result

    async def _detect_system_errors(
        self,
        change_records: Sequence[PairedLedgerRecord],
        liability_type: LiabilityType,
        difference: int,
    ) -> Dict[str, SystemErrorResult]:
        """Run the detector once per distinct return behind the change records."""
        returns: "OrderedDict[str, PairedLedgerRecord]" = OrderedDict()
        for record in change_records:
            lineage = self.resolve_lineage(record)
            if lineage is not None:
                returns.setdefault(lineage.sr_no, lineage)

        results = await asyncio.gather(*(
            self.detector.detect(record, liability_type, difference)
            for record in returns.values()
        ))
        return dict(zip(returns.keys(), results))

    def _select_evidence(
        self,
        record: PairedLedgerRecord,
        detections: Mapping[str, SystemErrorResult],
    ) -> List[ChangeReasonDetails]:
        lineage = self.resolve_lineage(record)
        detection = detections.get(lineage.sr_no) if lineage is not None else None

        if detection is None or not detection.system_errors:
            return [build_change_reason_details(record, self.paired_index)]

        errors = detection.system_errors
        evidence = [lineage]
        if LedgerSystemError.UNALLOCATED_ADVANCE_PAYMENT in errors:
            evidence.extend(
                self.paired_index[sr_no]
                for sr_no in lineage.advance_payments
                if sr_no in self.paired_index
            )
        return [build_change_reason_details(r, self.paired_index, errors) for r in evidence]

"""
Reconciliation Orchestrator - Main pipeline coordinator.

Orchestrates the full ledger reconciliation pipeline:
1. Retrieval (pre-fetched rows or the ledger source)
2. Normalization and record validation
3. Filtering (closing balances, zero values, reversals)
4. Pairing and balance cancellation
5. Change attribution per liability type, run concurrently
6. Reason string rendering and result aggregation
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence
import time

import structlog

from ..config import get_settings
from ..errors import LedgerError, LiabilityTotalsError
from ..ingestion import (
    LIABILITY_TYPES,
    RecordNormalizer,
    validate_parsed_ledger_records,
)
from ..integrations import LedgerSource, ReceiptLookup, ReceiptLookupCache
from ..models import (
    DiagnosticCode,
    LiabilityOutcome,
    LiabilityType,
    PairedLedgerRecord,
    ParsedLedgerRecord,
    RawLedgerRow,
    RecordValidation,
    ReconciliationJob,
    ReconciliationResult,
)
from ..utils.diagnostics import DiagnosticLog
from .attribution import AttributionResult, ChangeAttributionEngine
from .balancing import remove_balanced_records
from .filters import FilterResult, filter_records
from .pairing import PairingEngine, index_by_serial_number
from .reason_string import ReasonStringGenerator, join_change_reasons

logger = structlog.get_logger()


@dataclass
class PreparedLedger:
    """Every derived stage of a ledger, each produced as a new value."""
    records: List[ParsedLedgerRecord] = field(default_factory=list)
    validations: List[RecordValidation] = field(default_factory=list)
    filtered: FilterResult = field(default_factory=FilterResult)
    paired: List[PairedLedgerRecord] = field(default_factory=list)
    paired_index: Dict[str, PairedLedgerRecord] = field(default_factory=dict)
    unbalanced: List[PairedLedgerRecord] = field(default_factory=list)


class ReconciliationOrchestrator:
    """
    Main orchestrator for the ledger reconciliation pipeline.

    Args:
        ledger_source: Fetches ledger rows when a job carries none
        receipt_lookup: Fetches acknowledgement receipt amounts to confirm
            rounded up returns
    """

    def __init__(
        self,
        ledger_source: Optional[LedgerSource] = None,
        receipt_lookup: Optional[ReceiptLookup] = None,
    ):
        self.settings = get_settings()
        self.ledger_source = ledger_source
        self.receipt_lookup = receipt_lookup
        self.normalizer = RecordNormalizer()
        self.reason_generator = ReasonStringGenerator()

    async def run(
        self,
        job: ReconciliationJob,
        progress_callback: Optional[Callable[[float, str], None]] = None,
    ) -> ReconciliationResult:
        """
        Explain the pending liability changes of a job.

        A failure in one liability type never discards the results of the
        others; the failed type's reason is None and a diagnostic is recorded.

        Args:
            job: ReconciliationJob with totals, dates and optionally rows
            progress_callback: Optional callback for progress updates

        Returns:
            ReconciliationResult with reasons per liability type and diagnostics
        """
        start_time = time.time()
        result = ReconciliationResult(job_id=job.id, tax_type=job.tax_type)
        diagnostics = DiagnosticLog(job_id=job.id)
        log = logger.bind(job_id=job.id, tax_type=job.tax_type.name)

        def update_progress(percent: float, phase: str):
            if progress_callback:
                progress_callback(percent, phase)

        update_progress(5, "Retrieving ledger")
        rows = await self._get_rows(job)

        update_progress(20, "Preparing ledger")
        prepared = self.prepare(rows)

        result.records_total = len(prepared.records)
        result.records_after_filters = len(prepared.filtered.records)
        result.records_unbalanced = len(prepared.unbalanced)
        result.invalid_records = [v for v in prepared.validations if not v.valid]

        update_progress(50, "Attributing liability changes")
        receipts = ReceiptLookupCache(
            self.receipt_lookup,
            max_concurrent=self.settings.max_concurrent_receipt_lookups,
            amount_scale=self.settings.amount_scale,
        )
        engine = ChangeAttributionEngine(
            job.tax_type,
            prepared.unbalanced,
            prepared.paired_index,
            prepared.filtered.closing_balances,
            receipts=receipts,
            change_window_days=self.settings.change_window_days,
            amount_scale=self.settings.amount_scale,
        )

        branches = await asyncio.gather(
            *(
                engine.attribute(
                    liability_type,
                    job.previous_totals,
                    job.current_totals,
                    job.previous_date,
                    job.current_date,
                )
                for liability_type in LIABILITY_TYPES
            ),
            return_exceptions=True,
        )

        update_progress(90, "Rendering change reasons")
        for liability_type, branch in zip(LIABILITY_TYPES, branches):
            result.outcomes[liability_type] = self._collect_outcome(
                job, liability_type, branch, diagnostics,
            )

        result.processing_errors = list(diagnostics.entries)
        result.completed_at = datetime.now(timezone.utc)

        update_progress(100, "Complete")
        log.info(
            "Reconciliation complete",
            reasons=result.change_reasons_by_liability,
            processing_errors=len(result.processing_errors),
            invalid_records=len(result.invalid_records),
            receipt_lookups=receipts.calls,
            processing_time_seconds=round(time.time() - start_time, 3),
        )
        return result

    def prepare(self, rows: Sequence[RawLedgerRow]) -> PreparedLedger:
        """Run the synchronous stages: normalize, validate, filter, pair, balance."""
        records = self.normalizer.normalize(rows)
        validations = validate_parsed_ledger_records(records)
        filtered = filter_records(records)
        paired = PairingEngine(amount_scale=self.settings.amount_scale).pair(filtered.records)
        unbalanced = remove_balanced_records(paired)

        return PreparedLedger(
            records=records,
            validations=validations,
            filtered=filtered,
            paired=paired,
            paired_index=index_by_serial_number(paired),
            unbalanced=unbalanced,
        )

    async def _get_rows(self, job: ReconciliationJob) -> List[RawLedgerRow]:
        if job.rows is not None:
            return list(job.rows)
        if self.ledger_source is None:
            raise LedgerError("Job has no ledger rows and no ledger source is configured")

        rows = await self.ledger_source.fetch_ledger_rows(
            job.account, (job.previous_date, job.current_date),
        )
        logger.info("Ledger fetched", account=job.account, rows=len(rows))
        return list(rows)

    def _collect_outcome(
        self,
        job: ReconciliationJob,
        liability_type: LiabilityType,
        branch,
        diagnostics: DiagnosticLog,
    ) -> LiabilityOutcome:
        if isinstance(branch, LiabilityTotalsError):
            diagnostics.add(
                DiagnosticCode.INVALID_TOTALS,
                str(branch),
                liability_type=liability_type,
            )
            return LiabilityOutcome(liability_type=liability_type, error=str(branch))

        if isinstance(branch, Exception):
            logger.error(
                "Liability change attribution failed",
                liability_type=liability_type.value,
                error=str(branch),
                exc_info=branch,
            )
            diagnostics.add(
                DiagnosticCode.LIABILITY_FAILED,
                f"Failed to attribute {liability_type.value} change: {branch}",
                liability_type=liability_type,
                error_type=type(branch).__name__,
            )
            return LiabilityOutcome(liability_type=liability_type, error=str(branch))

        if isinstance(branch, BaseException):
            raise branch

        attribution: AttributionResult = branch
        diagnostics.extend(attribution.processing_errors)
        return LiabilityOutcome(
            liability_type=liability_type,
            reason=join_change_reasons(job.tax_type, attribution.details, self.reason_generator),
            details=attribution.details,
        )

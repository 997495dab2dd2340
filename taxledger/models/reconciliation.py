"""Reconciliation input and result models."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Tuple
from uuid import uuid4

from .enums import (
    DiagnosticCode,
    LedgerSystemError,
    LiabilityType,
    NarrationType,
    TaxType,
    ValueColumn,
)
from .ledger import RawLedgerRow


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChangeReasonDetails:
    """
    Evidence bundle explaining one contribution to a liability change.

    change=False is the "no change" sentinel. sr_no identifies the source
    record but is excluded from equality so that backdated duplicates
    collapse into one entry.
    """
    change: bool = True
    narration_type: Optional[NarrationType] = None
    narration: str = ""
    reversal: bool = False

    from_date: Optional[date] = None
    to_date: Optional[date] = None
    transaction_date: Optional[date] = None

    prn: Optional[str] = None
    assessment_number: Optional[str] = None
    quarter: Optional[str] = None

    system_errors: Tuple[LedgerSystemError, ...] = ()
    payment_of: Optional[NarrationType] = None

    sr_no: Optional[str] = field(default=None, compare=False)

    @classmethod
    def no_change(cls) -> "ChangeReasonDetails":
        return cls(change=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change": self.change,
            "sr_no": self.sr_no,
            "narration_type": self.narration_type.value if self.narration_type else None,
            "narration": self.narration,
            "from_date": self.from_date.isoformat() if self.from_date else None,
            "to_date": self.to_date.isoformat() if self.to_date else None,
            "transaction_date": self.transaction_date.isoformat() if self.transaction_date else None,
            "prn": self.prn,
            "assessment_number": self.assessment_number,
            "quarter": self.quarter,
            "system_errors": [e.value for e in self.system_errors],
            "payment_of": self.payment_of.value if self.payment_of else None,
        }


@dataclass
class Diagnostic:
    """A non-fatal processing error collected during a run."""
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)

    code: DiagnosticCode = DiagnosticCode.LIABILITY_FAILED
    message: str = ""

    # Context
    liability_type: Optional[LiabilityType] = None
    sr_nos: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "code": self.code.value,
            "message": self.message,
            "liability_type": self.liability_type.value if self.liability_type else None,
            "sr_nos": list(self.sr_nos),
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class NarrationValidation:
    """Outcome of checking narration metadata against its field rules."""
    valid: bool
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RecordValidation:
    """Data-quality report for a single ledger record."""
    sr_no: str
    valid: bool
    narration_validation: NarrationValidation

    # debit and credit both > 0
    multiple_value_columns: bool = False
    # column holding the value when it is not the expected one
    invalid_value_column: Optional[ValueColumn] = None
    expected_value_column: Optional[ValueColumn] = None
    # non-empty amount cells that could not be parsed
    unparseable_value_columns: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sr_no": self.sr_no,
            "valid": self.valid,
            "multiple_value_columns": self.multiple_value_columns,
            "invalid_value_column": self.invalid_value_column.value if self.invalid_value_column else None,
            "expected_value_column": self.expected_value_column.value if self.expected_value_column else None,
            "unparseable_value_columns": list(self.unparseable_value_columns),
            "narration_validation": {
                "valid": self.narration_validation.valid,
                "errors": list(self.narration_validation.errors),
            },
        }


@dataclass
class ReconciliationJob:
    """A request to explain pending liability changes for one tax type."""
    id: str = field(default_factory=lambda: str(uuid4()))

    tax_type: TaxType = TaxType.ITX
    account: str = ""

    # Pending liability snapshots: {principal, interest, penalty, total} -> decimal string
    previous_totals: Dict[str, str] = field(default_factory=dict)
    current_totals: Dict[str, str] = field(default_factory=dict)

    # Reconciliation window
    previous_date: Optional[date] = None
    current_date: date = field(default_factory=date.today)

    # Pre-fetched ledger; fetched through the ledger source when None
    rows: Optional[List[RawLedgerRow]] = None


@dataclass
class LiabilityOutcome:
    """Result of one liability type's branch of a run."""
    liability_type: LiabilityType
    reason: Optional[str] = None
    details: List[ChangeReasonDetails] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class ReconciliationResult:
    """Complete result of a reconciliation job."""
    job_id: str = field(default_factory=lambda: str(uuid4()))
    tax_type: Optional[TaxType] = None

    # Results
    outcomes: Dict[LiabilityType, LiabilityOutcome] = field(default_factory=dict)

    # Errors
    processing_errors: List[Diagnostic] = field(default_factory=list)
    invalid_records: List[RecordValidation] = field(default_factory=list)

    # Pipeline counts
    records_total: int = 0
    records_after_filters: int = 0
    records_unbalanced: int = 0

    # Timing
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def change_reasons_by_liability(self) -> Dict[str, Optional[str]]:
        """Rendered reason per liability type; None for a failed branch."""
        return {
            liability_type.value: outcome.reason
            for liability_type, outcome in self.outcomes.items()
        }

    @property
    def any_errors(self) -> bool:
        return bool(self.processing_errors) or any(
            not validation.valid for validation in self.invalid_records
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "tax_type": self.tax_type.name if self.tax_type else None,
            "change_reasons_by_liability": self.change_reasons_by_liability,
            "processing_errors": [d.to_dict() for d in self.processing_errors],
            "invalid_records": [v.to_dict() for v in self.invalid_records],
            "any_errors": self.any_errors,
            "summary": {
                "records_total": self.records_total,
                "records_after_filters": self.records_after_filters,
                "records_unbalanced": self.records_unbalanced,
            },
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

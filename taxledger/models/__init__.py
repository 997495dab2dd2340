"""Data models for the tax payer ledger reconciliation engine."""

from .enums import (
    TaxType,
    NarrationType,
    NarrationGroup,
    NARRATION_TYPES_BY_GROUP,
    get_narration_group,
    LiabilityType,
    ValueColumn,
    LedgerSystemError,
    DiagnosticCode,
)
from .ledger import (
    PeriodKey,
    RawLedgerRow,
    ParsedNarration,
    ParsedLedgerRecord,
    RecordRelations,
    PairedLedgerRecord,
)
from .reconciliation import (
    ChangeReasonDetails,
    Diagnostic,
    NarrationValidation,
    RecordValidation,
    ReconciliationJob,
    LiabilityOutcome,
    ReconciliationResult,
)

__all__ = [
    # Enums
    "TaxType",
    "NarrationType",
    "NarrationGroup",
    "NARRATION_TYPES_BY_GROUP",
    "get_narration_group",
    "LiabilityType",
    "ValueColumn",
    "LedgerSystemError",
    "DiagnosticCode",
    # Ledger
    "PeriodKey",
    "RawLedgerRow",
    "ParsedNarration",
    "ParsedLedgerRecord",
    "RecordRelations",
    "PairedLedgerRecord",
    # Reconciliation
    "ChangeReasonDetails",
    "Diagnostic",
    "NarrationValidation",
    "RecordValidation",
    "ReconciliationJob",
    "LiabilityOutcome",
    "ReconciliationResult",
]

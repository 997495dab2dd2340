"""Enumerations for the tax payer ledger reconciliation engine."""

from enum import Enum
from typing import Optional


class TaxType(str, Enum):
    """
    Two-digit tax type codes used by the revenue authority.

    The member name is the abbreviated tax type (e.g. ITX) and the value
    is the numerical code (e.g. "01").
    """
    ITX = "01"     # Income tax
    VAT = "02"     # Value added tax
    PAYE = "03"    # Employment tax (pay as you earn)
    TOT = "05"     # Turnover tax
    WHT = "06"     # Withholding tax
    PTT = "07"     # Property transfer tax
    MINROY = "08"  # Mineral royalty
    TLEVY = "09"   # Medical levy tax

    @classmethod
    def from_code(cls, code: str) -> "TaxType":
        """Look up a tax type by its abbreviated code, e.g. 'ITX'."""
        return cls[code.upper()]


class NarrationType(str, Enum):
    """Variant of a ledger narration."""
    TARPS_BALANCE = "TARPS_BALANCE"
    ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
    PAYMENT = "PAYMENT"
    CLOSING_BALANCE = "CLOSING_BALANCE"
    LATE_PAYMENT_PENALTY = "LATE_PAYMENT_PENALTY"
    LATE_PAYMENT_INTEREST = "LATE_PAYMENT_INTEREST"
    LATE_RETURN_PENALTY = "LATE_RETURN_PENALTY"
    PROVISIONAL_RETURN = "PROVISIONAL_RETURN"
    REVISED_PROVISIONAL_RETURN = "REVISED_PROVISIONAL_RETURN"
    ORIGINAL_RETURN = "ORIGINAL_RETURN"
    AMENDED_RETURN = "AMENDED_RETURN"
    AUDIT_ASSESSMENT = "AUDIT_ASSESSMENT"
    ADDITIONAL_ASSESSMENT = "ADDITIONAL_ASSESSMENT"
    ESTIMATED_ASSESSMENT = "ESTIMATED_ASSESSMENT"
    AUDIT_ASSESSMENT_PENALTY = "AUDIT_ASSESSMENT_PENALTY"
    ADDITIONAL_ASSESSMENT_PENALTY = "ADDITIONAL_ASSESSMENT_PENALTY"
    BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX = "BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX"
    AMENDED_ASSESSMENT_OBJECTION = "AMENDED_ASSESSMENT_OBJECTION"
    PENALTY_FOR_AMENDED_ASSESSMENT = "PENALTY_FOR_AMENDED_ASSESSMENT"
    REFUND_OFFSET = "REFUND_OFFSET"
    REFUND_PAID = "REFUND_PAID"
    BEING_POSTING_OPENING_BALANCE_MIGRATED = "BEING_POSTING_OPENING_BALANCE_MIGRATED"
    BEING_REVERSAL_DUPLICATE_PAYMENT = "BEING_REVERSAL_DUPLICATE_PAYMENT"
    BEING_REVERSAL_REPLICATED_TRANSACTION = "BEING_REVERSAL_REPLICATED_TRANSACTION"


class NarrationGroup(str, Enum):
    """Broad category of narration variants."""
    PAYMENTS = "PAYMENTS"
    RETURNS = "RETURNS"
    PENALTIES = "PENALTIES"
    INTEREST = "INTEREST"
    ASSESSMENTS = "ASSESSMENTS"
    META = "META"
    LEGACY = "LEGACY"


NARRATION_TYPES_BY_GROUP = {
    NarrationGroup.PAYMENTS: (
        NarrationType.ADVANCE_PAYMENT,
        NarrationType.PAYMENT,
    ),
    NarrationGroup.RETURNS: (
        NarrationType.PROVISIONAL_RETURN,  # ITX only
        NarrationType.REVISED_PROVISIONAL_RETURN,  # ITX only
        NarrationType.ORIGINAL_RETURN,
        NarrationType.AMENDED_RETURN,
    ),
    NarrationGroup.INTEREST: (
        NarrationType.LATE_PAYMENT_INTEREST,
    ),
    NarrationGroup.PENALTIES: (
        NarrationType.LATE_RETURN_PENALTY,
        NarrationType.AUDIT_ASSESSMENT_PENALTY,
        NarrationType.ADDITIONAL_ASSESSMENT_PENALTY,
        NarrationType.BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX,
        NarrationType.LATE_PAYMENT_PENALTY,
    ),
    NarrationGroup.ASSESSMENTS: (
        NarrationType.AUDIT_ASSESSMENT,
        NarrationType.ADDITIONAL_ASSESSMENT,
        NarrationType.ESTIMATED_ASSESSMENT,
    ),
    NarrationGroup.META: (
        NarrationType.CLOSING_BALANCE,
    ),
    NarrationGroup.LEGACY: (
        NarrationType.TARPS_BALANCE,
        NarrationType.BEING_POSTING_OPENING_BALANCE_MIGRATED,
        NarrationType.BEING_REVERSAL_DUPLICATE_PAYMENT,
        NarrationType.BEING_REVERSAL_REPLICATED_TRANSACTION,
    ),
}

_GROUP_BY_NARRATION_TYPE = {
    narration_type: group
    for group, narration_types in NARRATION_TYPES_BY_GROUP.items()
    for narration_type in narration_types
}


def get_narration_group(narration_type: Optional[NarrationType]) -> Optional[NarrationGroup]:
    """Determine which group a narration type belongs to."""
    if narration_type is None:
        return None
    return _GROUP_BY_NARRATION_TYPE.get(narration_type)


class LiabilityType(str, Enum):
    """Component of a pending liability."""
    PRINCIPAL = "principal"
    INTEREST = "interest"
    PENALTY = "penalty"


class ValueColumn(str, Enum):
    """Ledger value column a narration variant is expected to use."""
    DEBIT = "debit"
    CREDIT = "credit"
    BOTH = "both"


class LedgerSystemError(str, Enum):
    """
    Known discrepancies generated by the revenue authority's system.

    RETURN_ROUNDED_UP: The return was rounded up to the nearest unit in the
        ledger while its payments settled the exact amount.
    UNALLOCATED_ADVANCE_PAYMENT: An advance payment covered the liability
        without being reflected as a settlement in the ledger.
    """
    RETURN_ROUNDED_UP = "return_rounded_up"
    UNALLOCATED_ADVANCE_PAYMENT = "unallocated_advance_payment"


class DiagnosticCode(str, Enum):
    """Type of non-fatal processing diagnostic."""
    MISSING_CLOSING_BALANCE = "missing_closing_balance"
    MULTIPLE_EXACT_MATCHES = "multiple_exact_matches"
    CHANGE_SUM_MISMATCH = "change_sum_mismatch"
    NO_CHANGE_RECORDS = "no_change_records"
    RECEIPT_AMBIGUOUS = "receipt_ambiguous"
    RECEIPT_NOT_FOUND = "receipt_not_found"
    RECEIPT_MISMATCH = "receipt_mismatch"
    RECEIPT_LOOKUP_FAILED = "receipt_lookup_failed"
    INVALID_TOTALS = "invalid_totals"
    LIABILITY_FAILED = "liability_failed"

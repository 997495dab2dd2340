"""
Per-record data-quality checks.
"""

from typing import Dict, Iterable, List, Optional

import structlog

from ..models import (
    NarrationType,
    ParsedLedgerRecord,
    RecordValidation,
    ValueColumn,
)
from .narration_validation import validate_parsed_narration

logger = structlog.get_logger()

T = NarrationType
D, C, B = ValueColumn.DEBIT, ValueColumn.CREDIT, ValueColumn.BOTH

# Column a non-reversed record of each variant carries its value in.
EXPECTED_VALUE_COLUMN: Dict[NarrationType, ValueColumn] = {
    T.TARPS_BALANCE: D,
    T.ADVANCE_PAYMENT: C,
    T.PAYMENT: C,
    T.CLOSING_BALANCE: B,
    T.LATE_PAYMENT_PENALTY: D,
    T.LATE_PAYMENT_INTEREST: D,
    T.LATE_RETURN_PENALTY: D,
    T.PROVISIONAL_RETURN: D,
    T.REVISED_PROVISIONAL_RETURN: D,
    T.ORIGINAL_RETURN: D,
    T.AMENDED_RETURN: D,
    T.AUDIT_ASSESSMENT: D,
    T.ADDITIONAL_ASSESSMENT: D,
    T.ESTIMATED_ASSESSMENT: D,
    T.AUDIT_ASSESSMENT_PENALTY: D,
    T.ADDITIONAL_ASSESSMENT_PENALTY: D,
    T.BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX: D,
    T.AMENDED_ASSESSMENT_OBJECTION: C,
    T.PENALTY_FOR_AMENDED_ASSESSMENT: C,
    T.REFUND_OFFSET: C,
    T.REFUND_PAID: D,
    T.BEING_POSTING_OPENING_BALANCE_MIGRATED: C,
    T.BEING_REVERSAL_DUPLICATE_PAYMENT: D,
    T.BEING_REVERSAL_REPLICATED_TRANSACTION: C,
}


def get_expected_value_column(record: ParsedLedgerRecord) -> Optional[ValueColumn]:
    """Column the record's value should be in, taking reversal into account."""
    expected = EXPECTED_VALUE_COLUMN.get(record.narration.type)
    if expected is None or expected == B:
        return expected
    if record.narration.reversal:
        return C if expected == D else D
    return expected


def _unparseable_columns(record: ParsedLedgerRecord) -> List[str]:
    columns = []
    if record.debit is None and record.raw.debit.strip():
        columns.append(ValueColumn.DEBIT.value)
    if record.credit is None and record.raw.credit.strip():
        columns.append(ValueColumn.CREDIT.value)
    return columns


def validate_parsed_ledger_record(record: ParsedLedgerRecord) -> RecordValidation:
    narration_validation = validate_parsed_narration(record.narration)

    multiple_value_columns = (record.debit or 0) > 0 and (record.credit or 0) > 0
    invalid_value_column = None
    expected_value_column = None

    if not multiple_value_columns:
        expected = get_expected_value_column(record)
        if expected in (D, C):
            unexpected = C if expected == D else D
            if (getattr(record, unexpected.value) or 0) > 0:
                invalid_value_column = unexpected
                expected_value_column = expected

    unparseable = _unparseable_columns(record)

    valid = (
        not multiple_value_columns
        and invalid_value_column is None
        and not unparseable
        and narration_validation.valid
    )

    return RecordValidation(
        sr_no=record.sr_no,
        valid=valid,
        narration_validation=narration_validation,
        multiple_value_columns=multiple_value_columns,
        invalid_value_column=invalid_value_column,
        expected_value_column=expected_value_column,
        unparseable_value_columns=tuple(unparseable),
    )


def validate_parsed_ledger_records(records: Iterable[ParsedLedgerRecord]) -> List[RecordValidation]:
    """Validate every record; one RecordValidation per record, in order."""
    validations = [validate_parsed_ledger_record(record) for record in records]

    invalid_count = sum(1 for v in validations if not v.valid)
    if invalid_count:
        logger.info("Invalid ledger records found", invalid=invalid_count, total=len(validations))

    return validations

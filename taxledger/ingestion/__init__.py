"""Ingestion of raw ledger rows: narration parsing, normalization and validation."""

from .narration import (
    NarrationVariant,
    NARRATION_VARIANTS,
    parse_narration,
    get_quarter_from_period_months,
    get_period_months_from_quarter,
)
from .narration_validation import (
    PAYMENT_AGAINST_TYPES,
    NARRATION_FIELD_RULES,
    validate_parsed_narration,
)
from .normalizer import RecordNormalizer, parse_ledger_records, parse_ledger_date
from .record_validation import (
    EXPECTED_VALUE_COLUMN,
    validate_parsed_ledger_record,
    validate_parsed_ledger_records,
)
from .totals import (
    PENDING_LIABILITY_COLUMNS,
    LIABILITY_TYPES,
    generate_totals,
    parse_amount_string,
    parse_liability_total,
    parse_liability_totals,
)

__all__ = [
    "NarrationVariant",
    "NARRATION_VARIANTS",
    "parse_narration",
    "get_quarter_from_period_months",
    "get_period_months_from_quarter",
    "PAYMENT_AGAINST_TYPES",
    "NARRATION_FIELD_RULES",
    "validate_parsed_narration",
    "RecordNormalizer",
    "parse_ledger_records",
    "parse_ledger_date",
    "EXPECTED_VALUE_COLUMN",
    "validate_parsed_ledger_record",
    "validate_parsed_ledger_records",
    "PENDING_LIABILITY_COLUMNS",
    "LIABILITY_TYPES",
    "generate_totals",
    "parse_amount_string",
    "parse_liability_total",
    "parse_liability_totals",
]

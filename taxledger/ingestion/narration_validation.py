"""
Narration metadata validation.

Every narration variant has a declarative map of field rules. Metadata is
valid when all required fields are present, no unexpected fields exist and
each field satisfies its rule.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..models import NarrationType, NarrationValidation, ParsedNarration


# Values of the 'against' field of payment narrations
PAYMENT_AGAINST_TYPES: Tuple[str, ...] = (
    "principal liability",
    "interest",
    "payment penalty",
    "late return penalty",
    "assessment liability",
    "assessment manual penalty",
)

_NUMERIC = re.compile(r"^\d+$")
_AMOUNT = re.compile(r"^\d+(\.\d{1,2})?$")


@dataclass(frozen=True)
class FieldRule:
    """Constraints on a single metadata field."""
    required: bool = False
    numeric: bool = False
    length: Optional[int] = None
    between: Optional[Tuple[int, int]] = None
    date_formats: Tuple[str, ...] = ()
    amount: bool = False
    one_of: Tuple[str, ...] = ()

    def with_required(self) -> "FieldRule":
        return FieldRule(
            required=True,
            numeric=self.numeric,
            length=self.length,
            between=self.between,
            date_formats=self.date_formats,
            amount=self.amount,
            one_of=self.one_of,
        )

    def check(self, name: str, value: Optional[str]) -> List[str]:
        """Return the errors for one field value."""
        if value is None or value == "":
            return [f"The {name} field is required."] if self.required else []

        value = value.strip()
        errors = []

        if self.numeric and not _NUMERIC.match(value):
            errors.append(f"The {name} field may only contain numeric characters.")
        if self.length is not None and len(value) != self.length:
            errors.append(f"The {name} field must be {self.length} characters long.")
        if self.between is not None:
            low, high = self.between
            if not _NUMERIC.match(value) or not low <= int(value) <= high:
                errors.append(f"The {name} field must be between {low} and {high}.")
        if self.date_formats and not _matches_date_format(value, self.date_formats):
            errors.append(f"The {name} field must be in the format {' or '.join(self.date_formats)}.")
        if self.amount and not _AMOUNT.match(value.replace(",", "")):
            errors.append(f"The {name} field must be numeric and may contain 2 decimal points.")
        if self.one_of and value not in self.one_of:
            errors.append(
                f"The {name} field must be one of the following: [ {', '.join(self.one_of)} ]."
            )
        return errors


def _matches_date_format(value: str, formats: Tuple[str, ...]) -> bool:
    for fmt in formats:
        try:
            datetime.strptime(value, fmt)
        except ValueError:
            continue
        return True
    return False


QUARTER = FieldRule(numeric=True, between=(1, 4))
ASSESSMENT_NUMBER = FieldRule(numeric=True, length=14)
DATE = FieldRule(date_formats=("%d/%m/%Y",))
ALT_DATE = FieldRule(date_formats=("%d-%b-%Y",))
SHORT_ALT_DATE = FieldRule(date_formats=("%d-%b-%y", "%d-%b-%Y"))
AMOUNT = FieldRule(amount=True)
PRN = FieldRule(numeric=True, length=12)
RECEIPT_NUMBER = FieldRule(numeric=True, length=7)
PERIOD = FieldRule(date_formats=("%B %Y",))
ANY = FieldRule()

T = NarrationType

NARRATION_FIELD_RULES: Dict[NarrationType, Dict[str, FieldRule]] = {
    T.TARPS_BALANCE: {
        "date": DATE.with_required(),
    },
    T.ADVANCE_PAYMENT: {
        "advance_from": ANY.with_required(),
        "ref_prn": PRN.with_required(),
        "payment_date": ALT_DATE.with_required(),
        "from_receipt_number": RECEIPT_NUMBER,
        "quarter": QUARTER,
        "via": ANY,
    },
    T.PAYMENT: {
        "prn": PRN.with_required(),
        "against": FieldRule(required=True, one_of=PAYMENT_AGAINST_TYPES),
        "payment_date": ALT_DATE.with_required(),
        "from_receipt_number": RECEIPT_NUMBER,
        "quarter": QUARTER,
        "via": ANY,
    },
    T.CLOSING_BALANCE: {
        "from_date": DATE.with_required(),
        "to_date": DATE.with_required(),
    },
    T.LATE_PAYMENT_PENALTY: {
        "assessment_number": ASSESSMENT_NUMBER,
    },
    T.LATE_PAYMENT_INTEREST: {
        "assessment_number": ASSESSMENT_NUMBER,
    },
    T.LATE_RETURN_PENALTY: {},
    T.PROVISIONAL_RETURN: {
        "from_date": DATE.with_required(),
        "to_date": DATE.with_required(),
        "quarter": QUARTER.with_required(),
    },
    T.REVISED_PROVISIONAL_RETURN: {
        "from_date": DATE.with_required(),
        "to_date": DATE.with_required(),
        "quarter": QUARTER.with_required(),
    },
    T.ORIGINAL_RETURN: {},
    T.AMENDED_RETURN: {},
    T.AUDIT_ASSESSMENT: {
        "assessment_number": ASSESSMENT_NUMBER.with_required(),
    },
    T.ADDITIONAL_ASSESSMENT: {
        "assessment_number": ASSESSMENT_NUMBER.with_required(),
    },
    T.ESTIMATED_ASSESSMENT: {
        "assessment_number": ASSESSMENT_NUMBER.with_required(),
    },
    T.AUDIT_ASSESSMENT_PENALTY: {},
    T.ADDITIONAL_ASSESSMENT_PENALTY: {
        "amount": AMOUNT.with_required(),
        "from_date": DATE.with_required(),
        "to_date": DATE.with_required(),
    },
    T.BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX: {
        "amount": AMOUNT.with_required(),
        "from_date": SHORT_ALT_DATE.with_required(),
        "to_date": SHORT_ALT_DATE.with_required(),
    },
    T.AMENDED_ASSESSMENT_OBJECTION: {
        "assessment_number": ASSESSMENT_NUMBER.with_required(),
    },
    T.PENALTY_FOR_AMENDED_ASSESSMENT: {},
    T.REFUND_OFFSET: {
        "prn": PRN.with_required(),
        "from_date": ALT_DATE.with_required(),
        "to_date": ALT_DATE.with_required(),
    },
    T.REFUND_PAID: {},
    T.BEING_POSTING_OPENING_BALANCE_MIGRATED: {
        "num1": FieldRule(required=True, numeric=True, length=8),
        "num2": FieldRule(required=True, numeric=True, length=3),
    },
    T.BEING_REVERSAL_DUPLICATE_PAYMENT: {
        "period": PERIOD.with_required(),
        "receipt_number": RECEIPT_NUMBER.with_required(),
    },
    T.BEING_REVERSAL_REPLICATED_TRANSACTION: {
        "period": PERIOD.with_required(),
    },
}


def validate_parsed_narration(parsed: ParsedNarration) -> NarrationValidation:
    """Validate parsed narration metadata against its variant's field rules."""
    if parsed.type is None:
        return NarrationValidation(valid=False, errors=("Narration type could not be determined",))

    rules = NARRATION_FIELD_RULES.get(parsed.type)
    if rules is None:
        return NarrationValidation(
            valid=False,
            errors=(f"No validator for narration type {parsed.type.value} found",),
        )

    errors: List[str] = []

    extra = [name for name in parsed.meta if name not in rules]
    if extra:
        errors.append(f"Invalid metadata properties: [ {','.join(extra)} ]")

    for name, rule in rules.items():
        errors.extend(rule.check(name, parsed.meta.get(name)))

    return NarrationValidation(valid=not errors, errors=tuple(errors))

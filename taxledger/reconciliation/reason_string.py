"""
Reason string generator.

Renders the evidence behind a pending liability change as a short,
multi-line explanation. Reversed and non-reversed entries render the same.
"""

from datetime import date
from typing import Iterable, List, Optional, Union

from ..config import get_settings
from ..models import (
    ChangeReasonDetails,
    LedgerSystemError,
    NarrationGroup,
    NarrationType,
    TaxType,
    get_narration_group,
)

T = NarrationType

NO_CHANGE = "NC"

LATE_PAYMENT_TYPES = (T.LATE_PAYMENT_INTEREST, T.LATE_PAYMENT_PENALTY)
ASSESSMENT_PENALTY_TYPES = (T.AUDIT_ASSESSMENT_PENALTY, T.ADDITIONAL_ASSESSMENT_PENALTY)
LEGACY_TYPES = (
    T.TARPS_BALANCE,
    T.BEING_POSTING_OPENING_BALANCE_MIGRATED,
    T.BEING_REVERSAL_DUPLICATE_PAYMENT,
    T.BEING_REVERSAL_REPLICATED_TRANSACTION,
)


def format_period(from_date: Optional[date], to_date: Optional[date]) -> str:
    """'MM/YY' of the period start, or 'YYYY' for a January to December period."""
    if from_date is None:
        return ""
    if to_date is not None and from_date.month == 1 and to_date.month == 12:
        return from_date.strftime("%Y")
    return from_date.strftime("%m/%y")


def _year(value: Optional[date]) -> str:
    return value.strftime("%Y") if value is not None else ""


def _tax_type_code(tax_type: Union[TaxType, str, None]) -> Optional[str]:
    if isinstance(tax_type, TaxType):
        return tax_type.value
    return tax_type


class ReasonStringGenerator:
    """Dispatches on narration variant to a fixed set of line templates."""

    def __init__(self, date_format: Optional[str] = None):
        self.date_format = date_format or get_settings().reason_date_format

    def generate(
        self,
        tax_type: Union[TaxType, str, None],
        details: Optional[ChangeReasonDetails],
    ) -> str:
        if details is None or not details.change:
            return NO_CHANGE

        transaction_line = "on " + (
            details.transaction_date.strftime(self.date_format) if details.transaction_date else ""
        )
        period = format_period(details.from_date, details.to_date)
        narration_type = details.narration_type
        errors = details.system_errors

        before: List[str] = []
        after: List[str] = []

        if narration_type == T.ORIGINAL_RETURN:
            if LedgerSystemError.RETURN_ROUNDED_UP in errors:
                before = [
                    "System error",
                    f"{period} Return",
                    "does not match",
                    "ledger,",
                    "ledger incorrect",
                ]
            elif _tax_type_code(tax_type) == TaxType.ITX.value:
                before = [f"{_year(details.from_date)} Return"]
            else:
                before = [f"{period} Return"]

        elif narration_type == T.AMENDED_RETURN:
            before = [f"{period} Amended return"]

        elif narration_type in (T.PROVISIONAL_RETURN, T.REVISED_PROVISIONAL_RETURN):
            label = "Revised provisional return" if narration_type == T.REVISED_PROVISIONAL_RETURN else "Return"
            before = [f"{_year(details.from_date)}Q{details.quarter or ''} {label}"]

        elif narration_type in (T.PAYMENT, T.ADVANCE_PAYMENT, T.LATE_RETURN_PENALTY) + LATE_PAYMENT_TYPES:
            before, after = self._payment_lines(details, period)

        elif (
            get_narration_group(narration_type) == NarrationGroup.ASSESSMENTS
            or narration_type == T.AMENDED_ASSESSMENT_OBJECTION
        ):
            before = ["Assessment", f"({details.assessment_number or ''})", f"of {period}"]
            if narration_type == T.AMENDED_ASSESSMENT_OBJECTION:
                before.insert(0, "Amended")

        elif narration_type in ASSESSMENT_PENALTY_TYPES:
            before = ["Assessment penalty", f"of {period}"]

        elif narration_type == T.PENALTY_FOR_AMENDED_ASSESSMENT:
            before = ["Assessment refund", f"({details.assessment_number or ''})", f"of {period}"]

        elif narration_type == T.REFUND_OFFSET:
            before = ["Refund offset", f"of {period}"]

        elif narration_type == T.REFUND_PAID:
            before = ["Refund paid", f"of {period}"]

        elif narration_type == T.BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX:
            before = ["Under estimation", f"of {_year(details.from_date)} prov tax"]

        elif narration_type in LEGACY_TYPES:
            before = [period]

        elif details.narration:
            before = [details.narration]

        return "\n".join(before + [transaction_line] + after)

    @staticmethod
    def _payment_lines(details: ChangeReasonDetails, period: str):
        narration_type = details.narration_type
        kind = narration_type
        if narration_type == T.PAYMENT and details.payment_of in LATE_PAYMENT_TYPES + (T.LATE_RETURN_PENALTY,):
            kind = details.payment_of

        if kind in LATE_PAYMENT_TYPES:
            label = "Late Payment"
        elif kind == T.LATE_RETURN_PENALTY:
            label = "Late Return"
        elif kind == T.ADVANCE_PAYMENT:
            label = "Advance payment"
        else:
            label = "Payment"

        before = [label]
        if details.prn:
            before.append(f"(PRN:{details.prn})")
        before.append(f"of {period}")

        after: List[str] = []
        if LedgerSystemError.UNALLOCATED_ADVANCE_PAYMENT in details.system_errors:
            before.insert(0, "System error")
            after = ["not reflected", "reflected in ledger"]
        elif kind in LATE_PAYMENT_TYPES and details.assessment_number:
            before.extend(["Assessment", f"({details.assessment_number})"])
        elif (
            narration_type == T.PAYMENT
            and kind == T.PAYMENT
            and details.assessment_number
        ):
            before.append(f"({details.assessment_number})")

        return before, after


def generate_change_reason_string(
    tax_type: Union[TaxType, str, None],
    details: Optional[ChangeReasonDetails],
) -> str:
    """Render one change reason, or 'NC' for no change."""
    return ReasonStringGenerator().generate(tax_type, details)


def join_change_reasons(
    tax_type: Union[TaxType, str, None],
    details: Iterable[ChangeReasonDetails],
    generator: Optional[ReasonStringGenerator] = None,
) -> str:
    """Render several change reasons as one newline-joined string."""
    generator = generator or ReasonStringGenerator()
    return "\n".join(generator.generate(tax_type, d) for d in details)

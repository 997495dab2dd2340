"""
Narration parser.

Identifies which kind of ledger entry a free-text narration describes and
extracts metadata such as PRNs, assessment numbers, quarters and periods.
Variants are held in a registry evaluated in a fixed priority order; the
first variant whose identification pattern matches wins.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from ..models import NarrationType, ParsedNarration


# Quarter number -> (first month, last month) of the quarter
QUARTER_PERIOD_MONTHS: Dict[str, Tuple[str, str]] = {
    "1": ("01", "03"),
    "2": ("04", "06"),
    "3": ("07", "09"),
    "4": ("10", "12"),
}

_QUARTER_BY_PERIOD_MONTHS = {months: quarter for quarter, months in QUARTER_PERIOD_MONTHS.items()}


def get_quarter_from_period_months(from_month: str, to_month: str) -> Optional[str]:
    """Quarter number ('1'..'4') of a period given its two-digit start and end months."""
    return _QUARTER_BY_PERIOD_MONTHS.get((from_month, to_month))


def get_period_months_from_quarter(quarter: str) -> Optional[Tuple[str, str]]:
    """Two-digit start and end months of a quarter."""
    return QUARTER_PERIOD_MONTHS.get(str(quarter))


def _add_quarter_from_period(meta: Dict[str, str]) -> Dict[str, str]:
    """Derive the quarter of a provisional return from its period dates."""
    try:
        from_month = datetime.strptime(meta["from_date"].strip(), "%d/%m/%Y").strftime("%m")
        to_month = datetime.strptime(meta["to_date"].strip(), "%d/%m/%Y").strftime("%m")
    except (KeyError, ValueError):
        return meta
    quarter = get_quarter_from_period_months(from_month, to_month)
    if quarter is not None:
        meta = {**meta, "quarter": quarter}
    return meta


@dataclass(frozen=True)
class NarrationVariant:
    """Descriptor of one narration variant."""
    type: NarrationType
    type_match: re.Pattern
    meta: Dict[str, re.Pattern] = field(default_factory=dict)
    transformer: Optional[Callable[[Dict[str, str]], Dict[str, str]]] = None

    def matches(self, narration: str) -> bool:
        return self.type_match.search(narration) is not None

    def extract(self, narration: str) -> Dict[str, str]:
        meta = {}
        for name, pattern in self.meta.items():
            match = pattern.search(narration)
            if match:
                meta[name] = match.group(1)
        if self.transformer is not None:
            meta = self.transformer(meta)
        return meta


def _variant(narration_type, type_match, meta=None, transformer=None) -> NarrationVariant:
    return NarrationVariant(
        type=narration_type,
        type_match=re.compile(type_match),
        meta={name: re.compile(pattern) for name, pattern in (meta or {}).items()},
        transformer=transformer,
    )


_PAYMENT_DETAILS = {
    "payment_date": r"\(payment date: (.+?)\)",
    "from_receipt_number": r"from \(legacy payment receipt no: (\d+)\)",
    "quarter": r"for quarter {q(\d+)}",
    "via": r"via\. (.+)",
}

_ASSESSMENT_NUMBER = {"assessment_number": r"\(assessment no : (\d+)\)"}

_PROVISIONAL_PERIOD = {
    "from_date": r"\((.+)-.+\)",
    "to_date": r"\(.+-(.+)\)",
}

T = NarrationType

# Order matters: first match wins.
NARRATION_VARIANTS: Tuple[NarrationVariant, ...] = (
    _variant(T.TARPS_BALANCE, r"^tarps balance", {
        "date": r"as of (.+)",
    }),
    _variant(T.ADVANCE_PAYMENT, r"^advance payment from", {
        "advance_from": r"advance payment from\s+(.+?)\s+ref",
        "ref_prn": r"ref\. prn: (\d+) \(",
        **_PAYMENT_DETAILS,
    }),
    _variant(T.PAYMENT, r"^payment reconciliation", {
        "prn": r"\(prn: (\d+)\s*\)",
        "against": r" against (.+?)\s*\(",
        **_PAYMENT_DETAILS,
    }),
    _variant(T.CLOSING_BALANCE, r"^closing balance - ", {
        "from_date": r" - (.+) to ",
        "to_date": r" to (.+)",
    }),
    _variant(T.LATE_PAYMENT_PENALTY, r"^late payment penalty", {
        "assessment_number": r"\((\d+)\)",
    }),
    _variant(T.LATE_PAYMENT_INTEREST, r"^late payment interest", {
        "assessment_number": r"\((\d+)\)",
    }),
    _variant(T.LATE_RETURN_PENALTY, r"^late return penalty"),
    _variant(T.PROVISIONAL_RETURN, r"^provisional return",
             _PROVISIONAL_PERIOD, _add_quarter_from_period),
    _variant(T.REVISED_PROVISIONAL_RETURN, r"^revised provisional return",
             _PROVISIONAL_PERIOD, _add_quarter_from_period),
    _variant(T.ORIGINAL_RETURN, r"^original return"),
    _variant(T.AMENDED_RETURN, r"^amended return"),
    _variant(T.AUDIT_ASSESSMENT, r"^audit assessment from audit module", _ASSESSMENT_NUMBER),
    _variant(T.ADDITIONAL_ASSESSMENT, r"^additional assessment from assessment module", _ASSESSMENT_NUMBER),
    _variant(T.ESTIMATED_ASSESSMENT, r"^estimated assessment", _ASSESSMENT_NUMBER),
    _variant(T.AUDIT_ASSESSMENT_PENALTY, r"^fine for audit assessment"),
    _variant(T.ADDITIONAL_ASSESSMENT_PENALTY, r"^being penalty amounting.+for additional assessment", {
        "amount": r"being penalty amounting to (.+) imposed",
        "from_date": r"for the return period (.+) to",
        "to_date": r"for the return period .+ to (.+)",
    }),
    _variant(T.BEING_PENALTY_UNDER_ESTIMATION_PROVISIONAL_TAX,
             r"^being penalty amounting.+under estimation for provisional tax", {
                 "amount": r"being penalty amounting (.+) imposed",
                 "from_date": r"for the return period (.+) -",
                 "to_date": r"for the return period .+ - (.+)",
             }),
    _variant(T.AMENDED_ASSESSMENT_OBJECTION,
             r"^amended assessment from objection and appeals module", _ASSESSMENT_NUMBER),
    _variant(T.PENALTY_FOR_AMENDED_ASSESSMENT, r"^penalty for amended assessment"),
    _variant(T.REFUND_OFFSET, r"^refund offset", {
        "prn": r"\(prn: (\d+)",
        "from_date": r"refund period : (.+) to",
        "to_date": r"refund period : .+ to (\S+)",
    }),
    _variant(T.REFUND_PAID, r"^refund paid"),
    _variant(T.BEING_POSTING_OPENING_BALANCE_MIGRATED, r"^being posting of opening balance migrated", {
        "num1": r"account number-(\d+)/\d+",
        "num2": r"account number-\d+/(\d+)",
    }),
    _variant(T.BEING_REVERSAL_DUPLICATE_PAYMENT, r"^being reversal of a duplicated payment", {
        "period": r"for the period (.+) receipt",
        "receipt_number": r"receipt number (\d+)",
    }),
    _variant(T.BEING_REVERSAL_REPLICATED_TRANSACTION,
             r"^being reversal of a transaction processed on tax online", {
                 "period": r"for the period (.+?)\.*$",
             }),
)

_REVERSAL_PREFIX = re.compile(r"^reversal of\s*-\s*")
_REVERSAL_SUFFIX = re.compile(r"\s*-?\s*reversed\.?$")


def is_reversal(narration: str) -> bool:
    """Whether a lower-cased narration cancels an earlier entry."""
    return "reversal of" in narration or _REVERSAL_SUFFIX.search(narration) is not None


def strip_reversal_markers(narration: str) -> str:
    """Remove the 'reversal of -' prefix and '-reversed' suffix."""
    narration = _REVERSAL_PREFIX.sub("", narration)
    return _REVERSAL_SUFFIX.sub("", narration)


def find_narration_variant(narration: str) -> Optional[NarrationVariant]:
    for variant in NARRATION_VARIANTS:
        if variant.matches(narration):
            return variant
    return None


def parse_narration(narration: str) -> ParsedNarration:
    """
    Parse a ledger narration into its variant and metadata.

    The prefixed ('reversal of - ...') and suffixed ('...-reversed') forms
    of a narration produce the same type and meta as the plain form.

    Args:
        narration: Narration text as shown in the ledger (any case)

    Returns:
        ParsedNarration with type None if no variant matched
    """
    narration = narration.strip().lower()
    reversal = is_reversal(narration)
    variant = find_narration_variant(strip_reversal_markers(narration))

    if variant is None:
        return ParsedNarration(type=None, meta={}, reversal=reversal)

    return ParsedNarration(
        type=variant.type,
        meta=variant.extract(strip_reversal_markers(narration)),
        reversal=reversal,
    )

"""Ledger record models for the tax payer ledger reconciliation engine."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Dict, Any, Tuple

from .enums import NarrationType, NarrationGroup, get_narration_group


# Period key: (from_date, to_date) of the accounting period a record belongs to.
PeriodKey = Tuple[Optional[date], Optional[date]]


@dataclass(frozen=True)
class RawLedgerRow:
    """
    A row exactly as it appears in the tax payer ledger.
    All values are strings; sr_no is unique within a ledger.
    """
    sr_no: str
    transaction_date: str = ""
    from_date: str = ""
    to_date: str = ""
    narration: str = ""
    debit: str = ""
    credit: str = ""
    cumulative_balance: str = ""

    # Keys used by the portal's ledger table scraper.
    FIELD_ALIASES = {
        "srNo": "sr_no",
        "transactionDate": "transaction_date",
        "fromDate": "from_date",
        "toDate": "to_date",
        "cumulativeBalance": "cumulative_balance",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawLedgerRow":
        """Build a row from a dict using either snake_case or camelCase keys."""
        values = {}
        for key, value in data.items():
            name = cls.FIELD_ALIASES.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = "" if value is None else str(value)
        return cls(**values)


@dataclass(frozen=True)
class ParsedNarration:
    """
    Typed form of a free-text ledger narration.

    type is None when the narration matched none of the known variants.
    """
    type: Optional[NarrationType] = None
    meta: Dict[str, str] = field(default_factory=dict)
    reversal: bool = False

    @property
    def group(self) -> Optional[NarrationGroup]:
        return get_narration_group(self.type)


@dataclass(frozen=True)
class ParsedLedgerRecord:
    """
    Ledger record with typed values.

    Amounts are stored in MINOR UNITS (integers, 2 implied decimals) to avoid
    floating point drift. An empty amount cell is None.
    """
    sr_no: str
    narration: ParsedNarration
    debit: Optional[int]
    credit: Optional[int]
    transaction_date: Optional[date]
    from_date: Optional[date]
    to_date: Optional[date]
    raw: RawLedgerRow

    @property
    def balance(self) -> int:
        """Signed effect of this record on the liability (debit - credit)."""
        return (self.debit or 0) - (self.credit or 0)

    @property
    def is_zero(self) -> bool:
        return not self.debit and not self.credit

    @property
    def period_key(self) -> PeriodKey:
        return (self.from_date, self.to_date)

    @property
    def narration_type(self) -> Optional[NarrationType]:
        return self.narration.type

    @property
    def group(self) -> Optional[NarrationGroup]:
        return self.narration.group

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "sr_no": self.sr_no,
            "narration": self.raw.narration,
            "narration_type": self.narration.type.value if self.narration.type else None,
            "narration_meta": dict(self.narration.meta),
            "reversal": self.narration.reversal,
            "debit": self.debit,
            "credit": self.credit,
            "transaction_date": self.transaction_date.isoformat() if self.transaction_date else None,
            "from_date": self.from_date.isoformat() if self.from_date else None,
            "to_date": self.to_date.isoformat() if self.to_date else None,
        }


@dataclass
class RecordRelations:
    """
    Pairing state of a single record, kept in a relation index keyed by
    serial number rather than on the records themselves.

    Sums of payments are in minor units. counterparts_sum is the sum of the
    counterparts' balances (debit - credit).
    """
    payment_of: Optional[str] = None
    payments: List[str] = field(default_factory=list)
    payments_sum: int = 0
    counterparts: List[str] = field(default_factory=list)
    counterparts_sum: int = 0
    advance_payments: List[str] = field(default_factory=list)
    advance_payments_sum: int = 0


@dataclass(frozen=True)
class PairedLedgerRecord:
    """A ledger record joined with its pairing relations."""
    record: ParsedLedgerRecord
    payment_of: Optional[str] = None
    payments: Tuple[str, ...] = ()
    payments_sum: int = 0
    counterparts: Tuple[str, ...] = ()
    counterparts_sum: int = 0
    advance_payments: Tuple[str, ...] = ()
    advance_payments_sum: int = 0

    @classmethod
    def from_relations(
        cls,
        record: ParsedLedgerRecord,
        relations: Optional[RecordRelations],
    ) -> "PairedLedgerRecord":
        if relations is None:
            return cls(record=record)
        return cls(
            record=record,
            payment_of=relations.payment_of,
            payments=tuple(relations.payments),
            payments_sum=relations.payments_sum,
            counterparts=tuple(relations.counterparts),
            counterparts_sum=relations.counterparts_sum,
            advance_payments=tuple(relations.advance_payments),
            advance_payments_sum=relations.advance_payments_sum,
        )

    @property
    def sr_no(self) -> str:
        return self.record.sr_no

    @property
    def narration(self) -> ParsedNarration:
        return self.record.narration

    @property
    def debit(self) -> Optional[int]:
        return self.record.debit

    @property
    def credit(self) -> Optional[int]:
        return self.record.credit

    @property
    def transaction_date(self) -> Optional[date]:
        return self.record.transaction_date

    @property
    def from_date(self) -> Optional[date]:
        return self.record.from_date

    @property
    def to_date(self) -> Optional[date]:
        return self.record.to_date

    @property
    def balance(self) -> int:
        return self.record.balance

    @property
    def is_balanced(self) -> bool:
        """Whether the record is fully offset by its counterparts."""
        return self.balance + self.counterparts_sum == 0

"""
Record normalizer.
Converts raw ledger rows into typed records without filtering any of them.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional

import structlog

from ..config import get_settings
from ..errors import InvalidAmountError
from ..models import ParsedLedgerRecord, RawLedgerRow
from .narration import parse_narration
from .totals import parse_amount_string

logger = structlog.get_logger()


def parse_ledger_date(value: Optional[str], date_format: Optional[str] = None) -> Optional[date]:
    """Parse a ledger date such as '31/12/2018'. Returns None when empty or invalid."""
    if not value or not value.strip():
        return None
    if date_format is None:
        date_format = get_settings().ledger_date_format
    try:
        return datetime.strptime(value.strip(), date_format).date()
    except ValueError:
        logger.warning("Unparseable ledger date", value=value, date_format=date_format)
        return None


class RecordNormalizer:
    """
    Maps raw string rows to ParsedLedgerRecords.

    Amounts become integers in minor units, dates become datetime.date and
    the narration is parsed. Malformed amounts and dates degrade to None;
    record validation reports them.
    """

    def __init__(
        self,
        amount_scale: Optional[int] = None,
        date_format: Optional[str] = None,
    ):
        settings = get_settings()
        self.amount_scale = settings.amount_scale if amount_scale is None else amount_scale
        self.date_format = date_format or settings.ledger_date_format

    def normalize(self, rows: Iterable[RawLedgerRow]) -> List[ParsedLedgerRecord]:
        """Normalize all rows, preserving their order."""
        records = [self.normalize_row(row) for row in rows]
        logger.debug("Ledger rows normalized", count=len(records))
        return records

    def normalize_row(self, row: RawLedgerRow) -> ParsedLedgerRecord:
        return ParsedLedgerRecord(
            sr_no=row.sr_no,
            narration=parse_narration(row.narration),
            debit=self._parse_amount(row, "debit", row.debit),
            credit=self._parse_amount(row, "credit", row.credit),
            transaction_date=parse_ledger_date(row.transaction_date, self.date_format),
            from_date=parse_ledger_date(row.from_date, self.date_format),
            to_date=parse_ledger_date(row.to_date, self.date_format),
            raw=row,
        )

    def _parse_amount(self, row: RawLedgerRow, column: str, value: str) -> Optional[int]:
        try:
            return parse_amount_string(value, scale=self.amount_scale)
        except InvalidAmountError:
            logger.warning("Unparseable ledger amount", sr_no=row.sr_no, column=column, value=value)
            return None


def parse_ledger_records(rows: Iterable[RawLedgerRow]) -> List[ParsedLedgerRecord]:
    """Normalize raw rows using the configured amount scale and date format."""
    return RecordNormalizer().normalize(rows)

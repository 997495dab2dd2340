"""
Shared fixtures and record builders for the ledger reconciliation tests.
"""

import csv
from pathlib import Path
from typing import List

import pytest

from taxledger.ingestion import RecordNormalizer
from taxledger.models import ChangeReasonDetails, ParsedLedgerRecord, RawLedgerRow
from taxledger.reconciliation.pairing import PairingEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"

LEDGER_COLUMNS = [
    "srNo", "transactionDate", "fromDate", "toDate",
    "narration", "debit", "credit", "cumulativeBalance",
]


def load_ledger_csv(filename: str) -> List[RawLedgerRow]:
    """Load a header-less ledger CSV in the portal's column order."""
    with open(FIXTURES_DIR / filename, newline="", encoding="utf-8") as f:
        return [
            RawLedgerRow.from_dict(dict(zip(LEDGER_COLUMNS, row)))
            for row in csv.reader(f)
            if row
        ]


def make_row(sr_no: str = "113", **fields) -> RawLedgerRow:
    values = {
        "transaction_date": "12/02/2013",
        "from_date": "01/01/2013",
        "to_date": "31/01/2013",
        "narration": "Original Return",
        "debit": "3000.96",
        "credit": "0.00",
    }
    values.update(fields)
    return RawLedgerRow(sr_no=sr_no, **values)


def make_record(sr_no: str = "113", **fields) -> ParsedLedgerRecord:
    return RecordNormalizer(amount_scale=100, date_format="%d/%m/%Y").normalize_row(
        make_row(sr_no, **fields)
    )


def make_details(record: ParsedLedgerRecord, **details) -> ChangeReasonDetails:
    values = dict(
        change=True,
        narration_type=record.narration.type,
        narration=record.raw.narration,
        reversal=record.narration.reversal,
        from_date=record.from_date,
        to_date=record.to_date,
        transaction_date=record.transaction_date,
        sr_no=record.sr_no,
    )
    values.update(details)
    return ChangeReasonDetails(**values)


def pair(records):
    return PairingEngine().pair(records)


@pytest.fixture
def ledger_rows():
    return load_ledger_csv("ledger_sample.csv")


@pytest.fixture
def ledger_records(ledger_rows):
    return RecordNormalizer(amount_scale=100, date_format="%d/%m/%Y").normalize(ledger_rows)

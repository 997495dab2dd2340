"""
Tests for the filter pipeline: closing balances, zero values and reversals.
"""

from datetime import date

from taxledger.models import NarrationType
from taxledger.reconciliation.filters import (
    closing_balance_is_zero,
    filter_records,
    find_original_record_of_reversal,
    get_closing_balances,
    get_records_in_window,
    remove_reversals,
    remove_zero_records,
    sort_records_by_serial_number,
)

from conftest import make_record

EXPECTED_SURVIVORS = ["28", "29", "30", "32", "35", "37", "39"]


def by_sr_no(records, sr_no):
    return next(r for r in records if r.sr_no == sr_no)


class TestRemoveReversals:
    """Test suite for reversal cancellation on the sample ledger."""

    def test_sample_ledger_survivors(self, ledger_records):
        survivors = remove_reversals(ledger_records)
        assert [r.sr_no for r in survivors] == EXPECTED_SURVIVORS

    def test_input_order_does_not_matter(self, ledger_records):
        survivors = remove_reversals(list(reversed(ledger_records)))
        assert [r.sr_no for r in survivors] == EXPECTED_SURVIVORS

    def test_idempotent(self, ledger_records):
        once = remove_reversals(ledger_records)
        twice = remove_reversals(once)

        assert [r.sr_no for r in twice] == [r.sr_no for r in once]

    def test_does_not_modify_input(self, ledger_records):
        before = list(ledger_records)
        remove_reversals(ledger_records)

        assert ledger_records == before

    def test_nearest_preceding_original_is_matched(self, ledger_records):
        ordered = sort_records_by_serial_number(ledger_records)

        original = find_original_record_of_reversal(ordered, by_sr_no(ordered, "18"))
        assert original.sr_no == "6"

        original = find_original_record_of_reversal(ordered, by_sr_no(ordered, "31"), excluded={"6", "18"})
        assert original.sr_no == "1"

    def test_prefixed_and_suffixed_reversals(self, ledger_records):
        ordered = sort_records_by_serial_number(ledger_records)

        assert find_original_record_of_reversal(ordered, by_sr_no(ordered, "21")).sr_no == "2"
        assert find_original_record_of_reversal(ordered, by_sr_no(ordered, "24")).sr_no == "4"

    def test_amount_mismatch_keeps_reversal(self, ledger_records):
        ordered = sort_records_by_serial_number(ledger_records)
        assert find_original_record_of_reversal(ordered, by_sr_no(ordered, "35")) is None

    def test_reversal_without_original(self):
        reversal = make_record("2", narration="REVERSAL OF - Amended Return", debit="0.00", credit="5.00")
        other = make_record("1", narration="Original Return", debit="5.00", credit="0.00")

        assert [r.sr_no for r in remove_reversals([other, reversal])] == ["1", "2"]

    def test_metadata_must_match(self):
        original = make_record(
            "1",
            narration="Payment Reconciliation (PRN: 100000000001 ) against INTEREST (Payment Date: 01-JAN-2018)",
            debit="0.00",
            credit="5.00",
        )
        reversal = make_record(
            "2",
            narration="REVERSAL OF - Payment Reconciliation (PRN: 100000000002 ) against INTEREST (Payment Date: 01-JAN-2018)",
            debit="5.00",
            credit="0.00",
        )

        assert len(remove_reversals([original, reversal])) == 2


class TestZeroRecords:

    def test_zero_and_empty_amounts_removed(self):
        records = [
            make_record("1", debit="0.00", credit="0.00"),
            make_record("2", debit="", credit=""),
            make_record("3", debit="0.00", credit="1.00"),
        ]
        assert [r.sr_no for r in remove_zero_records(records)] == ["3"]


class TestClosingBalances:

    def test_closing_balances_keyed_by_period_start(self, ledger_records):
        balances = get_closing_balances(ledger_records)

        assert list(balances) == [date(2018, 1, 1)]
        assert balances[date(2018, 1, 1)].narration.type == NarrationType.CLOSING_BALANCE

    def test_closing_balance_is_zero(self):
        narration = "Closing Balance - 01/01/2013 to 31/01/2013"

        assert closing_balance_is_zero(make_record(narration=narration, debit="0.00", credit=""))
        assert closing_balance_is_zero(make_record(narration=narration, debit="", credit=""))
        assert not closing_balance_is_zero(make_record(narration=narration, debit="600.00", credit="0.00"))
        assert not closing_balance_is_zero(make_record(narration=narration, debit="0.00", credit="0.10"))


class TestFilterRecords:

    def test_sample_ledger(self, ledger_records):
        result = filter_records(ledger_records)

        assert [r.sr_no for r in result.records] == ["28", "29", "30", "32", "35", "39"]
        assert date(2018, 1, 1) in result.closing_balances
        assert result.reversals_removed == 32
        assert result.zero_removed == 0

    def test_input_untouched(self, ledger_records):
        before = list(ledger_records)
        filter_records(ledger_records)

        assert ledger_records == before


class TestWindow:

    def test_inclusive_window_and_boundary(self):
        records = [
            make_record("1", transaction_date="01/03/2018"),
            make_record("2", transaction_date="05/03/2018"),
            make_record("3", transaction_date="08/03/2018"),
            make_record("4", transaction_date="09/03/2018"),
            make_record("5", transaction_date=""),
        ]

        windowed = get_records_in_window(records, date(2018, 3, 1), date(2018, 3, 8))

        assert [r.sr_no for r in windowed.within] == ["1", "2", "3"]
        assert [r.sr_no for r in windowed.on_boundary] == ["1"]

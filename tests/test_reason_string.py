"""
Tests for change reason string rendering.
"""

from datetime import date

import pytest

from taxledger.models import ChangeReasonDetails, LedgerSystemError, NarrationType, TaxType
from taxledger.reconciliation.reason_string import (
    NO_CHANGE,
    ReasonStringGenerator,
    format_period,
    generate_change_reason_string,
    join_change_reasons,
)

from conftest import make_details, make_record

ROUNDED_UP = LedgerSystemError.RETURN_ROUNDED_UP
UNALLOCATED = LedgerSystemError.UNALLOCATED_ADVANCE_PAYMENT


def assert_reason(record_fields, details, expected, tax_type=TaxType.WHT):
    """Render the plain, prefixed and suffixed narration forms; all must match."""
    narration = record_fields["narration"]
    for form in (narration, f"REVERSAL OF - {narration}", f"{narration}-Reversed"):
        record = make_record(**{**record_fields, "narration": form})
        reason = generate_change_reason_string(tax_type, make_details(record, **details))
        assert reason == "\n".join(expected), form


REASON_CASES = [
    pytest.param(
        {"narration": "Original Return"}, {},
        ["01/13 Return", "on 12/02/13"],
        id="original return",
    ),
    pytest.param(
        {"narration": "Original Return"}, {"system_errors": (ROUNDED_UP,)},
        ["System error", "01/13 Return", "does not match", "ledger,", "ledger incorrect", "on 12/02/13"],
        id="original return system error",
    ),
    pytest.param(
        {"narration": "Amended Return"}, {},
        ["01/13 Amended return", "on 12/02/13"],
        id="amended return",
    ),
    pytest.param(
        {"narration": "Payment Reconciliation (PRN: 100000000000 ) against PRINCIPAL LIABILITY (Payment Date: 01-JAN-2018) for Quarter {Q1}"},
        {"prn": "100000000000"},
        ["Payment", "(PRN:100000000000)", "of 01/13", "on 12/02/13"],
        id="payment",
    ),
    pytest.param(
        {
            "narration": "Payment Reconciliation (PRN: 100000000001) against PRINCIPAL LIABILITY (Payment Date: 24-MAY-2016) via. Reallocation",
            "from_date": "05/01/2012",
            "to_date": "09/12/2012",
        },
        {"prn": "100000000001"},
        ["Payment", "(PRN:100000000001)", "of 2012", "on 12/02/13"],
        id="payment for whole year",
    ),
    pytest.param(
        {"narration": "Advance payment from  CLIENT  Ref. PRN: 100000000000 (Payment Date: 12-FEB-2013)"},
        {"prn": "100000000000"},
        ["Advance payment", "(PRN:100000000000)", "of 01/13", "on 12/02/13"],
        id="advance payment",
    ),
    pytest.param(
        {"narration": "Advance payment from  CLIENT  Ref. PRN: 100000000000 (Payment Date: 12-FEB-2013)"},
        {"prn": "100000000000", "system_errors": (UNALLOCATED,)},
        [
            "System error", "Advance payment", "(PRN:100000000000)", "of 01/13",
            "on 12/02/13", "not reflected", "reflected in ledger",
        ],
        id="advance payment error",
    ),
    pytest.param(
        {"narration": "Late Payment Interest"}, {"prn": "100000000025"},
        ["Late Payment", "(PRN:100000000025)", "of 01/13", "on 12/02/13"],
        id="late payment interest",
    ),
    pytest.param(
        {"narration": "Late Payment Interest(10000000000123)"},
        {"prn": "100000000025", "assessment_number": "10000000000123"},
        ["Late Payment", "(PRN:100000000025)", "of 01/13", "Assessment", "(10000000000123)", "on 12/02/13"],
        id="late payment interest with assessment number",
    ),
    pytest.param(
        {"narration": "Late Payment Penalty"}, {"prn": "100000000025"},
        ["Late Payment", "(PRN:100000000025)", "of 01/13", "on 12/02/13"],
        id="late payment penalty",
    ),
    pytest.param(
        {"narration": "Late Payment Penalty(10000000000123)"},
        {"prn": "100000000025", "assessment_number": "10000000000123"},
        ["Late Payment", "(PRN:100000000025)", "of 01/13", "Assessment", "(10000000000123)", "on 12/02/13"],
        id="late payment penalty with assessment number",
    ),
    pytest.param(
        {"narration": "Late Return Penalty"}, {"prn": "100000000025"},
        ["Late Return", "(PRN:100000000025)", "of 01/13", "on 12/02/13"],
        id="late return penalty",
    ),
    pytest.param(
        {"narration": "Penalty for Amended assessment"}, {"assessment_number": "100000000025"},
        ["Assessment refund", "(100000000025)", "of 01/13", "on 12/02/13"],
        id="penalty for amended assessment",
    ),
    pytest.param(
        {"narration": "Refund Offset (PRN: 100000000000 ,Refund Period : 01-JAN-2018 to 31-JAN-2018 )"}, {},
        ["Refund offset", "of 01/13", "on 12/02/13"],
        id="refund offset",
    ),
    pytest.param(
        {"narration": "Refund Paid"}, {},
        ["Refund paid", "of 01/13", "on 12/02/13"],
        id="refund paid",
    ),
    pytest.param(
        {"narration": "Fine for Audit assessment"}, {},
        ["Assessment penalty", "of 01/13", "on 12/02/13"],
        id="audit assessment penalty",
    ),
    pytest.param(
        {"narration": "Being posting of opening balance migrated from multiple account number-10000000/100."}, {},
        ["01/13", "on 12/02/13"],
        id="opening balance migrated",
    ),
    pytest.param(
        {"narration": "Being reversal of a duplicated payment for the period December 2013 receipt number 1234567."}, {},
        ["01/13", "on 12/02/13"],
        id="reversal of duplicate payment",
    ),
    pytest.param(
        {"narration": "Being reversal of a transaction processed on Tax online, replicated on TARPS for the period December 2013."}, {},
        ["01/13", "on 12/02/13"],
        id="reversal of replicated transaction",
    ),
    pytest.param(
        {
            "narration": "Being Penalty amounting 522265.60 imposed for under estimation for Provisional tax for the Return Period 01-JAN-17 - 31-DEC-17",
            "from_date": "01/01/2017",
            "to_date": "31/12/2017",
            "transaction_date": "13/05/2018",
        },
        {},
        ["Under estimation", "of 2017 prov tax", "on 13/05/18"],
        id="under estimation of provisional tax",
    ),
]


class TestReasonStrings:
    """Test suite for reason strings of every narration variant."""

    @pytest.mark.parametrize("record_fields,details,expected", REASON_CASES)
    def test_reason(self, record_fields, details, expected):
        assert_reason(record_fields, details, expected)

    @pytest.mark.parametrize("from_date,to_date,expected", [
        ("01/01/2012", "15/12/2012", "2012 Return"),
        ("01/01/2013", "31/12/2013", "2013 Return"),
    ])
    def test_income_tax_original_return(self, from_date, to_date, expected):
        assert_reason(
            {"narration": "Original Return", "from_date": from_date, "to_date": to_date},
            {},
            [expected, "on 12/02/13"],
            tax_type=TaxType.ITX,
        )

    @pytest.mark.parametrize("quarter,from_date,to_date", [
        ("1", "01/01/2015", "31/03/2015"),
        ("2", "01/04/2015", "30/06/2015"),
        ("3", "01/07/2015", "30/09/2015"),
        ("4", "01/10/2015", "31/12/2015"),
    ])
    @pytest.mark.parametrize("prefix,label", [
        ("", "Return"),
        ("Revised ", "Revised provisional return"),
    ])
    def test_provisional_returns(self, quarter, from_date, to_date, prefix, label):
        assert_reason(
            {
                "narration": f"{prefix}Provisional Return ({from_date}-{to_date})",
                "from_date": "01/01/2015",
                "to_date": "31/12/2015",
                "transaction_date": "08/03/2015",
            },
            {"quarter": quarter},
            [f"2015Q{quarter} {label}", "on 08/03/15"],
        )

    @pytest.mark.parametrize("narration", [
        "Audit assessment from Audit Module (Assessment No : 10000000000123)",
        "Additional assessment from Assessment Module (Assessment No : 10000000000123)",
        "Additional assessment from Assessment Module (Assessment No : 10000000000123)(10000000000123)",
        "Estimated Assessment (Assessment No : 10000000000123)",
    ])
    def test_assessments(self, narration):
        assert_reason(
            {"narration": narration},
            {"assessment_number": "10000000000123"},
            ["Assessment", "(10000000000123)", "of 01/13", "on 12/02/13"],
        )

    def test_amended_assessment_objection(self):
        assert_reason(
            {"narration": "Amended assessment from Objection And Appeals Module (Assessment No : 10000000000123)"},
            {"assessment_number": "10000000000123"},
            ["Amended", "Assessment", "(10000000000123)", "of 01/13", "on 12/02/13"],
        )

    def test_payment_of_late_payment_interest(self):
        record = make_record(
            narration="Payment Reconciliation (PRN: 100000000025 ) against INTEREST (Payment Date: 01-JAN-2018)",
        )
        details = make_details(
            record,
            prn="100000000025",
            assessment_number="10000000000123",
            payment_of=NarrationType.LATE_PAYMENT_INTEREST,
        )

        assert generate_change_reason_string(TaxType.WHT, details) == "\n".join([
            "Late Payment", "(PRN:100000000025)", "of 01/13", "Assessment", "(10000000000123)", "on 12/02/13",
        ])

    def test_payment_without_prn(self):
        record = make_record(
            narration="Payment Reconciliation (PRN: 100000000025 ) against PRINCIPAL LIABILITY (Payment Date: 01-JAN-2018)",
        )

        assert generate_change_reason_string(TaxType.WHT, make_details(record)) == "Payment\nof 01/13\non 12/02/13"

    def test_unknown_narration_falls_back_to_raw_text(self):
        record = make_record(narration="Manual journal 42")
        assert generate_change_reason_string(TaxType.WHT, make_details(record)) == "Manual journal 42\non 12/02/13"


class TestNoChange:

    def test_no_change_sentinel(self):
        assert generate_change_reason_string(TaxType.WHT, ChangeReasonDetails.no_change()) == NO_CHANGE

    def test_missing_details(self):
        assert generate_change_reason_string(TaxType.WHT, None) == "NC"

    def test_join(self):
        first = make_details(make_record("1", narration="Original Return"))
        second = make_details(make_record("2", narration="Amended Return", transaction_date="13/02/2013"))

        reason = join_change_reasons(TaxType.WHT, [first, second], ReasonStringGenerator(date_format="%d/%m/%y"))

        assert reason == "01/13 Return\non 12/02/13\n01/13 Amended return\non 13/02/13"

    def test_join_empty(self):
        assert join_change_reasons(TaxType.WHT, []) == ""


@pytest.mark.parametrize("from_date,to_date,expected", [
    ((2013, 1, 1), (2013, 1, 31), "01/13"),
    ((2012, 1, 1), (2012, 12, 31), "2012"),
    ((2012, 4, 1), (2013, 3, 31), "04/12"),
])
def test_format_period(from_date, to_date, expected):
    assert format_period(date(*from_date), date(*to_date)) == expected

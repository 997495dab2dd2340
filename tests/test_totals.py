"""
Tests for amount parsing and pending liability totals.
"""

import pytest

from taxledger.errors import InvalidAmountError, LiabilityTotalsError
from taxledger.ingestion.totals import (
    PENDING_LIABILITY_COLUMNS,
    generate_totals,
    parse_amount_string,
    parse_liability_total,
    parse_liability_totals,
)
from taxledger.models import LiabilityType


class TestParseAmountString:

    @pytest.mark.parametrize("amount,expected", [
        ("0.00", 0),
        ("1,234.50", 123450),
        ("-20.10", -2010),
        ("3000.96", 300096),
        (" 7 ", 700),
        ("0.005", 1),
    ])
    def test_valid_amounts(self, amount, expected):
        assert parse_amount_string(amount, scale=100) == expected

    @pytest.mark.parametrize("amount", [None, "", "   "])
    def test_empty_amounts(self, amount):
        assert parse_amount_string(amount, scale=100) is None

    @pytest.mark.parametrize("amount", ["abc", "1.2.3", "NaN", "Infinity"])
    def test_invalid_amounts(self, amount):
        with pytest.raises(InvalidAmountError):
            parse_amount_string(amount, scale=100)


class TestLiabilityTotals:

    def test_generate_totals(self):
        totals = generate_totals(PENDING_LIABILITY_COLUMNS, "0.00")
        assert totals == {"principal": "0.00", "interest": "0.00", "penalty": "0.00", "total": "0.00"}

    def test_parse_liability_totals(self):
        totals = {"principal": "1,000.00", "interest": "12.50", "penalty": "0", "total": "1012.50"}

        assert parse_liability_totals(totals, scale=100) == {
            LiabilityType.PRINCIPAL: 100000,
            LiabilityType.INTEREST: 1250,
            LiabilityType.PENALTY: 0,
        }

    def test_missing_total(self):
        with pytest.raises(LiabilityTotalsError) as exc_info:
            parse_liability_total({"principal": ""}, LiabilityType.PRINCIPAL, scale=100)

        assert exc_info.value.liability_type == "principal"

    def test_non_numeric_total(self):
        with pytest.raises(LiabilityTotalsError, match="not numeric"):
            parse_liability_total({"interest": "n/a"}, LiabilityType.INTEREST, scale=100)

"""
Tests for narration metadata validation.
"""

from taxledger.ingestion.narration import parse_narration
from taxledger.ingestion.narration_validation import (
    NARRATION_FIELD_RULES,
    FieldRule,
    validate_parsed_narration,
)
from taxledger.models import NarrationType, ParsedNarration


class TestNarrationValidation:
    """Test suite for narration field rules."""

    def test_rules_exist_for_all_narration_types(self):
        assert set(NARRATION_FIELD_RULES) == set(NarrationType)

    def test_valid_payment(self):
        parsed = parse_narration(
            "Payment Reconciliation (PRN: 100000000000 ) against PRINCIPAL LIABILITY (Payment Date: 01-JAN-2018)"
        )
        validation = validate_parsed_narration(parsed)

        assert validation.valid
        assert validation.errors == ()

    def test_valid_advance_payment_with_quarter(self):
        parsed = parse_narration(
            "Advance payment from  HENSON  Ref. PRN: 100000000000 (Payment Date: 01-JAN-2018) for Quarter {Q1}"
        )
        assert validate_parsed_narration(parsed).valid

    def test_unknown_type_is_invalid(self):
        validation = validate_parsed_narration(ParsedNarration(type=None))

        assert not validation.valid
        assert validation.errors == ("Narration type could not be determined",)

    def test_missing_required_field(self):
        parsed = ParsedNarration(type=NarrationType.AUDIT_ASSESSMENT, meta={})
        validation = validate_parsed_narration(parsed)

        assert not validation.valid
        assert "The assessment_number field is required." in validation.errors

    def test_extra_fields_reported(self):
        parsed = ParsedNarration(type=NarrationType.ORIGINAL_RETURN, meta={"prn": "100000000000"})
        validation = validate_parsed_narration(parsed)

        assert not validation.valid
        assert validation.errors == ("Invalid metadata properties: [ prn ]",)

    def test_wrong_prn_length(self):
        parsed = ParsedNarration(
            type=NarrationType.REFUND_OFFSET,
            meta={"prn": "1234", "from_date": "01-jan-2018", "to_date": "31-jan-2018"},
        )
        validation = validate_parsed_narration(parsed)

        assert not validation.valid
        assert validation.errors == ("The prn field must be 12 characters long.",)

    def test_unknown_payment_against_value(self):
        parsed = ParsedNarration(
            type=NarrationType.PAYMENT,
            meta={"prn": "100000000000", "against": "fees", "payment_date": "01-jan-2018"},
        )
        validation = validate_parsed_narration(parsed)

        assert not validation.valid
        assert len(validation.errors) == 1
        assert validation.errors[0].startswith("The against field must be one of the following")


class TestFieldRule:

    def test_optional_empty_value_passes(self):
        assert FieldRule(numeric=True).check("quarter", None) == []

    def test_between(self):
        rule = FieldRule(numeric=True, between=(1, 4))

        assert rule.check("quarter", "4") == []
        assert rule.check("quarter", "5") == ["The quarter field must be between 1 and 4."]

    def test_date_formats(self):
        rule = FieldRule(date_formats=("%d/%m/%Y",))

        assert rule.check("date", "31/10/2013") == []
        assert rule.check("date", "2013-10-31") == ["The date field must be in the format %d/%m/%Y."]

    def test_amount(self):
        rule = FieldRule(amount=True)

        assert rule.check("amount", "522,265.60") == []
        assert rule.check("amount", "12.345") != []

"""Tests for penalty calculation."""

import pytest

from app.schemas.domain import BreachDetectionResult, PenaltyRule
from app.services.penalties import (
    DEFAULT_BASE_AMOUNT,
    FirstNumberExtractor,
    calculate_penalties,
)
from conftest import make_extraction

BREACHES = BreachDetectionResult(
    potential_breaches=["Payment of the March invoice was late", "Missing termination notice"],
    summary="Two potential breaches.",
)
NO_BREACHES = BreachDetectionResult(potential_breaches=[], summary="No breaches.")


class TestFirstNumberExtractor:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Total fee of $12,500.00 payable monthly", 12500.0),
            ("5000 USD", 5000.0),
            ("Net 30, total $50,000", 30.0),
            ("No amounts here", None),
            (None, None),
        ],
    )
    def test_extract(self, text, expected):
        assert FirstNumberExtractor().extract(text) == expected


class TestCalculatePenalties:
    def test_percentage_uses_default_base_without_amount(self):
        extraction = make_extraction(financial_terms="Fees to be agreed")
        rules = [PenaltyRule(condition_text="Late payment", penalty_type="percentage", percentage=5)]

        penalties = calculate_penalties(rules, extraction, NO_BREACHES)

        assert DEFAULT_BASE_AMOUNT == 10000.0
        assert len(penalties) == 1
        assert penalties[0].amount == 500.0
        assert penalties[0].currency == "USD"

    def test_percentage_uses_first_number_in_financial_terms(self):
        rules = [PenaltyRule(condition_text="Late payment", penalty_type="percentage", percentage=5)]

        penalties = calculate_penalties(rules, make_extraction(), NO_BREACHES)

        assert penalties[0].amount == 625.0

    def test_percentage_without_extraction(self):
        rules = [PenaltyRule(penalty_type="percentage", percentage=10)]

        penalties = calculate_penalties(rules, None, None)

        assert penalties[0].amount == 1000.0
        assert penalties[0].description == "Calculated Penalty"

    def test_fixed_amount(self):
        rules = [PenaltyRule(condition_text="Missed delivery", penalty_type="fixed", amount=250)]

        penalties = calculate_penalties(rules, make_extraction(), NO_BREACHES)

        assert penalties[0].amount == 250.0
        assert penalties[0].description == "Missed delivery"

    def test_zero_amounts_excluded(self):
        rules = [
            PenaltyRule(penalty_type="fixed", amount=0),
            PenaltyRule(penalty_type="fixed"),
            PenaltyRule(penalty_type="percentage", percentage=0),
            PenaltyRule(condition_text="Late", penalty_type="fixed", amount=50),
        ]

        penalties = calculate_penalties(rules, make_extraction(), NO_BREACHES)

        assert [p.amount for p in penalties] == [50.0]

    def test_negative_amount_rejected_by_model(self):
        with pytest.raises(ValueError):
            PenaltyRule(penalty_type="fixed", amount=-5)

    def test_fallback_when_breaches_and_no_rule_applies(self):
        penalties = calculate_penalties([], make_extraction(), BREACHES)

        assert len(penalties) == 1
        assert penalties[0].description == "General penalty for detected breaches"
        assert penalties[0].amount == 100.0
        assert penalties[0].breach_index is None

    def test_no_fallback_without_breaches(self):
        assert calculate_penalties([], make_extraction(), NO_BREACHES) == []
        assert calculate_penalties([], make_extraction(), None) == []

    def test_custom_fallback_and_currency(self):
        penalties = calculate_penalties(
            [], make_extraction(), BREACHES, fallback_amount=75.0, currency="EUR"
        )

        assert penalties[0].amount == 75.0
        assert penalties[0].currency == "EUR"

    def test_breach_index_from_first_word(self):
        rules = [
            PenaltyRule(condition_text="Payment delay", penalty_type="fixed", amount=100),
            PenaltyRule(condition_text="Missing notice", penalty_type="fixed", amount=100),
            PenaltyRule(condition_text="Confidentiality leak", penalty_type="fixed", amount=100),
        ]

        penalties = calculate_penalties(rules, make_extraction(), BREACHES)

        assert [p.breach_index for p in penalties] == [0, 1, None]

    def test_recalculation_is_idempotent(self):
        rules = [
            PenaltyRule(condition_text="Late payment", penalty_type="percentage", percentage=5),
            PenaltyRule(condition_text="Missed delivery", penalty_type="fixed", amount=250),
        ]

        first = calculate_penalties(rules, make_extraction(), BREACHES)
        second = calculate_penalties(rules, make_extraction(), BREACHES)

        assert [(p.description, p.amount) for p in first] == [(p.description, p.amount) for p in second]

    def test_custom_base_amount_extractor(self):
        class FixedBase:
            def extract(self, text):
                return 2000.0

        rules = [PenaltyRule(penalty_type="percentage", percentage=10)]

        penalties = calculate_penalties(
            rules, make_extraction(), NO_BREACHES, base_amount_extractor=FixedBase()
        )

        assert penalties[0].amount == 200.0

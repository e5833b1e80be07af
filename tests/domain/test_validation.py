"""
Tests for the pure input validators (marketplace_kernel/domain/validation.py).

Covers:
- Budget and date ranges
- Quote bounds (inclusive)
- Proposal start inside the project timeline
- Milestone percentage bounds and the 100% total
- Input coercion of text, numbers, dates and categories
"""

from datetime import date
from decimal import Decimal

import pytest

from marketplace_kernel.domain.validation import (
    require_category,
    require_date,
    require_decimal,
    require_text,
    validate_budget_range,
    validate_date_range,
    validate_payment_percentage,
    validate_percentage_total,
    validate_proposal_start,
    validate_quote,
)
from marketplace_kernel.exceptions import (
    BudgetRangeError,
    DateRangeError,
    MissingFieldError,
    PaymentPercentageError,
    PaymentPercentageExceededError,
    ProposalStartDateError,
    QuoteOutOfRangeError,
    ValidationError,
)
from marketplace_kernel.models.project import ServiceCategory


class TestBudgetRange:

    def test_equal_bounds_allowed(self):
        validate_budget_range(Decimal("500"), Decimal("500"))

    def test_inverted_bounds_rejected(self):
        with pytest.raises(BudgetRangeError) as exc_info:
            validate_budget_range(Decimal("900"), Decimal("100"))
        assert exc_info.value.budget_min == "900"
        assert exc_info.value.code == "BUDGET_RANGE"

    def test_negative_bound_rejected(self):
        with pytest.raises(BudgetRangeError):
            validate_budget_range(Decimal("-1"), Decimal("100"))


class TestDateRange:

    def test_same_day_allowed(self):
        validate_date_range(date(2024, 5, 1), date(2024, 5, 1))

    def test_end_before_start_rejected(self):
        with pytest.raises(DateRangeError):
            validate_date_range(date(2024, 5, 2), date(2024, 5, 1))


class TestQuote:
    """Quotes must fall inside the project budget, both ends inclusive."""

    @pytest.mark.parametrize("quote", ["5000", "7500", "10000"])
    def test_inside_or_on_bounds(self, quote):
        validate_quote(Decimal(quote), Decimal("5000"), Decimal("10000"))

    @pytest.mark.parametrize("quote", ["4999.99", "10000.01"])
    def test_outside_bounds(self, quote):
        with pytest.raises(QuoteOutOfRangeError) as exc_info:
            validate_quote(Decimal(quote), Decimal("5000"), Decimal("10000"))
        assert "must be within project budget range" in str(exc_info.value)

    def test_is_validation_error(self):
        assert issubclass(QuoteOutOfRangeError, ValidationError)


class TestProposalStart:

    def test_inside_timeline(self):
        validate_proposal_start(date(2024, 3, 1), date(2024, 3, 1), date(2024, 6, 30))
        validate_proposal_start(date(2024, 6, 30), date(2024, 3, 1), date(2024, 6, 30))

    def test_before_project_start(self):
        with pytest.raises(ProposalStartDateError):
            validate_proposal_start(date(2024, 2, 28), date(2024, 3, 1), date(2024, 6, 30))


class TestPaymentPercentage:

    def test_bounds(self):
        validate_payment_percentage(Decimal("0"))
        validate_payment_percentage(Decimal("100"))
        with pytest.raises(PaymentPercentageError):
            validate_payment_percentage(Decimal("100.01"))
        with pytest.raises(PaymentPercentageError):
            validate_payment_percentage(Decimal("-5"))

    def test_more_than_two_places_rejected(self):
        validate_payment_percentage(Decimal("33.33"))
        validate_payment_percentage(Decimal("33.330"))
        with pytest.raises(PaymentPercentageError) as exc_info:
            validate_payment_percentage(Decimal("33.333"))
        assert exc_info.value.payment_percentage == "33.333"

    def test_total_up_to_exactly_100(self):
        total = validate_percentage_total("p1", [Decimal("40"), Decimal("35")], Decimal("25"))
        assert total == Decimal("100")

    def test_total_over_100_rejected(self):
        with pytest.raises(PaymentPercentageExceededError) as exc_info:
            validate_percentage_total("p1", [Decimal("60"), Decimal("30")], Decimal("11"))
        assert str(exc_info.value) == "Total payment percentage cannot exceed 100%"
        assert exc_info.value.current_total == "90"

    def test_empty_project(self):
        assert validate_percentage_total("p1", [], Decimal("100")) == Decimal("100")


class TestCoercion:

    def test_require_text_strips(self):
        assert require_text("name", "  Deck  ") == "Deck"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_require_text_missing(self, value):
        with pytest.raises(MissingFieldError) as exc_info:
            require_text("name", value)
        assert exc_info.value.field_name == "name"

    def test_require_decimal_from_string_and_int(self):
        assert require_decimal("quote_amount", "12.50") == Decimal("12.50")
        assert require_decimal("quote_amount", 7) == Decimal("7")

    def test_require_decimal_rejects_garbage(self):
        with pytest.raises(ValidationError):
            require_decimal("quote_amount", "lots")

    def test_require_date_accepts_iso_string(self):
        assert require_date("start_date", "2024-03-01") == date(2024, 3, 1)

    def test_require_date_rejects_garbage(self):
        with pytest.raises(ValidationError):
            require_date("start_date", "next tuesday")

    def test_require_category(self):
        assert require_category("Plumbing") == ServiceCategory.PLUMBING
        with pytest.raises(ValidationError):
            require_category("Underwater Basket Weaving")

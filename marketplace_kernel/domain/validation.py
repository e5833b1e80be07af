"""
Pure validators for project, proposal and milestone input.

Every function either returns normally or raises a ``ValidationError``
subclass.  None of them touch the database, so services call them before
issuing any write and a failed check leaves no partial state.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from marketplace_kernel.db.types import to_decimal
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

MAX_PAYMENT_PERCENTAGE = Decimal("100")
PERCENTAGE_STEP = Decimal("0.01")


def require_text(field_name: str, value: str | None) -> str:
    """Return ``value`` stripped; raise if it is missing or blank."""
    if value is None or not str(value).strip():
        raise MissingFieldError(field_name)
    return str(value).strip()


def require_decimal(field_name: str, value) -> Decimal:
    if value is None:
        raise MissingFieldError(field_name)
    try:
        return to_decimal(value)
    except ValueError:
        raise ValidationError(f"Field '{field_name}' must be a number") from None


def require_date(field_name: str, value) -> date:
    if value is None:
        raise MissingFieldError(field_name)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError(f"Field '{field_name}' must be a date")


def require_category(value) -> ServiceCategory:
    if value is None:
        raise MissingFieldError("category")
    try:
        return ServiceCategory(value)
    except ValueError:
        raise ValidationError(f"Unknown service category: {value}") from None


def validate_budget_range(budget_min: Decimal, budget_max: Decimal) -> None:
    """Both bounds non-negative and ``budget_min <= budget_max``."""
    if budget_min < 0 or budget_max < 0 or budget_min > budget_max:
        raise BudgetRangeError(str(budget_min), str(budget_max))


def validate_date_range(start_date: date, end_date: date) -> None:
    """``end_date >= start_date``."""
    if end_date < start_date:
        raise DateRangeError(start_date.isoformat(), end_date.isoformat())


def validate_quote(quote_amount: Decimal, budget_min: Decimal, budget_max: Decimal) -> None:
    """``budget_min <= quote_amount <= budget_max`` (inclusive on both ends)."""
    if quote_amount < budget_min or quote_amount > budget_max:
        raise QuoteOutOfRangeError(str(quote_amount), str(budget_min), str(budget_max))


def validate_proposal_start(start_date: date, project_start: date, project_end: date) -> None:
    if start_date < project_start or start_date > project_end:
        raise ProposalStartDateError(
            start_date.isoformat(), project_start.isoformat(), project_end.isoformat()
        )


def validate_payment_percentage(payment_percentage: Decimal) -> None:
    """In [0, 100] and representable in the Numeric(5, 2) column."""
    if payment_percentage < 0 or payment_percentage > MAX_PAYMENT_PERCENTAGE:
        raise PaymentPercentageError(str(payment_percentage))
    if payment_percentage != payment_percentage.quantize(PERCENTAGE_STEP):
        raise PaymentPercentageError(str(payment_percentage))


def validate_percentage_total(
    project_id: object,
    other_percentages: Iterable[Decimal],
    requested: Decimal,
) -> Decimal:
    """
    Check that ``requested`` fits next to the other milestones of a project.

    Args:
        project_id: Project the milestones belong to (for the error only).
        other_percentages: Percentages of every OTHER milestone of the
            project; on update the milestone being edited is excluded.
        requested: The new or updated milestone's percentage.

    Returns:
        The resulting total.

    Raises:
        PaymentPercentageExceededError: If the total would exceed 100.
    """
    current = sum((Decimal(p or 0) for p in other_percentages), Decimal("0"))
    total = current + requested
    if total > MAX_PAYMENT_PERCENTAGE:
        raise PaymentPercentageExceededError(str(project_id), str(current), str(requested))
    return total

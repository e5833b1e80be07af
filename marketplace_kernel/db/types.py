"""
Module: marketplace_kernel.db.types
Responsibility: Conversion helpers for the numeric columns (quotes,
    budgets, payment percentages).  Column precision itself lives in
    Base.type_annotation_map and on the individual mapped_column() calls.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    No floats for money or percentages.  Inputs arriving as int, str or
    float are converted once, at the service boundary, via to_decimal().
"""

from decimal import Decimal, InvalidOperation


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a numeric input to Decimal without binary float artefacts.

    Floats go through their shortest repr, so 0.1 becomes Decimal("0.1").

    Raises:
        ValueError: If value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result

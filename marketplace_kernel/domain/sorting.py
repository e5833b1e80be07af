"""
Ordering of proposals for display.

``sort_proposals`` is pure: it returns a new list and never touches the
input objects or the store.  The order is total -- ties on the chosen
field fall back to submission time and then to the proposal id -- so the
same input always yields the same output.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, TypeVar
from uuid import UUID


class ProposalSortField(str, Enum):
    QUOTE_AMOUNT = "quote_amount"
    START_DATE = "start_date"
    SUBMITTED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _Sortable(Protocol):
    @property
    def id(self) -> UUID: ...

    @property
    def quote_amount(self): ...

    @property
    def start_date(self): ...

    @property
    def created_at(self) -> datetime | None: ...


T = TypeVar("T", bound=_Sortable)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _timestamp(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    # SQLite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _key(field: ProposalSortField):
    if field == ProposalSortField.QUOTE_AMOUNT:
        return lambda p: (p.quote_amount, _timestamp(p.created_at), str(p.id))
    if field == ProposalSortField.START_DATE:
        return lambda p: (p.start_date, _timestamp(p.created_at), str(p.id))
    return lambda p: (_timestamp(p.created_at), str(p.id))


def sort_proposals(
    proposals: Iterable[T],
    field: ProposalSortField | str = ProposalSortField.SUBMITTED_AT,
    order: SortOrder | str = SortOrder.DESC,
) -> list[T]:
    """
    Return ``proposals`` ordered by ``field`` in ``order``.

    Raises:
        ValueError: If ``field`` or ``order`` is not a known value.
    """
    field = ProposalSortField(field)
    order = SortOrder(order)
    return sorted(proposals, key=_key(field), reverse=order == SortOrder.DESC)

"""
workbench_engines.booking_matching -- Pure booking search and ranking.

Responsibility:
    Filter a company's bookings by free-text query, date window and
    operational status, and order the survivors for interactive
    selection.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import kernel domain types and module DTO types.

Invariants enforced:
    - Purity: ``today`` and the reference date are inputs; no clock reads.
    - Deterministic order: status weight descending; then, when a
      reference date is given and two candidates' distances to it differ
      by more than the proximity threshold, the closer one first;
      otherwise the more recent booking first.  Remaining ties keep the
      registry's order (``sorted`` is stable).

Failure modes:
    - None.  Empty inputs yield empty results.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import cmp_to_key
from types import MappingProxyType

from workbench_modules.bookings.models import (
    BookingRecord,
    BookingSearchFilters,
    BookingStatus,
    DateFilter,
)


def _default_weights() -> Mapping[str, int]:
    return MappingProxyType({
        BookingStatus.DELIVERED.value: 3,
        BookingStatus.CLOSED.value: 2,
    })


@dataclass(frozen=True)
class RankingPolicy:
    """Weights and thresholds for candidate ordering."""

    status_weights: Mapping[str, int] = field(default_factory=_default_weights)
    default_status_weight: int = 1
    proximity_threshold_days: int = 1

    def weight_for(self, status: BookingStatus | str) -> int:
        key = status.value if isinstance(status, BookingStatus) else status
        return self.status_weights.get(key, self.default_status_weight)


DEFAULT_RANKING_POLICY = RankingPolicy()


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def matches_query(booking: BookingRecord, query: str | None) -> bool:
    """Case-insensitive substring match on number, client and route ends."""
    if query is None or not query.strip():
        return True
    q = query.strip().lower()
    return any(
        q in text.lower()
        for text in (
            booking.booking_no,
            booking.client,
            booking.route_from,
            booking.route_to,
        )
    )


def date_window(date_filter: DateFilter | None, today: date) -> tuple[date | None, date | None]:
    """Return the ``[start, end)`` bounds of a date filter; None is open."""
    if date_filter is None:
        return None, None
    if date_filter == DateFilter.TODAY:
        return today, None
    if date_filter == DateFilter.YESTERDAY:
        return today - timedelta(days=1), today
    return today - timedelta(days=7), None


def in_date_window(booking: BookingRecord, date_filter: DateFilter | None, today: date) -> bool:
    start, end = date_window(date_filter, today)
    if start is not None and booking.booked_on < start:
        return False
    if end is not None and booking.booked_on >= end:
        return False
    return True


def filter_candidates(
    bookings: Iterable[BookingRecord],
    company_id: str,
    query: str | None,
    filters: BookingSearchFilters,
    today: date,
) -> list[BookingRecord]:
    """Apply company scope, query, date window and status filters in order."""
    return [
        b for b in bookings
        if b.company_id == company_id
        and matches_query(b, query)
        and in_date_window(b, filters.date_filter, today)
        and (not filters.statuses or b.status in filters.statuses)
    ]


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def compare_candidates(
    a: BookingRecord,
    b: BookingRecord,
    reference_date: date | None,
    policy: RankingPolicy = DEFAULT_RANKING_POLICY,
) -> int:
    """Three-way comparison; negative means ``a`` ranks first."""
    weight_diff = policy.weight_for(b.status) - policy.weight_for(a.status)
    if weight_diff != 0:
        return weight_diff

    if reference_date is not None:
        a_distance = abs((a.booked_on - reference_date).days)
        b_distance = abs((b.booked_on - reference_date).days)
        if abs(a_distance - b_distance) > policy.proximity_threshold_days:
            return a_distance - b_distance

    return (b.booked_on - a.booked_on).days


def rank_candidates(
    bookings: Iterable[BookingRecord],
    reference_date: date | None = None,
    policy: RankingPolicy = DEFAULT_RANKING_POLICY,
) -> list[BookingRecord]:
    """Order candidates for display, best first."""
    return sorted(
        bookings,
        key=cmp_to_key(lambda a, b: compare_candidates(a, b, reference_date, policy)),
    )


def search_candidates(
    bookings: Iterable[BookingRecord],
    company_id: str,
    query: str | None,
    filters: BookingSearchFilters,
    today: date,
    policy: RankingPolicy = DEFAULT_RANKING_POLICY,
) -> list[BookingRecord]:
    """Filter then rank: the full interactive search pipeline."""
    return rank_candidates(
        filter_candidates(bookings, company_id, query, filters, today),
        filters.reference_date,
        policy,
    )

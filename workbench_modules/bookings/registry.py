"""
Booking registry lookup (``workbench_modules.bookings.registry``).

Read-only access to operational bookings, always scoped by company.
``SqlBookingRegistry`` reads the ``bookings`` table; ``InMemoryBookingRegistry``
serves a fixed list for tests and demos.  Both return unranked candidates;
ordering is the resolution service's job.

Failure modes:
    - ``RegistryUnavailableError`` when the backing store cannot be
      reached.  This is an infrastructure failure and is never turned
      into a business outcome.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from workbench_engines.booking_matching import date_window, filter_candidates
from workbench_kernel.exceptions import RegistryUnavailableError
from workbench_kernel.logging_config import get_logger
from workbench_modules.bookings.models import (
    BookingRecord,
    BookingSearchFilters,
    BookingStatus,
    DateFilter,
)
from workbench_modules.bookings.orm import BookingModel

logger = get_logger("modules.bookings.registry")


@runtime_checkable
class BookingRegistry(Protocol):
    """Company-scoped, read-only booking lookup."""

    def search_bookings(
        self,
        company_id: str,
        query: str | None,
        date_filter: DateFilter | None,
        status_filters: frozenset[BookingStatus],
        today: date,
    ) -> list[BookingRecord]:
        ...

    def get_booking(self, company_id: str, booking_no: str) -> BookingRecord | None:
        ...


class InMemoryBookingRegistry:
    """Registry over a fixed list of bookings."""

    def __init__(self, bookings: Iterable[BookingRecord] = ()):
        self._bookings: list[BookingRecord] = list(bookings)

    def add(self, booking: BookingRecord) -> None:
        self._bookings.append(booking)

    def search_bookings(
        self,
        company_id: str,
        query: str | None,
        date_filter: DateFilter | None,
        status_filters: frozenset[BookingStatus],
        today: date,
    ) -> list[BookingRecord]:
        filters = BookingSearchFilters(
            date_filter=date_filter,
            statuses=frozenset(status_filters),
        )
        return filter_candidates(self._bookings, company_id, query, filters, today)

    def get_booking(self, company_id: str, booking_no: str) -> BookingRecord | None:
        wanted = booking_no.strip().lower()
        for booking in self._bookings:
            if booking.company_id == company_id and booking.booking_no.lower() == wanted:
                return booking
        return None


class SqlBookingRegistry:
    """Registry over the ``bookings`` table.

    Filters are pushed into SQL; semantics match
    ``workbench_engines.booking_matching.filter_candidates``.
    """

    def __init__(self, session: Session):
        self._session = session

    def search_bookings(
        self,
        company_id: str,
        query: str | None,
        date_filter: DateFilter | None,
        status_filters: frozenset[BookingStatus],
        today: date,
    ) -> list[BookingRecord]:
        stmt = select(BookingModel).where(BookingModel.company_id == company_id)

        if query and query.strip():
            q = query.strip().lower()
            stmt = stmt.where(
                func.lower(BookingModel.booking_no).contains(q, autoescape=True)
                | func.lower(BookingModel.client).contains(q, autoescape=True)
                | func.lower(BookingModel.route_from).contains(q, autoescape=True)
                | func.lower(BookingModel.route_to).contains(q, autoescape=True)
            )

        start, end = date_window(date_filter, today)
        if start is not None:
            stmt = stmt.where(BookingModel.booked_on >= start)
        if end is not None:
            stmt = stmt.where(BookingModel.booked_on < end)

        if status_filters:
            stmt = stmt.where(
                BookingModel.status.in_(sorted(s.value for s in status_filters))
            )

        stmt = stmt.order_by(BookingModel.booked_on.desc(), BookingModel.booking_no)

        try:
            rows = self._session.execute(stmt).scalars().all()
        except OperationalError as exc:
            logger.error("booking_registry_unavailable", extra={"company_id": company_id})
            raise RegistryUnavailableError(str(exc.orig or exc)) from exc
        return [row.to_dto() for row in rows]

    def get_booking(self, company_id: str, booking_no: str) -> BookingRecord | None:
        stmt = select(BookingModel).where(
            BookingModel.company_id == company_id,
            func.lower(BookingModel.booking_no) == booking_no.strip().lower(),
        )
        try:
            row = self._session.execute(stmt).scalar_one_or_none()
        except OperationalError as exc:
            logger.error("booking_registry_unavailable", extra={"company_id": company_id})
            raise RegistryUnavailableError(str(exc.orig or exc)) from exc
        return row.to_dto() if row is not None else None

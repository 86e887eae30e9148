"""
SQLAlchemy ORM persistence model for operational bookings.

The workbench only reads this table; it is populated by the operations
side (or by fixtures in tests and demos).

Invariants enforced
-------------------
* ``(company_id, booking_no)`` is unique: booking numbers are scoped by
  company, and resolution relies on at most one match per scope.
* ``amount`` uses ``Decimal`` (Numeric(18,2)).
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workbench_kernel.db.base import TrackedBase


class BookingModel(TrackedBase):
    """
    An operational booking.

    Maps to the ``BookingRecord`` DTO in ``workbench_modules.bookings.models``.
    """

    __tablename__ = "bookings"

    __table_args__ = (
        UniqueConstraint("company_id", "booking_no", name="uq_booking_company_number"),
        Index("idx_booking_company_date", "company_id", "booked_on"),
        Index("idx_booking_status", "status"),
    )

    booking_no: Mapped[str] = mapped_column(String(50), nullable=False)
    company_id: Mapped[str] = mapped_column(String(50), nullable=False)
    company_code: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    client: Mapped[str] = mapped_column(String(200), nullable=False)
    route_from: Mapped[str] = mapped_column(String(100), nullable=False)
    route_to: Mapped[str] = mapped_column(String(100), nullable=False)
    booked_on: Mapped[date] = mapped_column(Date, nullable=False)
    eta: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    linked_entries_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dto(self):
        from workbench_modules.bookings.models import BookingRecord, BookingStatus

        return BookingRecord(
            id=str(self.id),
            booking_no=self.booking_no,
            company_id=self.company_id,
            company_code=self.company_code,
            client=self.client,
            route_from=self.route_from,
            route_to=self.route_to,
            booked_on=self.booked_on,
            eta=self.eta,
            status=BookingStatus(self.status),
            amount=self.amount,
            linked_entries_count=self.linked_entries_count,
        )

    @classmethod
    def from_dto(cls, dto) -> "BookingModel":
        return cls(
            booking_no=dto.booking_no,
            company_id=dto.company_id,
            company_code=dto.company_code,
            client=dto.client,
            route_from=dto.route_from,
            route_to=dto.route_to,
            booked_on=dto.booked_on,
            eta=dto.eta,
            status=dto.status.value,
            amount=dto.amount,
            linked_entries_count=dto.linked_entries_count,
        )

    def __repr__(self) -> str:
        return f"<BookingModel {self.company_id}/{self.booking_no} [{self.status}]>"

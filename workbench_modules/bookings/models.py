"""
Booking Domain Models.

Operational bookings are read-only reference data owned by the operations
side.  ``BookingLink`` is the derived, never-persisted result of resolving
an entry's booking reference; each variant carries exactly the data that
is meaningful for it, so a verified link without a matched booking cannot
be constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Union

from workbench_kernel.logging_config import get_logger

logger = get_logger("modules.bookings.models")


class BookingStatus(str, Enum):
    """Operational status of a booking."""
    FOR_DELIVERY = "For delivery"
    IN_TRANSIT = "In transit"
    DELIVERED = "Delivered"
    CLOSED = "Closed"


class DateFilter(str, Enum):
    """Booking date windows relative to today."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last_7_days"


@dataclass(frozen=True)
class BookingRecord:
    """An operational booking, as read from the registry."""
    id: str
    booking_no: str
    company_id: str
    client: str
    route_from: str
    route_to: str
    booked_on: date
    status: BookingStatus
    company_code: str = ""
    eta: date | None = None
    amount: Decimal | None = None
    linked_entries_count: int = 0


@dataclass(frozen=True)
class BookingSearchFilters:
    """Interactive search filters.

    ``reference_date`` is the entry's own date; when given, candidates
    close to it rank ahead of merely recent ones.
    """
    date_filter: DateFilter | None = None
    statuses: frozenset[BookingStatus] = field(default_factory=frozenset)
    reference_date: date | None = None


# -----------------------------------------------------------------------------
# BookingLink variants
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class NoBooking:
    """The entry carries no booking reference."""

    @property
    def reference(self) -> str:
        return ""

    @property
    def verified(self) -> bool:
        return False

    @property
    def matched_booking(self) -> BookingRecord | None:
        return None


@dataclass(frozen=True)
class UnverifiedBooking:
    """Free text that matches no booking in the company scope."""
    reference: str

    @property
    def verified(self) -> bool:
        return False

    @property
    def matched_booking(self) -> BookingRecord | None:
        return None


@dataclass(frozen=True)
class VerifiedBooking:
    """An exact match in the company's registry."""
    booking: BookingRecord

    @property
    def reference(self) -> str:
        return self.booking.booking_no

    @property
    def verified(self) -> bool:
        return True

    @property
    def matched_booking(self) -> BookingRecord | None:
        return self.booking


@dataclass(frozen=True)
class ConflictingBooking:
    """The reference was verified under another company than the entry's."""
    reference: str
    linked_company_id: str

    @property
    def verified(self) -> bool:
        return False

    @property
    def matched_booking(self) -> BookingRecord | None:
        return None


BookingLink = Union[NoBooking, UnverifiedBooking, VerifiedBooking, ConflictingBooking]

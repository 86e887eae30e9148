"""
Bookings Module (``workbench_modules.bookings``).

Responsibility
--------------
Read-only operational booking reference data: the ``BookingRecord`` and
``BookingLink`` types (re-exported here), company-scoped lookup in
``workbench_modules.bookings.registry``, and resolution plus ranked search
in ``workbench_modules.bookings.service``.

Only the DTO types are re-exported: engines import them, and the registry
and service import engines.
"""

from workbench_modules.bookings.models import (
    BookingLink,
    BookingRecord,
    BookingSearchFilters,
    BookingStatus,
    ConflictingBooking,
    DateFilter,
    NoBooking,
    UnverifiedBooking,
    VerifiedBooking,
)

__all__ = [
    "BookingLink",
    "BookingRecord",
    "BookingSearchFilters",
    "BookingStatus",
    "ConflictingBooking",
    "DateFilter",
    "NoBooking",
    "UnverifiedBooking",
    "VerifiedBooking",
]

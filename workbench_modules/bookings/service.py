"""
Booking resolution service (``workbench_modules.bookings.service``).

Resolves a free-text booking reference into a ``BookingLink`` and runs the
interactive candidate search.  Read-only: nothing here writes, so calls
are safe to run in parallel.
"""

from __future__ import annotations

from workbench_engines.booking_matching import (
    DEFAULT_RANKING_POLICY,
    RankingPolicy,
    rank_candidates,
)
from workbench_kernel.domain.clock import Clock, SystemClock
from workbench_kernel.logging_config import get_logger
from workbench_modules.bookings.models import (
    BookingLink,
    BookingRecord,
    BookingSearchFilters,
    ConflictingBooking,
    NoBooking,
    UnverifiedBooking,
    VerifiedBooking,
)
from workbench_modules.bookings.registry import BookingRegistry
from workbench_modules.entries.models import Entry

logger = get_logger("modules.bookings.service")


class BookingResolutionService:
    """
    Booking verification and candidate search over a ``BookingRegistry``.

    Contract:
        ``resolve_booking`` never raises for business conditions: every
        input maps to exactly one ``BookingLink`` variant.  Registry
        outages propagate as ``RegistryUnavailableError``.
    """

    def __init__(
        self,
        registry: BookingRegistry,
        clock: Clock | None = None,
        ranking_policy: RankingPolicy | None = None,
    ):
        self._registry = registry
        self._clock = clock or SystemClock()
        self._ranking_policy = ranking_policy or DEFAULT_RANKING_POLICY

    def resolve_booking(self, company_id: str | None, reference: str | None) -> BookingLink:
        """Resolve a reference within a company's scope."""
        text = (reference or "").strip()
        if not text:
            return NoBooking()

        booking = (
            self._registry.get_booking(company_id, text) if company_id else None
        )
        link: BookingLink
        if booking is not None:
            link = VerifiedBooking(booking)
        else:
            link = UnverifiedBooking(text)

        logger.info(
            "booking_resolved",
            extra={
                "company_id": company_id,
                "reference": text,
                "verified": link.verified,
            },
        )
        return link

    def link_for_entry(self, entry: Entry) -> BookingLink:
        """The booking link of an entry snapshot, including conflict detection.

        A reference verified under a company other than the entry's current
        one is a conflict until the booking is re-resolved.
        """
        if (
            entry.has_booking_ref
            and entry.booking_company_id is not None
            and entry.booking_company_id != entry.company_id
        ):
            logger.warning(
                "booking_company_conflict",
                extra={
                    "entry_id": str(entry.id),
                    "company_id": entry.company_id,
                    "linked_company_id": entry.booking_company_id,
                },
            )
            return ConflictingBooking(
                reference=entry.booking_ref.strip(),
                linked_company_id=entry.booking_company_id,
            )
        return self.resolve_booking(entry.company_id, entry.booking_ref)

    def search_candidates(
        self,
        company_id: str,
        query: str | None,
        filters: BookingSearchFilters | None = None,
    ) -> list[BookingRecord]:
        """Ranked candidates for interactive selection."""
        filters = filters or BookingSearchFilters()
        candidates = self._registry.search_bookings(
            company_id,
            query,
            filters.date_filter,
            filters.statuses,
            self._clock.today(),
        )
        ranked = rank_candidates(candidates, filters.reference_date, self._ranking_policy)
        logger.info(
            "booking_candidates_ranked",
            extra={
                "company_id": company_id,
                "query": query,
                "candidate_count": len(ranked),
            },
        )
        return ranked

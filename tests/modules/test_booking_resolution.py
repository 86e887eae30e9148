"""Tests for BookingResolutionService: verification, conflicts and ranked search."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from workbench_modules.bookings.models import (
    BookingSearchFilters,
    BookingStatus,
    ConflictingBooking,
    DateFilter,
    NoBooking,
    UnverifiedBooking,
    VerifiedBooking,
)
from workbench_modules.entries.models import Entry, EntryKind


def _entry(**overrides) -> Entry:
    values = dict(
        id=uuid4(),
        kind=EntryKind.EXPENSE,
        amount=Decimal("100.00"),
        occurred_on=date(2025, 10, 24),
        company_id="cce",
    )
    values.update(overrides)
    return Entry(**values)


class TestResolveBooking:
    def test_blank_reference(self, booking_service):
        assert booking_service.resolve_booking("cce", None) == NoBooking()
        assert booking_service.resolve_booking("cce", "   ") == NoBooking()

    def test_exact_match_verifies(self, booking_service):
        link = booking_service.resolve_booking("cce", "nd-2025-003")
        assert isinstance(link, VerifiedBooking)
        assert link.verified
        assert link.reference == "ND-2025-003"
        assert link.matched_booking.client == "Puregold"

    def test_other_company_is_unverified(self, booking_service):
        link = booking_service.resolve_booking("cce", "ND-2025-021")
        assert link == UnverifiedBooking("ND-2025-021")
        assert link.matched_booking is None

    def test_no_company_is_unverified(self, booking_service):
        assert booking_service.resolve_booking(None, "ND-2025-003") == UnverifiedBooking(
            "ND-2025-003"
        )

    def test_partial_text_is_unverified(self, booking_service):
        assert not booking_service.resolve_booking("cce", "ND-2025").verified

    def test_logs_resolution(self, booking_service, captured_logs):
        booking_service.resolve_booking("cce", "ND-2025-003")
        records = [r for r in captured_logs() if r["message"] == "booking_resolved"]
        assert records[-1]["verified"] is True


class TestLinkForEntry:
    def test_stamp_matching_company_re_resolves(self, booking_service):
        entry = _entry(booking_ref="ND-2025-003", booking_company_id="cce")
        assert isinstance(booking_service.link_for_entry(entry), VerifiedBooking)

    def test_company_change_after_verification_conflicts(self, booking_service, captured_logs):
        entry = _entry(company_id="nje", booking_ref="ND-2025-003", booking_company_id="cce")
        link = booking_service.link_for_entry(entry)
        assert link == ConflictingBooking(reference="ND-2025-003", linked_company_id="cce")
        assert not link.verified
        assert any(r["message"] == "booking_company_conflict" for r in captured_logs())

    def test_unstamped_reference_resolves_in_current_company(self, booking_service):
        entry = _entry(company_id="nje", booking_ref="ND-2025-021")
        assert isinstance(booking_service.link_for_entry(entry), VerifiedBooking)

    def test_no_booking(self, booking_service):
        assert booking_service.link_for_entry(_entry(is_no_booking=True)) == NoBooking()


class TestSearchCandidates:
    def test_ranked_for_company(self, booking_service):
        result = booking_service.search_candidates("cce", None)
        assert len(result) == 9
        assert [b.status for b in result[:3]] == [BookingStatus.DELIVERED] * 3
        assert [b.booking_no for b in result[3:5]] == ["ND-2025-019", "ND-2025-030"]
        assert result[0].booking_no == "ND-2025-015"

    def test_date_filter_uses_clock(self, booking_service, clock):
        filters = BookingSearchFilters(date_filter=DateFilter.YESTERDAY)
        assert [b.booking_no for b in booking_service.search_candidates("cce", None, filters)] == [
            "ND-2025-019"
        ]
        clock.advance(24 * 60 * 60)
        assert [b.booking_no for b in booking_service.search_candidates("cce", None, filters)] == [
            "ND-2025-008", "ND-2025-033",
        ]

    def test_reference_date_reorders(self, booking_service):
        filters = BookingSearchFilters(
            statuses=frozenset({BookingStatus.DELIVERED}),
            reference_date=date(2025, 10, 20),
        )
        result = booking_service.search_candidates("cce", None, filters)
        assert [b.booking_no for b in result] == [
            "ND-2025-003", "ND-2025-024", "ND-2025-015",
        ]

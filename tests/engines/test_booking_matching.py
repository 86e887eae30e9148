"""
Tests for booking search and ranking (workbench_engines.booking_matching).

Today is pinned to 2025-10-24 throughout.
"""

from datetime import date

from workbench_engines.booking_matching import (
    RankingPolicy,
    compare_candidates,
    date_window,
    filter_candidates,
    matches_query,
    rank_candidates,
    search_candidates,
)
from workbench_modules.bookings.models import (
    BookingRecord,
    BookingSearchFilters,
    BookingStatus,
    DateFilter,
)

TODAY = date(2025, 10, 24)


def _booking(booking_no, booked_on, status, company_id="cce",
             client="Puregold", route_from="Taguig", route_to="Cavite"):
    return BookingRecord(
        id=booking_no,
        booking_no=booking_no,
        company_id=company_id,
        client=client,
        route_from=route_from,
        route_to=route_to,
        booked_on=booked_on,
        status=status,
    )


BOOKINGS = (
    _booking("ND-2025-003", date(2025, 10, 20), BookingStatus.DELIVERED),
    _booking("ND-2025-008", date(2025, 10, 24), BookingStatus.IN_TRANSIT,
             client="SM Supermalls", route_from="Manila", route_to="Cebu"),
    _booking("ND-2025-012", date(2025, 10, 25), BookingStatus.FOR_DELIVERY,
             client="Robinson's", route_from="Quezon City", route_to="Davao"),
    _booking("ND-2025-015", date(2025, 10, 26), BookingStatus.DELIVERED,
             client="Jollibee Foods Corp", route_from="Pasig", route_to="Baguio"),
    _booking("ND-2025-019", date(2025, 10, 23), BookingStatus.CLOSED,
             client="Ayala Land", route_from="Makati", route_to="Iloilo"),
    _booking("ND-2025-021", date(2025, 10, 25), BookingStatus.FOR_DELIVERY,
             company_id="nje", client="Mercury Drug",
             route_from="Valenzuela", route_to="Batangas"),
    _booking("ND-2025-024", date(2025, 10, 22), BookingStatus.DELIVERED,
             client="Nestle Philippines", route_from="Laguna", route_to="Palawan"),
)


def _numbers(bookings):
    return [b.booking_no for b in bookings]


class TestQuery:
    def test_blank_query_matches_everything(self):
        assert matches_query(BOOKINGS[0], None)
        assert matches_query(BOOKINGS[0], "   ")

    def test_case_insensitive_substring(self):
        assert matches_query(BOOKINGS[0], "pureg")
        assert matches_query(BOOKINGS[0], "nd-2025-00")
        assert matches_query(BOOKINGS[0], "CAVITE")
        assert not matches_query(BOOKINGS[0], "cebu")


class TestFilters:
    def test_company_scope(self):
        result = filter_candidates(BOOKINGS, "nje", None, BookingSearchFilters(), TODAY)
        assert _numbers(result) == ["ND-2025-021"]

    def test_unknown_company_yields_nothing(self):
        assert filter_candidates(BOOKINGS, "zzz", None, BookingSearchFilters(), TODAY) == []

    def test_today_window_is_open_ended(self):
        result = filter_candidates(
            BOOKINGS, "cce", None, BookingSearchFilters(date_filter=DateFilter.TODAY), TODAY
        )
        assert _numbers(result) == ["ND-2025-008", "ND-2025-012", "ND-2025-015"]

    def test_yesterday_window(self):
        result = filter_candidates(
            BOOKINGS, "cce", None,
            BookingSearchFilters(date_filter=DateFilter.YESTERDAY), TODAY,
        )
        assert _numbers(result) == ["ND-2025-019"]

    def test_last_seven_days_window(self):
        assert date_window(DateFilter.LAST_7_DAYS, TODAY) == (date(2025, 10, 17), None)
        assert date_window(None, TODAY) == (None, None)

    def test_status_filter(self):
        filters = BookingSearchFilters(
            statuses=frozenset({BookingStatus.DELIVERED, BookingStatus.CLOSED})
        )
        result = filter_candidates(BOOKINGS, "cce", None, filters, TODAY)
        assert _numbers(result) == [
            "ND-2025-003", "ND-2025-015", "ND-2025-019", "ND-2025-024",
        ]

    def test_query_and_window_combine(self):
        filters = BookingSearchFilters(date_filter=DateFilter.TODAY)
        result = filter_candidates(BOOKINGS, "cce", "manila", filters, TODAY)
        assert _numbers(result) == ["ND-2025-008"]


class TestRanking:
    def test_status_weight_then_recency(self):
        cce = [b for b in BOOKINGS if b.company_id == "cce"]
        assert _numbers(rank_candidates(cce)) == [
            "ND-2025-015",  # delivered, 10-26
            "ND-2025-024",  # delivered, 10-22
            "ND-2025-003",  # delivered, 10-20
            "ND-2025-019",  # closed
            "ND-2025-012",  # for delivery, 10-25
            "ND-2025-008",  # in transit, 10-24
        ]

    def test_reference_date_prefers_closer_bookings(self):
        delivered = [b for b in BOOKINGS if b.status == BookingStatus.DELIVERED]
        ranked = rank_candidates(delivered, reference_date=date(2025, 10, 20))
        assert _numbers(ranked) == ["ND-2025-003", "ND-2025-024", "ND-2025-015"]

    def test_small_distance_difference_falls_back_to_recency(self):
        earlier, later = BOOKINGS[0], BOOKINGS[6]  # 10-20 and 10-22
        assert compare_candidates(later, earlier, date(2025, 10, 21)) < 0
        assert compare_candidates(earlier, later, date(2025, 10, 21)) > 0

    def test_status_outranks_proximity(self):
        closed = BOOKINGS[4]
        delivered_far = BOOKINGS[3]
        assert compare_candidates(delivered_far, closed, date(2025, 10, 23)) < 0

    def test_ties_keep_registry_order(self):
        a = _booking("A", date(2025, 10, 24), BookingStatus.IN_TRANSIT)
        b = _booking("B", date(2025, 10, 24), BookingStatus.FOR_DELIVERY)
        assert _numbers(rank_candidates([a, b])) == ["A", "B"]
        assert _numbers(rank_candidates([b, a])) == ["B", "A"]

    def test_custom_policy_weights(self):
        policy = RankingPolicy(status_weights={BookingStatus.IN_TRANSIT.value: 9})
        a = _booking("A", date(2025, 10, 20), BookingStatus.DELIVERED)
        b = _booking("B", date(2025, 10, 1), BookingStatus.IN_TRANSIT)
        assert _numbers(rank_candidates([a, b], policy=policy)) == ["B", "A"]
        assert policy.weight_for("Delivered") == 1


class TestSearch:
    def test_filter_then_rank(self):
        filters = BookingSearchFilters(date_filter=DateFilter.LAST_7_DAYS)
        result = search_candidates(BOOKINGS, "cce", "nd-2025-0", filters, TODAY)
        assert result[0].booking_no == "ND-2025-015"
        assert "ND-2025-021" not in _numbers(result)
        assert len(result) == 6

    def test_no_matches(self):
        assert search_candidates(
            BOOKINGS, "cce", "nothing-like-this", BookingSearchFilters(), TODAY
        ) == []

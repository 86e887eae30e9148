"""
Hypothesis-based fuzzing of the pure engines.

Boundaries fuzzed here:
- Amounts: parse_amount over the full two-place range, sub-cent rejection
- Amount in words: never fails below the ceiling, cents rendered as NN/100
- Gate: a denial never carries field errors; permitted targets are offered
- Booking search: ranking is a permutation, filtering stays in company scope

Boundaries not fuzzed here (covered by explicit tests):
- Optimistic locking and audit chains (tests/services)
- Booking resolution against a registry (tests/modules)
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from workbench_engines.amount_words import amount_to_words
from workbench_engines.booking_matching import filter_candidates, rank_candidates
from workbench_engines.gate import evaluate
from workbench_kernel.domain.actors import Role
from workbench_kernel.exceptions import ValidationError
from workbench_modules.bookings.models import (
    BookingRecord,
    BookingSearchFilters,
    BookingStatus,
    DateFilter,
    NoBooking,
    UnverifiedBooking,
)
from workbench_modules.entries.models import (
    MAX_AMOUNT,
    Entry,
    EntryKind,
    EntryStatus,
    parse_amount,
)

TODAY = date(2025, 10, 24)

two_place_amounts = st.decimals(
    min_value=-MAX_AMOUNT,
    max_value=MAX_AMOUNT,
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

optional_text = st.one_of(st.none(), st.text(max_size=12))


# =========================================================================
# Amounts
# =========================================================================


class TestAmountParsing:
    @given(amount=two_place_amounts)
    @settings(max_examples=200)
    def test_plain_string_round_trips(self, amount):
        assert parse_amount(str(amount)) == amount

    @given(amount=two_place_amounts)
    @settings(max_examples=100)
    def test_thousands_separators_accepted(self, amount):
        assert parse_amount(f"{amount:,}") == amount

    @given(
        units=st.integers(min_value=-10**9, max_value=10**9).filter(lambda n: n % 10 != 0)
    )
    @settings(max_examples=100)
    def test_sub_cent_rejected(self, units):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount(Decimal(units).scaleb(-3))
        assert "amount" in exc_info.value.field_errors


class TestAmountInWords:
    @given(
        amount=st.decimals(
            min_value=0, max_value=MAX_AMOUNT, places=2,
            allow_nan=False, allow_infinity=False,
        )
    )
    @settings(max_examples=300)
    def test_renders_every_amount(self, amount):
        text = amount_to_words(amount)
        cents = int((amount - int(amount)) * 100)
        if cents:
            assert text.endswith(f"Pesos and {cents:02d}/100")
        else:
            assert text.endswith(" Pesos")
        assert text[0].isupper()


# =========================================================================
# Gate
# =========================================================================


@st.composite
def entries(draw) -> Entry:
    return Entry(
        id=uuid4(),
        kind=draw(st.sampled_from(list(EntryKind))),
        amount=draw(st.decimals(min_value=-100, max_value=10**6, places=2)),
        occurred_on=TODAY,
        status=draw(st.sampled_from(list(EntryStatus))),
        company_id=draw(optional_text),
        account_id=draw(optional_text),
        category_id=draw(optional_text),
        booking_ref=draw(optional_text),
        is_no_booking=draw(st.booleans()),
        payee=draw(optional_text),
        payment_method=draw(optional_text),
        note=draw(optional_text),
    )


booking_links = st.one_of(
    st.just(NoBooking()),
    st.builds(UnverifiedBooking, reference=st.text(min_size=1, max_size=12)),
)


class TestGate:
    @given(
        entry=entries(),
        target=st.sampled_from(list(EntryStatus)),
        role=st.sampled_from(list(Role)),
        link=booking_links,
    )
    @settings(max_examples=300)
    def test_denial_excludes_field_errors(self, entry, target, role, link):
        result = evaluate(entry, target, role, link)
        assert result.permitted == (result.denial is None)
        if result.denial is not None:
            assert not result.field_errors
            assert not result.passed
        else:
            assert target.value in result.allowed_targets


# =========================================================================
# Booking search
# =========================================================================


@st.composite
def bookings(draw) -> BookingRecord:
    booked_on = TODAY + timedelta(days=draw(st.integers(min_value=-10, max_value=10)))
    return BookingRecord(
        id=str(uuid4()),
        booking_no=f"ND-2025-{draw(st.integers(min_value=1, max_value=999)):03d}",
        company_id=draw(st.sampled_from(["cce", "nje"])),
        client=draw(st.sampled_from(["Puregold", "Unilever", "Mercury Drug"])),
        route_from=draw(st.sampled_from(["Manila", "Taguig"])),
        route_to=draw(st.sampled_from(["Cebu", "Davao"])),
        booked_on=booked_on,
        status=draw(st.sampled_from(list(BookingStatus))),
        eta=draw(st.one_of(st.none(), st.just(booked_on + timedelta(days=2)))),
    )


class TestBookingSearch:
    @given(
        candidates=st.lists(bookings(), max_size=15),
        reference_date=st.one_of(st.none(), st.dates(
            min_value=date(2025, 10, 1), max_value=date(2025, 11, 30),
        )),
    )
    @settings(max_examples=150)
    def test_ranking_is_a_permutation(self, candidates, reference_date):
        ranked = rank_candidates(candidates, reference_date)
        assert sorted(b.id for b in ranked) == sorted(b.id for b in candidates)

    @given(
        candidates=st.lists(bookings(), max_size=15),
        company_id=st.sampled_from(["cce", "nje"]),
        query=st.one_of(st.none(), st.sampled_from(["manila", "ND-2025", "cebu", "x"])),
        date_filter=st.one_of(st.none(), st.sampled_from(list(DateFilter))),
    )
    @settings(max_examples=150)
    def test_filtering_stays_in_scope(self, candidates, company_id, query, date_filter):
        result = filter_candidates(
            candidates, company_id, query, BookingSearchFilters(date_filter=date_filter), TODAY
        )
        assert all(b.company_id == company_id for b in result)
        assert all(b in candidates for b in result)

"""Tests for session handling in workbench_kernel.db.engine."""

import pytest
from sqlalchemy import select

from workbench_kernel.db.engine import get_engine, session_scope
from workbench_modules.bookings.orm import BookingModel


def _booking_nos(session) -> list[str]:
    return list(session.execute(select(BookingModel.booking_no)).scalars().all())


def test_session_scope_commits(session, bookings):
    with session_scope() as scoped:
        scoped.add(BookingModel.from_dto(bookings[0]))

    assert _booking_nos(session) == ["ND-2025-003"]


def test_session_scope_rolls_back_and_reraises(session, bookings):
    with pytest.raises(RuntimeError, match="abort"):
        with session_scope() as scoped:
            scoped.add(BookingModel.from_dto(bookings[0]))
            scoped.flush()
            raise RuntimeError("abort")

    assert _booking_nos(session) == []


def test_rollback_is_logged(session, captured_logs):
    with pytest.raises(ValueError):
        with session_scope():
            raise ValueError("boom")

    rolled_back = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
    assert rolled_back[0]["exc_type"] == "ValueError"


def test_engine_is_initialized(db_engine):
    assert get_engine() is db_engine

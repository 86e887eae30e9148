"""Tests for the read-side selectors: the approval queue and printable RFPs."""

from uuid import uuid4

import pytest

from workbench_modules.entries.models import EntryStatus
from workbench_services.selectors import EntrySelector, PaymentRequestSelector

RECEIPTS = {"attachment_ids": ["receipt-001"]}


@pytest.fixture
def entry_selector(session) -> EntrySelector:
    return EntrySelector(session)


@pytest.fixture
def rfp_selector(session) -> PaymentRequestSelector:
    return PaymentRequestSelector(session)


def _submit(workbench, entry, preparer):
    outcome = workbench.transition(entry.id, "pending", preparer, entry.version)
    assert outcome.is_success, outcome.field_errors
    return outcome.entry


class TestEntrySelector:
    def test_get(self, entry_selector, create_entry):
        entry = create_entry()
        assert entry_selector.get(entry.id).id == entry.id
        assert entry_selector.get(uuid4()) is None

    def test_queue_is_oldest_first(self, entry_selector, workbench, create_entry, preparer):
        later = _submit(workbench, create_entry(occurred_on="2025-10-23"), preparer)
        earlier = _submit(workbench, create_entry(occurred_on="2025-10-20"), preparer)
        create_entry(occurred_on="2025-10-19")  # stays draft

        queue = entry_selector.list_by_status(EntryStatus.PENDING)
        assert [e.id for e in queue] == [earlier.id, later.id]

    def test_queue_by_company(self, entry_selector, workbench, create_entry, preparer):
        _submit(workbench, create_entry(), preparer)
        nje = _submit(
            workbench,
            create_entry(company_id="nje", booking_ref="ND-2025-021"),
            preparer,
        )
        queue = entry_selector.list_by_status("pending", company_id="nje")
        assert [e.id for e in queue] == [nje.id]


class TestPrintable:
    def test_approved_entry_with_rfp(
        self, rfp_selector, workbench, create_entry, preparer, approver
    ):
        entry = create_entry()
        workbench.attach_rfp(entry.id, preparer)
        submitted = workbench.transition_rfp(entry.id, "submitted", preparer, RECEIPTS)
        workbench.transition(entry.id, "approved", approver, submitted.entry.version)

        printable = rfp_selector.get_printable(entry.id)
        assert printable.entry.status == EntryStatus.APPROVED
        assert printable.rfp.attachment_ids == ("receipt-001",)
        assert printable.rfp.amount_in_words == "Two Thousand Five Hundred Pesos"

    def test_not_printable_before_approval(
        self, rfp_selector, workbench, create_entry, preparer, captured_logs
    ):
        entry = create_entry()
        workbench.attach_rfp(entry.id, preparer)
        assert rfp_selector.get_printable(entry.id) is None
        assert any(r["message"] == "rfp_not_printable" for r in captured_logs())

    def test_approved_entry_without_rfp(self, rfp_selector, approved_entry):
        assert rfp_selector.get_printable(approved_entry.id) is None

    def test_unknown_entry(self, rfp_selector):
        assert rfp_selector.get_printable(uuid4()) is None

    def test_cancelled_rfp_is_not_active(self, rfp_selector, workbench, create_entry, preparer):
        entry = create_entry()
        workbench.attach_rfp(entry.id, preparer)
        workbench.transition_rfp(entry.id, "cancelled", preparer)
        assert rfp_selector.get_active(entry.id) is None

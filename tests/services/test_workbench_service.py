"""
End-to-end tests through the WorkbenchService facade.

Covers the full preparer/approver cycle with a request for payment, the
read side, booking search defaults, and the facade's own defaults for
registry and configuration.
"""

import pytest

from workbench_config.schema import BookingSearchPolicy, PostingPolicy, WorkbenchConfig
from workbench_kernel.domain.outcomes import OutcomeStatus
from workbench_kernel.models.audit_event import AuditAction
from workbench_modules.bookings.models import (
    BookingSearchFilters,
    DateFilter,
    VerifiedBooking,
)
from workbench_modules.bookings.orm import BookingModel
from workbench_modules.entries.models import EntryStatus
from workbench_modules.rfp.models import RFPStatus
from workbench_services.workbench_service import WorkbenchService

RECEIPTS = {"attachment_ids": ["receipt-001"]}


class TestFullCycle:
    def test_expense_with_rfp_from_draft_to_posted(
        self, workbench, create_entry, preparer, approver, auditor
    ):
        entry = create_entry()
        attached = workbench.attach_rfp(entry.id, preparer)
        assert attached.is_success
        assert attached.rfp.amount_in_words == "Two Thousand Five Hundred Pesos"

        submitted = workbench.transition_rfp(entry.id, "submitted", preparer, RECEIPTS)
        assert submitted.is_success
        assert submitted.entry.status == EntryStatus.PENDING
        assert submitted.rfp.status == RFPStatus.SUBMITTED

        approved = workbench.transition(
            entry.id, "approved", approver, submitted.entry.version
        )
        assert approved.is_success

        paid = workbench.record_payment_approval(entry.id, approver)
        assert paid.rfp.status == RFPStatus.APPROVED

        posted = workbench.transition(
            entry.id, "posted", preparer, approved.entry.version
        )
        assert posted.is_success
        assert posted.entry.status == EntryStatus.POSTED

        assert workbench.get_printable_rfp(entry.id).entry.status == EntryStatus.POSTED
        trace = workbench.audit_trace(entry.id)
        assert trace.actions[0] == AuditAction.ENTRY_CREATED
        assert trace.last_action == AuditAction.ENTRY_POSTED
        assert AuditAction.RFP_PAYMENT_APPROVED in trace.actions
        assert auditor.validate_chain(entry.id)

    def test_rejection_and_resubmission(self, workbench, submitted_entry, preparer, approver):
        rejected = workbench.transition(
            submitted_entry.id, "rejected", approver, submitted_entry.version,
            {"rejection_reason": "Wrong account"},
        )
        assert rejected.is_success
        assert rejected.entry.rejection_reason == "Wrong account"

        reopened = workbench.transition(
            submitted_entry.id, "draft", preparer, rejected.entry.version
        )
        assert reopened.is_success
        assert reopened.entry.status == EntryStatus.DRAFT
        assert reopened.entry.rejection_reason is None

    def test_failed_operation_reports_status(self, workbench, submitted_entry, preparer):
        outcome = workbench.transition(
            submitted_entry.id, "approved", preparer, submitted_entry.version
        )
        assert outcome.status == OutcomeStatus.PERMISSION_DENIED
        assert outcome.entry.status == EntryStatus.PENDING


class TestReadSide:
    def test_list_entries(self, workbench, submitted_entry, create_entry):
        create_entry()
        assert [e.id for e in workbench.list_entries("pending")] == [submitted_entry.id]
        assert len(workbench.list_entries(EntryStatus.DRAFT, company_id="cce")) == 1
        assert workbench.list_entries("pending", company_id="nje") == []

    def test_evaluate_entry(self, workbench, submitted_entry):
        view = workbench.evaluate_entry(submitted_entry.id, "approver")
        assert set(view.allowed_targets) == {"approved", "rejected"}


class TestBookings:
    def test_resolve_booking(self, workbench):
        link = workbench.resolve_booking("cce", "ND-2025-024")
        assert isinstance(link, VerifiedBooking)
        assert link.booking.client == "Nestle Philippines"

    def test_search_without_default_filter(self, workbench):
        assert len(workbench.search_booking_candidates("cce", None)) == 9

    def test_configured_default_date_filter(self, session, registry, clock):
        config = WorkbenchConfig(
            booking_search=BookingSearchPolicy(default_date_filter="yesterday")
        )
        workbench = WorkbenchService(session, registry=registry, clock=clock, config=config)
        assert [b.booking_no for b in workbench.search_booking_candidates("cce", None)] == [
            "ND-2025-019"
        ]

    def test_explicit_filters_win(self, session, registry, clock):
        config = WorkbenchConfig(
            booking_search=BookingSearchPolicy(default_date_filter="yesterday")
        )
        workbench = WorkbenchService(session, registry=registry, clock=clock, config=config)
        result = workbench.search_booking_candidates(
            "cce", "manila", BookingSearchFilters(date_filter=DateFilter.TODAY)
        )
        assert {b.booking_no for b in result} == {"ND-2025-008", "ND-2025-033"}


class TestDefaults:
    def test_config_property(self, workbench, config):
        assert workbench.config is config

    def test_posting_policy_flows_to_gate(self, session, registry, clock, approved_entry):
        config = WorkbenchConfig(posting=PostingPolicy(post_roles=("approver",)))
        workbench = WorkbenchService(session, registry=registry, clock=clock, config=config)
        assert workbench.evaluate_entry(approved_entry.id, "preparer").allowed_targets == ()
        assert workbench.evaluate_entry(approved_entry.id, "approver").allowed_targets == (
            "posted",
        )

    def test_sql_registry_by_default(self, session, bookings, clock, config):
        for booking in bookings:
            session.add(BookingModel.from_dto(booking))
        session.commit()

        workbench = WorkbenchService(session, clock=clock, config=config)
        assert workbench.resolve_booking("cce", "ND-2025-003").verified

    def test_packaged_config_by_default(self, session, registry, clock, monkeypatch):
        monkeypatch.delenv("WORKBENCH_CONFIG", raising=False)
        workbench = WorkbenchService(session, registry=registry, clock=clock)
        assert workbench.config.posting.post_roles == ("preparer", "approver")
        assert workbench.config.checksum

    def test_initialization_is_logged(self, session, registry, clock, config, captured_logs):
        WorkbenchService(session, registry=registry, clock=clock, config=config)
        records = [r for r in captured_logs() if r["message"] == "workbench_service_initialized"]
        assert records[0]["post_roles"] == ["preparer", "approver"]

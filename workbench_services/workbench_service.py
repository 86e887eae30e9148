"""
WorkbenchService -- the workbench's external interface.

Responsibility:
    Wires the entry, RFP and booking services over one session and one
    configuration, and exposes every operation a UI or API layer calls.

Architecture position:
    Services -- composition root.  The only place that constructs the
    other services; they never construct each other.

Usage::

    with session_scope() as session:
        workbench = WorkbenchService(session, clock=clock)
        outcome = workbench.create_entry(
            {"kind": "expense", "amount": "2500.00"},
            Actor("Jane", Role.PREPARER),
        )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from workbench_config import get_active_config
from workbench_config.schema import WorkbenchConfig
from workbench_kernel.domain.actors import Actor, Role
from workbench_kernel.domain.clock import Clock, SystemClock
from workbench_kernel.domain.outcomes import WorkbenchOutcome
from workbench_kernel.logging_config import get_logger
from workbench_kernel.services.auditor_service import AuditorService, AuditTrace
from workbench_modules.bookings.models import (
    BookingLink,
    BookingRecord,
    BookingSearchFilters,
    DateFilter,
)
from workbench_modules.bookings.registry import BookingRegistry, SqlBookingRegistry
from workbench_modules.bookings.service import BookingResolutionService
from workbench_modules.entries.models import Entry, EntryStatus
from workbench_modules.rfp.models import RFPStatus
from workbench_services._helpers import ranking_policy_from_config
from workbench_services.entry_service import EntryService, EntryView
from workbench_services.reference_data import ReferenceDataProvider
from workbench_services.rfp_service import RFPService
from workbench_services.selectors import (
    EntrySelector,
    PaymentRequestSelector,
    PrintableRequest,
)

logger = get_logger("services.workbench")


class WorkbenchService:
    """
    Facade over entries, requests for payment and booking lookup.

    Contract:
        Mutating operations return a ``WorkbenchOutcome`` and own their
        transaction.  Booking operations are read-only and return plain
        values; registry outages raise ``RegistryUnavailableError``.
    """

    def __init__(
        self,
        session: Session,
        registry: BookingRegistry | None = None,
        clock: Clock | None = None,
        config: WorkbenchConfig | None = None,
        reference_data: ReferenceDataProvider | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config if config is not None else get_active_config()
        self._bookings = BookingResolutionService(
            registry if registry is not None else SqlBookingRegistry(session),
            clock=self._clock,
            ranking_policy=ranking_policy_from_config(self._config),
        )
        self._auditor = AuditorService(session, self._clock)
        self._entries = EntryService(
            session,
            self._bookings,
            auditor=self._auditor,
            clock=self._clock,
            config=self._config,
            reference_data=reference_data,
        )
        self._rfps = RFPService(
            session,
            self._entries,
            auditor=self._auditor,
            clock=self._clock,
        )
        self._entry_selector = EntrySelector(session)
        self._rfp_selector = PaymentRequestSelector(session)

        logger.info(
            "workbench_service_initialized",
            extra={
                "config_checksum": self._config.checksum,
                "post_roles": list(self._config.posting.post_roles),
                "reference_data": reference_data is not None,
            },
        )

    @property
    def config(self) -> WorkbenchConfig:
        return self._config

    # Entries

    def create_entry(self, payload: Mapping[str, Any], actor: Actor) -> WorkbenchOutcome:
        return self._entries.create_entry(payload, actor)

    def transition(
        self,
        entry_id: UUID | str,
        target_status: EntryStatus | str,
        actor: Actor,
        expected_version: int,
        payload: Mapping[str, Any] | None = None,
    ) -> WorkbenchOutcome:
        return self._entries.transition(
            entry_id, target_status, actor, expected_version, payload
        )

    def unpost(
        self,
        entry_id: UUID | str,
        authorized_by: Actor,
        reason: str,
        expected_version: int,
    ) -> WorkbenchOutcome:
        return self._entries.unpost(entry_id, authorized_by, reason, expected_version)

    def evaluate_entry(self, entry_id: UUID | str, role: Role | str) -> EntryView | None:
        return self._entries.evaluate_entry(entry_id, role)

    # Requests for payment

    def attach_rfp(self, entry_id: UUID | str, actor: Actor) -> WorkbenchOutcome:
        return self._rfps.attach_rfp(entry_id, actor)

    def transition_rfp(
        self,
        entry_id: UUID | str,
        target_status: RFPStatus | str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
    ) -> WorkbenchOutcome:
        return self._rfps.transition_rfp(entry_id, target_status, actor, payload)

    def record_payment_approval(
        self, entry_id: UUID | str, approved_by: Actor
    ) -> WorkbenchOutcome:
        return self._rfps.record_payment_approval(entry_id, approved_by)

    # Bookings

    def resolve_booking(self, company_id: str | None, reference: str | None) -> BookingLink:
        return self._bookings.resolve_booking(company_id, reference)

    def search_booking_candidates(
        self,
        company_id: str,
        query: str | None,
        filters: BookingSearchFilters | None = None,
    ) -> list[BookingRecord]:
        """Ranked booking candidates; the configured date filter applies by default."""
        if filters is None:
            default = self._config.booking_search.default_date_filter
            filters = BookingSearchFilters(
                date_filter=DateFilter(default) if default else None
            )
        return self._bookings.search_candidates(company_id, query, filters)

    # Read side

    def list_entries(
        self, status: EntryStatus | str, company_id: str | None = None
    ) -> list[Entry]:
        return self._entry_selector.list_by_status(status, company_id)

    def get_printable_rfp(self, entry_id: UUID) -> PrintableRequest | None:
        return self._rfp_selector.get_printable(entry_id)

    def audit_trace(self, entry_id: UUID) -> AuditTrace:
        return self._auditor.get_trace(entry_id)

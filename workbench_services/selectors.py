"""
Module: workbench_services.selectors
Responsibility: Read-only queries for report consumers: the approval queue
    and the printable request-for-payment bundle.
Architecture position: Services > Selectors.  Imports module ORM models and
    DTOs.  Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      add, flush or commit.
    - DTO return convention: frozen dataclasses, never ORM instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from workbench_kernel.logging_config import get_logger
from workbench_modules.entries.models import Entry, EntryStatus
from workbench_modules.entries.orm import EntryModel
from workbench_modules.rfp.models import PaymentRequest, RFPStatus
from workbench_modules.rfp.orm import PaymentRequestModel

logger = get_logger("services.selectors")

# Entry statuses whose RFP may be printed
PRINTABLE_ENTRY_STATUSES = frozenset({EntryStatus.APPROVED, EntryStatus.POSTED})


class BaseSelector:
    """Holds the caller's session; subclasses only read."""

    def __init__(self, session: Session):
        self.session = session


@dataclass(frozen=True)
class PrintableRequest:
    """An approved (or posted) entry with its request for payment."""

    entry: Entry
    rfp: PaymentRequest


class EntrySelector(BaseSelector):
    """Entry queries."""

    def get(self, entry_id: UUID) -> Entry | None:
        model = self.session.get(EntryModel, entry_id)
        return model.to_dto() if model else None

    def list_by_status(
        self,
        status: EntryStatus | str,
        company_id: str | None = None,
    ) -> list[Entry]:
        """Entries in ``status``, oldest first; the approval queue for pending."""
        stmt = select(EntryModel).where(EntryModel.status == EntryStatus(status).value)
        if company_id is not None:
            stmt = stmt.where(EntryModel.company_id == company_id)
        stmt = stmt.order_by(EntryModel.occurred_on, EntryModel.created_at, EntryModel.id)
        return [model.to_dto() for model in self.session.execute(stmt).scalars().all()]


class PaymentRequestSelector(BaseSelector):
    """RFP queries."""

    def get_active(self, entry_id: UUID) -> PaymentRequest | None:
        model = self.session.execute(
            select(PaymentRequestModel)
            .where(PaymentRequestModel.entry_id == entry_id)
            .where(PaymentRequestModel.status != RFPStatus.CANCELLED.value)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def get_printable(self, entry_id: UUID) -> PrintableRequest | None:
        """The entry and RFP to print, or None when not printable yet.

        Printable once the entry is approved or posted and it has an RFP
        that was not cancelled.
        """
        entry_model = self.session.get(EntryModel, entry_id)
        if entry_model is None:
            return None
        entry = entry_model.to_dto()
        if entry.status not in PRINTABLE_ENTRY_STATUSES:
            logger.info(
                "rfp_not_printable",
                extra={"entry_id": str(entry_id), "status": entry.status.value},
            )
            return None
        rfp = self.get_active(entry_id)
        if rfp is None:
            return None
        return PrintableRequest(entry=entry, rfp=rfp)

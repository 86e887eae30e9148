"""
SQLAlchemy ORM persistence model for requests for payment.

Invariants enforced
-------------------
* At most one non-cancelled RFP per entry: partial unique index on
  ``entry_id`` where ``status <> 'cancelled'`` (PostgreSQL and SQLite).
* ``amount`` uses ``Decimal`` (Numeric(18,2)).
* Attachment ids are stored as a JSON list; blob content lives elsewhere.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from workbench_kernel.db.base import TrackedBase

_WRITABLE_COLUMNS: tuple[str, ...] = (
    "status",
    "payee",
    "amount",
    "amount_in_words",
    "company_id",
    "booking_ref",
    "category_id",
    "justification",
    "due_date",
    "payment_terms",
    "cost_center",
    "account_to_credit",
    "prepared_by",
    "notes_to_approver",
    "submitted_on",
    "approved_by",
    "approved_on",
    "cancelled_on",
)


class PaymentRequestModel(TrackedBase):
    """
    A request for payment attached to an expense entry.

    Maps to the ``PaymentRequest`` DTO in ``workbench_modules.rfp.models``.
    """

    __tablename__ = "rfps"

    __table_args__ = (
        Index(
            "uq_rfp_active_per_entry",
            "entry_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index("idx_rfp_status", "status"),
    )

    entry_id: Mapped[UUID] = mapped_column(ForeignKey("entries.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    payee: Mapped[str | None] = mapped_column(String(200), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount_in_words: Mapped[str] = mapped_column(Text, nullable=False, default="")
    company_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    booking_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(100), nullable=True)
    account_to_credit: Mapped[str | None] = mapped_column(String(100), nullable=True)
    prepared_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes_to_approver: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    approved_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    def to_dto(self):
        from workbench_modules.rfp.models import PaymentRequest, RFPStatus

        return PaymentRequest(
            id=self.id,
            entry_id=self.entry_id,
            status=RFPStatus(self.status),
            payee=self.payee,
            amount=self.amount,
            amount_in_words=self.amount_in_words,
            company_id=self.company_id,
            booking_ref=self.booking_ref,
            category_id=self.category_id,
            justification=self.justification,
            attachment_ids=tuple(self.attachment_ids or ()),
            due_date=self.due_date,
            payment_terms=self.payment_terms,
            cost_center=self.cost_center,
            account_to_credit=self.account_to_credit,
            prepared_by=self.prepared_by,
            notes_to_approver=self.notes_to_approver,
            created_at=self.created_at,
            submitted_on=self.submitted_on,
            approved_by=self.approved_by,
            approved_on=self.approved_on,
            cancelled_on=self.cancelled_on,
        )

    @classmethod
    def from_dto(cls, dto) -> "PaymentRequestModel":
        model = cls(id=dto.id, entry_id=dto.entry_id)
        model.update_from_dto(dto)
        return model

    def update_from_dto(self, dto) -> None:
        """Copy writable fields from a snapshot; unchanged values are no-ops."""
        for name in _WRITABLE_COLUMNS:
            value = getattr(dto, name)
            if name == "status":
                value = value.value
            if getattr(self, name, None) != value:
                setattr(self, name, value)
        ids = list(dto.attachment_ids)
        if self.attachment_ids != ids:
            # Reassign so the JSON column registers the change
            self.attachment_ids = ids

    def __repr__(self) -> str:
        return f"<PaymentRequestModel {self.id} entry={self.entry_id} [{self.status}]>"

"""
SQLAlchemy ORM persistence model for entries.

Responsibility
--------------
Database-backed persistence for the ``Entry`` snapshot.  Services load an
``EntryModel`` under a row lock, hand its DTO to the gate, and write the
accepted snapshot back with ``update_from_dto``.

Invariants enforced
-------------------
* Monetary amount uses ``Decimal`` (Numeric(18,2)) -- NEVER float.
* Enum fields stored as String for readability and portability.
* ``version`` is the SQLAlchemy ``version_id_col``: every UPDATE is
  qualified by the version that was read and increments it, so a
  concurrent writer's flush raises ``StaleDataError``.
* ``amount > 0`` and booking exclusivity are also CHECK constraints.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workbench_kernel.db.base import TrackedBase

# Columns the service may overwrite from a DTO (identity, version and
# timestamps are owned by the database layer)
_WRITABLE_COLUMNS: tuple[str, ...] = (
    "kind",
    "amount",
    "occurred_on",
    "status",
    "company_id",
    "account_id",
    "category_id",
    "booking_ref",
    "is_no_booking",
    "booking_company_id",
    "payee",
    "payment_method",
    "note",
    "attachment_count",
    "submitted_via_rfp",
    "requested_by",
    "requested_on",
    "approved_by",
    "approved_on",
    "rejected_by",
    "rejected_on",
    "rejection_reason",
    "posted_by",
    "posted_on",
)


class EntryModel(TrackedBase):
    """
    A financial movement record.

    Maps to the ``Entry`` DTO in ``workbench_modules.entries.models``.
    """

    __tablename__ = "entries"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_entry_amount_positive"),
        CheckConstraint(
            "NOT (is_no_booking AND booking_ref IS NOT NULL)",
            name="ck_entry_booking_exclusive",
        ),
        Index("idx_entry_status", "status"),
        Index("idx_entry_company", "company_id"),
        Index("idx_entry_booking", "company_id", "booking_ref"),
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    company_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    account_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    booking_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_no_booking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    booking_company_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payee: Mapped[str | None] = mapped_column(String(200), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    submitted_via_rfp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    requested_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    requested_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    approved_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    rejected_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    posted_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    posted_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    __mapper_args__ = {
        "version_id_col": version,
        "eager_defaults": True,
    }

    def to_dto(self):
        from workbench_modules.entries.models import Entry, EntryKind, EntryStatus

        return Entry(
            id=self.id,
            kind=EntryKind(self.kind),
            amount=self.amount,
            occurred_on=self.occurred_on,
            status=EntryStatus(self.status),
            company_id=self.company_id,
            account_id=self.account_id,
            category_id=self.category_id,
            booking_ref=self.booking_ref,
            is_no_booking=self.is_no_booking,
            booking_company_id=self.booking_company_id,
            payee=self.payee,
            payment_method=self.payment_method,
            note=self.note,
            attachment_count=self.attachment_count,
            version=self.version,
            submitted_via_rfp=self.submitted_via_rfp,
            requested_by=self.requested_by,
            requested_on=self.requested_on,
            approved_by=self.approved_by,
            approved_on=self.approved_on,
            rejected_by=self.rejected_by,
            rejected_on=self.rejected_on,
            rejection_reason=self.rejection_reason,
            posted_by=self.posted_by,
            posted_on=self.posted_on,
            created_by=self.created_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto) -> "EntryModel":
        model = cls(id=dto.id, created_by=dto.created_by)
        model.update_from_dto(dto)
        return model

    def update_from_dto(self, dto) -> None:
        """Copy writable fields from a snapshot; unchanged values are no-ops."""
        for name in _WRITABLE_COLUMNS:
            value = getattr(dto, name)
            if isinstance(value, Enum):
                value = value.value
            if getattr(self, name, None) != value:
                setattr(self, name, value)

    def __repr__(self) -> str:
        return f"<EntryModel {self.id} [{self.status}] v{self.version} {self.amount}>"

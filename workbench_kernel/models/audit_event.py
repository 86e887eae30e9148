"""
Module: workbench_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit trail of entry
    and RFP transitions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listeners).
    - Hash chain integrity per entry: hash = H(entity_type | entity_id |
      action | payload_hash | prev_hash).  Validated by AuditorService.
    - seq is monotonically increasing within a chain.  Chains are keyed by
      the owning entry, whose transitions are already serialized, so two
      writers never compete for the same sequence value.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from workbench_kernel.db.base import Base, UUIDString
from workbench_kernel.exceptions import ImmutabilityViolationError


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Entry lifecycle
    ENTRY_CREATED = "entry_created"
    ENTRY_DRAFT_SAVED = "entry_draft_saved"
    ENTRY_SUBMITTED = "entry_submitted"
    ENTRY_APPROVED = "entry_approved"
    ENTRY_REJECTED = "entry_rejected"
    ENTRY_RESUBMITTED = "entry_resubmitted"
    ENTRY_POSTED = "entry_posted"
    ENTRY_UNPOSTED = "entry_unposted"
    ENTRY_RESET_TO_DRAFT = "entry_reset_to_draft"

    # RFP lifecycle
    RFP_CREATED = "rfp_created"
    RFP_SAVED = "rfp_saved"
    RFP_SUBMITTED = "rfp_submitted"
    RFP_CANCELLED = "rfp_cancelled"
    RFP_REOPENED = "rfp_reopened"
    RFP_PAYMENT_APPROVED = "rfp_payment_approved"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Contract:
        Rows are append-only.  Each row's hash includes the previous row's
        hash within the same chain (``chain_id`` = owning entry id).
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        UniqueConstraint("chain_id", "seq", name="uq_audit_chain_seq"),
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
    )

    chain_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor: Mapped[str] = mapped_column(String(200), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.chain_id}#{self.seq} {self.action}>"


@event.listens_for(AuditEvent, "before_update")
def prevent_audit_update(mapper, connection, target):
    """Prevent updates to audit events."""
    raise ImmutabilityViolationError(
        entity_type="AuditEvent",
        entity_id=str(target.id),
        reason="Audit events are immutable -- cannot modify",
    )


@event.listens_for(AuditEvent, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    """Prevent deletion of audit events."""
    raise ImmutabilityViolationError(
        entity_type="AuditEvent",
        entity_id=str(target.id),
        reason="Audit events are immutable -- cannot delete",
    )

"""
AuditorService -- tamper-evident audit trail for entries and RFPs.

Responsibility:
    Creates immutable, hash-chained audit events for every committed entry
    or RFP transition.  Provides chain validation for tamper detection and
    trace queries for review.

Architecture position:
    Kernel > Services -- imperative shell, called by EntryService and
    RFPService inside their transaction.

Invariants enforced:
    - Sequence monotonicity per chain.  A chain is keyed by the owning
      entry id; callers hold the entry row lock, so ``max(seq) + 1`` within
      the chain cannot race.
    - Chain integrity: ``hash = H(entity_type, entity_id, action,
      payload_hash, prev_hash)``.
    - Append-only: audit events are never modified or deleted (ORM
      listeners on the AuditEvent model).

Failure modes:
    - AuditChainBrokenError: recomputed hash does not match stored hash,
      or prev_hash does not match the predecessor's hash.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workbench_kernel.domain.actors import Actor
from workbench_kernel.domain.clock import Clock, SystemClock
from workbench_kernel.exceptions import AuditChainBrokenError
from workbench_kernel.logging_config import get_logger
from workbench_kernel.models.audit_event import AuditAction, AuditEvent
from workbench_kernel.utils.hashing import canonicalize_json, hash_audit_event, hash_payload

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    entity_type: str
    action: AuditAction
    occurred_at: datetime
    actor: str
    actor_role: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """Complete audit trace for one entry (including its RFP events)."""

    entry_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Contract:
        Accepts entry/RFP recording requests and creates append-only
        ``AuditEvent`` rows chained per entry.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret audit events.
    """

    ENTRY = "Entry"
    RFP = "RFP"

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _last_in_chain(self, chain_id: UUID) -> AuditEvent | None:
        return self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.chain_id == chain_id)
            .order_by(AuditEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _create_audit_event(
        self,
        chain_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor: Actor,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Create a new audit event linked to the tail of its chain."""
        last = self._last_in_chain(chain_id)
        seq = (last.seq + 1) if last else 1
        prev_hash = last.hash if last else None

        # Round-trip through canonical JSON so the stored payload is exactly
        # what was hashed (Decimal, date and UUID become strings).
        payload_data = json.loads(canonicalize_json(payload or {}))
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            chain_id=chain_id,
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor=actor.name,
            actor_role=actor.role.value,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": seq,
            },
        )
        return audit_event

    # Domain-specific recording methods

    def record_entry_transition(
        self,
        entry_id: UUID,
        action: AuditAction,
        actor: Actor,
        from_status: str | None,
        to_status: str,
        version: int,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Record a committed entry transition (or creation)."""
        payload: dict[str, Any] = {
            "from_status": from_status,
            "to_status": to_status,
            "version": version,
        }
        if details:
            payload.update(details)
        return self._create_audit_event(
            chain_id=entry_id,
            entity_type=self.ENTRY,
            entity_id=entry_id,
            action=action,
            actor=actor,
            payload=payload,
        )

    def record_rfp_event(
        self,
        entry_id: UUID,
        rfp_id: UUID,
        action: AuditAction,
        actor: Actor,
        from_status: str | None,
        to_status: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Record an RFP lifecycle event on the owning entry's chain."""
        payload: dict[str, Any] = {
            "from_status": from_status,
            "to_status": to_status,
        }
        if details:
            payload.update(details)
        return self._create_audit_event(
            chain_id=entry_id,
            entity_type=self.RFP,
            entity_id=rfp_id,
            action=action,
            actor=actor,
            payload=payload,
        )

    # Chain validation

    def validate_chain(self, entry_id: UUID | None = None) -> bool:
        """
        Validate one entry's audit chain, or every chain when ``entry_id``
        is None.

        Raises:
            AuditChainBrokenError: If validation fails at any point.
        """
        if entry_id is not None:
            chain_ids = [entry_id]
        else:
            chain_ids = list(
                self._session.execute(
                    select(AuditEvent.chain_id).distinct()
                ).scalars().all()
            )

        total = 0
        for chain_id in chain_ids:
            total += self._validate_one_chain(chain_id)

        logger.info(
            "audit_chain_valid",
            extra={"chain_count": len(chain_ids), "event_count": total},
        )
        return True

    def _validate_one_chain(self, chain_id: UUID) -> int:
        events = self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.chain_id == chain_id)
            .order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return 0

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"chain_id": str(chain_id)})
            raise AuditChainBrokenError(
                str(events[0].id),
                "None",
                events[0].prev_hash,
            )

        for i, event in enumerate(events):
            if hash_payload(event.payload or {}) != event.payload_hash:
                logger.critical("audit_chain_broken", extra={"chain_id": str(chain_id)})
                raise AuditChainBrokenError(
                    str(event.id),
                    event.payload_hash,
                    hash_payload(event.payload or {}),
                )

            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=str(event.entity_id),
                action=event.action,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"chain_id": str(chain_id)})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0:
                expected_prev = events[i - 1].hash
                if event.prev_hash != expected_prev:
                    logger.critical(
                        "audit_chain_broken", extra={"chain_id": str(chain_id)}
                    )
                    raise AuditChainBrokenError(
                        str(event.id),
                        expected_prev,
                        event.prev_hash or "None",
                    )

        return len(events)

    # Trace and query methods

    def get_trace(self, entry_id: UUID) -> AuditTrace:
        """All audit events for an entry and its RFP, oldest first."""
        events = self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.chain_id == entry_id)
            .order_by(AuditEvent.seq)
        ).scalars().all()

        entries = tuple(
            AuditTraceEntry(
                seq=event.seq,
                entity_type=event.entity_type,
                action=AuditAction(event.action),
                occurred_at=event.occurred_at,
                actor=event.actor,
                actor_role=event.actor_role,
                payload=event.payload or {},
                hash=event.hash,
            )
            for event in events
        )
        return AuditTrace(entry_id=entry_id, entries=entries)

    def count_events(self, entry_id: UUID) -> int:
        """Number of audit events recorded for an entry."""
        return self._session.execute(
            select(func.count())
            .select_from(AuditEvent)
            .where(AuditEvent.chain_id == entry_id)
        ).scalar_one()

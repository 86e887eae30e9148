"""
Request-for-Payment Service (``workbench_services.rfp_service``).

Responsibility
--------------
Attaches RFPs to expense entries and drives the RFP sub-workflow: saving
RFP-only fields, submitting (which also moves a draft entry to pending),
cancelling, and recording the external payment approval.

Architecture position
---------------------
**Services layer**.  Shares entry loading, RFP syncing and the entry side
of RFP submission with ``EntryService``, so both services stamp entries
the same way inside one transaction.

Invariants enforced
-------------------
* Each public method owns the transaction boundary.
* At most one non-cancelled RFP per entry (checked here and by a partial
  unique index).
* Mirrored fields are copied from the entry, never edited on the RFP.
* Submission is all-or-nothing: the RFP and the entry move together or
  neither moves.
* ``approve`` is reachable only through ``record_payment_approval``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workbench_engines.gate import FIELD_LOCKED, validate_rfp_submission
from workbench_kernel.domain.actors import Actor, Role
from workbench_kernel.domain.clock import Clock, SystemClock
from workbench_kernel.domain.outcomes import WorkbenchOutcome
from workbench_kernel.exceptions import (
    InvalidStateError,
    PermissionDeniedError,
    RFPNotFoundError,
    ValidationError,
    WorkbenchError,
)
from workbench_kernel.logging_config import LogContext, get_logger
from workbench_kernel.models.audit_event import AuditAction
from workbench_kernel.services.auditor_service import AuditorService
from workbench_modules.entries.models import EntryKind, EntryStatus
from workbench_modules.entries.orm import EntryModel
from workbench_modules.rfp.models import (
    PaymentRequest,
    RFPStatus,
    apply_rfp_changes,
    sync_from_entry,
)
from workbench_modules.rfp.orm import PaymentRequestModel
from workbench_modules.rfp.workflows import RFP_WORKFLOW
from workbench_services._helpers import commit_or_rollback
from workbench_services.entry_service import EntryService

logger = get_logger("services.rfp")

ENTITY = "RFP"

# Entry statuses from which an RFP may still be submitted
_SUBMITTABLE_ENTRY_STATUSES = frozenset({
    EntryStatus.DRAFT,
    EntryStatus.PENDING,
    EntryStatus.APPROVED,
})

_COMMIT_EVENTS = {
    "save": "rfp_saved",
    "submit": "rfp_submitted",
    "cancel": "rfp_cancelled",
}


class RFPService:
    """
    Request-for-payment lifecycle over an entry.

    Contract:
        Public methods return a ``WorkbenchOutcome`` carrying the entry and
        RFP snapshots, and commit or roll back before returning.
    """

    def __init__(
        self,
        session: Session,
        entry_service: EntryService,
        auditor: AuditorService | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._entries = entry_service
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)

    # =========================================================================
    # Public API
    # =========================================================================

    def attach_rfp(self, entry_id: UUID | str, actor: Actor) -> WorkbenchOutcome:
        """Create a draft RFP for an expense entry."""
        with LogContext.bind(entry_id=str(entry_id), actor=actor.name, role=actor.role.value):
            try:
                entry, rfp = self._attach(entry_id, actor)
                outcome = WorkbenchOutcome.success(entry=entry, rfp=rfp)
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, entry_id, "rfp_attach_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.info("rfp_attached", extra={"rfp_id": str(rfp.id)})
            return outcome

    def transition_rfp(
        self,
        entry_id: UUID | str,
        target_status: RFPStatus | str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
    ) -> WorkbenchOutcome:
        """Save (``draft``), submit (``submitted``) or cancel (``cancelled``)."""
        with LogContext.bind(entry_id=str(entry_id), actor=actor.name, role=actor.role.value):
            logger.info(
                "rfp_transition_started",
                extra={"target_status": str(getattr(target_status, "value", target_status))},
            )
            try:
                entry, rfp, action = self._transition(
                    entry_id, target_status, actor, dict(payload or {})
                )
                outcome = WorkbenchOutcome.success(entry=entry, rfp=rfp)
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, entry_id, "rfp_transition_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                _COMMIT_EVENTS[action],
                extra={
                    "rfp_id": str(rfp.id),
                    "status": rfp.status.value,
                    "entry_status": entry.status.value,
                },
            )
            return outcome

    def record_payment_approval(
        self, entry_id: UUID | str, approved_by: Actor
    ) -> WorkbenchOutcome:
        """Mark a submitted RFP approved, as reported by payment posting."""
        with LogContext.bind(
            entry_id=str(entry_id), actor=approved_by.name, role=approved_by.role.value
        ):
            try:
                entry, rfp = self._approve(entry_id, approved_by)
                outcome = WorkbenchOutcome.success(entry=entry, rfp=rfp)
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, entry_id, "rfp_payment_approval_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.info("rfp_payment_approved", extra={"rfp_id": str(rfp.id)})
            return outcome

    # =========================================================================
    # Internals
    # =========================================================================

    def _attach(self, entry_id: UUID | str, actor: Actor):
        if actor.role != Role.PREPARER:
            raise PermissionDeniedError("attach_rfp", actor.role.value)

        entry_model = self._entries.load_for_update(entry_id)
        entry = entry_model.to_dto()
        if entry.kind != EntryKind.EXPENSE:
            raise InvalidStateError(
                "Entry", str(entry.id), entry.status.value, "attach_rfp",
                "requests for payment attach to expense entries only",
            )
        if entry.status == EntryStatus.POSTED:
            raise InvalidStateError(
                "Entry", str(entry.id), entry.status.value, "attach_rfp",
                "entry is already posted",
            )
        if self._entries.load_active_rfp(entry.id) is not None:
            raise InvalidStateError(
                "Entry", str(entry.id), entry.status.value, "attach_rfp",
                "entry already has an active request for payment",
            )

        rfp = sync_from_entry(
            PaymentRequest(id=uuid4(), entry_id=entry.id, prepared_by=actor.name),
            entry,
            self._entries.amount_in_words(entry.amount),
        )
        rfp_model = PaymentRequestModel.from_dto(rfp)
        self._session.add(rfp_model)
        try:
            self._session.flush()
        except IntegrityError:
            # Lost a race with another attach for the same entry
            raise InvalidStateError(
                "Entry", str(entry.id), entry.status.value, "attach_rfp",
                "entry already has an active request for payment",
            ) from None

        rfp = rfp_model.to_dto()
        self._auditor.record_rfp_event(
            entry.id, rfp.id, AuditAction.RFP_CREATED, actor, None, rfp.status.value,
        )
        return entry, rfp

    def _load(self, entry_id: UUID | str) -> tuple[EntryModel, PaymentRequestModel]:
        entry_model = self._entries.load_for_update(entry_id)
        rfp_model = self._entries.load_active_rfp(entry_model.id)
        if rfp_model is None:
            raise RFPNotFoundError(str(entry_id))
        return entry_model, rfp_model

    def _transition(
        self,
        entry_id: UUID | str,
        target_status: RFPStatus | str,
        actor: Actor,
        payload: dict[str, Any],
    ):
        entry_model, rfp_model = self._load(entry_id)
        rfp = rfp_model.to_dto()
        try:
            target = RFPStatus(target_status)
        except ValueError:
            raise InvalidStateError(
                ENTITY, str(rfp.id), rfp.status.value, str(target_status), "unknown status"
            ) from None

        transition = RFP_WORKFLOW.find_transition(rfp.status.value, target.value)
        if transition is None or transition.external or transition.administrative:
            reason = ""
            if transition is not None and transition.external:
                reason = "recorded only by the payment posting step"
            raise InvalidStateError(
                ENTITY, str(rfp.id), rfp.status.value, target.value, reason
            )
        if actor.role.value not in transition.permitted_roles:
            raise PermissionDeniedError(f"rfp_{transition.action}", actor.role.value)

        if transition.action == "save":
            entry, rfp = self._save(entry_model, rfp_model, actor, payload)
        elif transition.action == "submit":
            entry, rfp = self._submit(entry_model, rfp_model, actor, payload)
        else:
            if payload:
                raise ValidationError({name: FIELD_LOCKED for name in payload})
            entry, rfp = self._cancel(entry_model, rfp_model, actor)
        return entry, rfp, transition.action

    def _save(self, entry_model, rfp_model, actor, payload):
        entry = entry_model.to_dto()
        before = self._entries.sync_rfp(rfp_model, entry)
        updated = apply_rfp_changes(before, payload)
        if updated == before:
            return entry, before

        rfp_model.update_from_dto(updated)
        self._session.flush()
        changed = sorted(name for name in payload if getattr(before, name) != getattr(updated, name))
        self._auditor.record_rfp_event(
            entry.id, updated.id, AuditAction.RFP_SAVED, actor,
            before.status.value, updated.status.value,
            details={"changed_fields": changed},
        )
        return entry, rfp_model.to_dto()

    def _submit(self, entry_model, rfp_model, actor, payload):
        entry = entry_model.to_dto()
        if entry.status not in _SUBMITTABLE_ENTRY_STATUSES:
            rfp = rfp_model.to_dto()
            raise InvalidStateError(
                ENTITY, str(rfp.id), rfp.status.value, RFPStatus.SUBMITTED.value,
                f"entry is {entry.status.value}",
            )

        candidate = sync_from_entry(
            apply_rfp_changes(rfp_model.to_dto(), payload),
            entry,
            self._entries.amount_in_words(entry.amount),
        )
        errors = validate_rfp_submission(candidate)

        entry_candidate = None
        if entry.status == EntryStatus.DRAFT:
            entry_candidate, entry_errors = self._entries.check_submission(entry_model, actor)
            errors.update({f"entry.{name}": text for name, text in entry_errors.items()})
        if errors:
            raise ValidationError(errors)

        before_status = rfp_model.status
        rfp_model.update_from_dto(
            replace(candidate, status=RFPStatus.SUBMITTED, submitted_on=self._clock.now())
        )
        self._session.flush()

        if entry_candidate is not None:
            entry = self._entries.mark_submitted_via_rfp(entry_model, entry_candidate, actor)

        rfp = rfp_model.to_dto()
        self._auditor.record_rfp_event(
            entry.id, rfp.id, AuditAction.RFP_SUBMITTED, actor,
            before_status, rfp.status.value,
            details={
                "amount": rfp.amount,
                "attachment_count": len(rfp.attachment_ids),
                "entry_status": entry.status.value,
            },
        )
        return entry, rfp

    def _cancel(self, entry_model, rfp_model, actor):
        before = rfp_model.to_dto()
        rfp_model.update_from_dto(
            replace(before, status=RFPStatus.CANCELLED, cancelled_on=self._clock.now())
        )
        self._session.flush()
        rfp = rfp_model.to_dto()
        self._auditor.record_rfp_event(
            before.entry_id, rfp.id, AuditAction.RFP_CANCELLED, actor,
            before.status.value, rfp.status.value,
        )

        entry = entry_model.to_dto()
        if entry.status == EntryStatus.REJECTED and entry.submitted_via_rfp:
            entry = self._entries.reset_after_rfp_cancel(entry_model, actor)
        return entry, rfp

    def _approve(self, entry_id: UUID | str, approved_by: Actor):
        entry_model, rfp_model = self._load(entry_id)
        before = rfp_model.to_dto()
        transition = RFP_WORKFLOW.find_transition(
            before.status.value, RFPStatus.APPROVED.value
        )
        if transition is None:
            raise InvalidStateError(
                ENTITY, str(before.id), before.status.value, RFPStatus.APPROVED.value
            )

        rfp_model.update_from_dto(
            replace(
                before,
                status=RFPStatus.APPROVED,
                approved_by=approved_by.name,
                approved_on=self._clock.now(),
            )
        )
        self._session.flush()
        rfp = rfp_model.to_dto()
        self._auditor.record_rfp_event(
            before.entry_id, rfp.id, AuditAction.RFP_PAYMENT_APPROVED, approved_by,
            before.status.value, rfp.status.value,
        )
        return entry_model.to_dto(), rfp

    def _failure(
        self,
        error: WorkbenchError,
        entry_id: UUID | str,
        event: str,
    ) -> WorkbenchOutcome:
        self._session.rollback()
        entry, rfp = self._entries.persisted_snapshot(entry_id)
        outcome = WorkbenchOutcome.from_error(error, entry=entry, rfp=rfp)
        logger.warning(
            event,
            extra={
                "outcome": outcome.status.value,
                "error_code": error.code,
                "field_errors": dict(outcome.field_errors),
            },
        )
        return outcome

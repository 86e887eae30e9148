"""
Entry Service (``workbench_services.entry_service``).

Responsibility
--------------
Orchestrates the entry lifecycle: creation, every gated transition, and the
administrative unpost.  Loads the persisted entry under a row lock, applies
the caller's edits to a candidate snapshot, resolves its booking link, asks
the Validation & Permission Gate for a verdict, stamps the audit fields and
writes the result back together with an audit event.

Architecture position
---------------------
**Services layer**.  Composes the pure gate (``workbench_engines.gate``),
booking resolution (``workbench_modules.bookings.service``) and the kernel
``AuditorService``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` on any other outcome or exception).
* The caller's ``expected_version`` must equal the persisted version, and
  the UPDATE itself is version-qualified; either mismatch is a conflict
  and nothing is written.
* Permission is checked before any payload field is parsed or validated.
* A request that changes nothing writes nothing: the version is unchanged
  and no audit event is recorded.
* While an RFP is ``draft``, every committed entry change re-syncs its
  mirrored fields.

Failure modes
-------------
* Business conditions  -> ``WorkbenchOutcome`` with ``is_success == False``
  carrying the unchanged persisted snapshot; session rolled back.
* Registry outages, database errors  -> session rolled back, exception
  re-raised.

Usage::

    service = EntryService(session, booking_service, clock=clock)
    outcome = service.transition(
        entry_id, "pending", Actor("Jane", Role.PREPARER),
        expected_version=3, payload={"payee": "Acme Trucking"},
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from workbench_config.schema import WorkbenchConfig
from workbench_engines.amount_words import amount_to_words
from workbench_engines.gate import (
    FIELD_LOCKED,
    REASON_REQUIRED,
    GateDenial,
    allowed_targets,
    evaluate,
    locked_fields,
    resolve_transition,
)
from workbench_kernel.domain.actors import Actor, Role
from workbench_kernel.domain.clock import Clock, SystemClock
from workbench_kernel.domain.outcomes import WorkbenchOutcome
from workbench_kernel.domain.workflow import Transition, ValidationTier
from workbench_kernel.exceptions import (
    EntryNotFoundError,
    InvalidStateError,
    OptimisticLockError,
    PermissionDeniedError,
    ValidationError,
    WorkbenchError,
)
from workbench_kernel.logging_config import LogContext, get_logger
from workbench_kernel.models.audit_event import AuditAction
from workbench_kernel.services.auditor_service import AuditorService
from workbench_modules.bookings.models import BookingLink
from workbench_modules.bookings.service import BookingResolutionService
from workbench_modules.entries.models import (
    Entry,
    EntryKind,
    EntryStatus,
    apply_changes,
    changed_fields,
)
from workbench_modules.entries.orm import EntryModel
from workbench_modules.rfp.models import PaymentRequest, RFPStatus, needs_sync, sync_from_entry
from workbench_modules.rfp.orm import PaymentRequestModel
from workbench_services._helpers import commit_or_rollback, gate_policy_from_config
from workbench_services.reference_data import ReferenceDataProvider, check_reference_data

logger = get_logger("services.entry")

ENTITY = "Entry"

KIND_REQUIRED = "Kind is required"

# Actions that may carry field edits
EDIT_ACTIONS = frozenset({"save_draft", "submit_for_approval", "resubmit"})

_AUDIT_ACTIONS: Mapping[str, AuditAction] = {
    "save_draft": AuditAction.ENTRY_DRAFT_SAVED,
    "submit_for_approval": AuditAction.ENTRY_SUBMITTED,
    "approve": AuditAction.ENTRY_APPROVED,
    "reject": AuditAction.ENTRY_REJECTED,
    "resubmit": AuditAction.ENTRY_RESUBMITTED,
    "post": AuditAction.ENTRY_POSTED,
    "unpost": AuditAction.ENTRY_UNPOSTED,
}


@dataclass(frozen=True)
class EntryView:
    """What the UI needs to render one entry for one role."""

    entry: Entry
    rfp: PaymentRequest | None
    booking_link: BookingLink
    allowed_targets: tuple[str, ...]
    locked_fields: frozenset[str]


def _as_uuid(entry_id: UUID | str) -> UUID:
    if isinstance(entry_id, UUID):
        return entry_id
    try:
        return UUID(str(entry_id))
    except ValueError:
        raise EntryNotFoundError(str(entry_id)) from None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class EntryService:
    """
    Entry creation and lifecycle transitions.

    Contract:
        Public methods return a ``WorkbenchOutcome`` for every business
        condition and commit or roll back before returning.  Methods
        documented as joining the caller's transaction (used by
        ``RFPService``) raise typed exceptions and never commit.
    """

    def __init__(
        self,
        session: Session,
        booking_service: BookingResolutionService,
        auditor: AuditorService | None = None,
        clock: Clock | None = None,
        config: WorkbenchConfig | None = None,
        reference_data: ReferenceDataProvider | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or WorkbenchConfig()
        self._bookings = booking_service
        self._auditor = auditor or AuditorService(session, self._clock)
        self._reference_data = reference_data
        self._policy = gate_policy_from_config(self._config)

    # =========================================================================
    # Public API
    # =========================================================================

    def create_entry(self, payload: Mapping[str, Any], actor: Actor) -> WorkbenchOutcome:
        """Create a draft entry owned by the acting preparer."""
        with LogContext.bind(actor=actor.name, role=actor.role.value):
            logger.info("entry_create_started", extra={"fields": sorted(payload or {})})
            try:
                entry = self._create(payload or {}, actor)
                outcome = WorkbenchOutcome.success(entry=entry)
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, None, "entry_create_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "entry_created",
                extra={
                    "entry_id": str(entry.id),
                    "kind": entry.kind.value,
                    "amount": str(entry.amount),
                },
            )
            return outcome

    def transition(
        self,
        entry_id: UUID | str,
        target_status: EntryStatus | str,
        actor: Actor,
        expected_version: int,
        payload: Mapping[str, Any] | None = None,
    ) -> WorkbenchOutcome:
        """Request a status change, optionally carrying field edits.

        ``payload`` holds entry field edits; for ``reject`` it also carries
        ``rejection_reason``.  Requesting ``draft`` on a draft entry is a
        save.  A save that changes nothing succeeds without writing.
        """
        with LogContext.bind(
            entry_id=str(entry_id), actor=actor.name, role=actor.role.value
        ):
            logger.info(
                "entry_transition_started",
                extra={
                    "target_status": str(getattr(target_status, "value", target_status)),
                    "expected_version": expected_version,
                },
            )
            try:
                entry, rfp, action, wrote = self._transition(
                    entry_id, target_status, actor, expected_version, dict(payload or {})
                )
                outcome = WorkbenchOutcome.success(
                    entry=entry,
                    rfp=rfp,
                    message=None if wrote else "No changes",
                )
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, entry_id, "entry_transition_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "entry_transition_committed",
                extra={
                    "action": action,
                    "status": entry.status.value,
                    "version": entry.version,
                    "wrote": wrote,
                },
            )
            return outcome

    def unpost(
        self,
        entry_id: UUID | str,
        authorized_by: Actor,
        reason: str,
        expected_version: int,
    ) -> WorkbenchOutcome:
        """Administrative reversal of a posted entry back to draft.

        Not reachable through ``transition``: callers authorize the
        operation outside the workbench and name who did.
        """
        with LogContext.bind(
            entry_id=str(entry_id),
            actor=authorized_by.name,
            role=authorized_by.role.value,
        ):
            logger.warning("entry_unpost_requested", extra={"reason": reason})
            try:
                entry, rfp = self._unpost(entry_id, authorized_by, reason, expected_version)
                outcome = WorkbenchOutcome.success(entry=entry, rfp=rfp)
                commit_or_rollback(self._session, outcome)
            except WorkbenchError as exc:
                return self._failure(exc, entry_id, "entry_unpost_rejected")
            except Exception:
                self._session.rollback()
                raise

            logger.warning(
                "entry_unposted",
                extra={"version": entry.version, "reason": reason},
            )
            return outcome

    def evaluate_entry(self, entry_id: UUID | str, role: Role | str) -> EntryView | None:
        """Allowed targets and locked fields for rendering; None if unknown."""
        try:
            uid = _as_uuid(entry_id)
        except EntryNotFoundError:
            return None
        model = self._session.get(EntryModel, uid)
        if model is None:
            return None
        entry = model.to_dto()
        rfp_model = self.load_active_rfp(uid)
        rfp = rfp_model.to_dto() if rfp_model else None
        return EntryView(
            entry=entry,
            rfp=rfp,
            booking_link=self._bookings.link_for_entry(entry),
            allowed_targets=allowed_targets(entry.status, role, self._policy),
            locked_fields=locked_fields(
                entry.status, role, rfp.status if rfp else None
            ),
        )

    # =========================================================================
    # Shared with RFPService (join the caller's transaction)
    # =========================================================================

    def load_for_update(self, entry_id: UUID | str) -> EntryModel:
        """Load an entry row under a row lock.

        Raises:
            EntryNotFoundError: if no such entry exists.
        """
        uid = _as_uuid(entry_id)
        model = self._session.execute(
            select(EntryModel)
            .where(EntryModel.id == uid)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise EntryNotFoundError(str(entry_id))
        return model

    def load_active_rfp(self, entry_id: UUID) -> PaymentRequestModel | None:
        """The entry's non-cancelled RFP, if any."""
        return self._session.execute(
            select(PaymentRequestModel)
            .where(PaymentRequestModel.entry_id == entry_id)
            .where(PaymentRequestModel.status != RFPStatus.CANCELLED.value)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def persisted_snapshot(
        self, entry_id: UUID | str | None
    ) -> tuple[Entry | None, PaymentRequest | None]:
        """Current persisted entry and active RFP, for failure outcomes."""
        if entry_id is None:
            return None, None
        try:
            uid = _as_uuid(entry_id)
        except EntryNotFoundError:
            return None, None
        model = self._session.get(EntryModel, uid, populate_existing=True)
        if model is None:
            return None, None
        rfp_model = self.load_active_rfp(uid)
        return model.to_dto(), rfp_model.to_dto() if rfp_model else None

    def amount_in_words(self, amount: Decimal | None) -> str:
        if amount is None or amount <= 0:
            return ""
        return amount_to_words(amount, self._config.rfp.currency_label)

    def sync_rfp(self, rfp_model: PaymentRequestModel, entry: Entry) -> PaymentRequest:
        """Copy the entry's mirrored values into a draft RFP."""
        rfp = rfp_model.to_dto()
        if rfp.status != RFPStatus.DRAFT:
            return rfp
        words = self.amount_in_words(entry.amount)
        if needs_sync(rfp, entry) or rfp.amount_in_words != words:
            rfp = sync_from_entry(rfp, entry, words)
            rfp_model.update_from_dto(rfp)
            self._session.flush()
            logger.info("rfp_synced", extra={"rfp_id": str(rfp.id)})
        return rfp

    def check_submission(self, model: EntryModel, actor: Actor) -> tuple[Entry, dict[str, str]]:
        """Gate an RFP-driven draft -> pending move without writing.

        Returns the booking-stamped candidate and its field errors.

        Raises:
            InvalidStateError, PermissionDeniedError: as for ``transition``.
        """
        current = model.to_dto()
        self._resolve(current, EntryStatus.PENDING, actor)
        candidate, link = self._link_and_stamp(current, relink=False)
        result = evaluate(
            candidate,
            EntryStatus.PENDING,
            actor.role,
            link,
            policy=self._policy,
        )
        errors = dict(result.field_errors)
        self._check_reference_data(candidate, errors)
        return candidate, errors

    def mark_submitted_via_rfp(
        self,
        model: EntryModel,
        candidate: Entry,
        actor: Actor,
    ) -> Entry:
        """Write the draft -> pending move that accompanies an RFP submission."""
        before = model.to_dto()
        updated = replace(
            candidate,
            status=EntryStatus.PENDING,
            requested_by=actor.name,
            requested_on=self._clock.now(),
            submitted_via_rfp=True,
        )
        entry = self._write(model, updated, before.version)
        self._auditor.record_entry_transition(
            entry.id,
            AuditAction.ENTRY_SUBMITTED,
            actor,
            before.status.value,
            entry.status.value,
            entry.version,
            details={"via_rfp": True},
        )
        return entry

    def reset_after_rfp_cancel(self, model: EntryModel, actor: Actor) -> Entry:
        """Return an entry whose RFP submission was rejected and withdrawn to draft.

        The entry only left draft through the RFP, so the request and
        rejection stamps go with it.
        """
        before = model.to_dto()
        updated = replace(
            before,
            status=EntryStatus.DRAFT,
            requested_by=None,
            requested_on=None,
            rejected_by=None,
            rejected_on=None,
            rejection_reason=None,
            submitted_via_rfp=False,
        )
        entry = self._write(model, updated, before.version)
        self._auditor.record_entry_transition(
            entry.id,
            AuditAction.ENTRY_RESET_TO_DRAFT,
            actor,
            before.status.value,
            entry.status.value,
            entry.version,
            details={"via_rfp": True},
        )
        return entry

    # =========================================================================
    # Internals
    # =========================================================================

    def _create(self, payload: Mapping[str, Any], actor: Actor) -> Entry:
        if actor.role != Role.PREPARER:
            raise PermissionDeniedError(
                "create_entry", actor.role.value, "only preparers create entries"
            )

        base = Entry(
            id=uuid4(),
            kind=EntryKind.EXPENSE,
            amount=Decimal("0"),
            occurred_on=self._clock.today(),
            created_by=actor.name,
        )
        candidate = apply_changes(base, payload)
        candidate, link = self._link_and_stamp(candidate, relink=True)

        result = evaluate(candidate, EntryStatus.DRAFT, actor.role, link, policy=self._policy)
        errors = dict(result.field_errors)
        if "kind" not in payload:
            errors["kind"] = KIND_REQUIRED
        if errors:
            raise ValidationError(errors)

        model = EntryModel.from_dto(candidate)
        self._session.add(model)
        self._session.flush()
        entry = model.to_dto()

        self._auditor.record_entry_transition(
            entry.id,
            AuditAction.ENTRY_CREATED,
            actor,
            None,
            entry.status.value,
            entry.version,
            details={"fields": sorted(payload)},
        )
        return entry

    def _transition(
        self,
        entry_id: UUID | str,
        target_status: EntryStatus | str,
        actor: Actor,
        expected_version: int,
        payload: dict[str, Any],
    ) -> tuple[Entry, PaymentRequest | None, str, bool]:
        model = self.load_for_update(entry_id)
        current = model.to_dto()
        self._check_version(current, expected_version)
        target = self._parse_target(current, target_status)
        transition = self._resolve(current, target, actor)

        reason = payload.pop("rejection_reason", None) if transition.action == "reject" else None
        relink = "booking_ref" in payload
        candidate = apply_changes(current, payload)
        changed = changed_fields(current, candidate)
        if changed and transition.action not in EDIT_ACTIONS:
            raise ValidationError({name: FIELD_LOCKED for name in changed})
        if transition.action == "reject":
            candidate = replace(candidate, rejection_reason=_clean(reason))

        candidate, link = self._link_and_stamp(candidate, relink=relink)
        rfp_model = self.load_active_rfp(current.id)

        result = evaluate(
            candidate,
            target,
            actor.role,
            link,
            rfp_status=rfp_model.status if rfp_model else None,
            policy=self._policy,
            changed_fields=changed,
        )
        errors = dict(result.field_errors)
        if transition.tier == ValidationTier.SUBMIT:
            self._check_reference_data(candidate, errors)
        if errors:
            raise ValidationError(errors)

        updated = self._stamp(candidate, transition, target, actor)
        if updated == current:
            logger.info("entry_transition_noop", extra={"action": transition.action})
            return current, rfp_model.to_dto() if rfp_model else None, transition.action, False

        entry = self._write(model, updated, expected_version)
        details: dict[str, Any] = {"changed_fields": list(changed)}
        if entry.rejection_reason and transition.action == "reject":
            details["reason"] = entry.rejection_reason
        self._auditor.record_entry_transition(
            entry.id,
            _AUDIT_ACTIONS[transition.action],
            actor,
            current.status.value,
            entry.status.value,
            entry.version,
            details=details,
        )

        rfp = self._follow_rfp(rfp_model, entry, transition.action, actor)
        return entry, rfp, transition.action, True

    def _unpost(
        self,
        entry_id: UUID | str,
        authorized_by: Actor,
        reason: str,
        expected_version: int,
    ) -> tuple[Entry, PaymentRequest | None]:
        if not self._config.posting.allow_unpost:
            raise PermissionDeniedError(
                "unpost", authorized_by.role.value, "unposting is disabled"
            )
        model = self.load_for_update(entry_id)
        current = model.to_dto()
        self._check_version(current, expected_version)
        if current.status != EntryStatus.POSTED:
            raise InvalidStateError(
                ENTITY,
                str(current.id),
                current.status.value,
                EntryStatus.DRAFT.value,
                "only posted entries can be unposted",
            )
        reason = _clean(reason)
        if reason is None:
            raise ValidationError({"reason": REASON_REQUIRED})

        updated = replace(
            current,
            status=EntryStatus.DRAFT,
            approved_by=None,
            approved_on=None,
            posted_by=None,
            posted_on=None,
            submitted_via_rfp=False,
        )
        entry = self._write(model, updated, expected_version)
        self._auditor.record_entry_transition(
            entry.id,
            AuditAction.ENTRY_UNPOSTED,
            authorized_by,
            current.status.value,
            entry.status.value,
            entry.version,
            details={"reason": reason},
        )
        rfp_model = self.load_active_rfp(entry.id)
        rfp = self.sync_rfp(rfp_model, entry) if rfp_model else None
        return entry, rfp

    def _check_version(self, current: Entry, expected_version: int) -> None:
        if expected_version != current.version:
            raise OptimisticLockError(
                ENTITY, str(current.id), expected_version, current.version
            )

    def _parse_target(self, current: Entry, target_status: EntryStatus | str) -> EntryStatus:
        try:
            return EntryStatus(target_status)
        except ValueError:
            raise InvalidStateError(
                ENTITY,
                str(current.id),
                current.status.value,
                str(target_status),
                "unknown status",
            ) from None

    def _resolve(self, current: Entry, target: EntryStatus, actor: Actor) -> Transition:
        transition, denial = resolve_transition(
            current.status, target, actor.role, self._policy
        )
        if denial == GateDenial.INVALID_STATE:
            raise InvalidStateError(
                ENTITY, str(current.id), current.status.value, target.value
            )
        if denial == GateDenial.PERMISSION_DENIED:
            raise PermissionDeniedError(transition.action, actor.role.value)
        return transition

    def _link_and_stamp(self, entry: Entry, relink: bool) -> tuple[Entry, BookingLink]:
        """Resolve the booking link and record the company it verified under.

        A stamped reference keeps its stamp until the reference is saved
        again, so a later company change surfaces as a conflict.
        """
        if relink or entry.booking_company_id is None:
            link = self._bookings.resolve_booking(entry.company_id, entry.booking_ref)
            stamp = entry.company_id if link.verified else None
            if stamp != entry.booking_company_id:
                entry = replace(entry, booking_company_id=stamp)
            return entry, link
        return entry, self._bookings.link_for_entry(entry)

    def _check_reference_data(self, entry: Entry, errors: dict[str, str]) -> None:
        if self._reference_data is None:
            return
        for name, message in check_reference_data(entry, self._reference_data).items():
            errors.setdefault(name, message)

    def _stamp(
        self,
        candidate: Entry,
        transition: Transition,
        target: EntryStatus,
        actor: Actor,
    ) -> Entry:
        """Apply the transition's status change and audit stamps."""
        action = transition.action
        if action == "save_draft":
            return candidate
        now: datetime = self._clock.now()
        stamped = replace(candidate, status=target)
        if action == "submit_for_approval":
            return replace(
                stamped,
                requested_by=actor.name,
                requested_on=now,
                submitted_via_rfp=False,
            )
        if action == "approve":
            return replace(stamped, approved_by=actor.name, approved_on=now)
        if action == "reject":
            return replace(stamped, rejected_by=actor.name, rejected_on=now)
        if action == "resubmit":
            return replace(
                stamped,
                rejected_by=None,
                rejected_on=None,
                rejection_reason=None,
                submitted_via_rfp=False,
            )
        if action == "post":
            return replace(stamped, posted_by=actor.name, posted_on=now)
        return stamped

    def _write(self, model: EntryModel, updated: Entry, expected_version: int) -> Entry:
        model.update_from_dto(updated)
        try:
            self._session.flush()
        except StaleDataError:
            raise OptimisticLockError(ENTITY, str(updated.id), expected_version) from None
        return model.to_dto()

    def _follow_rfp(
        self,
        rfp_model: PaymentRequestModel | None,
        entry: Entry,
        action: str,
        actor: Actor,
    ) -> PaymentRequest | None:
        """Keep the attached RFP in step with a committed entry change."""
        if rfp_model is None:
            return None
        if action == "reject" and rfp_model.status == RFPStatus.SUBMITTED.value:
            before = rfp_model.to_dto()
            rfp_model.update_from_dto(
                replace(before, status=RFPStatus.DRAFT, submitted_on=None)
            )
            self._session.flush()
            self._auditor.record_rfp_event(
                entry.id,
                before.id,
                AuditAction.RFP_REOPENED,
                actor,
                before.status.value,
                RFPStatus.DRAFT.value,
                details={"reason": entry.rejection_reason},
            )
            logger.info("rfp_reopened", extra={"rfp_id": str(before.id)})
        return self.sync_rfp(rfp_model, entry)

    def _failure(
        self,
        error: WorkbenchError,
        entry_id: UUID | str | None,
        event: str,
    ) -> WorkbenchOutcome:
        self._session.rollback()
        entry, rfp = self.persisted_snapshot(entry_id)
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

"""
workbench_engines.gate -- Validation & Permission Gate.

Responsibility:
    Decide, for an entry snapshot, a requested target status and the
    acting role, whether the transition exists, whether the role may
    request it, and which fields fail the transition's validation tier.
    Also reports which fields are locked and which targets the role may
    request, so UI layers render from one source of truth.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import kernel domain types and module DTO types.

Invariants enforced:
    - Order of checks: transition lookup, then permission, then fields.
      A permission denial never carries field-level errors.
    - Never raises for business conditions; every outcome is a GateResult.
    - Administrative and external transitions are never permitted here.

Failure modes:
    - None for business conditions.  Programming errors (unknown role
      string) raise ValueError from the Role enum.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from workbench_kernel.domain.actors import Role
from workbench_kernel.domain.workflow import Transition, ValidationTier
from workbench_modules.bookings.models import (
    BookingLink,
    ConflictingBooking,
    NoBooking,
    UnverifiedBooking,
)
from workbench_modules.entries.models import (
    EDITABLE_FIELDS,
    PAYMENT_FIELDS,
    Entry,
    EntryKind,
    EntryStatus,
)
from workbench_modules.entries.workflows import ENTRY_WORKFLOW
from workbench_modules.rfp.models import LOCKED_STATUSES, PaymentRequest, RFPStatus

# User-facing messages
AMOUNT_REQUIRED = "Amount must be greater than zero"
BOOKING_EXCLUSIVE = "A booking reference and the no-booking flag cannot both be set"
COMPANY_REQUIRED = "Company is required"
ACCOUNT_REQUIRED = "Account is required"
CATEGORY_REQUIRED = "Category is required"
PAYEE_REQUIRED = "Payee is required"
BOOKING_MISSING = "Link a booking or mark this as a general expense"
BOOKING_UNVERIFIED = "booking must be verified or marked no-booking"
BOOKING_CONFLICT = "booking belongs to another company; re-link it"
NOTE_REQUIRED = "Note is required when there is no booking"
REASON_REQUIRED = "reason required"
FIELD_LOCKED = "Field is locked"

ATTACHMENT_REQUIRED = "attach at least one file"
JUSTIFICATION_REQUIRED = "Justification is required when no booking is linked"

# Entry fields that become read-only once the RFP is submitted or approved
RFP_LOCKED_ENTRY_FIELDS: tuple[str, ...] = (
    "amount",
    "payee",
    "payment_method",
    "company_id",
    "booking_ref",
    "is_no_booking",
    "category_id",
)


class GateDenial(str, Enum):
    """Why a requested transition cannot be attempted at all."""

    INVALID_STATE = "invalid_state"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class GatePolicy:
    """Deployment policy consulted by the gate."""

    post_roles: tuple[str, ...] = (Role.PREPARER.value, Role.APPROVER.value)
    require_note_for_no_booking: bool = False
    min_amount: Decimal = Decimal("0.01")


DEFAULT_GATE_POLICY = GatePolicy()


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate evaluation.

    ``permitted`` answers "may this role request this transition from
    this status"; ``field_errors`` answers "is the snapshot valid for the
    transition's tier".  ``passed`` requires both.
    """

    action: str | None
    permitted: bool
    denial: GateDenial | None = None
    field_errors: Mapping[str, str] = field(default_factory=dict)
    locked_fields: frozenset[str] = frozenset()
    allowed_targets: tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return self.permitted and not self.field_errors


# ---------------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------------


def roles_for(transition: Transition, policy: GatePolicy = DEFAULT_GATE_POLICY) -> tuple[str, ...]:
    """Roles allowed to request ``transition`` under ``policy``."""
    if transition.administrative or transition.external:
        return ()
    if transition.action == "post":
        return policy.post_roles
    return transition.permitted_roles


def resolve_transition(
    status: EntryStatus | str,
    target_status: EntryStatus | str,
    role: Role | str,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
) -> tuple[Transition | None, GateDenial | None]:
    """Look up the transition and check the role, without field checks."""
    target_value = EntryStatus(target_status).value
    role_value = Role(role).value
    transition = ENTRY_WORKFLOW.find_transition(EntryStatus(status).value, target_value)
    if transition is None:
        # A role that no transition into the target admits is denied from any source
        into_target = [t for t in ENTRY_WORKFLOW.transitions if t.to_state == target_value]
        if into_target and not any(role_value in roles_for(t, policy) for t in into_target):
            return into_target[0], GateDenial.PERMISSION_DENIED
        return None, GateDenial.INVALID_STATE
    if role_value not in roles_for(transition, policy):
        return transition, GateDenial.PERMISSION_DENIED
    return transition, None


def allowed_targets(
    status: EntryStatus | str,
    role: Role | str,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
) -> tuple[str, ...]:
    """Target statuses the role may request from ``status``."""
    role_value = Role(role).value
    status_value = EntryStatus(status).value
    return tuple(
        t.to_state
        for t in ENTRY_WORKFLOW.outgoing(status_value)
        if role_value in roles_for(t, policy)
    )


# ---------------------------------------------------------------------------
# Field locks
# ---------------------------------------------------------------------------


def locked_fields(
    status: EntryStatus | str,
    role: Role | str,
    rfp_status: RFPStatus | str | None = None,
) -> frozenset[str]:
    """Entry fields the role may not edit in the current state."""
    status = EntryStatus(status)
    role = Role(role)
    if status == EntryStatus.POSTED or role == Role.APPROVER:
        return frozenset(EDITABLE_FIELDS)

    locked: set[str] = set()
    if status in (EntryStatus.PENDING, EntryStatus.APPROVED):
        locked.update(PAYMENT_FIELDS)
    if rfp_status is not None and RFPStatus(rfp_status) in LOCKED_STATUSES:
        locked.update(RFP_LOCKED_ENTRY_FIELDS)
    return frozenset(locked)


# ---------------------------------------------------------------------------
# Field validation by tier
# ---------------------------------------------------------------------------


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def validate_draft_tier(entry: Entry, policy: GatePolicy = DEFAULT_GATE_POLICY) -> dict[str, str]:
    """The minimal checks every persisted snapshot must pass."""
    errors: dict[str, str] = {}
    if entry.amount is None or entry.amount < policy.min_amount:
        errors["amount"] = AMOUNT_REQUIRED
    if entry.has_booking_ref and entry.is_no_booking:
        errors["booking_ref"] = BOOKING_EXCLUSIVE
    return errors


def validate_booking(
    entry: Entry,
    booking_link: BookingLink,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
) -> dict[str, str]:
    """Booking rule of the submit tier."""
    if entry.is_no_booking and not entry.has_booking_ref:
        if policy.require_note_for_no_booking and _blank(entry.note):
            return {"note": NOTE_REQUIRED}
        return {}
    if isinstance(booking_link, ConflictingBooking):
        return {"booking_ref": BOOKING_CONFLICT}
    if isinstance(booking_link, UnverifiedBooking):
        return {"booking_ref": BOOKING_UNVERIFIED}
    if isinstance(booking_link, NoBooking):
        return {"booking_ref": BOOKING_MISSING}
    return {}


def validate_submit_tier(
    entry: Entry,
    booking_link: BookingLink,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
) -> dict[str, str]:
    """Everything required before an entry may leave draft."""
    errors = validate_draft_tier(entry, policy)
    if _blank(entry.company_id):
        errors["company_id"] = COMPANY_REQUIRED
    if _blank(entry.account_id):
        errors["account_id"] = ACCOUNT_REQUIRED
    if entry.kind != EntryKind.TRANSFER and _blank(entry.category_id):
        errors["category_id"] = CATEGORY_REQUIRED
    if _blank(entry.payee):
        errors["payee"] = PAYEE_REQUIRED
    for name, message in validate_booking(entry, booking_link, policy).items():
        errors.setdefault(name, message)
    return errors


def validate_reason_tier(entry: Entry) -> dict[str, str]:
    if _blank(entry.rejection_reason):
        return {"rejection_reason": REASON_REQUIRED}
    return {}


def validate_tier(
    tier: ValidationTier,
    entry: Entry,
    booking_link: BookingLink,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
) -> dict[str, str]:
    """Field errors of ``entry`` at ``tier``."""
    if tier == ValidationTier.DRAFT:
        return validate_draft_tier(entry, policy)
    if tier == ValidationTier.SUBMIT:
        return validate_submit_tier(entry, booking_link, policy)
    if tier == ValidationTier.REASON:
        return validate_reason_tier(entry)
    return {}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def evaluate(
    entry: Entry,
    target_status: EntryStatus | str,
    role: Role | str,
    booking_link: BookingLink,
    *,
    rfp_status: RFPStatus | str | None = None,
    policy: GatePolicy | None = None,
    changed_fields: Iterable[str] = (),
) -> GateResult:
    """Evaluate a requested transition.

    Args:
        entry: The candidate snapshot (current status, edits applied).
        target_status: Requested status.
        role: Acting role.
        booking_link: Resolution of the snapshot's booking reference.
        rfp_status: Status of the attached RFP, if any.
        policy: Deployment policy; defaults to ``DEFAULT_GATE_POLICY``.
        changed_fields: Editable fields the request changes; any that are
            locked are reported as field errors.

    Returns:
        GateResult.  ``denial`` is set when the transition is undefined or
        the role may not request it; ``field_errors`` is then empty.
    """
    policy = policy or DEFAULT_GATE_POLICY
    role = Role(role)
    locks = locked_fields(entry.status, role, rfp_status)
    targets = allowed_targets(entry.status, role, policy)

    transition, denial = resolve_transition(entry.status, target_status, role, policy)
    if denial is not None:
        return GateResult(
            action=transition.action if transition else None,
            permitted=False,
            denial=denial,
            locked_fields=locks,
            allowed_targets=targets,
        )

    errors = validate_tier(transition.tier, entry, booking_link, policy)
    for name in changed_fields:
        if name in locks:
            errors.setdefault(name, FIELD_LOCKED)

    return GateResult(
        action=transition.action,
        permitted=True,
        field_errors=MappingProxyType(errors),
        locked_fields=locks,
        allowed_targets=targets,
    )


# ---------------------------------------------------------------------------
# RFP submission
# ---------------------------------------------------------------------------


def validate_rfp_submission(rfp: PaymentRequest) -> dict[str, str]:
    """Field errors that block submitting an RFP."""
    errors: dict[str, str] = {}
    if _blank(rfp.payee):
        errors["payee"] = PAYEE_REQUIRED
    if rfp.amount is None or rfp.amount <= 0:
        errors["amount"] = AMOUNT_REQUIRED
    if not rfp.attachment_ids:
        errors["attachment_ids"] = ATTACHMENT_REQUIRED
    if not rfp.has_booking and _blank(rfp.justification):
        errors["justification"] = JUSTIFICATION_REQUIRED
    return errors

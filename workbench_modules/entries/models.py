"""
Entry Domain Models.

The nouns of the workbench: an entry is a single revenue, expense or
transfer record moving through the approval workflow.  ``Entry`` is a
frozen snapshot; every change produces a new snapshot via
``apply_changes`` or ``dataclasses.replace``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from workbench_kernel.exceptions import ValidationError
from workbench_kernel.logging_config import get_logger

logger = get_logger("modules.entries.models")

TWO_PLACES = Decimal("0.01")
# Largest amount the RFP form can spell out in words
MAX_AMOUNT = Decimal("999999999999.99")


class EntryKind(str, Enum):
    """Direction of the financial movement."""
    REVENUE = "revenue"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class EntryStatus(str, Enum):
    """Entry lifecycle states."""
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    POSTED = "posted"


# Fields a caller may set through a draft payload
EDITABLE_FIELDS: tuple[str, ...] = (
    "kind",
    "amount",
    "company_id",
    "account_id",
    "category_id",
    "booking_ref",
    "is_no_booking",
    "payee",
    "payment_method",
    "note",
    "occurred_on",
    "attachment_count",
)

# Fields that make up the payment side of an entry
PAYMENT_FIELDS: tuple[str, ...] = ("payee", "payment_method", "note")

# Entry fields copied into an attached RFP
MIRRORED_FIELDS: tuple[str, ...] = (
    "amount",
    "company_id",
    "booking_ref",
    "category_id",
    "payee",
)


@dataclass(frozen=True)
class Entry:
    """A financial movement record."""
    id: UUID
    kind: EntryKind
    amount: Decimal
    occurred_on: date
    status: EntryStatus = EntryStatus.DRAFT
    company_id: str | None = None
    account_id: str | None = None
    category_id: str | None = None
    booking_ref: str | None = None
    is_no_booking: bool = False
    booking_company_id: str | None = None
    payee: str | None = None
    payment_method: str | None = None
    note: str | None = None
    attachment_count: int = 0
    version: int = 1
    submitted_via_rfp: bool = False
    requested_by: str | None = None
    requested_on: datetime | None = None
    approved_by: str | None = None
    approved_on: datetime | None = None
    rejected_by: str | None = None
    rejected_on: datetime | None = None
    rejection_reason: str | None = None
    posted_by: str | None = None
    posted_on: datetime | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_booking_ref(self) -> bool:
        return bool(self.booking_ref and self.booking_ref.strip())

    def mirrored_values(self) -> dict[str, Any]:
        """The values an attached RFP copies from this entry."""
        return {name: getattr(self, name) for name in MIRRORED_FIELDS}


# -----------------------------------------------------------------------------
# Payload coercion
# -----------------------------------------------------------------------------


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_amount(value: Any) -> Decimal:
    """Parse a caller-supplied amount into a two-place Decimal.

    Raises:
        ValidationError: if the value is not a number or has sub-cent
            precision.
    """
    if isinstance(value, bool):
        raise ValidationError({"amount": "Amount must be a number"})
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        raise ValidationError({"amount": "Amount must be a number"}) from None
    if not amount.is_finite():
        raise ValidationError({"amount": "Amount must be a number"})
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError({"amount": "Amount is too large"})
    if amount != amount.quantize(TWO_PLACES):
        raise ValidationError(
            {"amount": "Amount cannot have more than two decimal places"}
        )
    return amount.quantize(TWO_PLACES)


def _parse_kind(value: Any) -> EntryKind:
    try:
        return EntryKind(value)
    except ValueError:
        raise ValidationError({"kind": f"Unknown entry kind: {value!r}"}) from None


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError({"occurred_on": "Date must be YYYY-MM-DD"}) from None


def _parse_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            {"attachment_count": "Attachment count must be a non-negative integer"}
        )
    return value


def normalize_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce a raw edit payload into typed entry field values.

    Raises:
        ValidationError: on unknown fields or values that cannot be coerced.
    """
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError({name: "Unknown field" for name in unknown})

    normalized: dict[str, Any] = {}
    for name, value in changes.items():
        if name == "amount":
            normalized[name] = parse_amount(value)
        elif name == "kind":
            normalized[name] = _parse_kind(value)
        elif name == "occurred_on":
            normalized[name] = _parse_date(value)
        elif name == "is_no_booking":
            normalized[name] = bool(value)
        elif name == "attachment_count":
            normalized[name] = _parse_count(value)
        else:
            normalized[name] = _clean_text(value)
    return normalized


def apply_changes(entry: Entry, changes: Mapping[str, Any]) -> Entry:
    """Return a new snapshot with ``changes`` applied.

    Booking fields are kept mutually exclusive where the payload is
    unambiguous: marking no-booking clears the reference, and supplying a
    reference clears the no-booking flag.  A payload that sets both is
    left as-is so the draft tier can report it.  Changing the booking
    reference drops the verified-company stamp (the service restamps it
    after re-resolution); changing only the company keeps it, which is
    what surfaces a cross-company conflict.
    """
    values = normalize_changes(changes)

    if values.get("is_no_booking") and "booking_ref" not in values:
        values["booking_ref"] = None
    if values.get("booking_ref") and "is_no_booking" not in values:
        values["is_no_booking"] = False

    if not values:
        return entry

    updated = replace(entry, **values)
    if updated.booking_ref != entry.booking_ref:
        updated = replace(updated, booking_company_id=None)
    return updated


def changed_fields(before: Entry, after: Entry) -> tuple[str, ...]:
    """Names of editable fields that differ between two snapshots."""
    return tuple(
        name for name in EDITABLE_FIELDS
        if getattr(before, name) != getattr(after, name)
    )

"""
Request-for-Payment Domain Models.

An RFP is an optional payment-request envelope attached to an expense
entry.  Its payee, amount, company, booking and category are copies of
the owning entry's values; only the RFP-only fields are edited directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from workbench_kernel.exceptions import ValidationError
from workbench_kernel.logging_config import get_logger
from workbench_modules.entries.models import MIRRORED_FIELDS, Entry

logger = get_logger("modules.rfp.models")


class RFPStatus(str, Enum):
    """RFP lifecycle states."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    CANCELLED = "cancelled"


# While the RFP is in one of these, the entry's payment fields are read-only
LOCKED_STATUSES = frozenset({RFPStatus.SUBMITTED, RFPStatus.APPROVED})

# Fields edited directly on the RFP
RFP_EDITABLE_FIELDS: tuple[str, ...] = (
    "justification",
    "attachment_ids",
    "due_date",
    "payment_terms",
    "cost_center",
    "account_to_credit",
    "prepared_by",
    "notes_to_approver",
)


@dataclass(frozen=True)
class PaymentRequest:
    """A formal request for payment attached to an expense entry."""
    id: UUID
    entry_id: UUID
    status: RFPStatus = RFPStatus.DRAFT
    # Mirrored from the owning entry
    payee: str | None = None
    amount: Decimal | None = None
    amount_in_words: str = ""
    company_id: str | None = None
    booking_ref: str | None = None
    category_id: str | None = None
    # RFP-only
    justification: str | None = None
    attachment_ids: tuple[str, ...] = ()
    due_date: date | None = None
    payment_terms: str | None = None
    cost_center: str | None = None
    account_to_credit: str | None = None
    prepared_by: str | None = None
    notes_to_approver: str | None = None
    # Stamps
    created_at: datetime | None = None
    submitted_on: datetime | None = None
    approved_by: str | None = None
    approved_on: datetime | None = None
    cancelled_on: datetime | None = None

    @property
    def is_locked(self) -> bool:
        return self.status in LOCKED_STATUSES

    @property
    def has_booking(self) -> bool:
        return bool(self.booking_ref and self.booking_ref.strip())


def _parse_due_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError({"due_date": "Date must be YYYY-MM-DD"}) from None


def _parse_attachment_ids(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError({"attachment_ids": "Attachments must be a list of ids"})
    ids: list[str] = []
    for item in value:
        text = str(item).strip()
        if text and text not in ids:
            ids.append(text)
    return tuple(ids)


def apply_rfp_changes(rfp: PaymentRequest, changes: Mapping[str, Any]) -> PaymentRequest:
    """Return a new RFP snapshot with RFP-only field edits applied.

    Raises:
        ValidationError: if a mirrored or unknown field is edited.
    """
    errors: dict[str, str] = {}
    for name in changes:
        if name in MIRRORED_FIELDS:
            errors[name] = "Copied from the entry; edit the entry instead"
        elif name not in RFP_EDITABLE_FIELDS:
            errors[name] = "Unknown field"
    if errors:
        raise ValidationError(errors)

    values: dict[str, Any] = {}
    for name, value in changes.items():
        if name == "due_date":
            values[name] = _parse_due_date(value)
        elif name == "attachment_ids":
            values[name] = _parse_attachment_ids(value)
        else:
            text = None if value is None else str(value).strip()
            values[name] = text or None
    return replace(rfp, **values) if values else rfp


def sync_from_entry(rfp: PaymentRequest, entry: Entry, amount_in_words: str) -> PaymentRequest:
    """Copy the entry's mirrored values into the RFP.

    Only meaningful while the RFP is a draft; callers check the status.
    """
    return replace(rfp, amount_in_words=amount_in_words, **entry.mirrored_values())


def needs_sync(rfp: PaymentRequest, entry: Entry) -> bool:
    """True when any mirrored value differs from the entry's."""
    return any(
        getattr(rfp, name) != value for name, value in entry.mirrored_values().items()
    )

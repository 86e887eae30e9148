"""
Entries Module (``workbench_modules.entries``).

Responsibility
--------------
The entry snapshot, its lifecycle workflow and its persistence model.
Transition orchestration lives in ``workbench_services.entry_service``;
validation and permission decisions in ``workbench_engines.gate``.

Invariants enforced
-------------------
* ``amount > 0`` for every persisted entry.
* ``booking_ref`` and ``is_no_booking`` are never both set.
* Status changes only along ``ENTRY_WORKFLOW`` transitions.
"""

from workbench_modules.entries.models import (
    EDITABLE_FIELDS,
    MIRRORED_FIELDS,
    PAYMENT_FIELDS,
    Entry,
    EntryKind,
    EntryStatus,
    apply_changes,
)
from workbench_modules.entries.workflows import ENTRY_WORKFLOW

__all__ = [
    "Entry",
    "EntryKind",
    "EntryStatus",
    "EDITABLE_FIELDS",
    "MIRRORED_FIELDS",
    "PAYMENT_FIELDS",
    "apply_changes",
    "ENTRY_WORKFLOW",
]

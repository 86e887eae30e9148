"""
Request-for-Payment Module (``workbench_modules.rfp``).

Responsibility
--------------
The payment-request envelope attached 1:1 to an expense entry: its
snapshot type, workflow and persistence model.  Orchestration, including
coupling to the entry lifecycle, lives in ``workbench_services.rfp_service``.

Invariants enforced
-------------------
* Mirrored fields flow entry -> RFP only, and only while the RFP is a draft.
* A submitted or approved RFP locks the entry's payment fields.
* At most one non-cancelled RFP per entry.
"""

from workbench_modules.rfp.models import (
    LOCKED_STATUSES,
    RFP_EDITABLE_FIELDS,
    PaymentRequest,
    RFPStatus,
    apply_rfp_changes,
    needs_sync,
    sync_from_entry,
)
from workbench_modules.rfp.workflows import RFP_WORKFLOW

__all__ = [
    "PaymentRequest",
    "RFPStatus",
    "LOCKED_STATUSES",
    "RFP_EDITABLE_FIELDS",
    "apply_rfp_changes",
    "needs_sync",
    "sync_from_entry",
    "RFP_WORKFLOW",
]

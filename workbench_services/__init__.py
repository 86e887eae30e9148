"""
workbench_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines
    (workbench_engines/) with database sessions, booking lookup and the
    audit trail.  This is the only layer that commits transactions.

Architecture position:
    Services -- orchestration over engines, modules and kernel.

        workbench_services/ -> workbench_engines/  (allowed)
        workbench_services/ -> workbench_modules/  (allowed)
        workbench_engines/  -> workbench_services/ (FORBIDDEN)
        workbench_kernel/   -> workbench_services/ (FORBIDDEN)

Invariants enforced:
    - Each public mutating method owns its transaction boundary.
    - WorkbenchService is the composition root; no service constructs
      another.
"""

from workbench_kernel.logging_config import get_logger

logger = get_logger("services")

from workbench_services.entry_service import EntryService, EntryView
from workbench_services.reference_data import (
    ReferenceDataProvider,
    StaticReferenceData,
    check_reference_data,
)
from workbench_services.rfp_service import RFPService
from workbench_services.selectors import (
    EntrySelector,
    PaymentRequestSelector,
    PrintableRequest,
)
from workbench_services.workbench_service import WorkbenchService

__all__ = [
    "EntrySelector",
    "EntryService",
    "EntryView",
    "PaymentRequestSelector",
    "PrintableRequest",
    "RFPService",
    "ReferenceDataProvider",
    "StaticReferenceData",
    "WorkbenchService",
    "check_reference_data",
]

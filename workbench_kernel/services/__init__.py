"""Kernel services: imperative shell over the kernel models."""

from workbench_kernel.services.auditor_service import (
    AuditorService,
    AuditTrace,
    AuditTraceEntry,
)

__all__ = ["AuditorService", "AuditTrace", "AuditTraceEntry"]

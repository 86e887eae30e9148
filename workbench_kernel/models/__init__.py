"""Kernel ORM models."""

from workbench_kernel.models.audit_event import AuditAction, AuditEvent

__all__ = ["AuditAction", "AuditEvent"]

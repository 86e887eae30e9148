"""
Typed Exception Hierarchy for the Workbench Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The UI renders "why is this invalid" and "why can't I do this" as distinct,
stable categories.  Callers must be able to tell them apart by type and by
a machine-readable ``code``, never by parsing message text.

Every exception:
  1. Has a typed class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Services raise these internally and convert them into a
``WorkbenchOutcome`` at their public boundary (see
``workbench_kernel.domain.outcomes``).  Only infrastructure failures
(``RegistryUnavailableError``, database errors) cross that boundary as
exceptions.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WorkbenchError (base)
    |
    +-- ValidationError
    +-- PermissionDeniedError
    +-- InvalidStateError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- NotFoundError
    |   +-- EntryNotFoundError
    |   +-- RFPNotFoundError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |   +-- ImmutabilityViolationError
    |
    +-- RegistryUnavailableError
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Field-level errors for the requested tier
Permission      | PERMISSION_DENIED           | Role may not perform the action
State           | INVALID_STATE               | Transition not defined from current status
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Caller's version is stale
Lookup          | ENTRY_NOT_FOUND             | Unknown entry id
                | RFP_NOT_FOUND               | Entry has no active RFP
                | BOOKING_NOT_FOUND           | Unknown booking number in scope
Audit           | AUDIT_CHAIN_BROKEN          | Hash chain validation failed
                | IMMUTABILITY_VIOLATION      | Update/delete of an audit event
Infrastructure  | REGISTRY_UNAVAILABLE        | Booking registry cannot be reached
Config          | CONFIGURATION_ERROR         | Invalid workbench configuration
"""

from __future__ import annotations

from collections.abc import Mapping


class WorkbenchError(Exception):
    """
    Base exception for all workbench errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "WORKBENCH_ERROR"


class ValidationError(WorkbenchError):
    """One or more fields failed validation for the requested tier."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field_errors: Mapping[str, str], message: str | None = None):
        self.field_errors = dict(field_errors)
        if message is None:
            message = "; ".join(
                f"{name}: {text}" for name, text in sorted(self.field_errors.items())
            )
        super().__init__(message)


class PermissionDeniedError(WorkbenchError):
    """The acting role may not perform this action."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, action: str, role: str, reason: str = ""):
        self.action = action
        self.role = role
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Role '{role}' may not perform '{action}'{detail}")


class InvalidStateError(WorkbenchError):
    """The requested transition is not defined from the current status."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        requested: str,
        reason: str = "",
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.requested = requested
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"{entity_type} {entity_id} in status '{current_status}' "
            f"cannot move to '{requested}'{detail}"
        )


# Concurrency-related exceptions


class ConcurrencyError(WorkbenchError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """The caller's expected version does not match the persisted one."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Lookup exceptions


class NotFoundError(WorkbenchError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class EntryNotFoundError(NotFoundError):
    """Entry with given ID was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class RFPNotFoundError(NotFoundError):
    """The entry has no active request for payment."""

    code: str = "RFP_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No active RFP for entry {entry_id}")


# Audit exceptions


class AuditError(WorkbenchError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at event {audit_event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


class ImmutabilityViolationError(AuditError):
    """Attempt to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


# Infrastructure / configuration


class RegistryUnavailableError(WorkbenchError):
    """The booking registry could not be reached.

    Infrastructure failure: never converted into a business outcome.
    """

    code: str = "REGISTRY_UNAVAILABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Booking registry unavailable: {reason}")


class ConfigurationError(WorkbenchError):
    """Workbench configuration is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")

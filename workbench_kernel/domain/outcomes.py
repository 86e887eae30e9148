"""
Service outcome types (``workbench_kernel.domain.outcomes``).

Business conditions (invalid fields, wrong role, undefined transition,
stale version, unknown id) are returned to callers as a frozen
``WorkbenchOutcome`` rather than raised, so UI and API layers can render
per-field messages without exception handling.  ``from_error`` is the one
place where kernel exceptions are mapped onto outcome categories.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from workbench_kernel.exceptions import (
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    WorkbenchError,
)


class OutcomeStatus(str, Enum):
    """Status of a workbench operation."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


_STATUS_BY_ERROR: tuple[tuple[type[WorkbenchError], OutcomeStatus], ...] = (
    (ValidationError, OutcomeStatus.VALIDATION_ERROR),
    (PermissionDeniedError, OutcomeStatus.PERMISSION_DENIED),
    (InvalidStateError, OutcomeStatus.INVALID_STATE),
    (ConcurrencyError, OutcomeStatus.CONFLICT),
    (NotFoundError, OutcomeStatus.NOT_FOUND),
)


@dataclass(frozen=True)
class WorkbenchOutcome:
    """Result of a workbench operation.

    ``entry`` and ``rfp`` always reflect persisted state: on failure they
    carry the unchanged snapshot when one could be loaded.
    """

    status: OutcomeStatus
    entry: Any | None = None
    rfp: Any | None = None
    field_errors: Mapping[str, str] = field(default_factory=dict)
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(
        cls,
        *,
        entry: Any | None = None,
        rfp: Any | None = None,
        message: str | None = None,
    ) -> WorkbenchOutcome:
        return cls(
            status=OutcomeStatus.SUCCESS,
            entry=entry,
            rfp=rfp,
            message=message,
        )

    @classmethod
    def from_error(
        cls,
        error: WorkbenchError,
        *,
        entry: Any | None = None,
        rfp: Any | None = None,
    ) -> WorkbenchOutcome:
        """Map a business exception onto its outcome category.

        Raises the error again if it is not a business condition
        (infrastructure and configuration errors are never converted).
        """
        for error_type, status in _STATUS_BY_ERROR:
            if isinstance(error, error_type):
                # Permission failures never leak field-level errors
                field_errors = (
                    error.field_errors if isinstance(error, ValidationError) else {}
                )
                return cls(
                    status=status,
                    entry=entry,
                    rfp=rfp,
                    field_errors=field_errors,
                    message=str(error),
                    error_code=error.code,
                )
        raise error

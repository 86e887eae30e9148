"""Kernel domain layer: pure value objects, zero I/O."""

from workbench_kernel.domain.actors import Actor, Role
from workbench_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from workbench_kernel.domain.outcomes import OutcomeStatus, WorkbenchOutcome
from workbench_kernel.domain.workflow import (
    Guard,
    Transition,
    ValidationTier,
    Workflow,
)

__all__ = [
    "Actor",
    "Role",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "OutcomeStatus",
    "WorkbenchOutcome",
    "Guard",
    "Transition",
    "ValidationTier",
    "Workflow",
]

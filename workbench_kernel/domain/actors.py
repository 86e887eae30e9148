"""
Acting-user types (``workbench_kernel.domain.actors``).

The role is never process state: every gate evaluation and every
transition receives the Actor explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Workbench roles."""

    PREPARER = "preparer"
    APPROVER = "approver"


@dataclass(frozen=True)
class Actor:
    """The user performing an operation, as supplied by the caller."""

    name: str
    role: Role

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("actor name cannot be empty")
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

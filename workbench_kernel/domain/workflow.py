"""
Canonical workflow types (``workbench_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines.  Used by the entry and RFP
modules so that Guard, Transition, and Workflow are defined once.  A
transition declares which roles may fire it and which validation tier the
gate applies to the resulting snapshot.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* At most one transition per ``(from_state, to_state)`` pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ValidationTier(str, Enum):
    """Strictness of field validation applied before a transition commits."""

    NONE = "none"
    DRAFT = "draft"
    SUBMIT = "submit"
    REASON = "reason"


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the gate does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``permitted_roles`` empty means no ordinary role may request it;
    ``administrative=True`` marks transitions reachable only through a
    privileged service call.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    permitted_roles: tuple[str, ...] = ()
    tier: ValidationTier = ValidationTier.NONE
    administrative: bool = False
    external: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state '{self.initial_state}' "
                "is not a declared state"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition '{t.action}' references "
                    f"unknown state ({t.from_state} -> {t.to_state})"
                )
            key = (t.from_state, t.to_state)
            if key in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition {key}"
                )
            seen.add(key)

    def find_transition(self, from_state: str, to_state: str) -> Transition | None:
        """Return the transition between two states, or None."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def find_action(self, action: str) -> Transition | None:
        """Return the transition with the given action name, or None."""
        for t in self.transitions:
            if t.action == action:
                return t
        return None

    def outgoing(self, from_state: str) -> tuple[Transition, ...]:
        """All transitions leaving ``from_state``."""
        return tuple(t for t in self.transitions if t.from_state == from_state)

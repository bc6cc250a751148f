"""
Canonical workflow types (``payables_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Modules declare their
lifecycles with Guard, Transition and Workflow so that the allowed moves
are data, not scattered ``if`` statements.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; validated at construction.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self):
        if self.initial_state not in self.states:
            raise ValueError(
                f"initial_state {self.initial_state!r} not in states of {self.name}"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Transition {t.from_state}->{t.to_state} of {self.name} "
                    "references an unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Terminal state {t.from_state!r} of {self.name} has an outgoing transition"
                )

    def find_transition(self, from_state: str, to_state: str, action: str) -> Transition | None:
        """Return the matching transition, or None if the move is not allowed."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state and t.action == action:
                return t
        return None

"""
Canonical lifecycle types (``order_kernel.domain.lifecycle``).

Responsibility
--------------
Pure value objects for status state machines.  Guard, Transition and
Lifecycle are defined once here; the order lifecycle itself is declared
in ``order_engines.transitions`` and evaluated there.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Lifecycle.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.  ``failure_reason`` is the
    actionable message shown when the guard blocks.
    Non-goals: does not evaluate the condition -- the guard executor does.
    """
    name: str
    description: str
    failure_reason: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    Contract: frozen.  Guards are evaluated in declaration order; the first
    failing guard is reported.  ``structural_checks=False`` skips the
    aggregate invariant checks (used for cancellation).
    """
    from_state: str
    to_state: str
    action: str
    guards: tuple[Guard, ...] = ()
    structural_checks: bool = True


@dataclass(frozen=True)
class Lifecycle:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Lifecycle {self.name}: initial state {self.initial_state!r} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Lifecycle {self.name}: transition {t.action!r} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Lifecycle {self.name}: terminal state {t.from_state!r} has outgoing transition"
                )

    def find(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def transitions_from(self, state: str) -> tuple[Transition, ...]:
        return tuple(t for t in self.transitions if t.from_state == state)

"""
Canonical workflow types (``approval_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing the proposal state machine: which statuses
exist, which is initial, which are terminal, and which (from, to, action)
transitions are legal.  The matrix decides *which* stage comes next; this
module decides whether a move is structurally allowed at all.

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

from approval_kernel.domain.proposal import TERMINAL_STATUSES, ProposalStatus

ACTION_SUBMIT = "submit"
ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: ProposalStatus
    to_state: ProposalStatus
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for the proposal lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; no transition
    leaves a member of ``terminal_states``.
    """
    name: str
    description: str
    initial_state: ProposalStatus
    states: tuple[ProposalStatus, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[ProposalStatus, ...] = ()

    def allows(self, from_state: ProposalStatus, to_state: ProposalStatus, action: str) -> bool:
        return Transition(from_state, to_state, action) in self.transitions

    def is_terminal(self, state: ProposalStatus) -> bool:
        return state in self.terminal_states


STAGE_STATUSES: tuple[ProposalStatus, ...] = tuple(
    s for s in ProposalStatus
    if s is not ProposalStatus.DRAFT and s not in TERMINAL_STATUSES
)


def _build_transitions() -> tuple[Transition, ...]:
    transitions: list[Transition] = []
    for stage in STAGE_STATUSES:
        transitions.append(Transition(ProposalStatus.DRAFT, stage, ACTION_SUBMIT))
    for stage in STAGE_STATUSES:
        for target in STAGE_STATUSES:
            if target is not stage:
                transitions.append(Transition(stage, target, ACTION_APPROVE))
        transitions.append(Transition(stage, ProposalStatus.APPROVED, ACTION_APPROVE))
        transitions.append(Transition(stage, ProposalStatus.REJECTED, ACTION_REJECT))
    transitions.append(Transition(ProposalStatus.DRAFT, ProposalStatus.REJECTED, ACTION_REJECT))
    return tuple(transitions)


PROPOSAL_WORKFLOW = Workflow(
    name="procurement_proposal",
    description="Matrix-driven multi-stage procurement proposal approval",
    initial_state=ProposalStatus.DRAFT,
    states=tuple(ProposalStatus),
    transitions=_build_transitions(),
    terminal_states=(ProposalStatus.APPROVED, ProposalStatus.REJECTED),
)

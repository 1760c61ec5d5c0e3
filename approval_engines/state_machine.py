"""
approval_engines.state_machine -- Matrix-driven proposal status transitions.

Responsibility:
    Compute the status a proposal moves to after an approval (or a
    submission) and check that a move is structurally legal under
    ``PROPOSAL_WORKFLOW``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Completion first: once every matrix step is approved the next status
      is Approved, regardless of what else the path contains.
    - Fail closed: no next step and not complete raises ``RoutingError``;
      the proposal is never silently advanced.
    - No transition leaves Approved or Rejected.

Failure modes:
    - ``RoutingError`` when the matrix has no step for the proposal.
    - ``TerminalStateError`` / ``InvalidTransitionError`` from
      ``assert_transition``.
"""

from __future__ import annotations

from approval_kernel.domain.ports import ApprovalStep, MatrixProvider
from approval_kernel.domain.proposal import Proposal, ProposalStatus
from approval_kernel.domain.workflow import PROPOSAL_WORKFLOW, Workflow
from approval_kernel.exceptions import (
    InvalidTransitionError,
    RoutingError,
    TerminalStateError,
)


class ApprovalStateMachine:
    """Next-status computation over an injected matrix."""

    def __init__(self, matrix: MatrixProvider, workflow: Workflow = PROPOSAL_WORKFLOW) -> None:
        self._matrix = matrix
        self._workflow = workflow

    @property
    def matrix(self) -> MatrixProvider:
        return self._matrix

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    def next_step(self, proposal: Proposal) -> ApprovalStep | None:
        """The step to open after ``proposal``'s history, or None when complete.

        ``proposal`` is expected to carry the history *after* the current
        decision has been recorded.

        Raises:
            RoutingError: neither complete nor a resolvable next step.
        """
        if self._matrix.is_workflow_complete(proposal):
            return None
        step = self._matrix.next_approval_step(proposal)
        if step is None:
            raise RoutingError(
                str(proposal.proposal_id),
                proposal.status.value,
                "no approval matrix step applies",
            )
        return step

    def next_status(self, proposal: Proposal) -> ProposalStatus:
        step = self.next_step(proposal)
        if step is None:
            return ProposalStatus.APPROVED
        return step.status

    def assert_transition(
        self,
        from_status: ProposalStatus,
        to_status: ProposalStatus,
        action: str,
        proposal_id: str = "",
    ) -> None:
        """Raise unless the workflow defines ``from -> to`` for ``action``."""
        if self._workflow.is_terminal(from_status):
            raise TerminalStateError(proposal_id, from_status.value)
        if not self._workflow.allows(from_status, to_status, action):
            raise InvalidTransitionError(from_status.value, to_status.value)

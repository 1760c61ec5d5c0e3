"""
approval_engines.ledger -- Pure decision-ledger transitions.

Responsibility:
    Compute the new ``(status, history)`` of a proposal for each workflow
    action: open (Created), submit, approve and reject.  Also provides the
    display view of a ledger and the invariant checker every mutation runs
    before returning.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Time comes in as ``now``;
    persistence is the caller's job (one ``ProposalUpdate`` per outcome).

Invariants enforced:
    - Append-only: earlier entries are carried over unchanged, except that
      an approval removes every open Pending entry before appending its
      Approved entry (replace-then-append, in one step).
    - Exactly one Pending entry while the proposal is between submission
      and a terminal status, and its stage matches the status.
    - Approved and Rejected admit no further mutation.
    - A rejection always carries a comment.

Failure modes:
    - ``TerminalStateError`` on any mutation of an Approved/Rejected proposal.
    - ``InvalidTransitionError`` when the action is not legal from the
      current status (e.g. approving a Draft, submitting twice).
    - ``MissingCommentError`` on reject without a comment.
    - ``RoutingError`` (from the state machine) when no next step resolves.
    - ``LedgerInvariantError`` if a computed ledger breaks an invariant.
"""

from __future__ import annotations

from datetime import datetime

from approval_engines.state_machine import ApprovalStateMachine
from approval_kernel.domain.ports import ApprovalStep
from approval_kernel.domain.proposal import (
    TERMINAL_STATUSES,
    ApprovalOutcome,
    HistoryAction,
    HistoryEntry,
    Proposal,
    ProposalStatus,
)
from approval_kernel.domain.roles import Actor
from approval_kernel.domain.workflow import ACTION_APPROVE, ACTION_REJECT, ACTION_SUBMIT
from approval_kernel.exceptions import (
    InvalidTransitionError,
    LedgerInvariantError,
    MissingCommentError,
    TerminalStateError,
)

CREATED_STAGE = "Created"
SUBMITTED_STAGE = "Submitted"
CREATED_COMMENT = "Proposal created"
SUBMITTED_COMMENT = "Submitted for approval"


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------


def pending_entry(step: ApprovalStep) -> HistoryEntry:
    """Open (unsigned) entry for a matrix step."""
    return HistoryEntry(
        stage=step.stage,
        role=step.role_name,
        action=HistoryAction.PENDING,
    )


def open_history(
    creator: str,
    creator_role: str,
    now: datetime,
    comment: str = CREATED_COMMENT,
) -> tuple[HistoryEntry, ...]:
    """Initial ledger of a new Draft proposal: the Created entry."""
    return (
        HistoryEntry(
            stage=CREATED_STAGE,
            role=creator_role,
            action=HistoryAction.CREATED,
            approver=creator,
            date=now,
            comment=comment,
        ),
    )


def advance(
    history: tuple[HistoryEntry, ...],
    decision: HistoryEntry,
    next_step: ApprovalStep | None,
) -> tuple[HistoryEntry, ...]:
    """Drop every Pending entry, append ``decision``, then open ``next_step``."""
    kept = tuple(e for e in history if not e.is_pending)
    opened = (pending_entry(next_step),) if next_step is not None else ()
    return kept + (decision,) + opened


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _reject_terminal(proposal: Proposal) -> None:
    if proposal.is_terminal:
        raise TerminalStateError(str(proposal.proposal_id), proposal.status.value)


def submit(
    actor: Actor,
    proposal: Proposal,
    *,
    machine: ApprovalStateMachine,
    now: datetime,
    role_name: str | None = None,
    approver: str | None = None,
    comment: str = SUBMITTED_COMMENT,
) -> ApprovalOutcome:
    """Move a Draft into its first matrix stage.

    Appends a Submitted entry and the Pending entry of the first step.
    ``role_name``/``approver`` override what is recorded (admin override).
    """
    _reject_terminal(proposal)
    if proposal.status != ProposalStatus.DRAFT:
        raise InvalidTransitionError(proposal.status.value, "submitted")

    submitted = HistoryEntry(
        stage=SUBMITTED_STAGE,
        role=role_name or actor.role_name,
        action=HistoryAction.SUBMITTED,
        approver=approver or actor.name,
        date=now,
        comment=comment,
    )
    recorded = tuple(e for e in proposal.history if not e.is_pending) + (submitted,)
    step = machine.next_step(proposal.with_ledger(proposal.status, recorded))
    next_status = step.status if step is not None else ProposalStatus.APPROVED
    machine.assert_transition(
        proposal.status, next_status, ACTION_SUBMIT, str(proposal.proposal_id),
    )

    history = recorded + ((pending_entry(step),) if step is not None else ())
    check_invariants(next_status, history)
    return ApprovalOutcome(
        status=next_status,
        history=history,
        current_approver=step.role_name if step is not None else None,
    )


def approve(
    actor: Actor,
    proposal: Proposal,
    comment: str | None = None,
    *,
    machine: ApprovalStateMachine,
    now: datetime,
    role_name: str | None = None,
    approver: str | None = None,
) -> ApprovalOutcome:
    """Record an approval of the current stage and open the next one.

    The next status is computed against the history *including* the new
    Approved entry, so the matrix sees the step as done.
    """
    _reject_terminal(proposal)
    if proposal.status == ProposalStatus.DRAFT:
        raise InvalidTransitionError(proposal.status.value, ProposalStatus.APPROVED.value)

    decision = HistoryEntry(
        stage=proposal.status.stage_name,
        role=role_name or actor.role_name,
        action=HistoryAction.APPROVED,
        approver=approver or actor.name,
        date=now,
        comment=comment,
    )
    recorded = tuple(e for e in proposal.history if not e.is_pending) + (decision,)
    step = machine.next_step(proposal.with_ledger(proposal.status, recorded))
    next_status = step.status if step is not None else ProposalStatus.APPROVED
    machine.assert_transition(
        proposal.status, next_status, ACTION_APPROVE, str(proposal.proposal_id),
    )

    history = advance(proposal.history, decision, step)
    check_invariants(next_status, history)
    return ApprovalOutcome(
        status=next_status,
        history=history,
        current_approver=step.role_name if step is not None else None,
    )


def reject(
    actor: Actor,
    proposal: Proposal,
    comment: str | None,
    *,
    now: datetime,
    role_name: str | None = None,
    approver: str | None = None,
) -> ApprovalOutcome:
    """Record a rejection and finalize.

    Earlier entries, including the open Pending entry, are left untouched;
    ``visible_timeline`` hides the stale Pending entry.
    """
    _reject_terminal(proposal)
    if comment is None or not comment.strip():
        raise MissingCommentError(str(proposal.proposal_id), "reject")

    decision = HistoryEntry(
        stage=proposal.status.stage_name,
        role=role_name or actor.role_name,
        action=HistoryAction.REJECTED,
        approver=approver or actor.name,
        date=now,
        comment=comment.strip(),
    )
    history = proposal.history + (decision,)
    check_invariants(ProposalStatus.REJECTED, history)
    return ApprovalOutcome(status=ProposalStatus.REJECTED, history=history)


# ---------------------------------------------------------------------------
# Views and checks
# ---------------------------------------------------------------------------


def visible_timeline(proposal: Proposal) -> tuple[HistoryEntry, ...]:
    """History as shown to users.

    Pending entries are hidden once the proposal is terminal, and for any
    stage that already has an Approved or Rejected entry.
    """
    entries = proposal.history
    if proposal.status in TERMINAL_STATUSES:
        entries = tuple(e for e in entries if not e.is_pending)

    decided_stages = {e.stage for e in entries if e.is_decision}
    return tuple(
        e for e in entries
        if not e.is_pending or e.stage not in decided_stages
    )


def check_invariants(status: ProposalStatus, history: tuple[HistoryEntry, ...]) -> None:
    """Raise ``LedgerInvariantError`` if ``history`` is not valid for ``status``."""
    pending = [e for e in history if e.is_pending]

    for entry in pending:
        if entry.approver or entry.date is not None:
            raise LedgerInvariantError(
                status.value, "pending_is_unsigned",
                f"Pending entry {entry.entry_id} carries an approver or date",
            )

    for entry in history:
        if entry.action == HistoryAction.REJECTED and not (entry.comment or "").strip():
            raise LedgerInvariantError(
                status.value, "rejection_has_comment",
                f"Rejected entry {entry.entry_id} has no comment",
            )

    if status == ProposalStatus.DRAFT:
        if pending:
            raise LedgerInvariantError(
                status.value, "draft_has_no_pending",
                f"{len(pending)} Pending entries on a Draft",
            )
        return

    if status == ProposalStatus.APPROVED:
        if pending:
            raise LedgerInvariantError(
                status.value, "approved_has_no_pending",
                f"{len(pending)} Pending entries on an Approved proposal",
            )
        if not history or history[-1].action != HistoryAction.APPROVED:
            raise LedgerInvariantError(
                status.value, "terminal_has_decision",
                "last entry of an Approved proposal is not Approved",
            )
        return

    if status == ProposalStatus.REJECTED:
        if not any(e.action == HistoryAction.REJECTED for e in history):
            raise LedgerInvariantError(
                status.value, "terminal_has_decision",
                "Rejected proposal has no Rejected entry",
            )
        return

    if len(pending) != 1:
        raise LedgerInvariantError(
            status.value, "single_pending",
            f"expected exactly one Pending entry, found {len(pending)}",
        )
    if pending[0].stage != status.stage_name:
        raise LedgerInvariantError(
            status.value, "pending_matches_status",
            f"Pending stage '{pending[0].stage}' does not match status",
        )

"""
Tests for the pure decision-ledger transitions.

Tests cover:
- open_history / submit: Created, Submitted and the first Pending entry
- approve: replace-then-append, exactly one Pending, completion
- reject: mandatory comment, terminal, stale Pending kept but hidden
- visible_timeline filtering
- check_invariants: every named invariant
"""

from datetime import datetime, timezone

import pytest

from approval_engines import ledger
from approval_kernel.domain.proposal import HistoryAction, HistoryEntry, ProposalStatus
from approval_kernel.domain.roles import Actor
from approval_kernel.exceptions import (
    InvalidTransitionError,
    LedgerInvariantError,
    MissingCommentError,
    TerminalStateError,
)

NOW = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)

UNIT_HEAD = Actor("Agus", "Unit Head IT Department JAHO", "IT", "JAHO")
SECTION_HEAD = Actor("Budi Santoso", "Section Head IT Department JAHO", "IT", "JAHO")


def pending(stage: str, role: str = "r") -> HistoryEntry:
    return HistoryEntry(stage=stage, role=role, action=HistoryAction.PENDING)


def decided(action: HistoryAction, stage: str = "Review 1", comment: str | None = "ok") -> HistoryEntry:
    return HistoryEntry(
        stage=stage, role="r", action=action, approver="a", date=NOW, comment=comment,
    )


# =========================================================================
# Creation and submission
# =========================================================================


class TestOpenHistory:
    def test_created_entry(self):
        (entry,) = ledger.open_history("Rina", "Creator IT Department JAHO", NOW)

        assert entry.action == HistoryAction.CREATED
        assert entry.stage == ledger.CREATED_STAGE
        assert entry.approver == "Rina"
        assert entry.date == NOW
        assert entry.comment == ledger.CREATED_COMMENT


class TestSubmit:
    def test_opens_first_step(self, make_proposal, make_actor, state_machine):
        draft = make_proposal(amount=1000)
        creator = make_actor(name="Rina Wijaya", role_name="Creator IT Department JAHO")

        outcome = ledger.submit(creator, draft, machine=state_machine, now=NOW)

        assert outcome.status == ProposalStatus.ON_UNIT_HEAD_APPROVAL
        assert [e.action for e in outcome.history] == [
            HistoryAction.CREATED,
            HistoryAction.SUBMITTED,
            HistoryAction.PENDING,
        ]
        assert outcome.history[1].comment == ledger.SUBMITTED_COMMENT
        assert outcome.history[-1].role == "Unit Head IT Department JAHO"
        assert outcome.history[-1].stage == "Unit Head Approval"
        assert outcome.current_approver == "Unit Head IT Department JAHO"
        assert outcome.pending_count == 1

    def test_created_entry_is_carried_over(self, make_proposal, make_actor, state_machine):
        draft = make_proposal()

        outcome = ledger.submit(make_actor(), draft, machine=state_machine, now=NOW)

        assert outcome.history[0] == draft.history[0]

    def test_records_overrides(self, make_proposal, state_machine):
        admin = Actor("Dewi", "Administrator")

        outcome = ledger.submit(
            admin, make_proposal(),
            machine=state_machine, now=NOW,
            role_name="Verificator", approver="Dewi (as Verificator)",
        )

        submitted = outcome.history[1]
        assert submitted.role == "Verificator"
        assert submitted.approver == "Dewi (as Verificator)"

    def test_twice_is_invalid(self, submitted_proposal, make_actor, state_machine):
        with pytest.raises(InvalidTransitionError):
            ledger.submit(make_actor(), submitted_proposal(), machine=state_machine, now=NOW)

    @pytest.mark.parametrize("status", [ProposalStatus.APPROVED, ProposalStatus.REJECTED])
    def test_terminal(self, make_proposal, make_actor, state_machine, status):
        with pytest.raises(TerminalStateError):
            ledger.submit(make_actor(), make_proposal(status), machine=state_machine, now=NOW)


# =========================================================================
# Approval
# =========================================================================


class TestApprove:
    def test_replaces_pending_and_opens_next(self, submitted_proposal, state_machine):
        proposal = submitted_proposal(amount=1000)

        outcome = ledger.approve(UNIT_HEAD, proposal, "fine", machine=state_machine, now=NOW)

        assert outcome.status == ProposalStatus.ON_SECTION_HEAD_APPROVAL
        assert [e.action for e in outcome.history] == [
            HistoryAction.CREATED,
            HistoryAction.SUBMITTED,
            HistoryAction.APPROVED,
            HistoryAction.PENDING,
        ]
        decision = outcome.history[2]
        assert decision.stage == "Unit Head Approval"
        assert decision.approver == "Agus"
        assert decision.role == "Unit Head IT Department JAHO"
        assert decision.comment == "fine"
        assert decision.date == NOW
        assert outcome.current_approver == "Section Head IT Department JAHO"
        assert outcome.pending_count == 1

    def test_last_step_approves(self, submitted_proposal, state_machine):
        proposal = submitted_proposal(amount=1000)
        first = ledger.approve(UNIT_HEAD, proposal, machine=state_machine, now=NOW)
        proposal = proposal.with_ledger(first.status, first.history)

        outcome = ledger.approve(SECTION_HEAD, proposal, machine=state_machine, now=NOW)

        assert outcome.status == ProposalStatus.APPROVED
        assert outcome.pending_count == 0
        assert outcome.current_approver is None
        assert outcome.history[-1].action == HistoryAction.APPROVED
        assert outcome.history[-1].stage == "Section Head Approval"

    def test_two_step_flow_records_both_approvers(self, submitted_proposal, state_machine):
        proposal = submitted_proposal(amount=1000)
        for actor in (UNIT_HEAD, SECTION_HEAD):
            outcome = ledger.approve(actor, proposal, machine=state_machine, now=NOW)
            proposal = proposal.with_ledger(outcome.status, outcome.history)

        approvals = [e for e in proposal.history if e.action == HistoryAction.APPROVED]
        assert [e.approver for e in approvals] == ["Agus", "Budi Santoso"]
        assert proposal.status == ProposalStatus.APPROVED

    def test_prior_entries_unchanged(self, submitted_proposal, state_machine):
        proposal = submitted_proposal()

        outcome = ledger.approve(UNIT_HEAD, proposal, machine=state_machine, now=NOW)

        assert outcome.history[:2] == proposal.history[:2]

    def test_draft_is_invalid(self, make_proposal, state_machine):
        with pytest.raises(InvalidTransitionError):
            ledger.approve(UNIT_HEAD, make_proposal(), machine=state_machine, now=NOW)

    @pytest.mark.parametrize("status", [ProposalStatus.APPROVED, ProposalStatus.REJECTED])
    def test_terminal(self, make_proposal, state_machine, status):
        with pytest.raises(TerminalStateError):
            ledger.approve(UNIT_HEAD, make_proposal(status), machine=state_machine, now=NOW)

    def test_advance_drops_every_pending(self):
        history = (pending("A"), decided(HistoryAction.APPROVED, "B"), pending("C"))
        decision = decided(HistoryAction.APPROVED, "C")

        result = ledger.advance(history, decision, None)

        assert result == (history[1], decision)


# =========================================================================
# Rejection
# =========================================================================


class TestReject:
    def test_finalizes_and_keeps_pending(self, submitted_proposal):
        proposal = submitted_proposal()

        outcome = ledger.reject(UNIT_HEAD, proposal, "  over budget  ", now=NOW)

        assert outcome.status == ProposalStatus.REJECTED
        assert outcome.history[:-1] == proposal.history
        last = outcome.history[-1]
        assert last.action == HistoryAction.REJECTED
        assert last.stage == "Unit Head Approval"
        assert last.comment == "over budget"
        assert outcome.current_approver is None

    @pytest.mark.parametrize("comment", [None, "", "   "])
    def test_comment_required(self, submitted_proposal, comment):
        with pytest.raises(MissingCommentError) as exc_info:
            ledger.reject(UNIT_HEAD, submitted_proposal(), comment, now=NOW)

        assert exc_info.value.code == "MISSING_COMMENT"

    def test_terminal_checked_before_comment(self, make_proposal):
        with pytest.raises(TerminalStateError):
            ledger.reject(UNIT_HEAD, make_proposal(ProposalStatus.REJECTED), None, now=NOW)

    def test_draft_can_be_rejected(self, make_proposal):
        outcome = ledger.reject(UNIT_HEAD, make_proposal(), "duplicate request", now=NOW)

        assert outcome.status == ProposalStatus.REJECTED
        assert outcome.history[-1].stage == "Draft"


# =========================================================================
# Timeline
# =========================================================================


class TestVisibleTimeline:
    def test_open_step_is_shown(self, submitted_proposal):
        proposal = submitted_proposal()

        assert ledger.visible_timeline(proposal) == proposal.history

    def test_stale_pending_hidden_after_reject(self, submitted_proposal):
        proposal = submitted_proposal()
        outcome = ledger.reject(UNIT_HEAD, proposal, "no", now=NOW)

        timeline = ledger.visible_timeline(proposal.with_ledger(outcome.status, outcome.history))

        assert all(not e.is_pending for e in timeline)
        assert len(timeline) == len(outcome.history) - 1

    def test_pending_hidden_for_decided_stage(self, make_proposal):
        history = (decided(HistoryAction.APPROVED, "Review 1"), pending("Review 1"), pending("Review 2"))
        proposal = make_proposal(ProposalStatus.ON_REVIEW_2, history=history)

        timeline = ledger.visible_timeline(proposal)

        assert [e.stage for e in timeline] == ["Review 1", "Review 2"]


# =========================================================================
# Invariants
# =========================================================================


class TestCheckInvariants:
    def _violation(self, status, history) -> str:
        with pytest.raises(LedgerInvariantError) as exc_info:
            ledger.check_invariants(status, history)
        assert exc_info.value.code == "LEDGER_INVARIANT_VIOLATION"
        return exc_info.value.invariant

    def test_valid_open_stage(self):
        ledger.check_invariants(ProposalStatus.ON_REVIEW_1, (pending("Review 1"),))

    def test_signed_pending(self):
        entry = HistoryEntry(stage="Review 1", role="r", action=HistoryAction.PENDING, approver="x")

        assert self._violation(ProposalStatus.ON_REVIEW_1, (entry,)) == "pending_is_unsigned"

    def test_rejection_without_comment(self):
        history = (decided(HistoryAction.REJECTED, comment=None),)

        assert self._violation(ProposalStatus.REJECTED, history) == "rejection_has_comment"

    def test_draft_with_pending(self):
        assert self._violation(ProposalStatus.DRAFT, (pending("Review 1"),)) == "draft_has_no_pending"

    def test_approved_with_pending(self):
        history = (decided(HistoryAction.APPROVED), pending("Review 2"))

        assert self._violation(ProposalStatus.APPROVED, history) == "approved_has_no_pending"

    def test_approved_without_final_decision(self):
        assert self._violation(ProposalStatus.APPROVED, ()) == "terminal_has_decision"

    def test_rejected_without_decision(self):
        assert self._violation(ProposalStatus.REJECTED, ()) == "terminal_has_decision"

    def test_two_pending(self):
        history = (pending("Review 1"), pending("Review 1"))

        assert self._violation(ProposalStatus.ON_REVIEW_1, history) == "single_pending"

    def test_no_pending_on_open_stage(self):
        assert self._violation(ProposalStatus.ON_REVIEW_1, ()) == "single_pending"

    def test_pending_stage_mismatch(self):
        history = (pending("Review 2"),)

        assert self._violation(ProposalStatus.ON_REVIEW_1, history) == "pending_matches_status"

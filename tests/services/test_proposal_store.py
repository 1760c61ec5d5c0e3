"""
Tests for SqlAlchemyProposalStore and SqlAlchemyActorDirectory.

Tests cover:
- add / get / list_proposals
- update: compare-and-swap on version, history reconciliation
  (replace-then-append), sequence numbers never reused
- Dropping a decided entry from a patch is refused
- Actor lookup: active actors only
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from approval_engines import ledger
from approval_kernel.domain.ports import ProposalUpdate
from approval_kernel.domain.proposal import ProposalStatus
from approval_kernel.domain.roles import Actor
from approval_kernel.exceptions import (
    ActorNotFoundError,
    ImmutabilityViolationError,
    OptimisticLockError,
    ProposalNotFoundError,
)
from approval_kernel.models import ActorModel, ProposalHistoryModel

UNIT_HEAD = Actor("Agus", "Unit Head IT Department JAHO", "IT", "JAHO")


def patch_from(outcome, expected_version: int) -> ProposalUpdate:
    return ProposalUpdate(
        status=outcome.status,
        history=outcome.history,
        current_approver=outcome.current_approver,
        expected_version=expected_version,
    )


class TestAddAndGet:
    def test_add_returns_stored_snapshot(self, proposal_store, make_proposal):
        proposal = make_proposal(proposal_no="PR-7")

        stored = proposal_store.add(proposal)

        assert stored.proposal_id == proposal.proposal_id
        assert stored.proposal_no == "PR-7"
        assert stored.version == 1
        assert stored.history == proposal.history

    def test_get(self, proposal_store, submitted_proposal):
        proposal = submitted_proposal()
        proposal_store.add(proposal)

        loaded = proposal_store.get(proposal.proposal_id)

        assert loaded.status == ProposalStatus.ON_UNIT_HEAD_APPROVAL
        assert loaded.current_pending.role == "Unit Head IT Department JAHO"

    def test_get_unknown(self, proposal_store):
        missing = uuid4()

        with pytest.raises(ProposalNotFoundError) as exc_info:
            proposal_store.get(missing)

        assert exc_info.value.proposal_id == str(missing)

    def test_add_is_logged(self, proposal_store, make_proposal, captured_logs):
        proposal_store.add(make_proposal())

        assert any(r["message"] == "proposal_stored" for r in captured_logs())


class TestListProposals:
    def test_ordered_by_number(self, proposal_store, make_proposal):
        for number in ("PR-3", "PR-1", "PR-2"):
            proposal_store.add(make_proposal(proposal_no=number))

        assert [p.proposal_no for p in proposal_store.list_proposals()] == ["PR-1", "PR-2", "PR-3"]

    def test_filtered_by_id(self, proposal_store, make_proposal):
        first = proposal_store.add(make_proposal(proposal_no="PR-1"))
        proposal_store.add(make_proposal(proposal_no="PR-2"))

        result = proposal_store.list_proposals([first.proposal_id])

        assert [p.proposal_id for p in result] == [first.proposal_id]


class TestUpdate:
    def test_applies_patch_and_bumps_version(
        self, proposal_store, submitted_proposal, state_machine, deterministic_clock,
    ):
        proposal = proposal_store.add(submitted_proposal())
        outcome = ledger.approve(
            UNIT_HEAD, proposal, machine=state_machine, now=deterministic_clock.now(),
        )

        updated = proposal_store.update(proposal.proposal_id, patch_from(outcome, 1))

        assert updated.version == 2
        assert updated.status == ProposalStatus.ON_SECTION_HEAD_APPROVAL
        assert updated.current_approver == "Section Head IT Department JAHO"
        assert [e.entry_id for e in updated.history] == [e.entry_id for e in outcome.history]

    def test_replaced_pending_row_is_deleted(
        self, session, proposal_store, submitted_proposal, state_machine, deterministic_clock,
    ):
        proposal = proposal_store.add(submitted_proposal())
        outcome = ledger.approve(
            UNIT_HEAD, proposal, machine=state_machine, now=deterministic_clock.now(),
        )

        proposal_store.update(proposal.proposal_id, patch_from(outcome, 1))

        rows = list(
            session.scalars(
                select(ProposalHistoryModel)
                .where(ProposalHistoryModel.proposal_id == proposal.proposal_id)
                .order_by(ProposalHistoryModel.sequence)
            )
        )
        assert [r.action for r in rows] == ["Created", "Submitted", "Approved", "Pending"]
        assert [r.sequence for r in rows] == [1, 2, 4, 5]

    def test_stale_version_is_refused(
        self, proposal_store, submitted_proposal, state_machine, deterministic_clock,
    ):
        proposal = proposal_store.add(submitted_proposal())
        outcome = ledger.approve(
            UNIT_HEAD, proposal, machine=state_machine, now=deterministic_clock.now(),
        )
        proposal_store.update(proposal.proposal_id, patch_from(outcome, 1))

        with pytest.raises(OptimisticLockError) as exc_info:
            proposal_store.update(proposal.proposal_id, patch_from(outcome, 1))

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert proposal_store.get(proposal.proposal_id).version == 2

    def test_unknown_proposal(self, proposal_store):
        patch = ProposalUpdate(ProposalStatus.REJECTED, (), None, 1)

        with pytest.raises(ProposalNotFoundError):
            proposal_store.update(uuid4(), patch)

    def test_dropping_decided_entry_is_refused(self, proposal_store, submitted_proposal):
        proposal = proposal_store.add(submitted_proposal())
        patch = ProposalUpdate(
            status=proposal.status,
            history=proposal.history[1:],
            current_approver=proposal.current_approver,
            expected_version=1,
        )

        with pytest.raises(ImmutabilityViolationError):
            proposal_store.update(proposal.proposal_id, patch)

    def test_reject_keeps_every_row(
        self, proposal_store, submitted_proposal, deterministic_clock,
    ):
        proposal = proposal_store.add(submitted_proposal())
        outcome = ledger.reject(UNIT_HEAD, proposal, "no budget", now=deterministic_clock.now())

        updated = proposal_store.update(proposal.proposal_id, patch_from(outcome, 1))

        assert updated.status == ProposalStatus.REJECTED
        assert len(updated.history) == 4
        assert updated.current_approver is None


class TestActorDirectory:
    def test_get_actor(self, actor_directory, make_actor):
        actor = make_actor(name="Agus", role_name="Unit Head IT Department JAHO")
        actor_directory.add(actor)

        assert actor_directory.get_actor("Agus") == actor

    def test_unknown(self, actor_directory):
        with pytest.raises(ActorNotFoundError) as exc_info:
            actor_directory.get_actor("Nobody")

        assert exc_info.value.actor_name == "Nobody"

    def test_inactive_actor_is_not_found(self, session, actor_directory, make_actor):
        actor_directory.add(make_actor(name="Left"))
        model = session.scalars(select(ActorModel).where(ActorModel.name == "Left")).one()
        model.is_active = False
        session.flush()

        with pytest.raises(ActorNotFoundError):
            actor_directory.get_actor("Left")

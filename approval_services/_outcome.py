"""Shared helpers for the approval services: actor resolution, stale-snapshot
detection and persistence."""

from __future__ import annotations

from approval_kernel.domain.ports import ActorDirectory, ProposalStore, ProposalUpdate
from approval_kernel.domain.proposal import ApprovalOutcome, Proposal
from approval_kernel.domain.roles import Actor
from approval_kernel.exceptions import ActorNotFoundError

STAGE_ALREADY_DECIDED = "stage already decided"


def resolve_actor(directory: ActorDirectory | None, actor: Actor | str) -> Actor:
    """Accept an Actor as-is, or look a name up in the directory."""
    if isinstance(actor, Actor):
        return actor
    if directory is None:
        raise ActorNotFoundError(actor)
    return directory.get_actor(actor)


def is_stale(snapshot: Proposal, current: Proposal) -> bool:
    """True when the stage ``snapshot`` was taken at is no longer the stored one."""
    return snapshot.status != current.status


def persist_outcome(
    store: ProposalStore,
    proposal: Proposal,
    outcome: ApprovalOutcome,
) -> Proposal:
    """Write ``outcome`` as a single compare-and-swap patch against ``proposal.version``."""
    return store.update(
        proposal.proposal_id,
        ProposalUpdate(
            status=outcome.status,
            history=outcome.history,
            current_approver=outcome.current_approver,
            expected_version=proposal.version,
        ),
    )

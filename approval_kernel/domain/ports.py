"""
Collaborator interfaces (``approval_kernel.domain.ports``).

Responsibility
--------------
Read-only repository protocols injected into the engines and services:
the approval matrix, the actor directory, and the proposal store that
receives the single persistence patch per decision.

Architecture position
---------------------
**Kernel domain layer** -- protocols and value objects only.  ZERO I/O.

Invariants enforced
-------------------
* The matrix and directory are never mutated by the kernel.
* ``ProposalStore.update`` is a compare-and-swap: the store must reject the
  patch when the stored version differs from ``expected_version``.  This is
  where single-writer-per-proposal is guaranteed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from approval_kernel.domain.proposal import HistoryEntry, Proposal, ProposalStatus
from approval_kernel.domain.roles import Actor, Role


@dataclass(frozen=True)
class ApprovalStep:
    """One resolved step of a proposal's approval path."""

    status: ProposalStatus
    role: Role

    @property
    def role_name(self) -> str:
        return self.role.name

    @property
    def stage(self) -> str:
        return self.status.stage_name


@dataclass(frozen=True)
class ProposalUpdate:
    """Persistence patch issued once per ledger mutation."""

    status: ProposalStatus
    history: tuple[HistoryEntry, ...]
    current_approver: str | None
    expected_version: int


class MatrixProvider(Protocol):
    """Ordered approval configuration for a proposal."""

    def approval_path(self, proposal: Proposal) -> tuple[ApprovalStep, ...] | None:
        """Full ordered path, or None when no matrix entry applies."""
        ...

    def next_approval_step(self, proposal: Proposal) -> ApprovalStep | None:
        """The step after the ones already approved, or None."""
        ...

    def is_workflow_complete(self, proposal: Proposal) -> bool:
        """True when every step of the path has been approved."""
        ...


class ActorDirectory(Protocol):
    """Resolves actors by identity. Read-only."""

    def get_actor(self, name: str) -> Actor:
        """Raise ActorNotFoundError if the name is unknown."""
        ...


class ProposalStore(Protocol):
    """Persistence collaborator for proposals."""

    def add(self, proposal: Proposal) -> Proposal:
        """Persist a new proposal with its initial history."""
        ...

    def get(self, proposal_id: UUID) -> Proposal:
        """Raise ProposalNotFoundError if the id is unknown."""
        ...

    def update(self, proposal_id: UUID, patch: ProposalUpdate) -> Proposal:
        """Apply the patch atomically; raise OptimisticLockError on version mismatch."""
        ...

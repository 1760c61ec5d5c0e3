"""
Pure domain layer.

This module contains pure value objects and collaborator protocols
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files
- I/O (time is injected through Clock)

All domain objects are immutable and deterministic.
"""

from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.ports import (
    ActorDirectory,
    ApprovalStep,
    MatrixProvider,
    ProposalStore,
    ProposalUpdate,
)
from approval_kernel.domain.proposal import (
    TERMINAL_STATUSES,
    ApprovalOutcome,
    HistoryAction,
    HistoryEntry,
    Proposal,
    ProposalStatus,
)
from approval_kernel.domain.roles import ADMINISTRATOR, Actor, Role, RoleKind
from approval_kernel.domain.workflow import PROPOSAL_WORKFLOW, Transition, Workflow

__all__ = [
    "ADMINISTRATOR",
    "Actor",
    "ActorDirectory",
    "ApprovalOutcome",
    "ApprovalStep",
    "Clock",
    "DeterministicClock",
    "HistoryAction",
    "HistoryEntry",
    "MatrixProvider",
    "PROPOSAL_WORKFLOW",
    "Proposal",
    "ProposalStatus",
    "ProposalStore",
    "ProposalUpdate",
    "Role",
    "RoleKind",
    "SystemClock",
    "TERMINAL_STATUSES",
    "Transition",
    "Workflow",
]

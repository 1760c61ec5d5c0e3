"""Session-backed kernel services: the proposal store and actor directory."""

from approval_kernel.services.actor_directory import SqlAlchemyActorDirectory
from approval_kernel.services.base import BaseService
from approval_kernel.services.proposal_store import SqlAlchemyProposalStore

__all__ = [
    "BaseService",
    "SqlAlchemyActorDirectory",
    "SqlAlchemyProposalStore",
]

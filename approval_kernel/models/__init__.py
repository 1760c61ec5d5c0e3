"""ORM models for the approval kernel."""

from approval_kernel.models.actor import ActorModel
from approval_kernel.models.proposal import ProposalHistoryModel, ProposalModel

__all__ = [
    "ActorModel",
    "ProposalHistoryModel",
    "ProposalModel",
]

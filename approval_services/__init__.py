"""
approval_services -- Orchestrating services for the approval workflow.

Services here compose the pure engines (``approval_engines``) with the
kernel's collaborators (proposal store, actor directory, clock) and are
the entry points callers use.
"""

from approval_services.admin_override import AdminOverrideService, impersonation_label
from approval_services.approval_service import ApprovalService

__all__ = [
    "AdminOverrideService",
    "ApprovalService",
    "impersonation_label",
]

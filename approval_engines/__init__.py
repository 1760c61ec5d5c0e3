"""
Approval Engines - Pure routing, authorization and ledger computations.

Everything in this package is deterministic and side-effect free:
no database, no clock reads, no logging.  Services in
``approval_kernel.services`` compose these and persist the results.

Usage:
    from approval_engines import (
        ApprovalStateMachine,
        AuthorizationGuard,
        ConfiguredApprovalMatrix,
        RoutingResolver,
        ledger,
    )

    resolver = RoutingResolver()
    matrix = ConfiguredApprovalMatrix(get_active_matrix(), resolver)
    machine = ApprovalStateMachine(matrix)
    outcome = ledger.approve(actor, proposal, machine=machine, now=clock.now())
"""

from approval_engines import ledger
from approval_engines.authorization import AuthorizationDecision, AuthorizationGuard
from approval_engines.matrix import ConfiguredApprovalMatrix, select_band
from approval_engines.routing import (
    STATUS_ROLE_KINDS,
    RoutingResolver,
    chief_operation_entity,
)
from approval_engines.state_machine import ApprovalStateMachine

__all__ = [
    "ApprovalStateMachine",
    "AuthorizationDecision",
    "AuthorizationGuard",
    "ConfiguredApprovalMatrix",
    "RoutingResolver",
    "STATUS_ROLE_KINDS",
    "chief_operation_entity",
    "ledger",
    "select_band",
]

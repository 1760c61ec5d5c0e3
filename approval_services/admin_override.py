"""
approval_services.admin_override -- Administrator decisions on behalf of a role.

Responsibility:
    Lets an administrator approve or reject a proposal at any non-terminal
    stage while recording which role they stood in for.  Reuses the
    ledger transitions unchanged; only authorization and the recorded
    approver/role differ.

Architecture position:
    Services layer.  May import from approval_engines/ (pure engines) and
    approval_kernel/ (domain, exceptions, logging).

Invariants enforced:
    - Authorization is "actor is an administrator and the proposal is
      non-terminal"; role and scope are not checked.  The caller's snapshot
      must still be at the stored stage, so a repeated override is refused
      instead of deciding the next stage.
    - The ledger records ``"<admin name> (as <role>)"`` as approver and the
      impersonated role as role, so the admin's real identity stays on
      the audit trail.
    - Terminality is never bypassed, administrators included.
    - A Draft is moved through the submission transition, not approved.

Failure modes:
    - MissingRoleError when no impersonated role is given.
    - TerminalStateError on Approved/Rejected proposals.
    - AuthorizationError when the actor is not an administrator or the
      snapshot is stale.
    - MissingCommentError on admin_reject without a comment.
    - OptimisticLockError when the proposal changed underneath.
"""

from __future__ import annotations

from approval_engines import ledger
from approval_engines.authorization import AuthorizationGuard
from approval_engines.state_machine import ApprovalStateMachine
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.ports import ActorDirectory, ProposalStore
from approval_kernel.domain.proposal import ApprovalOutcome, Proposal, ProposalStatus
from approval_kernel.domain.roles import Actor
from approval_kernel.exceptions import (
    AuthorizationError,
    MissingRoleError,
    TerminalStateError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_services._outcome import (
    STAGE_ALREADY_DECIDED,
    is_stale,
    persist_outcome,
    resolve_actor,
)

logger = get_logger("services.admin_override")


def impersonation_label(admin_name: str, role: str) -> str:
    """Approver text recorded for an override: ``"<admin> (as <role>)"``."""
    return f"{admin_name} (as {role})"


class AdminOverrideService:
    """Administrator approve/reject with an impersonated role."""

    def __init__(
        self,
        store: ProposalStore,
        machine: ApprovalStateMachine,
        guard: AuthorizationGuard,
        directory: ActorDirectory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._machine = machine
        self._guard = guard
        self._directory = directory
        self._clock = clock or SystemClock()

    def admin_approve(
        self,
        actor: Actor | str,
        proposal: Proposal,
        impersonated_role: str | None,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        admin = resolve_actor(self._directory, actor)
        with LogContext.bind(proposal_id=str(proposal.proposal_id), actor_name=admin.name):
            role, current = self._authorize(admin, proposal, impersonated_role, "approve")
            approver = impersonation_label(admin.name, role)

            if current.status == ProposalStatus.DRAFT:
                outcome = ledger.submit(
                    admin, current,
                    machine=self._machine,
                    now=self._clock.now(),
                    role_name=role,
                    approver=approver,
                    comment=comment or ledger.SUBMITTED_COMMENT,
                )
            else:
                outcome = ledger.approve(
                    admin, current, comment,
                    machine=self._machine,
                    now=self._clock.now(),
                    role_name=role,
                    approver=approver,
                )

            persist_outcome(self._store, current, outcome)
            self._log_applied("approve", role, current, outcome)
            return outcome

    def admin_reject(
        self,
        actor: Actor | str,
        proposal: Proposal,
        impersonated_role: str | None,
        comment: str | None,
    ) -> ApprovalOutcome:
        admin = resolve_actor(self._directory, actor)
        with LogContext.bind(proposal_id=str(proposal.proposal_id), actor_name=admin.name):
            role, current = self._authorize(admin, proposal, impersonated_role, "reject")
            outcome = ledger.reject(
                admin, current, comment,
                now=self._clock.now(),
                role_name=role,
                approver=impersonation_label(admin.name, role),
            )

            persist_outcome(self._store, current, outcome)
            self._log_applied("reject", role, current, outcome)
            return outcome

    # -- internals --------------------------------------------------------

    def _authorize(
        self,
        admin: Actor,
        proposal: Proposal,
        impersonated_role: str | None,
        action: str,
    ) -> tuple[str, Proposal]:
        """Validate input, reload the stored proposal and check the admin."""
        if impersonated_role is None or not impersonated_role.strip():
            raise MissingRoleError(str(proposal.proposal_id))
        role = impersonated_role.strip()

        current = self._store.get(proposal.proposal_id)
        if current.is_terminal:
            raise TerminalStateError(str(current.proposal_id), current.status.value)

        if not self._guard.is_administrator(admin):
            self._deny(admin, current, action, "administrator role required")
        if is_stale(proposal, current):
            self._deny(admin, current, action, STAGE_ALREADY_DECIDED)
        return role, current

    @staticmethod
    def _deny(admin: Actor, current: Proposal, action: str, reason: str) -> None:
        logger.warning(
            "authorization_denied",
            extra={
                "action": f"admin_{action}",
                "status": current.status.value,
                "role_name": admin.role_name,
                "reason": reason,
            },
        )
        raise AuthorizationError(
            proposal_id=str(current.proposal_id),
            actor_name=admin.name,
            status=current.status.value,
            reason=reason,
        )

    @staticmethod
    def _log_applied(
        action: str,
        role: str,
        before: Proposal,
        outcome: ApprovalOutcome,
    ) -> None:
        logger.info(
            "admin_override_applied",
            extra={
                "action": action,
                "impersonated_role": role,
                "from_status": before.status.value,
                "to_status": outcome.status.value,
            },
        )

"""
approval_engines.authorization -- Pure "may this actor act now" decision.

Responsibility:
    Decide whether an actor may approve or reject a proposal in its
    current state, and whether an actor may submit a Draft.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types, exceptions and
    sibling engines.

Invariants enforced:
    - Terminal proposals (Approved, Rejected) admit nobody, administrators
      included.
    - Draft proposals admit only the submission path (the creator, an
      administrator, or the configured initial-verification role).
    - The required role is taken from the open Pending entry when present,
      else recomputed by the routing resolver.
    - Roles are compared structurally, never by substring.
    - Scope is checked against the creator's department and jobsite; for
      Chief Operation the procurement jobsite is used instead, matched exactly.

Failure modes:
    - ``authorize`` raises ``TerminalStateError`` for terminal proposals and
      ``AuthorizationError`` for every other denial.
"""

from __future__ import annotations

from dataclasses import dataclass

from approval_engines.routing import RoutingResolver
from approval_kernel.domain.proposal import Proposal, ProposalStatus
from approval_kernel.domain.roles import ADMINISTRATOR, Actor, Role
from approval_kernel.exceptions import AuthorizationError, TerminalStateError


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check, with the reason for audit logs."""

    allowed: bool
    reason: str
    required_role: Role | None = None

    def __bool__(self) -> bool:
        return self.allowed


def _same(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return left.strip().casefold() == right.strip().casefold()


class AuthorizationGuard:
    """Evaluates actor permissions against a proposal snapshot."""

    def __init__(
        self,
        resolver: RoutingResolver | None = None,
        initial_verification_role: str | None = None,
        administrator_role: str = ADMINISTRATOR.name,
    ) -> None:
        self._resolver = resolver or RoutingResolver()
        self._administrator = Role.parse(administrator_role)
        self._verification_role = (
            Role.parse(initial_verification_role)
            if initial_verification_role and initial_verification_role.strip()
            else None
        )

    # -- queries ----------------------------------------------------------

    def required_role(self, proposal: Proposal) -> Role | None:
        """Role of the open Pending entry, else the resolver's answer."""
        pending = proposal.current_pending
        if pending is not None and pending.role:
            return Role.parse(pending.role)
        return self._resolver.required_role(proposal)

    def is_administrator(self, actor: Actor) -> bool:
        return actor.role == self._administrator

    def is_verifier(self, actor: Actor) -> bool:
        return self._verification_role is not None and actor.role == self._verification_role

    def evaluate(self, actor: Actor, proposal: Proposal) -> AuthorizationDecision:
        if proposal.is_terminal:
            return AuthorizationDecision(False, f"proposal is {proposal.status.value}")

        if self.is_administrator(actor):
            return AuthorizationDecision(True, "administrator")

        if proposal.status == ProposalStatus.DRAFT:
            if self.is_verifier(actor):
                return AuthorizationDecision(True, "initial verification", self._verification_role)
            return AuthorizationDecision(False, "proposal has not been submitted")

        required = self.required_role(proposal)
        if required is None:
            return AuthorizationDecision(False, "no approver role can be resolved")

        if actor.role != required:
            return AuthorizationDecision(False, f"requires role {required.name}", required)

        if not self._in_scope(actor, required, proposal):
            return AuthorizationDecision(False, "outside actor scope", required)

        return AuthorizationDecision(True, "role and scope match", required)

    def can_act(self, actor: Actor, proposal: Proposal) -> bool:
        return self.evaluate(actor, proposal).allowed

    def authorize(self, actor: Actor, proposal: Proposal) -> Role | None:
        """Raise unless ``actor`` may act; return the required role.

        Raises:
            TerminalStateError: proposal is Approved or Rejected.
            AuthorizationError: any other denial.
        """
        decision = self.evaluate(actor, proposal)
        if decision.allowed:
            return decision.required_role
        if proposal.is_terminal:
            raise TerminalStateError(str(proposal.proposal_id), proposal.status.value)
        raise AuthorizationError(
            proposal_id=str(proposal.proposal_id),
            actor_name=actor.name,
            status=proposal.status.value,
            required_role=decision.required_role.name if decision.required_role else None,
            reason=decision.reason,
        )

    def can_submit(self, actor: Actor, proposal: Proposal) -> bool:
        if proposal.status != ProposalStatus.DRAFT:
            return False
        return (
            self.is_administrator(actor)
            or _same(actor.name, proposal.creator)
            or self.is_verifier(actor)
        )

    # -- scope ------------------------------------------------------------

    def _in_scope(self, actor: Actor, required: Role, proposal: Proposal) -> bool:
        department = proposal.routing_department
        has_department = bool(actor.department)
        has_jobsite = bool(actor.jobsite)

        if required.is_chief_operation:
            jobsite_ok = self._chief_operation_site_matches(actor.jobsite, proposal.jobsite)
        else:
            jobsite_ok = _same(actor.jobsite, proposal.routing_jobsite)

        if has_department and has_jobsite:
            return jobsite_ok and _same(actor.department, department)
        if has_jobsite:
            # Jobsite-only actors are Chief Operation in practice; any other
            # role with a jobsite still has to match it.
            return jobsite_ok
        if has_department:
            return _same(actor.department, department)
        return True

    @staticmethod
    def _chief_operation_site_matches(actor_jobsite: str | None, procurement_jobsite: str) -> bool:
        # Exact site, not entity: a Chief Operation posted at ADMO MINING does
        # not decide for ADMO HAULING.
        return _same(actor_jobsite, procurement_jobsite)

"""
approval_engines.routing -- Pure approver-role resolution.

Responsibility:
    Map a proposal's status plus its organizational context to the single
    role allowed to act next, and map matrix role kinds to concrete roles.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types and exceptions.

Invariants enforced:
    - Site-scoped roles use the CREATOR's department and jobsite (falling
      back to the procurement jobsite when the creator's is absent).
    - Chief Operation is the one exception: it uses the PROCUREMENT
      jobsite, mapped to its entity.
    - Fail closed: an unmapped status or missing scope yields ``None``
      from ``required_role`` and ``RoutingError`` from ``require_role``.

Failure modes:
    - ``RoutingError`` from ``require_role`` when no role can be resolved.
"""

from __future__ import annotations

from approval_kernel.domain.proposal import Proposal, ProposalStatus
from approval_kernel.domain.roles import Role, RoleKind
from approval_kernel.exceptions import RoutingError

# Status -> role kind.  Legacy stage names share the kind of their
# matrix-era equivalent.
STATUS_ROLE_KINDS: dict[ProposalStatus, RoleKind] = {
    ProposalStatus.ON_VERIFICATION: RoleKind.UNIT_HEAD,
    ProposalStatus.ON_UNIT_HEAD_APPROVAL: RoleKind.UNIT_HEAD,
    ProposalStatus.ON_REVIEW_1: RoleKind.SECTION_HEAD,
    ProposalStatus.ON_SECTION_HEAD_APPROVAL: RoleKind.SECTION_HEAD,
    ProposalStatus.ON_REVIEW_2: RoleKind.DEPARTMENT_HEAD,
    ProposalStatus.ON_DEPARTMENT_HEAD_APPROVAL: RoleKind.DEPARTMENT_HEAD,
    ProposalStatus.ON_APPROVAL_1: RoleKind.MANAGER,
    ProposalStatus.ON_MANAGER_APPROVAL: RoleKind.MANAGER,
    ProposalStatus.ON_APPROVAL_2: RoleKind.DIVISION_HEAD,
    ProposalStatus.ON_DIVISION_HEAD_APPROVAL: RoleKind.DIVISION_HEAD,
    ProposalStatus.ON_DIRECTOR_APPROVAL: RoleKind.DIRECTOR,
    ProposalStatus.ON_CHIEF_OPERATION_APPROVAL: RoleKind.CHIEF_OPERATION,
    ProposalStatus.ON_SOURCING_APPROVAL: RoleKind.SOURCING_DEPARTMENT_HEAD,
    ProposalStatus.ON_PROCUREMENT_APPROVAL: RoleKind.PROCUREMENT_DIVISION_HEAD,
    ProposalStatus.ON_PRESIDENT_DIRECTOR_APPROVAL: RoleKind.PRESIDENT_DIRECTOR,
}

_SITE_SCOPED_KINDS = frozenset({
    RoleKind.UNIT_HEAD,
    RoleKind.SECTION_HEAD,
    RoleKind.DEPARTMENT_HEAD,
    RoleKind.MANAGER,
})

_FIXED_KINDS = frozenset({
    RoleKind.PRESIDENT_DIRECTOR,
    RoleKind.SOURCING_DEPARTMENT_HEAD,
    RoleKind.PROCUREMENT_DIVISION_HEAD,
})

# Procurement jobsite prefix -> Chief Operation entity
_CHIEF_OPERATION_PREFIXES = ("ADMO", "MACO")
_CHIEF_OPERATION_EXACT = ("SERA",)


def chief_operation_entity(jobsite: str | None) -> str | None:
    """Entity whose Chief Operation covers ``jobsite``.

    ``ADMO MINING``/``ADMO HAULING`` -> ``ADMO``, ``MACO ...`` -> ``MACO``,
    ``SERA`` -> ``SERA``; anything else (``JAHO``, ``NARO``) has none.
    """
    if not jobsite:
        return None
    site = jobsite.strip()
    for prefix in _CHIEF_OPERATION_PREFIXES:
        if site.startswith(prefix):
            return prefix
    if site in _CHIEF_OPERATION_EXACT:
        return site
    return None


class RoutingResolver:
    """Resolves the approver role for a proposal.

    Stateless; safe to share.
    """

    def scoped_role(self, kind: RoleKind, proposal: Proposal) -> Role | None:
        """Concrete role of ``kind`` for this proposal, or None if unresolvable."""
        department = proposal.routing_department

        if kind in _SITE_SCOPED_KINDS:
            if not department:
                return None
            return Role.site_scoped(kind, department, proposal.routing_jobsite)
        if kind == RoleKind.DIVISION_HEAD:
            return Role.division_head(department) if department else None
        if kind == RoleKind.DIRECTOR:
            return Role.director(department) if department else None
        if kind == RoleKind.CHIEF_OPERATION:
            entity = chief_operation_entity(proposal.jobsite)
            return Role.chief_operation(entity) if entity else None
        if kind in _FIXED_KINDS:
            return Role.fixed(kind)
        return None

    def required_role(self, proposal: Proposal) -> Role | None:
        """Role entitled to act at ``proposal.status``, or None."""
        kind = STATUS_ROLE_KINDS.get(proposal.status)
        if kind is None:
            return None
        return self.scoped_role(kind, proposal)

    def require_role(self, proposal: Proposal) -> Role:
        """Like ``required_role`` but fails closed.

        Raises:
            RoutingError: if no role can be resolved.
        """
        role = self.required_role(proposal)
        if role is None:
            if proposal.status not in STATUS_ROLE_KINDS:
                reason = "status has no approver role"
            elif STATUS_ROLE_KINDS[proposal.status] == RoleKind.CHIEF_OPERATION:
                reason = f"jobsite '{proposal.jobsite}' has no Chief Operation"
            else:
                reason = "creator department is unknown"
            raise RoutingError(str(proposal.proposal_id), proposal.status.value, reason)
        return role

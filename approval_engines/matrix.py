"""
approval_engines.matrix -- Matrix-driven approval path provider.

Responsibility:
    Implements the ``MatrixProvider`` protocol over a validated
    ``MatrixDefinition``: select the amount band for a proposal, expand the
    band's step templates into concrete ``ApprovalStep`` values, and answer
    "what is the next step" / "is the path complete" from the number of
    steps already approved.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Reads the matrix it is
    given; never mutates it.

Invariants enforced:
    - Deterministic band selection: bands are scanned in declared order,
      bounds inclusive, first match wins.  Amounts above every band use the
      band with the highest maximum.
    - A Chief Operation step whose procurement jobsite has no entity is
      dropped from the path, not left unresolved.
    - No matrix entry (unknown department/jobsite, no band) yields ``None``;
      the state machine turns that into a ``RoutingError``.
"""

from __future__ import annotations

from decimal import Decimal

from approval_config.schema import AmountBand, MatrixDefinition, MatrixSettings, StepTemplate
from approval_engines.routing import RoutingResolver
from approval_kernel.domain.ports import ApprovalStep
from approval_kernel.domain.proposal import Proposal, ProposalStatus
from approval_kernel.domain.roles import RoleKind


def select_band(bands: tuple[AmountBand, ...], amount: Decimal) -> AmountBand | None:
    """First band containing ``amount``; the top band for larger amounts."""
    for band in bands:
        if band.contains(amount):
            return band
    if not bands:
        return None
    highest = max(bands, key=lambda b: b.maximum)
    if amount > highest.maximum:
        return highest
    return None


class ConfiguredApprovalMatrix:
    """MatrixProvider backed by a ``MatrixDefinition``."""

    def __init__(
        self,
        definition: MatrixDefinition,
        resolver: RoutingResolver | None = None,
    ) -> None:
        self._definition = definition
        self._resolver = resolver or RoutingResolver()

    @property
    def definition(self) -> MatrixDefinition:
        return self._definition

    @property
    def settings(self) -> MatrixSettings:
        return self._definition.settings

    def band_for(self, amount: Decimal) -> AmountBand | None:
        return select_band(self._definition.bands, amount)

    def steps_for(self, department: str, jobsite: str, band: AmountBand) -> tuple[StepTemplate, ...]:
        """Step templates for a combination, honouring overrides."""
        for override in self._definition.overrides:
            if (
                override.band == band.code
                and override.department == department
                and override.jobsite == jobsite
            ):
                return override.steps
        return band.steps

    def approval_path(self, proposal: Proposal) -> tuple[ApprovalStep, ...] | None:
        department = proposal.routing_department
        jobsite = proposal.routing_jobsite
        if department not in self._definition.departments:
            return None
        if jobsite not in self._definition.jobsites:
            return None

        band = self.band_for(proposal.amount)
        if band is None:
            return None

        path: list[ApprovalStep] = []
        for template in self.steps_for(department, jobsite, band):
            kind = self._definition.role_kind(template.role_code)
            if kind is None:
                return None
            role = self._resolver.scoped_role(kind, proposal)
            if role is None:
                if kind == RoleKind.CHIEF_OPERATION:
                    continue
                return None
            path.append(ApprovalStep(status=ProposalStatus.for_stage(template.name), role=role))
        return tuple(path)

    def next_approval_step(self, proposal: Proposal) -> ApprovalStep | None:
        path = self.approval_path(proposal)
        if path is None:
            return None
        index = proposal.approved_step_count
        if index < len(path):
            return path[index]
        return None

    def is_workflow_complete(self, proposal: Proposal) -> bool:
        path = self.approval_path(proposal)
        if path is None:
            return False
        return proposal.approved_step_count >= len(path)

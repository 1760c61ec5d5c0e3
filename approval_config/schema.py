"""
Approval matrix schema.

Defines the human-authored, reviewable source artifact for approval
routing.  YAML files are parsed into these types by the loader, checked
by the validator, and consumed by ``approval_engines.matrix``.

A matrix is a grid: every (department, jobsite) pair gets the band list,
and each band carries an ordered list of step templates.  Step templates
name a *role code* (``"DH User"``); the routing layer turns the code into
a concrete role for a given proposal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from approval_kernel.domain.roles import RoleKind

# ---------------------------------------------------------------------------
# Bands and steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepTemplate:
    """One step of an approval path, before role resolution."""

    name: str  # e.g. "Department Head Approval"
    role_code: str  # e.g. "DH User"


@dataclass(frozen=True)
class AmountBand:
    """An amount range and the path it requires. Bounds are inclusive."""

    code: str  # "01" .. "09", "06B"
    minimum: Decimal
    maximum: Decimal
    steps: tuple[StepTemplate, ...] = ()

    def contains(self, amount: Decimal) -> bool:
        return self.minimum <= amount <= self.maximum


@dataclass(frozen=True)
class RoleCode:
    """Maps a matrix role code to the role kind it resolves to."""

    code: str
    kind: RoleKind


@dataclass(frozen=True)
class MatrixOverride:
    """Replaces the band path for one department/jobsite combination."""

    department: str
    jobsite: str
    band: str
    steps: tuple[StepTemplate, ...]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatrixSettings:
    """Workflow-wide role settings."""

    administrator_role: str = "Administrator"
    initial_verification_role: str = "Verificator"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatrixDefinition:
    """
    A complete, versioned approval matrix.

    ``checksum`` is the SHA-256 of the parsed YAML and identifies the exact
    source the matrix was built from.
    """

    name: str
    version: int
    departments: tuple[str, ...]
    jobsites: tuple[str, ...]
    role_codes: tuple[RoleCode, ...]
    bands: tuple[AmountBand, ...]
    overrides: tuple[MatrixOverride, ...] = ()
    settings: MatrixSettings = MatrixSettings()
    checksum: str = ""

    def role_kind(self, code: str) -> RoleKind | None:
        for role_code in self.role_codes:
            if role_code.code == code.strip():
                return role_code.kind
        return None

    def band(self, code: str) -> AmountBand | None:
        for band in self.bands:
            if band.code == code:
                return band
        return None

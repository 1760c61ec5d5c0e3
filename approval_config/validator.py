"""
Matrix Validator (``approval_config.validator``).

Responsibility
--------------
Validates a ``MatrixDefinition`` before it is handed to the routing
layer, so that a misconfigured matrix fails at load time instead of
stranding proposals mid-workflow.

Architecture position
---------------------
**Config layer** -- load-time validation.  Called by
``approval_config.get_active_matrix`` after parsing.

Invariants enforced
-------------------
* Band codes are unique and every band has ``min <= max``.
* Bands sorted by minimum neither overlap (a shared boundary is allowed,
  first match wins) nor leave gaps.
* Every step name maps to an "On <stage>" status and every step role
  code is declared in ``role_codes``.
* No band repeats a step.
* Overrides reference a declared department, jobsite and band.

Failure modes
-------------
* Validation errors -> the matrix MUST NOT be used.
* Validation warnings -> the matrix may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from approval_config.schema import MatrixDefinition, StepTemplate
from approval_kernel.domain.proposal import ProposalStatus


@dataclass
class MatrixValidationResult:
    """
    Result of matrix validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_matrix(matrix: MatrixDefinition) -> MatrixValidationResult:
    """
    Validate a parsed matrix.

    Postconditions:
        - Returns a ``MatrixValidationResult`` with errors and warnings.
        - A matrix with errors MUST NOT be used for routing.
    """
    result = MatrixValidationResult()

    _validate_scope(matrix, result)
    _validate_band_codes(matrix, result)
    _validate_band_ranges(matrix, result)
    for band in matrix.bands:
        _validate_steps(matrix, f"Band '{band.code}'", band.steps, result)
    _validate_overrides(matrix, result)
    _validate_settings(matrix, result)

    return result


def _validate_scope(matrix: MatrixDefinition, result: MatrixValidationResult) -> None:
    if not matrix.departments:
        result.add_error("No departments declared")
    if not matrix.jobsites:
        result.add_error("No jobsites declared")
    if len(set(matrix.departments)) != len(matrix.departments):
        result.add_error("Duplicate department in departments list")
    if len(set(matrix.jobsites)) != len(matrix.jobsites):
        result.add_error("Duplicate jobsite in jobsites list")


def _validate_band_codes(matrix: MatrixDefinition, result: MatrixValidationResult) -> None:
    if not matrix.bands:
        result.add_error("No amount bands declared")
        return
    seen: set[str] = set()
    for band in matrix.bands:
        if band.code in seen:
            result.add_error(f"Duplicate band code: '{band.code}'")
        seen.add(band.code)


def _validate_band_ranges(matrix: MatrixDefinition, result: MatrixValidationResult) -> None:
    """Check min <= max, then overlaps and gaps between neighbours."""
    for band in matrix.bands:
        if band.minimum < 0:
            result.add_error(f"Band '{band.code}' has a negative minimum")
        if band.minimum > band.maximum:
            result.add_error(
                f"Band '{band.code}' has min {band.minimum} above max {band.maximum}"
            )

    ordered = sorted(matrix.bands, key=lambda b: b.minimum)
    for lower, upper in zip(ordered, ordered[1:]):
        if upper.minimum < lower.maximum:
            result.add_error(
                f"Bands '{lower.code}' and '{upper.code}' overlap "
                f"({lower.maximum} > {upper.minimum})"
            )
        elif upper.minimum > lower.maximum:
            result.add_error(
                f"Gap between bands '{lower.code}' and '{upper.code}' "
                f"({lower.maximum} to {upper.minimum})"
            )


def _validate_steps(
    matrix: MatrixDefinition,
    owner: str,
    steps: tuple[StepTemplate, ...],
    result: MatrixValidationResult,
) -> None:
    if not steps:
        result.add_error(f"{owner} has no approval steps")
        return

    seen: set[str] = set()
    statuses: set[ProposalStatus] = set()
    for step in steps:
        try:
            status = ProposalStatus.for_stage(step.name)
        except ValueError:
            result.add_error(f"{owner} step '{step.name}' has no matching status")
        else:
            if status in statuses and step.name not in seen:
                result.add_error(
                    f"{owner} step '{step.name}' repeats stage '{status.stage_name}'"
                )
            statuses.add(status)
        if matrix.role_kind(step.role_code) is None:
            result.add_error(f"{owner} step '{step.name}' uses unknown role code '{step.role_code}'")
        if step.name in seen:
            result.add_error(f"{owner} repeats step '{step.name}'")
        seen.add(step.name)


def _validate_overrides(matrix: MatrixDefinition, result: MatrixValidationResult) -> None:
    seen: set[tuple[str, str, str]] = set()
    for override in matrix.overrides:
        owner = f"Override {override.department}/{override.jobsite}/{override.band}"
        if override.department not in matrix.departments:
            result.add_error(f"{owner} references unknown department")
        if override.jobsite not in matrix.jobsites:
            result.add_error(f"{owner} references unknown jobsite")
        if matrix.band(override.band) is None:
            result.add_error(f"{owner} references unknown band")
        key = (override.department, override.jobsite, override.band)
        if key in seen:
            result.add_error(f"{owner} is declared more than once")
        seen.add(key)
        _validate_steps(matrix, owner, override.steps, result)


def _validate_settings(matrix: MatrixDefinition, result: MatrixValidationResult) -> None:
    if not matrix.settings.administrator_role.strip():
        result.add_error("settings.administrator_role is empty")
    if not matrix.settings.initial_verification_role.strip():
        result.add_warning(
            "settings.initial_verification_role is empty; Draft proposals "
            "can only be submitted by their creator or an administrator"
        )

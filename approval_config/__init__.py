"""
approval_config -- single public entrypoint for approval matrix configuration.

Responsibility:
    Provides the ONLY way to obtain the approval matrix at runtime through
    ``get_active_matrix()``.  YAML loading and validation are internal;
    callers receive a validated, frozen ``MatrixDefinition``.

Architecture position:
    Configuration -- YAML-driven, load-time validation.  This package sits
    above ``approval_kernel``; the kernel MUST NEVER import from
    ``approval_config``.

Invariants enforced:
    - Single entrypoint: all runtime matrix data flows through
      ``get_active_matrix()``.
    - Load-time validation: a matrix with validation errors is never
      returned.

Failure modes:
    - ``FileNotFoundError`` -- the matrix file does not exist.
    - ``MatrixConfigError`` -- parse or structural validation failures.

Audit relevance:
    Every successful call emits an ``approval_matrix_loaded`` log entry
    carrying the matrix name, version and checksum, which ties each
    routing decision back to the exact matrix that governed it.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from approval_config.loader import compute_checksum, load_matrix
from approval_config.schema import (
    AmountBand,
    MatrixDefinition,
    MatrixOverride,
    MatrixSettings,
    RoleCode,
    StepTemplate,
)
from approval_config.validator import MatrixValidationResult, validate_matrix
from approval_kernel.exceptions import MatrixConfigError
from approval_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_MATRIX_PATH = Path(__file__).parent / "sets" / "default_matrix.yaml"


def get_active_matrix(path: Path | str | None = None) -> MatrixDefinition:
    """The ONLY public matrix entrypoint.

    Args:
        path: Matrix YAML file.  Defaults to the shipped
            ``sets/default_matrix.yaml``.

    Raises:
        FileNotFoundError: if the file does not exist.
        MatrixConfigError: if the file cannot be parsed or fails validation.
    """
    source = Path(path) if path is not None else DEFAULT_MATRIX_PATH

    try:
        matrix = load_matrix(source)
    except (KeyError, ValueError, TypeError, yaml.YAMLError) as exc:
        raise MatrixConfigError([f"{type(exc).__name__}: {exc}"], source=str(source)) from exc

    result = validate_matrix(matrix)
    for warning in result.warnings:
        logger.warning(
            "approval_matrix_warning",
            extra={"source": str(source), "detail": warning},
        )
    if not result.is_valid:
        logger.error(
            "approval_matrix_invalid",
            extra={"source": str(source), "errors": result.errors},
        )
        raise MatrixConfigError(result.errors, source=str(source))

    logger.info(
        "approval_matrix_loaded",
        extra={
            "matrix_name": matrix.name,
            "matrix_version": matrix.version,
            "checksum": matrix.checksum,
            "band_count": len(matrix.bands),
            "override_count": len(matrix.overrides),
        },
    )
    return matrix


__all__ = [
    "AmountBand",
    "DEFAULT_MATRIX_PATH",
    "MatrixDefinition",
    "MatrixOverride",
    "MatrixSettings",
    "MatrixValidationResult",
    "RoleCode",
    "StepTemplate",
    "compute_checksum",
    "get_active_matrix",
    "validate_matrix",
]

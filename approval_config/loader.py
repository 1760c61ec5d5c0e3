"""
Matrix Loader (``approval_config.loader``).

Responsibility
--------------
Loads an approval matrix YAML file and parses it into typed
``approval_config.schema`` dataclass instances.  No service should call
this directly; the runtime entry point is
``approval_config.get_active_matrix()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel domain
(``RoleKind``) only.

Invariants enforced
-------------------
* No silent defaults for required fields: missing keys raise ``KeyError``.
* Amounts are parsed as ``Decimal`` through ``str`` so YAML floats never
  introduce binary rounding.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown role kind  -> ``ValueError`` from ``RoleKind``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    AmountBand,
    MatrixDefinition,
    MatrixOverride,
    MatrixSettings,
    RoleCode,
    StepTemplate,
)
from approval_kernel.domain.roles import RoleKind


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_amount(value: Any) -> Decimal:
    """Parse a YAML number or numeric string into a Decimal."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse amount from {value!r}") from exc


def parse_step(data: dict[str, Any]) -> StepTemplate:
    return StepTemplate(name=str(data["name"]).strip(), role_code=str(data["role"]).strip())


def parse_steps(raw: list[dict[str, Any]] | None) -> tuple[StepTemplate, ...]:
    return tuple(parse_step(s) for s in raw or [])


def parse_band(data: dict[str, Any]) -> AmountBand:
    """Parse an ``AmountBand``; ``code`` is kept as a string ("01", "06B")."""
    return AmountBand(
        code=str(data["code"]),
        minimum=parse_amount(data["min"]),
        maximum=parse_amount(data["max"]),
        steps=parse_steps(data.get("steps")),
    )


def parse_override(data: dict[str, Any]) -> MatrixOverride:
    return MatrixOverride(
        department=data["department"],
        jobsite=data["jobsite"],
        band=str(data["band"]),
        steps=parse_steps(data.get("steps")),
    )


def parse_settings(data: dict[str, Any] | None) -> MatrixSettings:
    data = data or {}
    defaults = MatrixSettings()
    return MatrixSettings(
        administrator_role=data.get("administrator_role", defaults.administrator_role),
        initial_verification_role=data.get(
            "initial_verification_role", defaults.initial_verification_role,
        ),
    )


def parse_matrix(data: dict[str, Any], checksum: str = "") -> MatrixDefinition:
    """
    Parse a ``MatrixDefinition`` from a YAML document.

    Preconditions:
        - ``data`` contains ``name``, ``departments``, ``jobsites``,
          ``role_codes`` and ``bands``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if amounts or role kinds cannot be parsed.
    """
    role_codes = tuple(
        RoleCode(code=str(code).strip(), kind=RoleKind(kind))
        for code, kind in data["role_codes"].items()
    )
    return MatrixDefinition(
        name=data["name"],
        version=int(data.get("version", 1)),
        departments=tuple(data["departments"]),
        jobsites=tuple(data["jobsites"]),
        role_codes=role_codes,
        bands=tuple(parse_band(b) for b in data["bands"]),
        overrides=tuple(parse_override(o) for o in data.get("overrides") or []),
        settings=parse_settings(data.get("settings")),
        checksum=checksum,
    )


def load_matrix(path: Path) -> MatrixDefinition:
    """Load and parse a matrix file, stamping it with its checksum."""
    data = load_yaml_file(path)
    return parse_matrix(data, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

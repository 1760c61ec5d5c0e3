"""
Role and actor value objects (``approval_kernel.domain.roles``).

Responsibility
--------------
Structured replacement for free-form role strings.  A ``Role`` is a tagged
``RoleKind`` plus explicit scope fields (department, jobsite); display names
such as ``"Section Head IT Department JAHO"`` are rendered from and parsed
back into that structure, so authorization never relies on substring
checks.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Role equality is structural and case-insensitive: two roles are equal
  when kind, department and jobsite (or the free-form label) match after
  case folding and whitespace normalization.
* ``Role.parse(role.name) == role`` for every recognized kind.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class RoleKind(str, Enum):
    """Approver role kinds known to the routing table."""

    UNIT_HEAD = "unit_head"
    SECTION_HEAD = "section_head"
    DEPARTMENT_HEAD = "department_head"
    MANAGER = "manager"
    DIVISION_HEAD = "division_head"
    DIRECTOR = "director"
    CHIEF_OPERATION = "chief_operation"
    PRESIDENT_DIRECTOR = "president_director"
    SOURCING_DEPARTMENT_HEAD = "sourcing_department_head"
    PROCUREMENT_DIVISION_HEAD = "procurement_division_head"
    CREATOR = "creator"
    ADMINISTRATOR = "administrator"
    OTHER = "other"


# Kinds scoped to "<title> <department> Department <jobsite>"
_SITE_SCOPED_TITLES: dict[RoleKind, str] = {
    RoleKind.UNIT_HEAD: "Unit Head",
    RoleKind.SECTION_HEAD: "Section Head",
    RoleKind.DEPARTMENT_HEAD: "Department Head",
    RoleKind.MANAGER: "Manager",
    RoleKind.CREATOR: "Creator",
}

# Kinds with a fixed display name and no scope
_FIXED_NAMES: dict[RoleKind, str] = {
    RoleKind.PRESIDENT_DIRECTOR: "President Director",
    RoleKind.SOURCING_DEPARTMENT_HEAD: "Sourcing Department Head",
    RoleKind.PROCUREMENT_DIVISION_HEAD: "Procurement Division Head",
    RoleKind.ADMINISTRATOR: "Administrator",
}

_SITE_SCOPED_PATTERN = re.compile(
    r"^(?P<title>unit head|section head|department head|manager|creator) "
    r"(?P<department>.+?) department (?P<jobsite>.+)$",
    re.IGNORECASE,
)
_CHIEF_OPERATION_PATTERN = re.compile(r"^chief operation (?P<jobsite>.+)$", re.IGNORECASE)
_DIVISION_HEAD_PATTERN = re.compile(r"^(?P<department>.+) division head$", re.IGNORECASE)
_DIRECTOR_PATTERN = re.compile(r"^(?P<department>.+) director$", re.IGNORECASE)


def _normalize(value: str | None) -> str | None:
    if value is None:
        return None
    return " ".join(value.split())


def _fold(value: str | None) -> str | None:
    if value is None:
        return None
    return " ".join(value.split()).casefold()


@dataclass(frozen=True, eq=False)
class Role:
    """A structured approver role.

    ``department`` is set for department-scoped kinds; ``jobsite`` is set
    for site-scoped kinds and holds the entity (``ADMO``, ``MACO``,
    ``SERA``) for Chief Operation.  ``label`` keeps the original text for
    ``RoleKind.OTHER``.
    """

    kind: RoleKind
    department: str | None = None
    jobsite: str | None = None
    label: str | None = None

    # -- construction ---------------------------------------------------

    @classmethod
    def site_scoped(cls, kind: RoleKind, department: str, jobsite: str) -> Role:
        if kind not in _SITE_SCOPED_TITLES:
            raise ValueError(f"{kind.value} is not a site-scoped role kind")
        return cls(kind, department=_normalize(department), jobsite=_normalize(jobsite))

    @classmethod
    def division_head(cls, department: str) -> Role:
        return cls(RoleKind.DIVISION_HEAD, department=_normalize(department))

    @classmethod
    def director(cls, department: str) -> Role:
        return cls(RoleKind.DIRECTOR, department=_normalize(department))

    @classmethod
    def chief_operation(cls, entity: str) -> Role:
        return cls(RoleKind.CHIEF_OPERATION, jobsite=_normalize(entity))

    @classmethod
    def fixed(cls, kind: RoleKind) -> Role:
        if kind not in _FIXED_NAMES:
            raise ValueError(f"{kind.value} has no fixed display name")
        return cls(kind)

    @classmethod
    def parse(cls, name: str) -> Role:
        """Parse a display name into a structured role.

        Unrecognized names become ``RoleKind.OTHER`` carrying the label, so
        custom roles still compare case-insensitively.
        """
        text = _normalize(name) or ""
        folded = text.casefold()

        for kind, fixed_name in _FIXED_NAMES.items():
            if folded == fixed_name.casefold():
                return cls(kind)

        match = _SITE_SCOPED_PATTERN.match(text)
        if match:
            title = match.group("title").casefold()
            kind = next(k for k, t in _SITE_SCOPED_TITLES.items() if t.casefold() == title)
            return cls(kind, department=match.group("department"), jobsite=match.group("jobsite"))

        match = _CHIEF_OPERATION_PATTERN.match(text)
        if match:
            return cls(RoleKind.CHIEF_OPERATION, jobsite=match.group("jobsite"))

        match = _DIVISION_HEAD_PATTERN.match(text)
        if match:
            return cls(RoleKind.DIVISION_HEAD, department=match.group("department"))

        match = _DIRECTOR_PATTERN.match(text)
        if match:
            return cls(RoleKind.DIRECTOR, department=match.group("department"))

        return cls(RoleKind.OTHER, label=text)

    # -- rendering ------------------------------------------------------

    @property
    def name(self) -> str:
        """Display name as recorded on history entries."""
        if self.kind in _SITE_SCOPED_TITLES:
            return f"{_SITE_SCOPED_TITLES[self.kind]} {self.department} Department {self.jobsite}"
        if self.kind in _FIXED_NAMES:
            return _FIXED_NAMES[self.kind]
        if self.kind == RoleKind.DIVISION_HEAD:
            return f"{self.department} Division Head"
        if self.kind == RoleKind.DIRECTOR:
            return f"{self.department} Director"
        if self.kind == RoleKind.CHIEF_OPERATION:
            return f"Chief Operation {self.jobsite}"
        return self.label or ""

    @property
    def is_chief_operation(self) -> bool:
        return self.kind == RoleKind.CHIEF_OPERATION

    @property
    def is_administrator(self) -> bool:
        return self.kind == RoleKind.ADMINISTRATOR

    # -- structural equality --------------------------------------------

    def _key(self) -> tuple[str, str | None, str | None, str | None]:
        return (self.kind.value, _fold(self.department), _fold(self.jobsite), _fold(self.label))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.name


ADMINISTRATOR = Role.fixed(RoleKind.ADMINISTRATOR)


@dataclass(frozen=True)
class Actor:
    """Someone attempting to act on a proposal.

    Which of ``department`` / ``jobsite`` is present determines the
    authorization scope: both (site-level), jobsite only (Chief Operation),
    department only (division/director level), neither (top level).
    """

    name: str
    role_name: str
    department: str | None = None
    jobsite: str | None = None

    @property
    def role(self) -> Role:
        return Role.parse(self.role_name)

    @property
    def is_administrator(self) -> bool:
        return self.role.is_administrator

"""
Proposal domain types (``approval_kernel.domain.proposal``).

Responsibility
--------------
Pure value objects for procurement proposals and their decision ledger:
the status vocabulary, history entries, and the ``ApprovalOutcome``
returned by every ledger mutation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* ``TERMINAL_STATUSES`` (Approved, Rejected) admit no ledger mutation.
* ``history`` is an immutable tuple; insertion order is significant.
* A Pending entry has no approver and no date.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


# Matrix step names from before the role hierarchy -> status value
_LEGACY_STEP_STATUSES: dict[str, str] = {
    "Review 1": "On Section Head Approval",
    "Review 2": "On Department Head Approval",
}


class ProposalStatus(str, Enum):
    """Proposal lifecycle statuses.

    The "On ..." members are the matrix-driven stages.  ``On Verification``,
    ``On Review 1/2`` and ``On Approval 1/2`` are legacy stage names kept
    for proposals routed before the matrix hierarchy was introduced.
    """

    DRAFT = "Draft"
    ON_VERIFICATION = "On Verification"
    ON_REVIEW_1 = "On Review 1"
    ON_REVIEW_2 = "On Review 2"
    ON_APPROVAL_1 = "On Approval 1"
    ON_APPROVAL_2 = "On Approval 2"
    ON_UNIT_HEAD_APPROVAL = "On Unit Head Approval"
    ON_SECTION_HEAD_APPROVAL = "On Section Head Approval"
    ON_DEPARTMENT_HEAD_APPROVAL = "On Department Head Approval"
    ON_MANAGER_APPROVAL = "On Manager Approval"
    ON_DIVISION_HEAD_APPROVAL = "On Division Head Approval"
    ON_CHIEF_OPERATION_APPROVAL = "On Chief Operation Approval"
    ON_DIRECTOR_APPROVAL = "On Director Approval"
    ON_PRESIDENT_DIRECTOR_APPROVAL = "On President Director Approval"
    ON_SOURCING_APPROVAL = "On Sourcing Approval"
    ON_PROCUREMENT_APPROVAL = "On Procurement Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def stage_name(self) -> str:
        """Display name of the stage, e.g. ``"Review 1"`` for ``On Review 1``."""
        return self.value.removeprefix("On ")

    @classmethod
    def for_stage(cls, stage: str) -> ProposalStatus:
        """Map a matrix step name (``"Director Approval"``) to its status.

        Legacy step names ``Review 1`` and ``Review 2`` route to the Section
        Head and Department Head stages.

        Raises:
            ValueError: if no status carries that stage name.
        """
        name = stage.strip()
        legacy = _LEGACY_STEP_STATUSES.get(name)
        if legacy is not None:
            return cls(legacy)
        return cls(f"On {name}")


TERMINAL_STATUSES: frozenset[ProposalStatus] = frozenset({
    ProposalStatus.APPROVED,
    ProposalStatus.REJECTED,
})

# Statuses in which nobody but the submission path may act
CLOSED_TO_APPROVAL: frozenset[ProposalStatus] = TERMINAL_STATUSES | {ProposalStatus.DRAFT}


class HistoryAction(str, Enum):
    """Action recorded on a ledger entry."""

    CREATED = "Created"
    SUBMITTED = "Submitted"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class HistoryEntry:
    """One row of the decision ledger. Immutable.

    ``role`` is the approver role resolved when the step was opened (for
    Pending) or the role the actor acted under (for decisions).
    """

    stage: str
    role: str
    action: HistoryAction
    approver: str = ""
    date: datetime | None = None
    comment: str | None = None
    entry_id: UUID = field(default_factory=uuid4)

    @property
    def is_pending(self) -> bool:
        return self.action == HistoryAction.PENDING

    @property
    def is_decision(self) -> bool:
        return self.action in (HistoryAction.APPROVED, HistoryAction.REJECTED)


@dataclass(frozen=True)
class Proposal:
    """In-memory snapshot of a procurement proposal.

    ``jobsite`` is the procurement site (where the work is done); routing
    normally follows ``creator_jobsite`` / ``creator_department``.  When the
    creator fields are absent the procurement jobsite stands in.
    """

    proposal_id: UUID
    status: ProposalStatus
    creator: str
    jobsite: str
    creator_jobsite: str | None = None
    creator_department: str | None = None
    amount: Decimal = Decimal("0")
    history: tuple[HistoryEntry, ...] = ()
    proposal_no: str = ""
    version: int = 1
    current_approver: str | None = None

    @property
    def routing_jobsite(self) -> str:
        """Creator jobsite, falling back to the procurement jobsite."""
        return self.creator_jobsite or self.jobsite

    @property
    def routing_department(self) -> str | None:
        return self.creator_department

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def pending_entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(e for e in self.history if e.is_pending)

    @property
    def current_pending(self) -> HistoryEntry | None:
        """The first Pending entry, i.e. the open step."""
        for entry in self.history:
            if entry.is_pending:
                return entry
        return None

    @property
    def approved_step_count(self) -> int:
        """Number of matrix steps already approved."""
        return sum(1 for e in self.history if e.action == HistoryAction.APPROVED)

    def with_ledger(
        self,
        status: ProposalStatus,
        history: tuple[HistoryEntry, ...],
    ) -> Proposal:
        """Return a copy carrying a new status and history."""
        return replace(self, status=status, history=history)


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of a ledger mutation: the new status and full history.

    ``current_approver`` is the role name of the newly opened step, or
    ``None`` when no step is open.
    """

    status: ProposalStatus
    history: tuple[HistoryEntry, ...]
    current_approver: str | None = None

    @property
    def pending_count(self) -> int:
        return sum(1 for e in self.history if e.is_pending)

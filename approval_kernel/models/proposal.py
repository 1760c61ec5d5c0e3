"""
Module: approval_kernel.models.proposal
Responsibility: ORM persistence for proposals and their decision ledger.

Architecture position: Kernel > Models.  May import from db/base.py,
    domain/ and exceptions only.

Invariants enforced:
    - Valid status values: DB check constraint mirrors ProposalStatus.
    - Optimistic concurrency: ``version`` is bumped on every ledger write;
      the store updates with ``WHERE version = :expected``.
    - Append-only ledger: history rows cannot be UPDATEd; only Pending rows
      may be DELETEd (the controlled replace-then-append on approval).

Failure modes:
    - IntegrityError on duplicate proposal_id or entry_id.
    - ImmutabilityViolationError on history UPDATE, or DELETE of a
      non-Pending row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from approval_kernel.db.base import Base, UUIDString
from approval_kernel.domain.proposal import (
    HistoryAction,
    HistoryEntry,
    Proposal,
    ProposalStatus,
)
from approval_kernel.exceptions import ImmutabilityViolationError

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ProposalStatus)
_ACTION_VALUES = ", ".join(f"'{a.value}'" for a in HistoryAction)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on DateTime(timezone=True) columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProposalModel(Base):
    """Persistent proposal header.

    Contract:
        ``status``, ``current_approver`` and ``version`` change only through
        the proposal store's compare-and-swap update.
    """

    __tablename__ = "proposals"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_proposals_valid_status",
        ),
        Index("ix_proposals_status", "status"),
    )

    proposal_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    proposal_no: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    creator: Mapped[str] = mapped_column(String(200), nullable=False)
    jobsite: Mapped[str] = mapped_column(String(100), nullable=False)
    creator_jobsite: Mapped[str | None] = mapped_column(String(100), nullable=True)
    creator_department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    current_approver: Mapped[str | None] = mapped_column(String(200), nullable=True)
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    history: Mapped[list["ProposalHistoryModel"]] = relationship(
        "ProposalHistoryModel",
        back_populates="proposal",
        primaryjoin="ProposalModel.proposal_id == ProposalHistoryModel.proposal_id",
        order_by="ProposalHistoryModel.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<Proposal {self.proposal_id} {self.proposal_no} "
            f"status={self.status} v{self.version}>"
        )

    def to_dto(self) -> Proposal:
        """Convert ORM model to frozen domain snapshot."""
        return Proposal(
            proposal_id=self.proposal_id,
            proposal_no=self.proposal_no,
            status=ProposalStatus(self.status),
            creator=self.creator,
            jobsite=self.jobsite,
            creator_jobsite=self.creator_jobsite,
            creator_department=self.creator_department,
            amount=self.amount,
            history=tuple(row.to_dto() for row in self.history),
            version=self.version,
            current_approver=self.current_approver,
        )

    @classmethod
    def from_dto(cls, dto: Proposal) -> ProposalModel:
        """Create ORM model (header only) from a domain snapshot."""
        return cls(
            proposal_id=dto.proposal_id,
            proposal_no=dto.proposal_no,
            creator=dto.creator,
            jobsite=dto.jobsite,
            creator_jobsite=dto.creator_jobsite,
            creator_department=dto.creator_department,
            amount=dto.amount,
            status=dto.status.value,
            current_approver=dto.current_approver,
            version=dto.version,
        )


class ProposalHistoryModel(Base):
    """Persistent ledger row. Append-only, except Pending rows.

    Guarantees:
        - UNIQUE(proposal_id, sequence) keeps insertion order stable.
    """

    __tablename__ = "proposal_history"

    __table_args__ = (
        CheckConstraint(
            f"action IN ({_ACTION_VALUES})",
            name="ck_proposal_history_valid_action",
        ),
        UniqueConstraint("proposal_id", "sequence", name="uq_proposal_history_sequence"),
        Index("ix_proposal_history_proposal_id", "proposal_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    proposal_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("proposals.proposal_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(nullable=False)
    stage: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(200), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    approver: Mapped[str] = mapped_column(String(300), default="", nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    proposal: Mapped["ProposalModel"] = relationship(
        "ProposalModel",
        back_populates="history",
        foreign_keys=[proposal_id],
        primaryjoin="ProposalHistoryModel.proposal_id == ProposalModel.proposal_id",
    )

    def __repr__(self) -> str:
        return (
            f"<ProposalHistory {self.entry_id} "
            f"proposal={self.proposal_id} #{self.sequence} "
            f"{self.stage}/{self.action}>"
        )

    def to_dto(self) -> HistoryEntry:
        return HistoryEntry(
            entry_id=self.entry_id,
            stage=self.stage,
            role=self.role,
            action=HistoryAction(self.action),
            approver=self.approver,
            date=_aware(self.decided_at),
            comment=self.comment,
        )

    @classmethod
    def from_dto(cls, proposal_id: UUID, sequence: int, dto: HistoryEntry) -> ProposalHistoryModel:
        return cls(
            entry_id=dto.entry_id,
            proposal_id=proposal_id,
            sequence=sequence,
            stage=dto.stage,
            role=dto.role,
            action=dto.action.value,
            approver=dto.approver,
            decided_at=dto.date,
            comment=dto.comment,
        )


# =============================================================================
# ORM-Level Immutability for the Ledger
# =============================================================================


@event.listens_for(ProposalHistoryModel, "before_update")
def prevent_history_update(mapper, connection, target):
    """Prevent updates to ledger rows."""
    raise ImmutabilityViolationError(
        entity_type="ProposalHistory",
        entity_id=str(target.entry_id),
        reason="Ledger entries are immutable -- cannot modify",
    )


@event.listens_for(ProposalHistoryModel, "before_delete")
def prevent_decided_history_delete(mapper, connection, target):
    """Only the open (Pending) step may be removed from the ledger."""
    if target.action != HistoryAction.PENDING.value:
        raise ImmutabilityViolationError(
            entity_type="ProposalHistory",
            entity_id=str(target.entry_id),
            reason=f"{target.action} entries are immutable -- cannot delete",
        )

"""
approval_kernel.services.proposal_store -- SQLAlchemy-backed ProposalStore.

Responsibility:
    Loads proposal snapshots and applies the single persistence patch issued
    per decision.  The patch carries the complete new history; the store
    reconciles it against the stored rows (delete dropped Pending rows,
    insert new rows) and bumps the version.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Single writer per proposal: ``update`` is a compare-and-swap on
      ``version`` (``UPDATE ... WHERE version = :expected``).
    - Append-only ledger: stored rows are never rewritten; only Pending rows
      may disappear from a patch (ORM listener backs this up).
    - Flush-only: never commits.

Failure modes:
    - ProposalNotFoundError if the id is unknown.
    - OptimisticLockError when the stored version differs from the patch's
      ``expected_version``.
    - ImmutabilityViolationError when a patch drops a decided row.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select, update

from approval_kernel.domain.ports import ProposalUpdate
from approval_kernel.domain.proposal import HistoryEntry, Proposal
from approval_kernel.exceptions import (
    OptimisticLockError,
    ProposalNotFoundError,
)
from approval_kernel.logging_config import get_logger
from approval_kernel.models.proposal import ProposalHistoryModel, ProposalModel
from approval_kernel.services.base import BaseService

logger = get_logger("services.proposal_store")


class SqlAlchemyProposalStore(BaseService[ProposalModel]):
    """ProposalStore over the ``proposals`` / ``proposal_history`` tables."""

    model = ProposalModel

    def add(self, proposal: Proposal) -> Proposal:
        """Persist a new proposal with its initial history."""
        model = ProposalModel.from_dto(proposal)
        self.session.add(model)
        self._append_rows(proposal.proposal_id, proposal.history, start=1)
        self.session.flush()
        self.session.expire(model)

        logger.info(
            "proposal_stored",
            extra={
                "proposal_id": str(proposal.proposal_id),
                "status": proposal.status.value,
                "history_entries": len(proposal.history),
            },
        )
        return model.to_dto()

    def get(self, proposal_id: UUID) -> Proposal:
        return self._load(proposal_id).to_dto()

    def list_proposals(self, proposal_ids: Iterable[UUID] | None = None) -> list[Proposal]:
        stmt = select(ProposalModel).order_by(ProposalModel.proposal_no)
        if proposal_ids is not None:
            stmt = stmt.where(ProposalModel.proposal_id.in_(list(proposal_ids)))
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def update(self, proposal_id: UUID, patch: ProposalUpdate) -> Proposal:
        """Apply ``patch`` if the stored version still equals ``expected_version``."""
        model = self._load(proposal_id)
        if model.version != patch.expected_version:
            raise OptimisticLockError(
                str(proposal_id), patch.expected_version, model.version,
            )

        result = self.session.execute(
            update(ProposalModel)
            .where(
                ProposalModel.proposal_id == proposal_id,
                ProposalModel.version == patch.expected_version,
            )
            .values(
                status=patch.status.value,
                current_approver=patch.current_approver,
                version=patch.expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Lost the race between the read above and the write
            raise OptimisticLockError(str(proposal_id), patch.expected_version, None)

        self._sync_history(model, patch.history)
        self.session.flush()
        self.session.expire(model)

        logger.info(
            "proposal_updated",
            extra={
                "proposal_id": str(proposal_id),
                "status": patch.status.value,
                "version": patch.expected_version + 1,
            },
        )
        return model.to_dto()

    # -- internals ------------------------------------------------------

    def _load(self, proposal_id: UUID) -> ProposalModel:
        model = self._find(ProposalModel.proposal_id == proposal_id, refresh=True)
        if model is None:
            raise ProposalNotFoundError(str(proposal_id))
        return model

    def _sync_history(self, model: ProposalModel, history: tuple[HistoryEntry, ...]) -> None:
        stored = {row.entry_id: row for row in model.history}
        wanted = {entry.entry_id for entry in history}

        for entry_id, row in stored.items():
            if entry_id not in wanted:
                self.session.delete(row)

        # Deleted sequences are not reused; the unit of work inserts before it deletes
        next_sequence = max((row.sequence for row in stored.values()), default=0) + 1
        new_entries = [e for e in history if e.entry_id not in stored]
        self._append_rows(model.proposal_id, new_entries, start=next_sequence)

    def _append_rows(
        self,
        proposal_id: UUID,
        entries: Iterable[HistoryEntry],
        start: int,
    ) -> None:
        for offset, entry in enumerate(entries):
            self.session.add(
                ProposalHistoryModel.from_dto(proposal_id, start + offset, entry)
            )

"""
approval_services.approval_service -- Proposal approval workflow.

Responsibility:
    The exposed API of the approval core: create, submit, approve and
    reject proposals, answer "may this actor act" and "what is waiting for
    me", and render the visible timeline.  Thin coordinator: routing,
    authorization, status computation and ledger updates are delegated to
    the pure engines; persistence to the injected ``ProposalStore``.

Architecture position:
    Services layer.  May import from approval_engines/ (pure engines),
    approval_config/ and approval_kernel/ (domain, exceptions, logging).

Invariants enforced:
    - Decisions act on the STORED proposal.  A snapshot whose status no
      longer matches the stored one is refused ("stage already decided"),
      so a repeated call never decides the next stage by accident.
    - All-or-nothing: every check runs before the single store write, and
      the write is a compare-and-swap on the proposal version.
    - Draft bootstrap: the initial-verification role may "approve" a Draft,
      which performs the submission transition and nothing more.

Failure modes:
    - AuthorizationError / TerminalStateError from the guard.
    - MissingCommentError on reject without a comment.
    - RoutingError when the matrix has no step for the proposal.
    - OptimisticLockError when the proposal changed between read and write.
    - ProposalNotFoundError / ActorNotFoundError from the collaborators.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import uuid4

from approval_config.schema import MatrixDefinition
from approval_engines import ledger
from approval_engines.authorization import AuthorizationGuard
from approval_engines.matrix import ConfiguredApprovalMatrix
from approval_engines.routing import RoutingResolver
from approval_engines.state_machine import ApprovalStateMachine
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.ports import (
    ActorDirectory,
    ApprovalStep,
    MatrixProvider,
    ProposalStore,
)
from approval_kernel.domain.proposal import (
    ApprovalOutcome,
    HistoryEntry,
    Proposal,
    ProposalStatus,
)
from approval_kernel.domain.roles import Actor, Role, RoleKind
from approval_kernel.exceptions import (
    AuthorizationError,
    RoutingError,
    TerminalStateError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_services._outcome import (
    STAGE_ALREADY_DECIDED,
    is_stale,
    persist_outcome,
    resolve_actor,
)
from approval_services.admin_override import AdminOverrideService

logger = get_logger("services.approval_service")


class ApprovalService:
    """Coordinates routing, authorization and the ledger for proposals."""

    def __init__(
        self,
        store: ProposalStore,
        matrix: MatrixProvider,
        *,
        directory: ActorDirectory | None = None,
        resolver: RoutingResolver | None = None,
        guard: AuthorizationGuard | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._matrix = matrix
        self._directory = directory
        self._resolver = resolver or RoutingResolver()
        self._guard = guard or AuthorizationGuard(self._resolver)
        self._clock = clock or SystemClock()
        self._machine = ApprovalStateMachine(matrix)
        self._override = AdminOverrideService(
            store, self._machine, self._guard, directory=directory, clock=self._clock,
        )

    @classmethod
    def from_definition(
        cls,
        store: ProposalStore,
        definition: MatrixDefinition,
        *,
        directory: ActorDirectory | None = None,
        clock: Clock | None = None,
    ) -> ApprovalService:
        """Wire resolver, matrix and guard from a loaded matrix definition."""
        resolver = RoutingResolver()
        guard = AuthorizationGuard(
            resolver,
            initial_verification_role=definition.settings.initial_verification_role,
            administrator_role=definition.settings.administrator_role,
        )
        return cls(
            store,
            ConfiguredApprovalMatrix(definition, resolver),
            directory=directory,
            resolver=resolver,
            guard=guard,
            clock=clock,
        )

    @property
    def guard(self) -> AuthorizationGuard:
        return self._guard

    @property
    def state_machine(self) -> ApprovalStateMachine:
        return self._machine

    # -- queries ----------------------------------------------------------

    def can_act(self, actor: Actor | str, proposal: Proposal) -> bool:
        """True if ``actor`` may approve or reject ``proposal`` as given."""
        return self._guard.can_act(resolve_actor(self._directory, actor), proposal)

    def required_role(self, proposal: Proposal) -> Role | None:
        return self._guard.required_role(proposal)

    def approval_path(self, proposal: Proposal) -> tuple[ApprovalStep, ...] | None:
        """Full ordered path the matrix prescribes for ``proposal``."""
        return self._matrix.approval_path(proposal)

    def pending_for(self, actor: Actor | str, proposals: Iterable[Proposal]) -> list[Proposal]:
        """Proposals waiting on ``actor``: submitted, open, and theirs to decide."""
        who = resolve_actor(self._directory, actor)
        return [
            p for p in proposals
            if p.status != ProposalStatus.DRAFT
            and not p.is_terminal
            and self._guard.can_act(who, p)
        ]

    def timeline(self, proposal: Proposal) -> tuple[HistoryEntry, ...]:
        return ledger.visible_timeline(proposal)

    # -- lifecycle --------------------------------------------------------

    def create_draft(
        self,
        creator: Actor | str,
        *,
        jobsite: str,
        amount: Decimal,
        proposal_no: str = "",
    ) -> Proposal:
        """Store a new Draft owned by ``creator`` with its Created entry.

        Routing context (creator department and jobsite) is taken from the
        creator's directory entry.
        """
        owner = resolve_actor(self._directory, creator)
        creator_role = owner.role_name
        if owner.department and owner.jobsite:
            creator_role = Role.site_scoped(RoleKind.CREATOR, owner.department, owner.jobsite).name

        proposal = Proposal(
            proposal_id=uuid4(),
            proposal_no=proposal_no,
            status=ProposalStatus.DRAFT,
            creator=owner.name,
            jobsite=jobsite,
            creator_jobsite=owner.jobsite,
            creator_department=owner.department,
            amount=Decimal(amount),
            history=ledger.open_history(owner.name, creator_role, self._clock.now()),
        )
        stored = self._store.add(proposal)
        logger.info(
            "proposal_created",
            extra={
                "proposal_id": str(stored.proposal_id),
                "proposal_no": proposal_no,
                "creator": owner.name,
                "amount": stored.amount,
            },
        )
        return stored

    def submit(self, actor: Actor | str, proposal: Proposal) -> ApprovalOutcome:
        """Move a Draft into its first matrix stage."""
        who = resolve_actor(self._directory, actor)
        with LogContext.bind(proposal_id=str(proposal.proposal_id), actor_name=who.name):
            current = self._store.get(proposal.proposal_id)
            if current.is_terminal:
                raise TerminalStateError(str(current.proposal_id), current.status.value)
            if not self._guard.can_submit(who, current):
                reason = (
                    "proposal has already been submitted"
                    if current.status != ProposalStatus.DRAFT
                    else "only the creator or the verifier may submit"
                )
                self._deny("submit", who, current, reason)
            return self._submit(who, current)

    def approve(
        self,
        actor: Actor | str,
        proposal: Proposal,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        """Approve the current stage of ``proposal`` and open the next one."""
        who = resolve_actor(self._directory, actor)
        with LogContext.bind(proposal_id=str(proposal.proposal_id), actor_name=who.name):
            current = self._store.get(proposal.proposal_id)
            self._authorize("approve", who, proposal, current)

            if current.status == ProposalStatus.DRAFT:
                return self._submit(who, current, comment)

            try:
                outcome = ledger.approve(
                    who, current, comment,
                    machine=self._machine,
                    now=self._clock.now(),
                )
            except RoutingError as exc:
                self._log_routing_failure(current, exc)
                raise

            persist_outcome(self._store, current, outcome)
            logger.info(
                "proposal_approved",
                extra={
                    "from_status": current.status.value,
                    "to_status": outcome.status.value,
                    "next_approver": outcome.current_approver,
                },
            )
            return outcome

    def reject(
        self,
        actor: Actor | str,
        proposal: Proposal,
        comment: str | None,
    ) -> ApprovalOutcome:
        """Reject ``proposal`` at its current stage. ``comment`` is mandatory."""
        who = resolve_actor(self._directory, actor)
        with LogContext.bind(proposal_id=str(proposal.proposal_id), actor_name=who.name):
            current = self._store.get(proposal.proposal_id)
            self._authorize("reject", who, proposal, current)

            outcome = ledger.reject(who, current, comment, now=self._clock.now())

            persist_outcome(self._store, current, outcome)
            logger.info(
                "proposal_rejected",
                extra={"from_status": current.status.value},
            )
            return outcome

    # -- admin override ---------------------------------------------------

    def admin_approve(
        self,
        actor: Actor | str,
        proposal: Proposal,
        impersonated_role: str | None,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        return self._override.admin_approve(actor, proposal, impersonated_role, comment)

    def admin_reject(
        self,
        actor: Actor | str,
        proposal: Proposal,
        impersonated_role: str | None,
        comment: str | None,
    ) -> ApprovalOutcome:
        return self._override.admin_reject(actor, proposal, impersonated_role, comment)

    # -- internals --------------------------------------------------------

    def _submit(
        self,
        actor: Actor,
        current: Proposal,
        comment: str | None = None,
    ) -> ApprovalOutcome:
        try:
            outcome = ledger.submit(
                actor, current,
                machine=self._machine,
                now=self._clock.now(),
                comment=comment or ledger.SUBMITTED_COMMENT,
            )
        except RoutingError as exc:
            self._log_routing_failure(current, exc)
            raise

        persist_outcome(self._store, current, outcome)
        logger.info(
            "proposal_submitted",
            extra={
                "to_status": outcome.status.value,
                "next_approver": outcome.current_approver,
            },
        )
        return outcome

    def _authorize(
        self,
        action: str,
        actor: Actor,
        snapshot: Proposal,
        current: Proposal,
    ) -> None:
        if current.is_terminal:
            raise TerminalStateError(str(current.proposal_id), current.status.value)
        if is_stale(snapshot, current):
            required = self._guard.required_role(current)
            self._deny(
                action, actor, current, STAGE_ALREADY_DECIDED,
                required.name if required else None,
            )

        decision = self._guard.evaluate(actor, current)
        if decision.allowed:
            return
        self._deny(
            action, actor, current, decision.reason,
            decision.required_role.name if decision.required_role else None,
        )

    @staticmethod
    def _deny(
        action: str,
        actor: Actor,
        current: Proposal,
        reason: str,
        required_role: str | None = None,
    ) -> None:
        logger.warning(
            "authorization_denied",
            extra={
                "action": action,
                "status": current.status.value,
                "role_name": actor.role_name,
                "required_role": required_role,
                "reason": reason,
            },
        )
        raise AuthorizationError(
            proposal_id=str(current.proposal_id),
            actor_name=actor.name,
            status=current.status.value,
            required_role=required_role,
            reason=reason,
        )

    @staticmethod
    def _log_routing_failure(current: Proposal, exc: RoutingError) -> None:
        logger.error(
            "routing_failed",
            extra={
                "status": current.status.value,
                "amount": current.amount,
                "creator_department": current.creator_department,
                "creator_jobsite": current.routing_jobsite,
                "reason": exc.reason,
            },
        )

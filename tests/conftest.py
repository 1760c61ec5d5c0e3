"""
Pytest fixtures for the procurement approval test suite.

Provides:
- Structured-logging setup and a ``captured_logs`` fixture
- A deterministic clock
- The default approval matrix, resolver, guard and state machine
- In-memory SQLite sessions with the proposal store and actor directory
- Actor and proposal factories

Environment Variables:
- DATABASE_URL: SQLAlchemy URL for the persistence tests.  Defaults to an
  in-memory SQLite database; a PostgreSQL URL works as well.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from approval_config import get_active_matrix
from approval_config.schema import MatrixDefinition
from approval_engines import (
    ApprovalStateMachine,
    AuthorizationGuard,
    ConfiguredApprovalMatrix,
    RoutingResolver,
)
from approval_engines import ledger
from approval_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from approval_kernel.domain.clock import DeterministicClock
from approval_kernel.domain.proposal import HistoryEntry, Proposal, ProposalStatus
from approval_kernel.domain.roles import Actor
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from approval_kernel.services import SqlAlchemyActorDirectory, SqlAlchemyProposalStore
from approval_services import ApprovalService

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture approval_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, approval_service):
            approval_service.approve(actor, proposal)
            logs = captured_logs()
            assert any(r["message"] == "proposal_approved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("approval_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Pure collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture(scope="session")
def matrix_definition() -> MatrixDefinition:
    return get_active_matrix()


@pytest.fixture
def resolver() -> RoutingResolver:
    return RoutingResolver()


@pytest.fixture
def approval_matrix(matrix_definition, resolver) -> ConfiguredApprovalMatrix:
    return ConfiguredApprovalMatrix(matrix_definition, resolver)


@pytest.fixture
def state_machine(approval_matrix) -> ApprovalStateMachine:
    return ApprovalStateMachine(approval_matrix)


@pytest.fixture
def guard(resolver, matrix_definition) -> AuthorizationGuard:
    return AuthorizationGuard(
        resolver,
        initial_verification_role=matrix_definition.settings.initial_verification_role,
        administrator_role=matrix_definition.settings.administrator_role,
    )


# =============================================================================
# Factories
# =============================================================================


def build_actor(
    name: str = "Budi Santoso",
    role_name: str = "Section Head IT Department JAHO",
    department: str | None = "IT",
    jobsite: str | None = "JAHO",
) -> Actor:
    return Actor(name=name, role_name=role_name, department=department, jobsite=jobsite)


def build_proposal(
    status: ProposalStatus = ProposalStatus.DRAFT,
    *,
    amount: Decimal | str | int = Decimal("1000"),
    creator: str = "Rina Wijaya",
    creator_department: str | None = "IT",
    creator_jobsite: str | None = "JAHO",
    jobsite: str = "JAHO",
    history: tuple[HistoryEntry, ...] | None = None,
    proposal_no: str = "PR-2025-0001",
    version: int = 1,
    clock: DeterministicClock | None = None,
) -> Proposal:
    """A proposal snapshot; Drafts get a Created entry by default."""
    if history is None:
        now = (clock or DeterministicClock()).now()
        history = ledger.open_history(
            creator, f"Creator {creator_department} Department {creator_jobsite}", now,
        )
    return Proposal(
        proposal_id=uuid4(),
        proposal_no=proposal_no,
        status=status,
        creator=creator,
        jobsite=jobsite,
        creator_jobsite=creator_jobsite,
        creator_department=creator_department,
        amount=Decimal(str(amount)),
        history=history,
        version=version,
    )


@pytest.fixture
def make_actor():
    return build_actor


@pytest.fixture
def make_proposal(deterministic_clock):
    def _make(*args, **kwargs) -> Proposal:
        kwargs.setdefault("clock", deterministic_clock)
        return build_proposal(*args, **kwargs)

    return _make


@pytest.fixture
def submitted_proposal(make_proposal, state_machine, deterministic_clock):
    """Factory: a proposal already moved out of Draft by its creator."""

    def _make(**kwargs) -> Proposal:
        draft = make_proposal(ProposalStatus.DRAFT, **kwargs)
        creator = build_actor(
            name=draft.creator,
            role_name=f"Creator {draft.creator_department} Department {draft.creator_jobsite}",
            department=draft.creator_department,
            jobsite=draft.creator_jobsite,
        )
        outcome = ledger.submit(
            creator, draft, machine=state_machine, now=deterministic_clock.now(),
        )
        return draft.with_ledger(outcome.status, outcome.history)

    return _make


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def engine():
    """Fresh schema per test; in-memory SQLite by default."""
    eng = init_engine_from_url(get_database_url())
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def proposal_store(session) -> SqlAlchemyProposalStore:
    return SqlAlchemyProposalStore(session)


@pytest.fixture
def actor_directory(session) -> SqlAlchemyActorDirectory:
    return SqlAlchemyActorDirectory(session)


@pytest.fixture
def approval_service(proposal_store, actor_directory, matrix_definition, deterministic_clock):
    return ApprovalService.from_definition(
        proposal_store,
        matrix_definition,
        directory=actor_directory,
        clock=deterministic_clock,
    )

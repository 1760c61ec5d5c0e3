"""
Tests for approval_kernel.logging_config.

Covers:
- One JSON object per line with fixed fields, context fields and extra
- Structured exception fields, including ApprovalKernelError attributes
- Serialization of the domain values services log (UUID, Decimal, enums)
- LogContext set/clear/bind semantics
- configure_logging idempotency and the logger namespace
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from approval_kernel.domain.proposal import ProposalStatus
from approval_kernel.exceptions import AuthorizationError, MatrixConfigError
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    """Start from an unconfigured namespace; put the suite's setup back after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _structured_handlers() -> list[logging.Handler]:
    """Handlers installed by configure_logging (pytest may attach its own)."""
    return [
        h for h in logging.getLogger("approval_kernel").handlers
        if isinstance(h.formatter, StructuredFormatter)
    ]


@pytest.fixture
def log_records():
    """Configure logging onto a buffer; returns a reader of parsed records."""
    stream = StringIO()
    configure_logging(stream=stream, level=logging.INFO)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


class TestRecordShape:
    def test_fixed_fields(self, log_records):
        get_logger("services.approval_service").info("proposal_submitted")

        (record,) = log_records()
        assert record["level"] == "INFO"
        assert record["message"] == "proposal_submitted"
        assert record["logger"] == "approval_kernel.services.approval_service"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_fields(self, log_records):
        get_logger("test").info(
            "proposal_approved",
            extra={"to_status": "On Section Head Approval", "next_approver": "Budi"},
        )

        (record,) = log_records()
        assert record["to_status"] == "On Section Head Approval"
        assert record["next_approver"] == "Budi"

    def test_context_fields(self, log_records):
        LogContext.set(correlation_id="req-7", proposal_id="p-1", actor_name="Agus")
        get_logger("test").info("proposal_rejected")

        (record,) = log_records()
        assert record["correlation_id"] == "req-7"
        assert record["proposal_id"] == "p-1"
        assert record["actor_name"] == "Agus"

    def test_context_absent_when_unbound(self, log_records):
        get_logger("test").info("bare")

        (record,) = log_records()
        assert "proposal_id" not in record
        assert "actor_name" not in record

    def test_context_wins_over_extra(self, log_records):
        with LogContext.bind(proposal_id="from-context"):
            get_logger("test").info("collision", extra={"proposal_id": "from-extra"})

        (record,) = log_records()
        assert record["proposal_id"] == "from-context"

    def test_below_level_dropped(self, log_records):
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")

        assert [r["message"] for r in log_records()] == ["shown"]

    def test_domain_values(self, log_records):
        proposal_id = uuid4()
        when = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)
        get_logger("test").info(
            "values",
            extra={
                "proposal_uuid": proposal_id,
                "amount": Decimal("150000.50"),
                "status": ProposalStatus.ON_REVIEW_1,
                "decided_at": when,
                "roles": ("Verificator", "Administrator"),
            },
        )

        (record,) = log_records()
        assert record["proposal_uuid"] == str(proposal_id)
        assert record["amount"] == "150000.50"
        assert record["status"] == "On Review 1"
        assert record["decided_at"] == when.isoformat()
        assert record["roles"] == ["Verificator", "Administrator"]


class TestExceptionFields:
    def test_plain_exception(self, log_records):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = log_records()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_authorization_error_attributes(self, log_records):
        try:
            raise AuthorizationError(
                "p-1", "Budi", "On Unit Head Approval", "Unit Head IT Department JAHO",
            )
        except AuthorizationError:
            get_logger("test").error("authorization_error", exc_info=True)

        (record,) = log_records()
        assert record["exc_code"] == "NOT_AUTHORIZED"
        assert record["exc_actor_name"] == "Budi"
        assert record["exc_status"] == "On Unit Head Approval"
        assert record["exc_required_role"] == "Unit Head IT Department JAHO"
        assert record["exc_reason"] == "not your turn"

    def test_list_attribute(self, log_records):
        try:
            raise MatrixConfigError(["Gap between bands 'A' and 'B'"], source="m.yaml")
        except MatrixConfigError:
            get_logger("config").error("approval_matrix_invalid", exc_info=True)

        (record,) = log_records()
        assert record["exc_code"] == "MATRIX_CONFIG_INVALID"
        assert record["exc_errors"] == ["Gap between bands 'A' and 'B'"]
        assert record["exc_source"] == "m.yaml"


class TestLogContext:
    def test_set_is_additive(self):
        LogContext.set(correlation_id="a")
        LogContext.set(actor_name="b")

        assert LogContext.get_all() == {"correlation_id": "a", "actor_name": "b"}

    def test_set_none_keeps_value(self):
        LogContext.set(proposal_id="p")
        LogContext.set(proposal_id=None)

        assert LogContext.get_all() == {"proposal_id": "p"}

    def test_clear(self):
        LogContext.set(correlation_id="x", proposal_id="y")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_bind_nests_and_restores(self):
        LogContext.set(actor_name="outer")
        with LogContext.bind(actor_name="inner", proposal_id="p"):
            assert LogContext.get_all() == {"actor_name": "inner", "proposal_id": "p"}
        assert LogContext.get_all() == {"actor_name": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(proposal_id="temp"):
                raise RuntimeError("stop")

        assert "proposal_id" not in LogContext.get_all()

    def test_bind_ignores_unknown_and_none(self):
        with LogContext.bind(proposal_id="p", tenant="t", actor_name=None):
            assert LogContext.get_all() == {"proposal_id": "p"}


class TestConfigureLogging:
    def test_idempotent(self):
        reset_logging()
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())

        configure_logging(handler=first)
        configure_logging(handler=second)

        namespace = logging.getLogger("approval_kernel")
        assert _structured_handlers() == [first]
        assert second not in namespace.handlers
        assert namespace.propagate is False

    def test_reset_allows_reconfigure(self):
        reset_logging()
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        reset_logging()
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=second)

        namespace = logging.getLogger("approval_kernel")
        assert _structured_handlers() == [second]
        assert first not in namespace.handlers

    def test_child_loggers_inherit(self):
        stream = StringIO()
        configure_logging(stream=stream, level=logging.DEBUG)
        get_logger("engines.deep.module").debug("hierarchy")

        record = json.loads(stream.getvalue().splitlines()[0])
        assert record["logger"] == "approval_kernel.engines.deep.module"

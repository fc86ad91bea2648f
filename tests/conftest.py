"""
Pytest fixtures for the demand kernel test suite.

Provides:
- Database sessions isolated per test by transaction rollback
- Logging capture, deterministic clock and notification sink
- Factories for demands, committee members and squad members

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.
  If not set, an in-memory SQLite database is used.
"""

import json
import logging
import os
from datetime import date
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from demand_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from demand_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from demand_kernel.domain.clock import DeterministicClock
from demand_kernel.domain.lifecycle import DemandStatus, Priority
from demand_kernel.domain.notifications import CollectingNotificationSink
from demand_kernel.domain.policy import DEFAULT_POLICY
from demand_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from demand_kernel.models.demand import DemandModel
from demand_kernel.models.roster import CommitteeMemberModel, SquadMemberModel
from demand_kernel.services.approval_service import ApprovalService
from demand_kernel.services.demand_service import DemandService
from demand_kernel.services.event_log_service import EventLogService
from demand_kernel.services.phase_service import PhaseService
from demand_kernel.services.scope_change_service import ScopeChangeService
from demand_kernel.services.transition_service import TransitionService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

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
    Capture demand_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, transition_service):
            transition_service.transition(...)
            logs = captured_logs()
            assert any(r["message"] == "transition_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("demand_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables(db_engine)
    create_tables(db_engine)
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables(db_engine)


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; any
    ``session.commit()`` inside a test only releases a savepoint.  The outer
    transaction is rolled back at teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Basic fixtures
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def notification_sink():
    return CollectingNotificationSink()


@pytest.fixture
def policy():
    return DEFAULT_POLICY


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def demand_service(session, deterministic_clock, policy, notification_sink):
    return DemandService(session, deterministic_clock, policy, notification_sink)


@pytest.fixture
def event_log_service(session, deterministic_clock):
    return EventLogService(session, deterministic_clock)


@pytest.fixture
def transition_service(session, deterministic_clock, policy, notification_sink):
    return TransitionService(session, deterministic_clock, policy, notification_sink)


@pytest.fixture
def approval_service(session, deterministic_clock, policy, notification_sink):
    return ApprovalService(
        session, deterministic_clock, policy=policy, notifications=notification_sink,
    )


@pytest.fixture
def scope_change_service(session, deterministic_clock, notification_sink):
    return ScopeChangeService(session, deterministic_clock, notification_sink)


@pytest.fixture
def phase_service(session, deterministic_clock):
    return PhaseService(session, deterministic_clock)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def requester_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_demand(demand_service, requester_id):
    """Factory fixture creating a demand through DemandService.

    ``status`` places the demand directly in a lifecycle state, bypassing the
    validator, for tests that start mid-lifecycle.
    """

    def _make(
        *,
        company="ZS",
        priority=Priority.HIGH,
        title="Invoice export to ERP",
        status=None,
        squad=None,
        regulatory=False,
        regulatory_deadline=None,
        technical_approval=False,
        committee_approval_percent=0,
        **kwargs,
    ):
        requester = kwargs.pop("requester", requester_id)
        demand = demand_service.create(
            company,
            requester,
            priority,
            title,
            squad=squad,
            regulatory=regulatory,
            regulatory_deadline=regulatory_deadline,
            **kwargs,
        )
        if status is None and not technical_approval and not committee_approval_percent:
            return demand

        model = demand_service.session.get(DemandModel, demand.id)
        if status is not None:
            model.status = DemandStatus(status).value
        model.technical_approval = technical_approval
        model.committee_approval_percent = committee_approval_percent
        demand_service.session.flush()
        return model.to_dto()

    return _make


@pytest.fixture
def make_regulatory_demand(make_demand):
    def _make(**kwargs):
        kwargs.setdefault("regulatory", True)
        kwargs.setdefault("regulatory_deadline", date(2026, 3, 31))
        return make_demand(**kwargs)

    return _make


@pytest.fixture
def add_committee_member(session):
    """Factory fixture inserting a committee roster row."""

    def _add(display_name=None, *, user_id=None, active=True):
        member = CommitteeMemberModel(
            user_id=user_id or uuid4(),
            display_name=display_name,
            active=active,
        )
        session.add(member)
        session.flush()
        return member.to_dto()

    return _add


@pytest.fixture
def add_squad_member(session):
    def _add(company, squad, *, user_id=None, display_name=None):
        member = SquadMemberModel(
            company=company,
            squad=squad,
            user_id=user_id or uuid4(),
            display_name=display_name,
        )
        session.add(member)
        session.flush()
        return member.user_id

    return _add

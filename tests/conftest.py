"""
Pytest fixtures for the approval engine test suite.

Provides:
- A session-scoped engine and schema (kernel + module tables)
- Per-test sessions with real commits and row cleanup at teardown
- Factories for team members, delegations, policies and entities
- Recording notification channels and an inline runner

Environment Variables:
- DATABASE_URL: database connection URL.  If not set, a temporary SQLite
  file is used.  Thread-race tests only run against PostgreSQL.
"""

import json
import logging
import os
import tempfile
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from pathlib import Path
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from approvals_kernel.db.base import Base
from approvals_kernel.db.engine import (
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from approvals_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from approvals_kernel.domain.approval import EntityType
from approvals_kernel.domain.clock import DeterministicClock
from approvals_kernel.domain.roles import AudiencePolicy
from approvals_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from approvals_kernel.models.approval_policy import ApprovalLevelModel, ApprovalPolicyModel
from approvals_kernel.models.team_member import ApproverDelegationModel, TeamMemberModel
from approvals_kernel.selectors.member_selector import MemberSelector
from approvals_kernel.services.authorization import ApprovalAuthorizer
from approvals_kernel.services.channels import InlineRunner
from approvals_kernel.services.entity_approval import EntityApprovalService
from approvals_kernel.services.notification_dispatcher import (
    DispatcherSettings,
    NotificationDispatcher,
)
from approvals_kernel.services.step_processor import StepProcessor
from approvals_modules import default_registry
from approvals_modules._orm_registry import create_all_tables
from approvals_modules.assets.orm import AssetRequestModel
from approvals_modules.leave.orm import LeaveRequestModel
from approvals_modules.payroll.orm import PayrollRunModel, PayrollRunStatus
from approvals_modules.procurement.orm import PurchaseRequestModel


_DEFAULT_SQLITE_PATH = Path(tempfile.gettempdir()) / f"approvals_test_{os.getpid()}.db"


def get_database_url() -> str:
    """Get database URL from environment, or use a temporary SQLite file."""
    return os.environ.get("DATABASE_URL", f"sqlite:///{_DEFAULT_SQLITE_PATH}")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising concurrent writers"
    )


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
    Capture approvals_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, processor):
            processor.process(command)
            logs = captured_logs()
            assert any(r["message"] == "approval_step_claimed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("approvals_kernel")
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
# Session-scoped DB infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(
        get_database_url(),
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_timeout=10,
    )
    yield eng
    reset_engine()
    if "DATABASE_URL" not in os.environ and _DEFAULT_SQLITE_PATH.exists():
        _DEFAULT_SQLITE_PATH.unlink()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    The immutability listener is registered once and remains active.
    """
    drop_tables()
    create_all_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


def _delete_all_rows(engine):
    """DELETE every row, children first.  Core statements skip ORM listeners."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


# =============================================================================
# Per-test sessions (real commits + row cleanup)
# =============================================================================


@pytest.fixture
def session_factory(db_engine, db_tables):
    """The engine's session factory.  All rows are deleted at teardown.

    Services under test open their own sessions from this factory, so
    test data must be committed to be visible to them.
    """
    yield get_session_factory()
    _delete_all_rows(db_engine)


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A session for arranging data and for services that only flush."""
    sess = session_factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


# =============================================================================
# Clock and identity fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_member(session, tenant_id):
    """Create and commit a team member.  Keyword arguments override columns."""

    def _make(name: str = "Member", **attrs) -> TeamMemberModel:
        member = TeamMemberModel(
            tenant_id=attrs.pop("tenant_id", tenant_id),
            name=name,
            email=attrs.pop("email", f"{name.lower().replace(' ', '.')}@example.com"),
            **attrs,
        )
        session.add(member)
        session.commit()
        return member

    return _make


@pytest.fixture
def make_delegation(session, tenant_id, deterministic_clock):
    """Create and commit a delegation active around the clock's current time."""

    def _make(
        delegator: TeamMemberModel,
        delegatee: TeamMemberModel,
        days_before: int = 1,
        days_after: int = 7,
        is_active: bool = True,
    ) -> ApproverDelegationModel:
        now = deterministic_clock.now()
        delegation = ApproverDelegationModel(
            tenant_id=tenant_id,
            delegator_id=delegator.id,
            delegatee_id=delegatee.id,
            start_at=now - timedelta(days=days_before),
            end_at=now + timedelta(days=days_after),
            is_active=is_active,
            created_by_id=delegator.id,
        )
        session.add(delegation)
        session.commit()
        return delegation

    return _make


@pytest.fixture
def make_policy(session, tenant_id, actor_id, deterministic_clock):
    """Create and commit a policy.

    ``levels`` is a list of role strings or ``(role, threshold)`` pairs,
    numbered from 1 in list order.  Each policy gets a creation time one
    second after the previous one.
    """

    def _make(
        entity_type: EntityType,
        levels,
        name: str | None = None,
        priority: int = 0,
        is_active: bool = True,
        policy_tenant_id: UUID | None = None,
        **ranges,
    ):
        created_at = deterministic_clock.tick()
        level_models = []
        for order, entry in enumerate(levels, start=1):
            role, threshold = entry if isinstance(entry, tuple) else (entry, None)
            level_models.append(ApprovalLevelModel(
                level_order=order,
                required_role=role,
                threshold=Decimal(str(threshold)) if threshold is not None else None,
            ))
        policy = ApprovalPolicyModel(
            tenant_id=policy_tenant_id or tenant_id,
            name=name or f"{entity_type.value} policy {created_at.isoformat()}",
            entity_type=entity_type.value,
            priority=priority,
            is_active=is_active,
            created_by_id=actor_id,
            created_at=created_at,
            updated_at=created_at,
            levels=level_models,
            **ranges,
        )
        session.add(policy)
        session.commit()
        return policy.to_dto()

    return _make


@pytest.fixture
def make_purchase_request(session, tenant_id):
    def _make(
        requester: TeamMemberModel,
        amount: str = "1000.00",
        reference: str = "PR-001",
        title: str = "Office chairs",
    ) -> PurchaseRequestModel:
        request = PurchaseRequestModel(
            tenant_id=tenant_id,
            reference_number=reference,
            requester_id=requester.id,
            title=title,
            total_amount=Decimal(amount),
            currency="USD",
            created_by_id=requester.id,
        )
        session.add(request)
        session.commit()
        return request

    return _make


@pytest.fixture
def make_leave_request(session, tenant_id):
    def _make(
        member: TeamMemberModel,
        days: str = "3",
        reference: str = "LR-001",
        leave_type: str = "Annual leave",
    ) -> LeaveRequestModel:
        start = date(2024, 2, 5)
        request = LeaveRequestModel(
            tenant_id=tenant_id,
            request_number=reference,
            member_id=member.id,
            leave_type=leave_type,
            start_date=start,
            end_date=start + timedelta(days=int(Decimal(days)) - 1),
            total_days=Decimal(days),
            created_by_id=member.id,
        )
        session.add(request)
        session.commit()
        return request

    return _make


@pytest.fixture
def make_asset_request(session, tenant_id):
    def _make(
        requester: TeamMemberModel,
        value: str | None = "800.00",
        reference: str = "AR-001",
        asset_name: str = "Laptop",
    ) -> AssetRequestModel:
        request = AssetRequestModel(
            tenant_id=tenant_id,
            request_number=reference,
            requester_id=requester.id,
            asset_name=asset_name,
            category="IT equipment",
            estimated_value=Decimal(value) if value is not None else None,
            created_by_id=requester.id,
        )
        session.add(request)
        session.commit()
        return request

    return _make


@pytest.fixture
def make_payroll_run(session, tenant_id):
    def _make(
        submitter: TeamMemberModel,
        gross: str = "52000.00",
        reference: str = "PAY-2024-01",
    ) -> PayrollRunModel:
        run = PayrollRunModel(
            tenant_id=tenant_id,
            run_number=reference,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 1, 31),
            employee_count=12,
            total_gross=Decimal(gross),
            total_net=Decimal(gross) * Decimal("0.8"),
            currency="USD",
            status=PayrollRunStatus.PENDING_APPROVAL.value,
            submitted_by_id=submitter.id,
            created_by_id=submitter.id,
        )
        session.add(run)
        session.commit()
        return run

    return _make


# =============================================================================
# Notification channels
# =============================================================================


class RecordingInApp:
    """In-app channel that records every bulk create."""

    def __init__(self):
        self.batches = []

    def create_bulk(self, tenant_id, requests):
        self.batches.append((tenant_id, list(requests)))
        return len(requests)

    @property
    def requests(self):
        return [r for _, batch in self.batches for r in batch]


class RecordingEmail:
    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)


class RecordingMessaging:
    def __init__(self):
        self.triggers = []

    def notify_approvers(self, trigger):
        self.triggers.append(trigger)


class FailingChannel:
    """A channel whose every call raises."""

    def create_bulk(self, tenant_id, requests):
        raise RuntimeError("in-app store unavailable")

    def send(self, message):
        raise RuntimeError("smtp unavailable")

    def notify_approvers(self, trigger):
        raise RuntimeError("messaging unavailable")


@pytest.fixture
def in_app():
    return RecordingInApp()


@pytest.fixture
def email():
    return RecordingEmail()


@pytest.fixture
def messaging():
    return RecordingMessaging()


@pytest.fixture
def failing_channel():
    return FailingChannel()


@pytest.fixture
def dispatcher(session_factory, in_app, email, messaging):
    """Admin-proxy dispatcher delivering inline to recording channels."""
    return NotificationDispatcher(
        session_factory=session_factory,
        in_app=in_app,
        email=email,
        messaging=messaging,
        runner=InlineRunner(),
    )


@pytest.fixture
def role_routed_dispatcher(session_factory, in_app, email, messaging):
    """Role-routed dispatcher delivering inline to recording channels."""
    return NotificationDispatcher(
        session_factory=session_factory,
        in_app=in_app,
        email=email,
        messaging=messaging,
        runner=InlineRunner(),
        settings=DispatcherSettings(audience_policy=AudiencePolicy.ROLE_ROUTED),
    )


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def processor(session, deterministic_clock) -> StepProcessor:
    """A StepProcessor over the test session.  Flushes only; tests commit."""
    authorizer = ApprovalAuthorizer(MemberSelector(session), deterministic_clock)
    return StepProcessor(session, authorizer, deterministic_clock)


@pytest.fixture
def approval_service(session_factory, dispatcher, deterministic_clock) -> EntityApprovalService:
    return EntityApprovalService(
        session_factory=session_factory,
        dispatcher=dispatcher,
        adapters=default_registry(),
        clock=deterministic_clock,
    )

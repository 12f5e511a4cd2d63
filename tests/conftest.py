"""
Pytest fixtures for the interest kernel test suite.

Provides:
- An in-memory SQLite database created once per session
- Per-test sessions isolated by transaction rollback
- In-memory ownership registry and settlement token
- A configured ConfigService and DistributionEngine

Environment Variables:
- DATABASE_URL: run the suite against another database (e.g. PostgreSQL).
  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from interest_kernel.adapters import InMemoryOwnershipRegistry, InMemoryTokenLedger
from interest_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from interest_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from interest_kernel.domain.clock import DeterministicClock
from interest_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from interest_kernel.services.auditor_service import AuditorService
from interest_kernel.services.config_service import ConfigService
from interest_kernel.services.distribution_engine import DistributionEngine
from interest_kernel.services.ledger_service import DistributionLedger

# Identities used throughout the suite
ADMIN_ID = "admin-0001"
FUNDING_ACCOUNT = "treasury-0001"
OPERATOR_ID = "distributor-0001"
TOKEN = "USDC"
TOKEN_DECIMALS = 6

# Assets of the reference scenarios
FRACTIONAL_ASSET = 1  # H1 owns 30 shares, H2 owns 70
WHOLE_ASSET = 2  # not fractionalized

WEEKLY_BUDGET = 700
PERIODS = 52

# Enough to pay several full periods
TREASURY_FUNDS = 10_000 * 10**TOKEN_DECIMALS


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
    Capture interest_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, distribution_engine):
            distribution_engine.distribute_interest(1, 0, ["H1"])
            logs = captured_logs()
            assert any(r["message"] == "interest_distributed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("interest_kernel")
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
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session; immutability listeners stay active."""
    drop_tables()
    create_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection;
    ``session.commit()`` inside a test only releases a savepoint, and the
    outer transaction is rolled back at teardown.
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
# Services
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def auditor_service(session, deterministic_clock) -> AuditorService:
    return AuditorService(session, deterministic_clock)


@pytest.fixture
def config_service(session, auditor_service, deterministic_clock) -> ConfigService:
    return ConfigService(session, auditor_service, deterministic_clock)


@pytest.fixture
def initialized_config(config_service):
    """Config row created by ADMIN_ID, everything else at its initial value."""
    return config_service.initialize(ADMIN_ID)


@pytest.fixture
def configured(config_service, initialized_config):
    """Token, budget and period bound set; engine unpaused."""
    config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
    config_service.set_weekly_interest_budget(WEEKLY_BUDGET, actor_id=ADMIN_ID)
    return config_service.set_periods_to_distribute(PERIODS, actor_id=ADMIN_ID)


@pytest.fixture
def ledger(session, deterministic_clock) -> DistributionLedger:
    return DistributionLedger(session, deterministic_clock)


# =============================================================================
# External collaborators
# =============================================================================


@pytest.fixture
def ownership_registry() -> InMemoryOwnershipRegistry:
    registry = InMemoryOwnershipRegistry(max_shares=100)
    registry.register_asset(FRACTIONAL_ASSET)
    registry.fractionalize(FRACTIONAL_ASSET, {"H1": 30, "H2": 70})
    registry.register_asset(WHOLE_ASSET, fractionalized=False)
    return registry


@pytest.fixture
def token_ledger() -> InMemoryTokenLedger:
    tokens = InMemoryTokenLedger()
    tokens.register_token(TOKEN, TOKEN_DECIMALS)
    tokens.mint(TOKEN, FUNDING_ACCOUNT, TREASURY_FUNDS)
    tokens.approve(TOKEN, FUNDING_ACCOUNT, OPERATOR_ID, TREASURY_FUNDS)
    return tokens


@pytest.fixture
def distribution_engine(
    session,
    configured,
    config_service,
    auditor_service,
    ownership_registry,
    token_ledger,
    deterministic_clock,
) -> DistributionEngine:
    return DistributionEngine(
        session,
        ownership=ownership_registry,
        settlement=token_ledger,
        funding_account=FUNDING_ACCOUNT,
        operator_id=OPERATOR_ID,
        config_service=config_service,
        auditor=auditor_service,
        clock=deterministic_clock,
    )

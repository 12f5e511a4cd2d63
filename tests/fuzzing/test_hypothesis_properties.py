"""
Hypothesis-based property tests for the distribution kernel.

Properties:
- Rounding bound: weights summing to max_shares pay at most the scaled
  budget, short by fewer units than there are holders
- Idempotency: repeating a distribution never transfers twice for a key
- Conservation: total_distributed equals the sum of records
- Range enforcement: any period at or above the bound is rejected
"""

from contextlib import contextmanager

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from interest_kernel.adapters import InMemoryOwnershipRegistry, InMemoryTokenLedger
from interest_kernel.db.types import UINT256_MAX
from interest_kernel.domain.dtos import OutcomeStatus
from interest_kernel.domain.entitlement import compute_entitlement, scaled_budget
from interest_kernel.exceptions import PeriodOutOfRangeError
from interest_kernel.services.distribution_engine import DistributionEngine
from tests.conftest import FUNDING_ACCOUNT, OPERATOR_ID, PERIODS, TOKEN, TOKEN_DECIMALS

DB_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

ASSET = 77


@contextmanager
def rolled_back(session):
    """Undo everything an example wrote so examples stay independent."""
    nested = session.begin_nested()
    try:
        yield
    finally:
        nested.rollback()


def _build_engine(session, config_service, weights: list[int]):
    registry = InMemoryOwnershipRegistry(max_shares=100)
    registry.register_asset(ASSET)
    holders = {f"H{i}": w for i, w in enumerate(weights)}
    registry.fractionalize(ASSET, holders)

    tokens = InMemoryTokenLedger()
    tokens.register_token(TOKEN, TOKEN_DECIMALS)
    tokens.mint(TOKEN, FUNDING_ACCOUNT, 10**30)
    tokens.approve(TOKEN, FUNDING_ACCOUNT, OPERATOR_ID, UINT256_MAX)

    engine = DistributionEngine(
        session, registry, tokens, FUNDING_ACCOUNT, OPERATOR_ID, config_service,
    )
    return engine, tokens, list(holders)


class TestRoundingBound:

    @given(
        weights=st.lists(st.integers(min_value=1, max_value=1_000), min_size=1, max_size=30),
        budget=st.integers(min_value=0, max_value=10**15),
        decimals=st.integers(min_value=0, max_value=18),
    )
    @settings(max_examples=300)
    def test_sum_within_budget_and_shortfall_bounded(self, weights, budget, decimals):
        max_shares = sum(weights)
        amounts = [compute_entitlement(budget, w, max_shares, decimals) for w in weights]
        cap = scaled_budget(budget, decimals)

        assert sum(amounts) <= cap
        assert cap - sum(amounts) < len(weights)

    @given(
        budget=st.integers(min_value=0, max_value=10**20),
        weight=st.integers(min_value=0, max_value=100),
        decimals=st.integers(min_value=0, max_value=18),
    )
    def test_entitlement_monotonic_in_weight(self, budget, weight, decimals):
        lower = compute_entitlement(budget, weight, 100, decimals)
        higher = compute_entitlement(budget, min(weight + 1, 100), 100, decimals)
        assert lower <= higher


class TestLedgerProperties:

    @given(
        weights=st.lists(st.integers(min_value=0, max_value=20), min_size=1, max_size=5),
        repeat_order=st.permutations(range(5)),
        period=st.integers(min_value=0, max_value=PERIODS - 1),
    )
    @DB_SETTINGS
    def test_idempotent_and_conserved(self, session, configured, config_service, weights, repeat_order, period):
        with rolled_back(session):
            engine, tokens, holders = _build_engine(session, config_service, weights)

            first = engine.distribute_interest(ASSET, period, holders)
            replay = [holders[i] for i in repeat_order if i < len(holders)]
            second = engine.distribute_interest(ASSET, period, replay)

            for holder, weight in zip(holders, weights):
                expected_transfers = 1 if weight else 0
                assert len(tokens.transfers_to(holder)) == expected_transfers

            assert second.paid_total == 0
            assert all(
                o.status in (OutcomeStatus.ALREADY_PAID, OutcomeStatus.NO_ENTITLEMENT)
                for o in second.outcomes
            )
            assert engine.ledger.total_distributed(ASSET) == first.paid_total
            assert engine.ledger.verify_conservation(ASSET)
            assert first.paid_total <= scaled_budget(configured.weekly_interest_budget, TOKEN_DECIMALS)

    @given(
        offset=st.integers(min_value=0, max_value=10**6),
        holders=st.lists(st.sampled_from(["H0", "H1", "H2", "H9"]), max_size=4),
    )
    @DB_SETTINGS
    def test_out_of_range_always_rejected(self, session, configured, config_service, offset, holders):
        with rolled_back(session):
            engine, tokens, _ = _build_engine(session, config_service, [30, 70])
            with pytest.raises(PeriodOutOfRangeError):
                engine.distribute_interest(ASSET, PERIODS + offset, holders)
            assert tokens.transfers == []
            assert engine.ledger.total_distributed(ASSET) == 0

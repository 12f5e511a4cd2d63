"""
Unit tests for entitlement arithmetic.

Verifies:
- Proportional amounts with multiplication before division
- Truncation toward zero and the per-holder rounding residue
- Full weight for non-fractionalized assets
- Hard failure on 256-bit overflow and invalid share supply
"""

import pytest

from interest_kernel.db.types import UINT256_MAX
from interest_kernel.domain.entitlement import (
    compute_entitlement,
    entitlement_weight,
    rounding_shortfall,
    scaled_budget,
)
from interest_kernel.exceptions import (
    ArithmeticOverflowError,
    InvalidShareSupplyError,
    ShareBalanceExceededError,
)


class TestComputeEntitlement:
    """Tests for compute_entitlement."""

    def test_thirty_seventy_split(self):
        assert compute_entitlement(700, 30, 100, 6) == 210_000_000
        assert compute_entitlement(700, 70, 100, 6) == 490_000_000

    def test_full_weight_is_scaled_budget(self):
        assert compute_entitlement(700, 100, 100, 6) == scaled_budget(700, 6)

    def test_multiplies_before_dividing(self):
        """1 * 1 / 3 would be 0 if divided first; scaled first it is 333333."""
        assert compute_entitlement(1, 1, 3, 6) == 333_333

    def test_truncates_toward_zero(self):
        assert compute_entitlement(10, 1, 3, 0) == 3

    def test_zero_weight_pays_nothing(self):
        assert compute_entitlement(700, 0, 100, 6) == 0

    def test_zero_budget_pays_nothing(self):
        assert compute_entitlement(0, 50, 100, 18) == 0

    def test_zero_decimals(self):
        assert compute_entitlement(700, 30, 100, 0) == 210

    def test_overflow_is_hard_failure(self):
        with pytest.raises(ArithmeticOverflowError) as exc_info:
            compute_entitlement(UINT256_MAX, 2, 100, 0)
        assert exc_info.value.limit == UINT256_MAX

    def test_overflow_from_decimals(self):
        with pytest.raises(ArithmeticOverflowError):
            compute_entitlement(10**60, 100, 100, 18)

    def test_product_at_limit_is_accepted(self):
        assert compute_entitlement(UINT256_MAX, 1, 1, 0) == UINT256_MAX

    def test_huge_decimals_with_zero_budget(self):
        assert compute_entitlement(0, 1, 1, 500) == 0

    def test_non_positive_max_shares_rejected(self):
        with pytest.raises(InvalidShareSupplyError):
            compute_entitlement(700, 30, 0, 6)

    def test_negative_inputs_rejected(self):
        with pytest.raises(ValueError):
            compute_entitlement(-1, 30, 100, 6)


class TestEntitlementWeight:
    """Tests for entitlement_weight."""

    def test_fractionalized_uses_share_balance(self):
        assert entitlement_weight(1, "H1", True, 30, 100) == 30

    def test_non_fractionalized_gets_full_weight(self):
        """Any recorded balance is ignored for a wholly owned asset."""
        assert entitlement_weight(2, "H3", False, 0, 100) == 100
        assert entitlement_weight(2, "H3", False, 7, 100) == 100

    def test_balance_above_supply_rejected(self):
        with pytest.raises(ShareBalanceExceededError) as exc_info:
            entitlement_weight(1, "H1", True, 101, 100)
        assert exc_info.value.holder == "H1"
        assert exc_info.value.code == "SHARE_BALANCE_EXCEEDED"

    def test_zero_supply_rejected(self):
        with pytest.raises(InvalidShareSupplyError):
            entitlement_weight(1, "H1", False, 0, 0)


class TestRoundingShortfall:
    """Tests for the rounding residue helper."""

    def test_exact_split_has_no_shortfall(self):
        amounts = [compute_entitlement(700, w, 100, 6) for w in (30, 70)]
        assert rounding_shortfall(700, 6, amounts) == 0

    def test_uneven_split_loses_less_than_one_unit_per_holder(self):
        weights = (1, 1, 1)
        amounts = [compute_entitlement(1, w, 3, 0) for w in weights]
        shortfall = rounding_shortfall(1, 0, amounts)
        assert 0 <= shortfall < len(weights)

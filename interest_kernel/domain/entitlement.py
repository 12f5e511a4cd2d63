"""
Entitlement arithmetic -- pure functions, no I/O.

Responsibility:
    Turn a per-period interest budget and a holder's share weight into a token
    amount in the settlement token's smallest unit.

Formula:
    amount = budget * weight * 10**decimals // max_shares

    Multiplication happens before the single floor division, so the only
    precision loss is the final truncation.  Across holders whose weights sum
    to max_shares, the total paid is at most the scaled budget and falls
    short of it by fewer units than there are holders.

Invariants enforced:
    - The intermediate product must fit 256 bits.  Python integers never wrap,
      so width is checked explicitly; exceeding it raises
      ArithmeticOverflowError instead of producing a misstated amount.
    - max_shares must be positive; weight must not exceed max_shares.
"""

from interest_kernel.db.types import UINT256_MAX
from interest_kernel.exceptions import (
    ArithmeticOverflowError,
    InvalidShareSupplyError,
    ShareBalanceExceededError,
)

# 10**78 > 2**256, so any larger exponent overflows unless the product is zero
_MAX_DECIMALS = 78


def _checked_product(budget: int, weight: int, decimals: int) -> int:
    if budget < 0 or weight < 0 or decimals < 0:
        raise ValueError(
            f"budget, weight and decimals must be non-negative "
            f"(got {budget}, {weight}, {decimals})"
        )
    base = budget * weight
    if base == 0:
        return 0
    if decimals > _MAX_DECIMALS:
        raise ArithmeticOverflowError(budget, weight, decimals, UINT256_MAX)
    product = base * 10**decimals
    if product > UINT256_MAX:
        raise ArithmeticOverflowError(budget, weight, decimals, UINT256_MAX)
    return product


def scaled_budget(budget: int, decimals: int) -> int:
    """Weekly budget expressed in the token's smallest unit."""
    return _checked_product(budget, 1, decimals)


def entitlement_weight(
    asset_id: int,
    holder: str,
    is_fractionalized: bool,
    share_balance: int,
    max_shares: int,
) -> int:
    """
    Weight a holder is paid on.

    A non-fractionalized asset is treated as wholly owned by whoever is
    passed in, so the weight is max_shares.

    Raises:
        InvalidShareSupplyError: max_shares is not positive.
        ShareBalanceExceededError: share_balance is above max_shares.
    """
    if max_shares <= 0:
        raise InvalidShareSupplyError(max_shares)
    if not is_fractionalized:
        return max_shares
    if share_balance < 0:
        raise ValueError(f"share_balance must be non-negative, got {share_balance}")
    if share_balance > max_shares:
        raise ShareBalanceExceededError(asset_id, holder, share_balance, max_shares)
    return share_balance


def compute_entitlement(budget: int, weight: int, max_shares: int, decimals: int) -> int:
    """
    Token amount owed for one period.

    >>> compute_entitlement(700, 30, 100, 6)
    210000000

    Raises:
        InvalidShareSupplyError: max_shares is not positive.
        ArithmeticOverflowError: budget * weight * 10**decimals exceeds 2**256 - 1.
    """
    if max_shares <= 0:
        raise InvalidShareSupplyError(max_shares)
    return _checked_product(budget, weight, decimals) // max_shares


def rounding_shortfall(budget: int, decimals: int, amounts: list[int]) -> int:
    """Scaled budget minus what was actually paid (never negative for valid weights)."""
    return scaled_budget(budget, decimals) - sum(amounts)

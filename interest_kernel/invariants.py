"""
Kernel Invariants Contract.

These invariants are structural law for the distribution ledger. No
InterestConfig value, administrative call, or caller argument may switch
them off.

This module only declares them. Enforcement is spread across
DistributionEngine, DistributionLedger, the unique constraint on
distribution_records, and the ORM listeners in db/immutability.py.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Configuration decides *how much* is paid per period, never *whether*
    these rules apply.
    """

    IDEMPOTENCY = "idempotency"
    """At most one payout per (asset_id, period_index, beneficiary).
    Enforced by DistributionEngine, DistributionLedger.record_payment and
    the uq_distribution_key constraint."""

    CONSERVATION = "conservation"
    """total_distributed[asset_id] equals the sum of the asset's records.
    Updated in the same savepoint as the record it counts."""

    MONOTONIC_TOTAL = "monotonic_total"
    """total_distributed never decreases. Enforced by the
    AssetDistributionTotal before_update listener."""

    PERIOD_RANGE = "period_range"
    """0 <= period_index < periods_to_distribute, checked before any
    transfer."""

    BUDGET_BOUND = "budget_bound"
    """Paid amounts for one (asset_id, period_index) never exceed the
    scaled weekly budget."""

    PAUSE_GATING = "pause_gating"
    """No transfer or ledger write happens while paused."""

    COMMIT_AFTER_TRANSFER = "commit_after_transfer"
    """A record is written only after its transfer returned successfully,
    under the non-reentrant call guard."""

    APPEND_ONLY = "append_only"
    """Distribution records and audit events are never updated or deleted."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

"""
Data transfer objects for the distribution kernel.

All DTOs are frozen dataclasses: they carry values across the service
boundary and are never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from interest_kernel.db.types import is_null_identity


@dataclass(frozen=True)
class InterestConfig:
    """
    Snapshot of the configuration in force for one distribution call.

    The engine reads it once, before any per-beneficiary work, so a budget
    change made by the administrator applies from the next call onwards.
    """

    admin_id: str
    settlement_token: str | None
    weekly_interest_budget: int
    periods_to_distribute: int
    paused: bool

    @property
    def token_configured(self) -> bool:
        return not is_null_identity(self.settlement_token)

    def period_in_range(self, period_index: int) -> bool:
        return 0 <= period_index < self.periods_to_distribute


class OutcomeStatus(str, Enum):
    """Per-beneficiary result of a distribution call."""

    PAID = "paid"
    ALREADY_PAID = "already_paid"  # Idempotent hit, not an error
    NO_ENTITLEMENT = "no_entitlement"  # Weight or amount is zero
    BUDGET_EXHAUSTED = "budget_exhausted"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSFER_REJECTED = "transfer_rejected"


# Outcomes a caller may retry later for just those beneficiaries
RETRYABLE_STATUSES: frozenset[OutcomeStatus] = frozenset(
    {OutcomeStatus.INSUFFICIENT_FUNDS, OutcomeStatus.TRANSFER_REJECTED}
)


@dataclass(frozen=True)
class EntitlementLine:
    """Planned payout for one beneficiary, computed before any transfer."""

    beneficiary: str
    weight: int
    amount: int


@dataclass(frozen=True)
class BeneficiaryOutcome:
    """What happened to one beneficiary in a distribution call."""

    beneficiary: str
    status: OutcomeStatus
    amount: int = 0
    weight: int = 0
    reason: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == OutcomeStatus.PAID

    @property
    def is_retryable(self) -> bool:
        return self.status in RETRYABLE_STATUSES


@dataclass(frozen=True)
class DistributionResult:
    """Outcome of distribute_interest(), one entry per beneficiary, in call order."""

    asset_id: int
    period_index: int
    settlement_token: str
    outcomes: tuple[BeneficiaryOutcome, ...]

    @property
    def paid(self) -> tuple[BeneficiaryOutcome, ...]:
        return tuple(o for o in self.outcomes if o.is_paid)

    @property
    def paid_total(self) -> int:
        """Sum of amounts actually transferred by this call."""
        return sum(o.amount for o in self.paid)

    def by_status(self, status: OutcomeStatus) -> tuple[BeneficiaryOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == status)

    def retryable_beneficiaries(self) -> tuple[str, ...]:
        """Beneficiaries to pass to a follow-up call once funds are available."""
        return tuple(o.beneficiary for o in self.outcomes if o.is_retryable)

    def outcome_for(self, beneficiary: str) -> BeneficiaryOutcome | None:
        for outcome in self.outcomes:
            if outcome.beneficiary == beneficiary:
                return outcome
        return None

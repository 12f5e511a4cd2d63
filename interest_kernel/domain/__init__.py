"""
Pure domain layer: value objects, entitlement arithmetic, collaborator ports.

Nothing in this package touches the database or performs I/O (SystemClock
aside).
"""

from interest_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from interest_kernel.domain.dtos import (
    BeneficiaryOutcome,
    DistributionResult,
    EntitlementLine,
    InterestConfig,
    OutcomeStatus,
)
from interest_kernel.domain.entitlement import (
    compute_entitlement,
    entitlement_weight,
    scaled_budget,
)
from interest_kernel.domain.interfaces import OwnershipQuery, SettlementTransfer

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "BeneficiaryOutcome",
    "DistributionResult",
    "EntitlementLine",
    "InterestConfig",
    "OutcomeStatus",
    "compute_entitlement",
    "entitlement_weight",
    "scaled_budget",
    "OwnershipQuery",
    "SettlementTransfer",
]

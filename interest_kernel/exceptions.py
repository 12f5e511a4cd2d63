"""
Typed Exception Hierarchy for the Interest Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payout code must fail precisely. Callers decide what to do by exception
TYPE and machine-readable CODE, never by parsing message text:

    try:
        engine.distribute_interest(asset_id, period_index, holders)
    except PeriodOutOfRangeError as e:
        log.warning(f"Period {e.period_index} outside [0, {e.periods_to_distribute})")
        api_response(code=e.code, period=e.period_index)

Every exception:
  1. has a `code` class attribute (stable, API-safe)
  2. stores its context as attributes (not only in the message)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InterestKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidTokenError
    |   +-- AlreadySetError
    |   +-- UnauthorizedError
    |   +-- InvalidAdminError
    |   +-- ConfigNotInitializedError
    |
    +-- PreconditionError
    |   +-- PausedError
    |   +-- TokenNotConfiguredError
    |   +-- PeriodOutOfRangeError
    |
    +-- EntitlementError
    |   +-- ArithmeticOverflowError
    |   +-- InvalidShareSupplyError
    |   +-- ShareBalanceExceededError
    |
    +-- ConcurrencyError
    |   +-- ReentrancyError
    |
    +-- LedgerError
    |   +-- DuplicatePaymentError
    |   +-- ConservationViolationError
    |
    +-- SettlementError
    |   +-- SettlementTransferError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_TOKEN               | Settlement token is the null identity
                | ALREADY_SET                 | Setter called with the current value
                | UNAUTHORIZED                | Caller is not the administrator
                | INVALID_ADMIN               | New administrator is the null identity
                | CONFIG_NOT_INITIALIZED      | Config row missing
----------------|-----------------------------|-----------------------------------------
Precondition    | PAUSED                      | Distribution while paused
                | TOKEN_NOT_CONFIGURED        | Distribution before token is set
                | PERIOD_OUT_OF_RANGE         | period_index outside [0, bound)
----------------|-----------------------------|-----------------------------------------
Entitlement     | ARITHMETIC_OVERFLOW         | budget * weight * 10^decimals too wide
                | INVALID_SHARE_SUPPLY        | max_shares() is not positive
                | SHARE_BALANCE_EXCEEDED      | Holder weight above max_shares()
----------------|-----------------------------|-----------------------------------------
Concurrency     | REENTRANCY_VIOLATION        | Nested distribute_interest call
----------------|-----------------------------|-----------------------------------------
Ledger          | DUPLICATE_PAYMENT           | Key already recorded
                | CONSERVATION_VIOLATION      | Counter != sum of records
----------------|-----------------------------|-----------------------------------------
Settlement      | SETTLEMENT_TRANSFER_FAILED  | Token transfer rejected
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | Hash chain validation failed
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an append-only row

Per-beneficiary outcomes (ALREADY_PAID, INSUFFICIENT_FUNDS, ...) are NOT
exceptions: they are values in the DistributionResult, see domain/dtos.py.

===============================================================================
"""


class InterestKernelError(Exception):
    """
    Base exception for all interest kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INTEREST_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(InterestKernelError):
    """Base exception for administrative configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidTokenError(ConfigurationError):
    """Settlement token is the null/zero identity."""

    code: str = "INVALID_TOKEN"

    def __init__(self, token_id: str | None):
        self.token_id = token_id
        super().__init__(f"Invalid settlement token: {token_id!r}")


class AlreadySetError(ConfigurationError):
    """
    Setter called with the value already in force.

    Rejected rather than silently accepted so that operator mistakes surface.
    """

    code: str = "ALREADY_SET"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} is already set to {value!r}")


class UnauthorizedError(ConfigurationError):
    """Caller is not the administrative identity."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, operation: str):
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Actor {actor_id} is not allowed to {operation}")


class InvalidAdminError(ConfigurationError):
    """New administrative identity is null."""

    code: str = "INVALID_ADMIN"

    def __init__(self, admin_id: str | None):
        self.admin_id = admin_id
        super().__init__(f"Invalid administrator identity: {admin_id!r}")


class ConfigNotInitializedError(ConfigurationError):
    """The configuration row has not been created yet."""

    code: str = "CONFIG_NOT_INITIALIZED"

    def __init__(self, config_key: str):
        self.config_key = config_key
        super().__init__(f"Interest configuration '{config_key}' is not initialized")


# Precondition exceptions (whole call rejected, no side effects)


class PreconditionError(InterestKernelError):
    """Base exception for distribution preconditions."""

    code: str = "PRECONDITION_ERROR"


class PausedError(PreconditionError):
    """Distribution attempted while the engine is paused."""

    code: str = "PAUSED"

    def __init__(self, asset_id: int, period_index: int):
        self.asset_id = asset_id
        self.period_index = period_index
        super().__init__(
            f"Distribution is paused (asset {asset_id}, period {period_index})"
        )


class TokenNotConfiguredError(PreconditionError):
    """Distribution attempted before a settlement token was configured."""

    code: str = "TOKEN_NOT_CONFIGURED"

    def __init__(self):
        super().__init__("Settlement token is not configured")


class PeriodOutOfRangeError(PreconditionError):
    """period_index is outside [0, periods_to_distribute)."""

    code: str = "PERIOD_OUT_OF_RANGE"

    def __init__(self, period_index: int, periods_to_distribute: int):
        self.period_index = period_index
        self.periods_to_distribute = periods_to_distribute
        super().__init__(
            f"Period {period_index} is outside [0, {periods_to_distribute})"
        )


# Entitlement exceptions (fatal to the whole call)


class EntitlementError(InterestKernelError):
    """Base exception for entitlement computation errors."""

    code: str = "ENTITLEMENT_ERROR"


class ArithmeticOverflowError(EntitlementError):
    """
    Entitlement product does not fit the arithmetic width.

    Never saturated or wrapped: a misstated amount is worse than no payout.
    """

    code: str = "ARITHMETIC_OVERFLOW"

    def __init__(self, budget: int, weight: int, decimals: int, limit: int):
        self.budget = budget
        self.weight = weight
        self.decimals = decimals
        self.limit = limit
        super().__init__(
            f"Entitlement overflow: {budget} * {weight} * 10^{decimals} exceeds {limit}"
        )


class InvalidShareSupplyError(EntitlementError):
    """Ownership registry reported a non-positive max_shares()."""

    code: str = "INVALID_SHARE_SUPPLY"

    def __init__(self, max_shares: int):
        self.max_shares = max_shares
        super().__init__(f"max_shares must be positive, got {max_shares}")


class ShareBalanceExceededError(EntitlementError):
    """Holder weight is larger than max_shares()."""

    code: str = "SHARE_BALANCE_EXCEEDED"

    def __init__(self, asset_id: int, holder: str, weight: int, max_shares: int):
        self.asset_id = asset_id
        self.holder = holder
        self.weight = weight
        self.max_shares = max_shares
        super().__init__(
            f"Holder {holder} weight {weight} exceeds max_shares {max_shares} "
            f"on asset {asset_id}"
        )


# Concurrency exceptions


class ConcurrencyError(InterestKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ReentrancyError(ConcurrencyError):
    """distribute_interest was entered again before the outer call finished."""

    code: str = "REENTRANCY_VIOLATION"

    def __init__(self, asset_id: int, period_index: int):
        self.asset_id = asset_id
        self.period_index = period_index
        super().__init__(
            f"Reentrant distribution call rejected (asset {asset_id}, "
            f"period {period_index})"
        )


# Ledger exceptions


class LedgerError(InterestKernelError):
    """Base exception for distribution ledger errors."""

    code: str = "LEDGER_ERROR"


class DuplicatePaymentError(LedgerError):
    """A record already exists for (asset_id, period_index, beneficiary)."""

    code: str = "DUPLICATE_PAYMENT"

    def __init__(self, asset_id: int, period_index: int, beneficiary: str):
        self.asset_id = asset_id
        self.period_index = period_index
        self.beneficiary = beneficiary
        super().__init__(
            f"Beneficiary {beneficiary} already paid for asset {asset_id} "
            f"period {period_index}"
        )


class ConservationViolationError(LedgerError):
    """total_distributed disagrees with the sum of recorded payments."""

    code: str = "CONSERVATION_VIOLATION"

    def __init__(self, asset_id: int, counter_total: int, record_sum: int):
        self.asset_id = asset_id
        self.counter_total = counter_total
        self.record_sum = record_sum
        super().__init__(
            f"Asset {asset_id}: total_distributed={counter_total} but "
            f"records sum to {record_sum}"
        )


# Settlement exceptions


class SettlementError(InterestKernelError):
    """Base exception for settlement token errors."""

    code: str = "SETTLEMENT_ERROR"


class SettlementTransferError(SettlementError):
    """The settlement token rejected a transfer."""

    code: str = "SETTLEMENT_TRANSFER_FAILED"

    def __init__(self, token_id: str, source: str, destination: str, amount: int, reason: str):
        self.token_id = token_id
        self.source = source
        self.destination = destination
        self.amount = amount
        self.reason = reason
        super().__init__(
            f"Transfer of {amount} {token_id} from {source} to {destination} "
            f"failed: {reason}"
        )


# Audit exceptions


class AuditError(InterestKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Immutability exceptions


class ImmutabilityError(InterestKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )

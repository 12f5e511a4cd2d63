"""
DistributionEngine -- periodic proportional interest payouts.

Responsibility:
    Given an asset, a period index and an ordered list of beneficiaries,
    compute each beneficiary's entitlement, move the settlement token from the
    funding account to the beneficiary, and durably record the payout.

Architecture position:
    Kernel > Services -- imperative shell around the pure entitlement
    arithmetic in domain/entitlement.py.

    distribute_interest()
        |-- guard (one per session: non-reentrant, serializes threads)
        |-- preconditions: paused? token set? period in range?
        |-- plan: weight and amount for every unpaid beneficiary (no side effects)
        '-- per beneficiary, in caller order:
                already paid? -> zero amount? -> over budget? -> funds?
                -> transfer_from -> savepoint[record + total + audit]

Invariants enforced:
    PAUSE_GATING          -- a paused engine performs no transfer and no write.
    PERIOD_RANGE          -- checked before any per-beneficiary work.
    IDEMPOTENCY           -- an existing record short-circuits to ALREADY_PAID.
    BUDGET_BOUND          -- paid amounts for (asset, period) stay within the
                             scaled budget in force for the call.
    COMMIT_AFTER_TRANSFER -- the record is written only after transfer_from
                             returned True, inside the call guard.

Failure modes (fatal, whole call rejected):
    - PausedError, TokenNotConfiguredError, PeriodOutOfRangeError.
    - ArithmeticOverflowError, InvalidShareSupplyError,
      ShareBalanceExceededError: raised while planning, before any transfer.
    - ReentrancyError: a nested call on the thread already inside an engine
      bound to the same session.
    - DuplicatePaymentError: an engine on another session recorded the key between
      this call's check and its write.

    Non-fatal outcomes are reported per beneficiary in DistributionResult:
    ALREADY_PAID, NO_ENTITLEMENT, BUDGET_EXHAUSTED, INSUFFICIENT_FUNDS,
    TRANSFER_REJECTED.  Earlier beneficiaries stay paid.

Audit relevance:
    Each payout writes an INTEREST_DISTRIBUTED audit event and an
    ``interest_distributed`` log line carrying (asset_id, beneficiary,
    period_index, amount).
"""

import threading
import weakref
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from uuid import uuid4

from sqlalchemy.orm import Session

from interest_kernel.db.types import is_null_identity
from interest_kernel.domain.clock import Clock, SystemClock
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
from interest_kernel.exceptions import (
    PausedError,
    PeriodOutOfRangeError,
    ReentrancyError,
    SettlementTransferError,
    TokenNotConfiguredError,
)
from interest_kernel.invariants import KernelInvariant
from interest_kernel.logging_config import LogContext, get_logger
from interest_kernel.services.auditor_service import AuditorService
from interest_kernel.services.config_service import ConfigService
from interest_kernel.services.ledger_service import DistributionLedger

logger = get_logger("services.distribution")


class _NonReentrantGuard:
    """
    Call-scoped mutual exclusion.

    A second entry from the thread that already holds the guard is a
    reentrant call and is rejected.  Entries from other threads wait.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._owner: int | None = None

    @contextmanager
    def hold(self, asset_id: int, period_index: int) -> Iterator[None]:
        me = threading.get_ident()
        if self._owner == me:
            logger.error(
                "reentrant_call_rejected",
                extra={
                    "invariant": KernelInvariant.COMMIT_AFTER_TRANSFER.value,
                    "asset_id": str(asset_id),
                    "period_index": period_index,
                },
            )
            raise ReentrancyError(asset_id, period_index)

        with self._lock:
            self._owner = me
            try:
                yield
            finally:
                self._owner = None


_guards: "weakref.WeakKeyDictionary[Session, _NonReentrantGuard]" = weakref.WeakKeyDictionary()
_guards_lock = threading.Lock()


def _guard_for(session: Session) -> _NonReentrantGuard:
    """The guard shared by every engine bound to ``session``."""
    with _guards_lock:
        guard = _guards.get(session)
        if guard is None:
            guard = _guards[session] = _NonReentrantGuard()
        return guard


class DistributionEngine:
    """
    Pays per-period interest to the holders of an asset.

    Contract:
        ``distribute_interest`` returns one BeneficiaryOutcome per input
        beneficiary, in input order.  Ledger writes are flushed inside the
        caller's transaction; the caller commits.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT retry.  Retrying INSUFFICIENT_FUNDS / TRANSFER_REJECTED
          beneficiaries is the caller's decision
          (``DistributionResult.retryable_beneficiaries()``).
        - Does NOT redistribute rounding residue.

    Engines bound to the same session share one guard.  Engines on
    different sessions are kept apart only by the unique constraint on
    the distribution key.
    """

    def __init__(
        self,
        session: Session,
        ownership: OwnershipQuery,
        settlement: SettlementTransfer,
        funding_account: str,
        operator_id: str,
        config_service: ConfigService | None = None,
        auditor: AuditorService | None = None,
        clock: Clock | None = None,
    ):
        if is_null_identity(funding_account):
            raise ValueError("funding_account must not be the null identity")
        if is_null_identity(operator_id):
            raise ValueError("operator_id must not be the null identity")

        self._session = session
        self._ownership = ownership
        self._settlement = settlement
        self._funding_account = funding_account
        self._operator_id = operator_id
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)
        self._config = config_service or ConfigService(session, self._auditor, self._clock)
        self._ledger = DistributionLedger(session, self._clock)
        self._guard = _guard_for(session)

    @property
    def ledger(self) -> DistributionLedger:
        return self._ledger

    @property
    def funding_account(self) -> str:
        return self._funding_account

    def distribute_interest(
        self,
        asset_id: int,
        period_index: int,
        beneficiaries: Sequence[str],
    ) -> DistributionResult:
        """
        Pay ``period_index`` interest on ``asset_id`` to each beneficiary.

        Args:
            asset_id: Asset whose interest is paid.
            period_index: Zero-based period, below periods_to_distribute.
            beneficiaries: Holder identities, processed in this order.

        Returns:
            DistributionResult with one outcome per beneficiary.

        Raises:
            PausedError, TokenNotConfiguredError, PeriodOutOfRangeError,
            ArithmeticOverflowError, InvalidShareSupplyError,
            ShareBalanceExceededError, ReentrancyError, DuplicatePaymentError.
        """
        beneficiaries = tuple(beneficiaries)

        with self._guard.hold(asset_id, period_index), LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=self._operator_id,
            asset_id=str(asset_id),
            period_index=str(period_index),
        ):
            logger.info(
                "distribution_started",
                extra={"beneficiary_count": len(beneficiaries)},
            )
            t0 = time.monotonic()

            try:
                result = self._do_distribute(asset_id, period_index, beneficiaries)
            except Exception:
                logger.error(
                    "distribution_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            logger.info(
                "distribution_completed",
                extra={
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    "paid_count": len(result.paid),
                    "paid_total": str(result.paid_total),
                    "retryable_count": len(result.retryable_beneficiaries()),
                },
            )
            return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _do_distribute(
        self,
        asset_id: int,
        period_index: int,
        beneficiaries: tuple[str, ...],
    ) -> DistributionResult:
        config = self._config.get_config()
        self._check_preconditions(config, asset_id, period_index)
        token_id = config.settlement_token

        decimals = self._settlement.decimals(token_id)
        budget_cap = scaled_budget(config.weekly_interest_budget, decimals)
        plan = self._plan(config, asset_id, period_index, beneficiaries, decimals)

        paid_so_far = self._ledger.period_total(asset_id, period_index)
        outcomes: list[BeneficiaryOutcome] = []
        for line in plan:
            outcome = self._settle(
                asset_id, period_index, token_id, line, paid_so_far, budget_cap,
            )
            if outcome.is_paid:
                paid_so_far += outcome.amount
            outcomes.append(outcome)

        return DistributionResult(
            asset_id=asset_id,
            period_index=period_index,
            settlement_token=token_id,
            outcomes=tuple(outcomes),
        )

    def _check_preconditions(
        self, config: InterestConfig, asset_id: int, period_index: int
    ) -> None:
        if config.paused:
            logger.warning(
                "distribution_rejected_paused",
                extra={"invariant": KernelInvariant.PAUSE_GATING.value},
            )
            raise PausedError(asset_id, period_index)

        if not config.token_configured:
            logger.warning("distribution_rejected_token_not_configured")
            raise TokenNotConfiguredError()

        if not config.period_in_range(period_index):
            logger.warning(
                "distribution_rejected_period_out_of_range",
                extra={
                    "invariant": KernelInvariant.PERIOD_RANGE.value,
                    "periods_to_distribute": config.periods_to_distribute,
                },
            )
            raise PeriodOutOfRangeError(period_index, config.periods_to_distribute)

    def _plan(
        self,
        config: InterestConfig,
        asset_id: int,
        period_index: int,
        beneficiaries: tuple[str, ...],
        decimals: int,
    ) -> list[EntitlementLine]:
        """Entitlement for every beneficiary, computed before anything moves."""
        fractionalized = self._ownership.is_fractionalized(asset_id)
        max_shares = self._ownership.max_shares()

        plan = []
        for beneficiary in beneficiaries:
            if is_null_identity(beneficiary):
                raise ValueError("beneficiary must not be the null identity")
            if self._ledger.has_paid(asset_id, period_index, beneficiary):
                # Settles as ALREADY_PAID; current holdings are irrelevant
                plan.append(EntitlementLine(beneficiary=beneficiary, weight=0, amount=0))
                continue
            balance = (
                self._ownership.share_balance(asset_id, beneficiary) if fractionalized else 0
            )
            weight = entitlement_weight(
                asset_id, beneficiary, fractionalized, balance, max_shares,
            )
            amount = compute_entitlement(
                config.weekly_interest_budget, weight, max_shares, decimals,
            )
            plan.append(EntitlementLine(beneficiary=beneficiary, weight=weight, amount=amount))

        logger.debug(
            "distribution_planned",
            extra={
                "fractionalized": fractionalized,
                "max_shares": max_shares,
                "decimals": decimals,
                "planned_total": str(sum(line.amount for line in plan)),
            },
        )
        return plan

    def _settle(
        self,
        asset_id: int,
        period_index: int,
        token_id: str,
        line: EntitlementLine,
        paid_so_far: int,
        budget_cap: int,
    ) -> BeneficiaryOutcome:
        beneficiary = line.beneficiary

        def outcome(status: OutcomeStatus, reason: str | None = None, amount: int = 0):
            if status != OutcomeStatus.PAID:
                logger.info(
                    "beneficiary_skipped",
                    extra={
                        "beneficiary": beneficiary,
                        "status": status.value,
                        "amount": str(line.amount),
                        "reason": reason,
                    },
                )
            return BeneficiaryOutcome(
                beneficiary=beneficiary,
                status=status,
                amount=amount,
                weight=line.weight,
                reason=reason,
            )

        if self._ledger.has_paid(asset_id, period_index, beneficiary):
            return outcome(OutcomeStatus.ALREADY_PAID, "already recorded for this period")

        if line.amount == 0:
            return outcome(OutcomeStatus.NO_ENTITLEMENT, "no shares held")

        if paid_so_far + line.amount > budget_cap:
            logger.warning(
                "period_budget_exhausted",
                extra={
                    "invariant": KernelInvariant.BUDGET_BOUND.value,
                    "beneficiary": beneficiary,
                    "paid_so_far": str(paid_so_far),
                    "budget_cap": str(budget_cap),
                },
            )
            return outcome(
                OutcomeStatus.BUDGET_EXHAUSTED,
                f"{paid_so_far} already paid of {budget_cap}",
            )

        balance = self._settlement.balance_of(token_id, self._funding_account)
        allowance = self._settlement.allowance(
            token_id, self._funding_account, self._operator_id,
        )
        if balance < line.amount or allowance < line.amount:
            return outcome(
                OutcomeStatus.INSUFFICIENT_FUNDS,
                f"balance {balance}, allowance {allowance}, needs {line.amount}",
            )

        try:
            transferred = self._settlement.transfer_from(
                token_id,
                self._funding_account,
                beneficiary,
                line.amount,
                spender=self._operator_id,
            )
        except SettlementTransferError as exc:
            return outcome(OutcomeStatus.TRANSFER_REJECTED, exc.reason)
        if not transferred:
            return outcome(OutcomeStatus.TRANSFER_REJECTED, "transfer returned false")

        self._record(asset_id, period_index, token_id, line)
        return outcome(OutcomeStatus.PAID, amount=line.amount)

    def _record(
        self,
        asset_id: int,
        period_index: int,
        token_id: str,
        line: EntitlementLine,
    ) -> None:
        """Ledger writes for one completed transfer, all or nothing."""
        try:
            with self._session.begin_nested():
                self._ledger.record_payment(
                    asset_id,
                    period_index,
                    line.beneficiary,
                    line.amount,
                    token_id,
                    self._funding_account,
                    weight=line.weight,
                )
                self._auditor.record_interest_distributed(
                    asset_id,
                    period_index,
                    line.beneficiary,
                    line.amount,
                    token_id,
                    self._operator_id,
                )
        except Exception:
            # Funds have left the funding account without a ledger entry
            logger.critical(
                "ledger_write_failed_after_transfer",
                extra={
                    "invariant": KernelInvariant.COMMIT_AFTER_TRANSFER.value,
                    "beneficiary": line.beneficiary,
                    "amount": str(line.amount),
                },
            )
            raise

        logger.info(
            "interest_distributed",
            extra={
                "beneficiary": line.beneficiary,
                "amount": str(line.amount),
                "weight": str(line.weight),
                "settlement_token": token_id,
                "funding_account": self._funding_account,
            },
        )

"""
DistributionLedger -- durable record of what was paid.

Responsibility:
    Pure data component backing the distribution engine: one append-only
    DistributionRecord per (asset_id, period_index, beneficiary) payout and a
    running AssetDistributionTotal per asset.  No business logic; the engine
    is the only writer.

Architecture position:
    Kernel > Services.  Called by DistributionEngine inside a per-beneficiary
    savepoint, after the settlement transfer has returned.

Invariants enforced:
    IDEMPOTENCY     -- record_payment() refuses an existing key.  The check is
                       backed by the uq_distribution_key constraint, which
                       catches concurrent writers that passed the check.
    CONSERVATION    -- the asset total is incremented in the same savepoint as
                       the record it accounts for.
    MONOTONIC_TOTAL -- totals only grow (ORM listener rejects a decrease).

Failure modes:
    - DuplicatePaymentError: the key is already recorded.
    - ConservationViolationError: verify_conservation() found the running
      total out of step with the records.
    - ValueError: non-positive amount.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from interest_kernel.db.types import require_uint256
from interest_kernel.domain.clock import Clock, SystemClock
from interest_kernel.exceptions import ConservationViolationError, DuplicatePaymentError
from interest_kernel.invariants import KernelInvariant
from interest_kernel.logging_config import get_logger
from interest_kernel.models.distribution import AssetDistributionTotal, DistributionRecord
from interest_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class DistributionLedger(BaseService[DistributionRecord]):
    """
    Append-only distribution ledger.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT move funds or decide amounts.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_paid(self, asset_id: int, period_index: int, beneficiary: str) -> bool:
        found = self.session.execute(
            select(DistributionRecord.id).where(
                DistributionRecord.asset_id == asset_id,
                DistributionRecord.period_index == period_index,
                DistributionRecord.beneficiary == beneficiary,
            )
        ).first()
        return found is not None

    def _total_row(self, asset_id: int, for_update: bool = False) -> AssetDistributionTotal | None:
        stmt = select(AssetDistributionTotal).where(AssetDistributionTotal.asset_id == asset_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def total_distributed(self, asset_id: int) -> int:
        """Everything ever paid for the asset; 0 for an asset never paid."""
        row = self._total_row(asset_id)
        return row.total_distributed if row else 0

    def payment_count(self, asset_id: int) -> int:
        row = self._total_row(asset_id)
        return row.payment_count if row else 0

    def period_total(self, asset_id: int, period_index: int) -> int:
        """Sum paid for one (asset, period)."""
        # Amounts are stored as decimal strings, so the sum happens here
        amounts = self.session.execute(
            select(DistributionRecord.amount).where(
                DistributionRecord.asset_id == asset_id,
                DistributionRecord.period_index == period_index,
            )
        ).scalars().all()
        return sum(amounts)

    def records_for_asset(self, asset_id: int) -> list[DistributionRecord]:
        """All records of the asset, ordered by period then payment time."""
        return list(
            self.session.execute(
                select(DistributionRecord)
                .where(DistributionRecord.asset_id == asset_id)
                .order_by(
                    DistributionRecord.period_index,
                    DistributionRecord.paid_at,
                    DistributionRecord.beneficiary,
                )
            ).scalars().all()
        )

    def get_record(
        self, asset_id: int, period_index: int, beneficiary: str
    ) -> DistributionRecord | None:
        return self.session.execute(
            select(DistributionRecord).where(
                DistributionRecord.asset_id == asset_id,
                DistributionRecord.period_index == period_index,
                DistributionRecord.beneficiary == beneficiary,
            )
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_payment(
        self,
        asset_id: int,
        period_index: int,
        beneficiary: str,
        amount: int,
        token_id: str,
        funding_account: str,
        weight: int = 0,
    ) -> DistributionRecord:
        """
        Append the record for one payout and add it to the asset total.

        Preconditions:
            - The settlement transfer for this payout has returned.

        Raises:
            DuplicatePaymentError: the key is already recorded.
            ValueError: amount is not positive or wider than 256 bits.
        """
        require_uint256(amount, "amount")
        if amount == 0:
            raise ValueError("amount must be positive")

        if self.has_paid(asset_id, period_index, beneficiary):
            logger.error(
                "duplicate_payment_rejected",
                extra={
                    "invariant": KernelInvariant.IDEMPOTENCY.value,
                    "asset_id": str(asset_id),
                    "period_index": period_index,
                    "beneficiary": beneficiary,
                },
            )
            raise DuplicatePaymentError(asset_id, period_index, beneficiary)

        record = DistributionRecord(
            asset_id=asset_id,
            period_index=period_index,
            beneficiary=beneficiary,
            amount=amount,
            weight=weight,
            settlement_token=token_id,
            funding_account=funding_account,
            paid_at=self._clock.now(),
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(record)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Another writer recorded the same key after has_paid()
            savepoint.rollback()
            logger.error(
                "duplicate_payment_rejected",
                extra={
                    "invariant": KernelInvariant.IDEMPOTENCY.value,
                    "asset_id": str(asset_id),
                    "period_index": period_index,
                    "beneficiary": beneficiary,
                    "source": "unique_constraint",
                },
            )
            raise DuplicatePaymentError(asset_id, period_index, beneficiary) from None

        total = self._total_row(asset_id, for_update=True)
        if total is None:
            total = AssetDistributionTotal(asset_id=asset_id, total_distributed=0, payment_count=0)
            self.session.add(total)
        total.total_distributed = require_uint256(
            total.total_distributed + amount, "total_distributed"
        )
        total.payment_count += 1
        self.session.flush()

        logger.info(
            "payment_recorded",
            extra={
                "asset_id": str(asset_id),
                "period_index": period_index,
                "beneficiary": beneficiary,
                "amount": str(amount),
                "total_distributed": str(total.total_distributed),
            },
        )
        return record

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_conservation(self, asset_id: int) -> bool:
        """
        Check that the running total equals the sum of the asset's records.

        Raises:
            ConservationViolationError: the two disagree.
        """
        counter_total = self.total_distributed(asset_id)
        record_sum = sum(r.amount for r in self.records_for_asset(asset_id))
        if counter_total != record_sum:
            logger.critical(
                "conservation_violation",
                extra={
                    "invariant": KernelInvariant.CONSERVATION.value,
                    "asset_id": str(asset_id),
                    "counter_total": str(counter_total),
                    "record_sum": str(record_sum),
                },
            )
            raise ConservationViolationError(asset_id, counter_total, record_sum)
        return True

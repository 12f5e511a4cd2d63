"""
Module: interest_kernel.models.distribution
Responsibility: ORM persistence for the distribution ledger -- one append-only
    DistributionRecord per (asset_id, period_index, beneficiary) payout and one
    running AssetDistributionTotal per asset.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    IDEMPOTENCY     -- UNIQUE (asset_id, period_index, beneficiary) via
                       uq_distribution_key.
    APPEND_ONLY     -- DistributionRecord rows are never updated or deleted
                       (ORM listeners in db/immutability.py).
    MONOTONIC_TOTAL -- AssetDistributionTotal.total_distributed never
                       decreases (ORM listener in db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate distribution key (concurrent writers).
    - ImmutabilityViolationError on UPDATE/DELETE of a record, or on a
      decreasing total.

Audit relevance:
    DistributionRecord IS the proof of payment.  Each row is paired with an
    INTEREST_DISTRIBUTED audit event carrying the same key and amount.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from interest_kernel.db.base import Base
from interest_kernel.db.types import Uint256String


class DistributionRecord(Base):
    """
    Durable proof that a beneficiary was paid for one asset and period.

    Guarantees:
        - At most one row per (asset_id, period_index, beneficiary).
        - amount > 0 and is expressed in the settlement token's smallest unit.
        - Never updated or deleted once flushed.
    """

    __tablename__ = "distribution_records"

    __table_args__ = (
        UniqueConstraint(
            "asset_id", "period_index", "beneficiary", name="uq_distribution_key"
        ),
        Index("idx_distribution_asset", "asset_id"),
        Index("idx_distribution_asset_period", "asset_id", "period_index"),
    )

    asset_id: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
    )

    period_index: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    beneficiary: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    # Token amount in smallest denomination
    amount: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
    )

    # Weight the amount was computed from (share balance or max_shares)
    weight: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
    )

    settlement_token: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    # Account the funds were pulled from
    funding_account: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<DistributionRecord asset={self.asset_id} period={self.period_index} "
            f"beneficiary={self.beneficiary} amount={self.amount}>"
        )

    @property
    def distribution_key(self) -> str:
        """Canonical key string, see utils/idempotency.py."""
        from interest_kernel.utils.idempotency import generate_distribution_key

        return generate_distribution_key(self.asset_id, self.period_index, self.beneficiary)


class AssetDistributionTotal(Base):
    """
    Running total of everything ever paid for one asset.

    Guarantees:
        - total_distributed equals the sum of the asset's DistributionRecord
          amounts (updated in the same savepoint as each record).
        - total_distributed and payment_count never decrease.
    """

    __tablename__ = "asset_distribution_totals"

    __table_args__ = (
        UniqueConstraint("asset_id", name="uq_asset_distribution_total"),
    )

    asset_id: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
    )

    total_distributed: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
        default=0,
    )

    payment_count: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<AssetDistributionTotal asset={self.asset_id} total={self.total_distributed}>"

"""
Module: interest_kernel.models.interest_config
Responsibility: ORM persistence for the mutable interest configuration
    (settlement token, weekly budget, period bound, pause flag, administrator).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per config_key (UNIQUE).  The row is created empty at
      initialization and updated in place; it is never deleted.
    - Only ConfigService writes it, after the administrator check.

Audit relevance:
    Every change to this row is paired with an AuditEvent recorded by
    ConfigService in the same transaction.
"""

from sqlalchemy import BigInteger, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from interest_kernel.db.base import TrackedBase
from interest_kernel.db.types import Uint256String

DEFAULT_CONFIG_KEY = "default"


class InterestConfigModel(TrackedBase):
    """
    Mutable, audited configuration row read by the distribution engine.

    Guarantees:
        - settlement_token is None until set_settlement_token() succeeds.
        - weekly_interest_budget and periods_to_distribute start at 0.
        - paused starts False unless bootstrap settings say otherwise.
    """

    __tablename__ = "interest_configs"

    __table_args__ = (
        UniqueConstraint("config_key", name="uq_interest_config_key"),
    )

    config_key: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_CONFIG_KEY,
    )

    # Identity allowed to change this row
    admin_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    # Fungible token accepted as yield payment (None = unset)
    settlement_token: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    # Per-period budget in the asset's base unit of account, unscaled
    weekly_interest_budget: Mapped[int] = mapped_column(
        Uint256String(),
        nullable=False,
        default=0,
    )

    # Valid period indices are [0, periods_to_distribute)
    periods_to_distribute: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    paused: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    def __repr__(self) -> str:
        return (
            f"<InterestConfig {self.config_key} token={self.settlement_token} "
            f"budget={self.weekly_interest_budget} periods={self.periods_to_distribute}>"
        )

"""
Module: interest_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    APPEND_ONLY -- audit records are never updated or deleted (ORM listener).
    Hash chain  -- hash = H(entity_type | entity_id | action | payload_hash |
                   prev_hash).  Validated by AuditorService.validate_chain().
    seq is monotonically increasing, allocated by SequenceService.

Audit relevance:
    AuditEvent IS the audit trail.  Every configuration change, pause toggle,
    administrator hand-over and per-beneficiary payout produces one.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from interest_kernel.db.base import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Configuration lifecycle
    CONFIG_INITIALIZED = "config_initialized"
    SETTLEMENT_TOKEN_SET = "settlement_token_set"
    PERIODS_TO_DISTRIBUTE_SET = "periods_to_distribute_set"
    WEEKLY_BUDGET_SET = "weekly_budget_set"
    ADMIN_TRANSFERRED = "admin_transferred"

    # Pause gate
    ENGINE_PAUSED = "engine_paused"
    ENGINE_UNPAUSED = "engine_unpaused"

    # Distribution
    INTEREST_DISTRIBUTED = "interest_distributed"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is unique and monotonically increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - Does NOT compute its own hash; AuditorService does.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_seq", "seq"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )

    # e.g. "InterestConfig", "Distribution"
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # e.g. the config key or a distribution key "asset:period:beneficiary"
    entity_id: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    actor_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    payload: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    payload_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    prev_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        """True iff this is the first event in the hash chain."""
        return self.prev_hash is None

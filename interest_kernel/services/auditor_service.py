"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates immutable, hash-chained audit events for every state change of
    the kernel: configuration changes, pause toggles, administrator
    hand-over, and each per-beneficiary payout.  Provides chain validation
    for tamper detection and trace queries for review.

Architecture position:
    Kernel > Services -- called by ConfigService and DistributionEngine.

Invariants enforced:
    - Sequence monotonicity via SequenceService.
    - Chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``.
    - Append-only: AuditEvent rows are protected by ORM listeners.

Failure modes:
    - AuditChainBrokenError: a recomputed hash or a prev_hash link does not
      match.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from interest_kernel.domain.clock import Clock, SystemClock
from interest_kernel.exceptions import AuditChainBrokenError
from interest_kernel.logging_config import get_logger
from interest_kernel.models.audit_event import AuditAction, AuditEvent
from interest_kernel.services.sequence_service import SequenceService
from interest_kernel.utils.hashing import hash_audit_event, hash_payload
from interest_kernel.utils.idempotency import generate_distribution_key

logger = get_logger("services.auditor")

CONFIG_ENTITY = "InterestConfig"
DISTRIBUTION_ENTITY = "Distribution"


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: str
    occurred_at: datetime
    actor_id: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events of one entity, in sequence order."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def last_action(self) -> str | None:
        return self.entries[-1].action if self.entries else None


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT act on audit events; they are for off-system review.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last_event.hash if last_event else None

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        actor_id: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = payload or {}
        computed_payload_hash = hash_payload(payload_data)
        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action.value,
                "seq": seq,
            },
        )
        return audit_event

    # Configuration

    def record_config_initialized(self, config_key: str, admin_id: str) -> AuditEvent:
        return self._create_audit_event(
            entity_type=CONFIG_ENTITY,
            entity_id=config_key,
            action=AuditAction.CONFIG_INITIALIZED,
            actor_id=admin_id,
            payload={"admin_id": admin_id},
        )

    def record_config_changed(
        self,
        config_key: str,
        action: AuditAction,
        field: str,
        old_value: Any,
        new_value: Any,
        actor_id: str,
    ) -> AuditEvent:
        """
        Record one administrative setter call.

        Values are stored as strings so that 256-bit amounts survive any JSON
        backend unchanged.
        """
        return self._create_audit_event(
            entity_type=CONFIG_ENTITY,
            entity_id=config_key,
            action=action,
            actor_id=actor_id,
            payload={
                "field": field,
                "old_value": None if old_value is None else str(old_value),
                "new_value": None if new_value is None else str(new_value),
            },
        )

    def record_pause_changed(self, config_key: str, paused: bool, actor_id: str) -> AuditEvent:
        return self._create_audit_event(
            entity_type=CONFIG_ENTITY,
            entity_id=config_key,
            action=AuditAction.ENGINE_PAUSED if paused else AuditAction.ENGINE_UNPAUSED,
            actor_id=actor_id,
            payload={"paused": paused},
        )

    def record_admin_transferred(
        self,
        config_key: str,
        previous_admin: str,
        new_admin: str,
    ) -> AuditEvent:
        return self._create_audit_event(
            entity_type=CONFIG_ENTITY,
            entity_id=config_key,
            action=AuditAction.ADMIN_TRANSFERRED,
            actor_id=previous_admin,
            payload={"previous_admin": previous_admin, "new_admin": new_admin},
        )

    # Distribution

    def record_interest_distributed(
        self,
        asset_id: int,
        period_index: int,
        beneficiary: str,
        amount: int,
        settlement_token: str,
        actor_id: str,
    ) -> AuditEvent:
        """Record one completed payout (the distribution-completed event)."""
        return self._create_audit_event(
            entity_type=DISTRIBUTION_ENTITY,
            entity_id=generate_distribution_key(asset_id, period_index, beneficiary),
            action=AuditAction.INTEREST_DISTRIBUTED,
            actor_id=actor_id,
            payload={
                "asset_id": str(asset_id),
                "period_index": period_index,
                "beneficiary": beneficiary,
                "amount": str(amount),
                "settlement_token": settlement_token,
            },
        )

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: at the first event whose hash or prev_hash
                does not match.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=event.action,
                payload_hash=hash_payload(event.payload or {}),
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0 and event.prev_hash != events[i - 1].hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id),
                    events[i - 1].hash,
                    event.prev_hash or "None",
                )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    # Trace and query methods

    def get_trace(self, entity_type: str, entity_id: str) -> AuditTrace:
        events = self._session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == entity_id,
            )
            .order_by(AuditEvent.seq)
        ).scalars().all()

        return AuditTrace(
            entity_type=entity_type,
            entity_id=entity_id,
            entries=tuple(
                AuditTraceEntry(
                    seq=event.seq,
                    action=event.action,
                    occurred_at=event.occurred_at,
                    actor_id=event.actor_id,
                    payload=event.payload or {},
                    hash=event.hash,
                )
                for event in events
            ),
        )

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent audit events, newest first."""
        result = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(limit)
        )
        return list(result.scalars().all())

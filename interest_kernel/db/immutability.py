"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

A distribution record is proof that money left the funding account. If it
could be edited, the ledger could be made to say a beneficiary was never paid
and the engine would pay them again. The audit chain has the same status.

SQLAlchemy fires events before UPDATE/DELETE statements reach the database.
The listeners below intercept them and raise ImmutabilityViolationError,
aborting the flush before any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_*() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | Rule                                | Why
------------------------|-------------------------------------|----------------------------
DistributionRecord      | No UPDATE, no DELETE                | Proof of payment
AuditEvent              | No UPDATE, no DELETE                | Audit trail
AssetDistributionTotal  | No DELETE; total/count never shrink | Monotonic cumulative total

===============================================================================
USAGE
===============================================================================

    from interest_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that simulate tampering may call unregister_immutability_listeners()
and must re-register afterwards.
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from interest_kernel.exceptions import ImmutabilityViolationError
from interest_kernel.invariants import KernelInvariant
from interest_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, invariant: KernelInvariant, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": invariant.value,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_distribution_record_update(mapper, connection, target):
    _blocked(
        "DistributionRecord",
        str(target.id),
        "UPDATE",
        KernelInvariant.APPEND_ONLY,
        "Distribution records are immutable once written",
    )


def _check_distribution_record_delete(mapper, connection, target):
    _blocked(
        "DistributionRecord",
        str(target.id),
        "DELETE",
        KernelInvariant.APPEND_ONLY,
        "Distribution records cannot be deleted",
    )


def _check_audit_event_update(mapper, connection, target):
    _blocked(
        "AuditEvent",
        str(target.id),
        "UPDATE",
        KernelInvariant.APPEND_ONLY,
        "Audit events are immutable and cannot be modified",
    )


def _check_audit_event_delete(mapper, connection, target):
    _blocked(
        "AuditEvent",
        str(target.id),
        "DELETE",
        KernelInvariant.APPEND_ONLY,
        "Audit events cannot be deleted",
    )


def _check_total_monotonic(mapper, connection, target):
    """Block any change that lowers total_distributed or payment_count."""
    for field in ("total_distributed", "payment_count"):
        history = get_history(target, field)
        if not history.deleted or not history.added:
            continue
        old, new = history.deleted[0], history.added[0]
        if old is not None and new is not None and int(new) < int(old):
            _blocked(
                "AssetDistributionTotal",
                str(target.asset_id),
                "UPDATE",
                KernelInvariant.MONOTONIC_TOTAL,
                f"{field} cannot decrease ({old} -> {new})",
            )


def _check_total_delete(mapper, connection, target):
    _blocked(
        "AssetDistributionTotal",
        str(target.asset_id),
        "DELETE",
        KernelInvariant.MONOTONIC_TOTAL,
        "Distribution totals cannot be deleted",
    )


_LISTENERS = (
    ("DistributionRecord", "before_update", _check_distribution_record_update),
    ("DistributionRecord", "before_delete", _check_distribution_record_delete),
    ("AuditEvent", "before_update", _check_audit_event_update),
    ("AuditEvent", "before_delete", _check_audit_event_delete),
    ("AssetDistributionTotal", "before_update", _check_total_monotonic),
    ("AssetDistributionTotal", "before_delete", _check_total_delete),
)


def _targets() -> dict:
    # Inline import: models import from db
    from interest_kernel.models.audit_event import AuditEvent
    from interest_kernel.models.distribution import AssetDistributionTotal, DistributionRecord

    return {
        "DistributionRecord": DistributionRecord,
        "AuditEvent": AuditEvent,
        "AssetDistributionTotal": AssetDistributionTotal,
    }


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: already-registered listeners are left alone.
    """
    targets = _targets()
    for name, event_name, listener_fn in _LISTENERS:
        if not event.contains(targets[name], event_name, listener_fn):
            event.listen(targets[name], event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally tamper with data.
    """
    targets = _targets()
    for name, event_name, listener_fn in _LISTENERS:
        if event.contains(targets[name], event_name, listener_fn):
            event.remove(targets[name], event_name, listener_fn)

"""Services for the interest kernel (write side)."""

from interest_kernel.services.auditor_service import AuditorService, AuditTrace, AuditTraceEntry
from interest_kernel.services.config_service import ConfigService
from interest_kernel.services.distribution_engine import DistributionEngine
from interest_kernel.services.ledger_service import DistributionLedger
from interest_kernel.services.sequence_service import SequenceService

__all__ = [
    "AuditorService",
    "AuditTrace",
    "AuditTraceEntry",
    "ConfigService",
    "DistributionEngine",
    "DistributionLedger",
    "SequenceService",
]

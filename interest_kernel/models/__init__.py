"""ORM models for the interest kernel."""

from interest_kernel.models.audit_event import AuditAction, AuditEvent
from interest_kernel.models.distribution import AssetDistributionTotal, DistributionRecord
from interest_kernel.models.interest_config import DEFAULT_CONFIG_KEY, InterestConfigModel

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AssetDistributionTotal",
    "DistributionRecord",
    "DEFAULT_CONFIG_KEY",
    "InterestConfigModel",
    "import_all_models",
]


def import_all_models() -> None:
    """Import every mapped class so Base.metadata knows all tables."""
    import interest_kernel.models.audit_event  # noqa: F401
    import interest_kernel.models.distribution  # noqa: F401
    import interest_kernel.models.interest_config  # noqa: F401
    import interest_kernel.services.sequence_service  # noqa: F401

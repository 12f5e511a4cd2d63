"""Utility modules for the interest kernel."""

from interest_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_event,
    hash_payload,
)
from interest_kernel.utils.idempotency import generate_distribution_key

__all__ = [
    "hash_payload",
    "hash_audit_event",
    "canonicalize_json",
    "generate_distribution_key",
]

"""Database layer - engine, base classes, types, and immutability listeners."""

from interest_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from interest_kernel.db.engine import create_tables, get_engine, get_session
from interest_kernel.db.types import UINT256_MAX, Uint256String

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUID",
    "UUIDString",
    "Uint256String",
    "UINT256_MAX",
]

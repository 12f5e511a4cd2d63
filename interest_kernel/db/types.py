"""
Module: interest_kernel.db.types
Responsibility: Column types and helpers for token amounts and account
    identities.  Centralizes the arithmetic width and null-identity rules so
    that every model and service applies the same ones.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and adapters/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Amounts are non-negative integers no wider than 256 bits.  They are
      persisted as decimal strings so no backend silently truncates them
      (SQLite stores integers above 2**63 as REAL).
    - The null identity (None, "", all-zero hex address) is never a valid
      token or administrator.
"""

import re

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

UINT256_MAX = (1 << 256) - 1

# Enough digits for UINT256_MAX (78 decimal digits)
_UINT256_DIGITS = 78

_ZERO_ADDRESS = re.compile(r"^(0x)?0+$", re.IGNORECASE)


class Uint256String(TypeDecorator):
    """
    Unsigned 256-bit integer stored as a decimal string.

    Guarantees:
        - process_bind_param rejects negatives and values above UINT256_MAX.
        - process_result_value returns a Python int.
    """

    impl = String(_UINT256_DIGITS)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(require_uint256(int(value), "column value"))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


def require_uint256(value: int, name: str) -> int:
    """
    Check that value fits an unsigned 256-bit integer.

    Raises:
        ValueError: if value is negative or wider than 256 bits.
    """
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} must be within [0, 2**256), got {value}")
    return value


def is_null_identity(identity: str | None) -> bool:
    """Return True for None, blank strings and all-zero addresses ("0x00..0")."""
    if identity is None:
        return True
    stripped = identity.strip()
    return not stripped or bool(_ZERO_ADDRESS.match(stripped))

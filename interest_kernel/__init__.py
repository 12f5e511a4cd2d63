"""
Interest Kernel - fractional interest distribution

A durable, append-only distribution ledger with:
- Idempotent per-period payouts
- Proportional, truncating entitlement arithmetic
- Audited administrative configuration
- Full auditability via hash chain
"""

__version__ = "0.1.0"

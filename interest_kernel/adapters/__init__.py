"""Reference implementations of the engine's external collaborators (in-memory, no DB)."""

from interest_kernel.adapters.ownership import InMemoryOwnershipRegistry
from interest_kernel.adapters.token import InMemoryTokenLedger, TransferReceipt

__all__ = [
    "InMemoryOwnershipRegistry",
    "InMemoryTokenLedger",
    "TransferReceipt",
]

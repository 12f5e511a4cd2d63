"""
In-memory ownership registry (reference OwnershipQuery implementation).

Contract:
    Tracks which assets exist, whether each is fractionalized, and how many
    shares each holder owns.  The sum of an asset's shares never exceeds
    max_shares().

Architecture: interest_kernel/adapters. No DB. Used by tests, tooling and
deployments that mirror the registry in process.
"""

from __future__ import annotations

import threading
from collections import defaultdict


class InMemoryOwnershipRegistry:
    """Asset registry and share ledger held in process memory."""

    def __init__(self, max_shares: int = 100):
        if max_shares <= 0:
            raise ValueError(f"max_shares must be positive, got {max_shares}")
        self._max_shares = max_shares
        self._fractionalized: dict[int, bool] = {}
        self._shares: dict[int, dict[str, int]] = defaultdict(dict)
        self._lock = threading.Lock()

    # OwnershipQuery

    def is_fractionalized(self, asset_id: int) -> bool:
        """
        Raises:
            KeyError: asset_id was never registered.
        """
        with self._lock:
            if asset_id not in self._fractionalized:
                raise KeyError(f"Unknown asset: {asset_id}")
            return self._fractionalized[asset_id]

    def share_balance(self, asset_id: int, holder: str) -> int:
        with self._lock:
            return self._shares[asset_id].get(holder, 0)

    def max_shares(self) -> int:
        return self._max_shares

    # Registry maintenance

    def register_asset(self, asset_id: int, fractionalized: bool = False) -> None:
        with self._lock:
            if asset_id in self._fractionalized:
                raise ValueError(f"Asset {asset_id} already registered")
            self._fractionalized[asset_id] = fractionalized

    def fractionalize(self, asset_id: int, allocations: dict[str, int]) -> None:
        """Split a registered asset into shares, replacing any previous allocation."""
        total = sum(allocations.values())
        if any(v < 0 for v in allocations.values()):
            raise ValueError("Share allocations must be non-negative")
        if total > self._max_shares:
            raise ValueError(
                f"Allocations total {total} exceeds max_shares {self._max_shares}"
            )
        with self._lock:
            if asset_id not in self._fractionalized:
                raise KeyError(f"Unknown asset: {asset_id}")
            self._fractionalized[asset_id] = True
            self._shares[asset_id] = {h: n for h, n in allocations.items() if n}

    def transfer_shares(self, asset_id: int, source: str, destination: str, shares: int) -> None:
        if shares <= 0:
            raise ValueError(f"shares must be positive, got {shares}")
        with self._lock:
            holdings = self._shares[asset_id]
            held = holdings.get(source, 0)
            if held < shares:
                raise ValueError(f"{source} holds {held} shares of {asset_id}, needs {shares}")
            holdings[source] = held - shares
            if not holdings[source]:
                del holdings[source]
            holdings[destination] = holdings.get(destination, 0) + shares

    def holders(self, asset_id: int) -> tuple[str, ...]:
        """Holders with a non-zero balance, sorted for deterministic call order."""
        with self._lock:
            return tuple(sorted(self._shares[asset_id]))

"""
Ports to the external collaborators of the distribution engine.

Contract:
    OwnershipQuery answers share questions about assets; it is read-only from
    the engine's point of view.
    SettlementTransfer moves the settlement token; a rejected transfer is
    surfaced as ``False`` or a ``SettlementTransferError``, never a silent
    no-op.

Architecture: interest_kernel/domain. No DB, no I/O. Implementations live in
interest_kernel/adapters (in-memory reference versions) or in the deployment.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class OwnershipQuery(Protocol):
    """Read-only view of the asset registry / ownership ledger."""

    def is_fractionalized(self, asset_id: int) -> bool:
        """True if the asset's ownership is split into shares."""
        ...

    def share_balance(self, asset_id: int, holder: str) -> int:
        """Shares of ``asset_id`` held by ``holder``."""
        ...

    def max_shares(self) -> int:
        """Constant number of shares a whole asset is divided into."""
        ...


@runtime_checkable
class SettlementTransfer(Protocol):
    """Fungible settlement token operations used by the engine."""

    def decimals(self, token_id: str) -> int:
        """Number of decimals of the token's smallest unit."""
        ...

    def balance_of(self, token_id: str, account: str) -> int:
        """Balance of ``account`` in smallest units."""
        ...

    def allowance(self, token_id: str, owner: str, spender: str) -> int:
        """Amount ``spender`` may still move out of ``owner``."""
        ...

    def transfer_from(
        self,
        token_id: str,
        source: str,
        destination: str,
        amount: int,
        *,
        spender: str,
    ) -> bool:
        """
        Move ``amount`` from ``source`` to ``destination`` on behalf of ``spender``.

        Returns True only when the transfer took effect.  Returning False or
        raising means nothing moved.
        """
        ...

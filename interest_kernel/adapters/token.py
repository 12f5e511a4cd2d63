"""
In-memory settlement token (reference SettlementTransfer implementation).

Contract:
    Balances and allowances per (token, account).  ``transfer_from`` debits
    the allowance and the source balance, credits the destination, then runs
    any registered transfer hooks.  Hooks model tokens that call back into
    arbitrary code on transfer; they run outside the ledger lock.  A hook
    that raises reverts the transfer before the exception reaches the
    caller, so a raising ``transfer_from`` never leaves funds moved.

Failure modes:
    - SettlementTransferError on insufficient balance or allowance.
    - Any exception raised by a hook, after the transfer is reverted.
    - ``False`` when the destination is frozen (the token refuses silently at
      the protocol level, the adapter reports it).
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable

from interest_kernel.db.types import UINT256_MAX, require_uint256
from interest_kernel.exceptions import SettlementTransferError
from interest_kernel.logging_config import get_logger

logger = get_logger("adapters.token")

TransferHook = Callable[["TransferReceipt"], None]


@dataclass(frozen=True)
class TransferReceipt:
    """One completed transfer."""

    token_id: str
    source: str
    destination: str
    amount: int
    spender: str


class InMemoryTokenLedger:
    """Fungible token balances held in process memory."""

    def __init__(self):
        self._decimals: dict[str, int] = {}
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._allowances: dict[tuple[str, str, str], int] = defaultdict(int)
        self._frozen: set[tuple[str, str]] = set()
        self._hooks: list[TransferHook] = []
        self._lock = threading.Lock()
        self.transfers: list[TransferReceipt] = []

    # Setup

    def register_token(self, token_id: str, decimals: int) -> None:
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")
        self._decimals[token_id] = decimals

    def mint(self, token_id: str, account: str, amount: int) -> None:
        with self._lock:
            key = (token_id, account)
            self._balances[key] = require_uint256(self._balances[key] + amount, "balance")

    def approve(self, token_id: str, owner: str, spender: str, amount: int) -> None:
        with self._lock:
            self._allowances[(token_id, owner, spender)] = require_uint256(amount, "allowance")

    def freeze(self, token_id: str, account: str) -> None:
        """Make transfers to ``account`` fail with a ``False`` return."""
        self._frozen.add((token_id, account))

    def add_transfer_hook(self, hook: TransferHook) -> None:
        self._hooks.append(hook)

    # SettlementTransfer

    def decimals(self, token_id: str) -> int:
        if token_id not in self._decimals:
            raise KeyError(f"Unknown token: {token_id}")
        return self._decimals[token_id]

    def balance_of(self, token_id: str, account: str) -> int:
        with self._lock:
            return self._balances[(token_id, account)]

    def allowance(self, token_id: str, owner: str, spender: str) -> int:
        with self._lock:
            return self._allowances[(token_id, owner, spender)]

    def transfer_from(
        self,
        token_id: str,
        source: str,
        destination: str,
        amount: int,
        *,
        spender: str,
    ) -> bool:
        with self._lock:
            if (token_id, destination) in self._frozen:
                logger.warning(
                    "transfer_refused_frozen",
                    extra={"token_id": token_id, "destination": destination},
                )
                return False
            allowed = self._allowances[(token_id, source, spender)]
            if allowed < amount:
                raise SettlementTransferError(
                    token_id, source, destination, amount,
                    f"allowance {allowed} below amount",
                )
            held = self._balances[(token_id, source)]
            if held < amount:
                raise SettlementTransferError(
                    token_id, source, destination, amount,
                    f"balance {held} below amount",
                )
            # Max allowance is treated as unlimited
            if allowed != UINT256_MAX:
                self._allowances[(token_id, source, spender)] = allowed - amount
            self._balances[(token_id, source)] = held - amount
            self._balances[(token_id, destination)] += amount
            receipt = TransferReceipt(token_id, source, destination, amount, spender)
            self.transfers.append(receipt)

        try:
            for hook in list(self._hooks):
                hook(receipt)
        except Exception:
            self._revert(receipt, restore_allowance=allowed != UINT256_MAX)
            logger.warning(
                "transfer_reverted_by_hook",
                extra={"token_id": token_id, "destination": destination, "amount": str(amount)},
            )
            raise
        return True

    def _revert(self, receipt: TransferReceipt, *, restore_allowance: bool) -> None:
        """Undo a transfer whose hook raised; the caller sees nothing moved."""
        with self._lock:
            token_id = receipt.token_id
            self._balances[(token_id, receipt.destination)] -= receipt.amount
            self._balances[(token_id, receipt.source)] += receipt.amount
            if restore_allowance:
                self._allowances[(token_id, receipt.source, receipt.spender)] += receipt.amount
            self.transfers.remove(receipt)

    def transfers_to(self, destination: str) -> list[TransferReceipt]:
        return [t for t in self.transfers if t.destination == destination]

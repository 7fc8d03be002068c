"""
host.journal — journaling account writes, checkpoints, revert/commit.

This module provides a deterministic, in-memory write journal layered over a
base account mapping. It supports nested checkpoints via a stack of overlays.
Writes go to the top overlay; reads consult overlays from top → base.
`commit()` merges the top overlay into the next layer (or the base mapping if
it's the last layer). `revert()` discards the top overlay.

Key properties
--------------
- Pure Python, no I/O.
- Copy-on-write: `get_for_write` copies the account into the top overlay, so a
  reverted checkpoint leaves every lower layer untouched.
- Deterministic behavior; no reliance on wall clock or randomness.

Intended usage
--------------
    j = Journal(bank_accounts)
    j.begin()                          # start a transaction checkpoint
    acc = j.get_for_write(key)         # copy into the overlay (created if absent)
    acc.lamports += 1
    j.commit()                         # apply to parent/base
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Set

from solders.pubkey import Pubkey

from .accounts import Account

# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `destroyed`: addresses marked for deletion in this layer.
    """

    accounts: Dict[Pubkey, Account] = field(default_factory=dict)
    destroyed: Set[Pubkey] = field(default_factory=set)


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    A copy-on-write account journal with nested checkpoints.

    Reads consult overlays from top to bottom and then the base. Writes always
    target the top overlay.
    """

    def __init__(self, accounts: MutableMapping[Pubkey, Account]) -> None:
        self._base = accounts
        self._layers: List[_Overlay] = []

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base mapping."""
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            parent = self._layers[-1]
            for addr in top.destroyed:
                parent.accounts.pop(addr, None)
                parent.destroyed.add(addr)
            for addr, acc in top.accounts.items():
                parent.accounts[addr] = acc
                parent.destroyed.discard(addr)
            return
        for addr in top.destroyed:
            self._base.pop(addr, None)
        for addr, acc in top.accounts.items():
            self._base[addr] = acc

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #

    def get(self, addr: Pubkey) -> Optional[Account]:
        """Read-only lookup (do not mutate the returned object)."""
        for layer in reversed(self._layers):
            if addr in layer.destroyed:
                return None
            acc = layer.accounts.get(addr)
            if acc is not None:
                return acc
        return self._base.get(addr)

    def exists(self, addr: Pubkey) -> bool:
        return self.get(addr) is not None

    def keys(self) -> Iterator[Pubkey]:
        seen: Set[Pubkey] = set()
        for layer in reversed(self._layers):
            for addr in layer.accounts:
                if addr not in seen:
                    seen.add(addr)
                    yield addr
            seen.update(layer.destroyed)
        for addr in self._base:
            if addr not in seen:
                yield addr

    def touched(self) -> List[Pubkey]:
        """Addresses written in the top overlay (excluding destroyed ones)."""
        return list(self._top().accounts)

    # --------------------------------------------------------------------- #
    # Writes
    # --------------------------------------------------------------------- #

    def _top(self) -> _Overlay:
        if not self._layers:
            raise RuntimeError("write without an open checkpoint")
        return self._layers[-1]

    def get_for_write(self, addr: Pubkey) -> Account:
        """
        Return the writable copy of `addr` in the top overlay, copying it up from
        lower layers on first access. Missing accounts materialize as empty
        system-owned records.
        """
        top = self._top()
        acc = top.accounts.get(addr)
        if acc is not None and addr not in top.destroyed:
            return acc
        current = self.get(addr)
        acc = current.copy() if current is not None else Account()
        top.accounts[addr] = acc
        top.destroyed.discard(addr)
        return acc

    def put(self, addr: Pubkey, account: Account) -> None:
        top = self._top()
        top.accounts[addr] = account
        top.destroyed.discard(addr)

    def destroy(self, addr: Pubkey) -> None:
        top = self._top()
        top.accounts.pop(addr, None)
        top.destroyed.add(addr)


__all__ = ["Journal"]

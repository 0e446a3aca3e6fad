"""
meetcap.chain.journal — journaling writes, checkpoints, revert/commit.

This module provides a deterministic, in-memory write journal layered over an
accounts mapping and a per-address storage mapping. It supports nested
checkpoints via a stack of overlays. Writes go to the top overlay; reads
consult overlays from top → base. `commit()` merges the top overlay into the
next layer (or the base state if it's the last layer). `revert()` discards the
top overlay.

The local chain opens one checkpoint per transaction and one per call frame,
which is what gives contract calls their all-or-nothing semantics: a revert
deep inside a nested call discards exactly the writes of the frames it
unwinds.

Intended usage
--------------
    j = Journal(base_accounts, base_storage)
    j.begin()                       # start a checkpoint
    acc = j.ensure_account_for_write(addr)
    acc.credit(123)
    j.storage_set(addr, b"owner", b"...")
    j.commit()                      # apply to parent/base
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Tuple

from meetcap.errors import ExecError

from .accounts import EMPTY_CODE_HASH, Account

BaseStorage = MutableMapping[str, Dict[bytes, bytes]]


# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `storage`: staged storage changes. `None` means deletion for that key.
    """

    accounts: Dict[str, Account] = field(default_factory=dict)
    storage: Dict[str, Dict[bytes, Optional[bytes]]] = field(default_factory=dict)

    def storage_set_local(self, addr: str, key: bytes, value: Optional[bytes]) -> None:
        self.storage.setdefault(addr, {})[key] = value


# =============================================================================
# Journal
# =============================================================================


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    accounts : MutableMapping[str, Account]
        The base (persisted) account mapping.
    storage : MutableMapping[str, Dict[bytes, bytes]]
        The base storage mapping, one dict per address.
    """

    def __init__(self, accounts: MutableMapping[str, Account], storage: BaseStorage) -> None:
        self._base_accounts = accounts
        self._base_storage = storage
        # Start with a single empty overlay for convenience.
        self._layers: List[_Overlay] = [_Overlay()]

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker (int)."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """
        Commit the top overlay into its parent, or into the base state when
        only the root layer remains.
        """
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._apply_to_base(top)
            self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it's the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def commit_to(self, marker: int) -> None:
        """Commit repeatedly until the current depth equals `marker`."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until the current depth equals `marker`."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) > marker:
            self.revert()

    def flush(self) -> None:
        """Commit every layer down to the base state."""
        self.commit_to(1)
        self.commit()

    # --------------------------------------------------------------------- #
    # Account API
    # --------------------------------------------------------------------- #

    def get_account(self, addr: str) -> Optional[Account]:
        """Readonly lookup (do not mutate the result)."""
        for layer in reversed(self._layers):
            acc = layer.accounts.get(addr)
            if acc is not None:
                return acc
        return self._base_accounts.get(addr)

    def get_account_for_write(self, addr: str) -> Optional[Account]:
        """
        Fetch an Account suitable for **mutation** in the top layer. A copy is
        promoted from a lower layer/base when needed; None if absent.
        """
        top = self._layers[-1]
        if addr in top.accounts:
            return top.accounts[addr]
        acc = self.get_account(addr)
        if acc is None:
            return None
        copy = acc.copy()
        top.accounts[addr] = copy
        return copy

    def ensure_account_for_write(self, addr: str) -> Account:
        """Like get_account_for_write, creating a zeroed account if absent."""
        acc = self.get_account_for_write(addr)
        if acc is not None:
            return acc
        acc = Account()
        self._layers[-1].accounts[addr] = acc
        return acc

    def create_account(
        self,
        addr: str,
        *,
        initial_balance: int = 0,
        code_hash: bytes = EMPTY_CODE_HASH,
    ) -> Account:
        """
        Create an account in the top overlay. An existing EOA with a balance
        (funds sent before deployment) is allowed; existing code is a conflict.
        """
        existing = self.get_account(addr)
        if existing is not None and existing.is_contract:
            raise ExecError("account already exists", data={"address": addr})
        acc = Account(
            nonce=0 if existing is None else existing.nonce,
            balance=int(initial_balance) + (0 if existing is None else existing.balance),
            code_hash=code_hash,
        )
        self._layers[-1].accounts[addr] = acc
        return acc

    # --------------------------------------------------------------------- #
    # Storage API
    # --------------------------------------------------------------------- #

    def storage_get(self, addr: str, key: bytes, default: bytes = b"") -> bytes:
        """Read storage with overlay precedence. Returns `default` if absent."""
        for layer in reversed(self._layers):
            m = layer.storage.get(addr)
            if m is not None and key in m:
                local = m[key]
                return default if local is None else local
        return self._base_storage.get(addr, {}).get(key, default)

    def storage_set(self, addr: str, key: bytes, value: bytes) -> None:
        """Stage a storage write in the top overlay. Empty value is a deletion."""
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("storage value must be bytes")
        self._layers[-1].storage_set_local(addr, bytes(key), bytes(value) or None)

    def storage_delete(self, addr: str, key: bytes) -> None:
        self._layers[-1].storage_set_local(addr, bytes(key), None)

    def storage_items(self, addr: str) -> Iterator[Tuple[bytes, bytes]]:
        """Iterate visible (key, value) for an address, stable order by key."""
        merged: Dict[bytes, Optional[bytes]] = dict(self._base_storage.get(addr, {}))
        for layer in self._layers:
            merged.update(layer.storage.get(addr, {}))
        for k in sorted(merged):
            v = merged[k]
            if v is not None:
                yield k, v

    # --------------------------------------------------------------------- #
    # Merge helpers
    # --------------------------------------------------------------------- #

    @staticmethod
    def _merge_layers(parent: _Overlay, child: _Overlay) -> None:
        parent.accounts.update(child.accounts)
        for addr, changes in child.storage.items():
            parent.storage.setdefault(addr, {}).update(changes)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr, acc in layer.accounts.items():
            self._base_accounts[addr] = acc
        for addr, changes in layer.storage.items():
            slot = self._base_storage.setdefault(addr, {})
            for k, v in changes.items():
                if v is None:
                    slot.pop(k, None)
                else:
                    slot[k] = v


__all__ = ["Journal"]

"""
meetcap.chain.local — in-process deterministic chain for the contracts.

LocalChain plays the part of a development network: a fixed set of funded
signers, one block per transaction, time travel for tests, and atomic
transactions backed by :class:`~meetcap.chain.journal.Journal`.

Execution model
---------------
* Every transaction (``deploy``, ``transact``, ``send_value``) mines a new
  block. Its timestamp is the value set with ``set_next_block_timestamp`` or
  ``previous + pending increase_time + block_time``.
* The sender's nonce is bumped first and survives a revert; everything else
  the transaction did is rolled back and a REVERT receipt is recorded before
  the :class:`~meetcap.errors.Revert` propagates to the caller. Any other
  exception gets an ERROR receipt and propagates unchanged.
* Each call frame (including nested cross-contract calls and creates) runs in
  its own journal checkpoint, so a failing inner call unwinds only its writes
  when the caller handles it.
* ``call`` runs a view method against the latest block inside a checkpoint
  that is always discarded.

Usage:
    chain = LocalChain()
    owner, alice = chain.signers[:2]
    token = chain.deploy(owner, MeetcapToken)
    token.transact(owner).transfer(alice, 100)
    assert token.call().balance_of(alice) == 100
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Type

from meetcap.config import ChainConfig, load_config
from meetcap.errors import ExecError, InvalidAccess, Revert, error_to_receipt_fields

from .abi import PAYABLE, VIEW, abi_kind
from .accounts import EMPTY_CODE_HASH, Account, compute_code_hash
from .address import (ZERO_ADDRESS, AddressLike, contract_address,
                      normalize_address, short, signer_address)
from .context import BlockEnv, Msg
from .events import Event, Receipt
from .journal import Journal

if TYPE_CHECKING:  # pragma: no cover
    from meetcap.contracts.base import Contract

log = logging.getLogger(__name__)


@dataclass
class _Snapshot:
    accounts: Dict[str, Account]
    storage: Dict[str, Dict[bytes, bytes]]
    height: int
    timestamp: int
    receipts: int
    events: int


class LocalChain:
    def __init__(self, config: Optional[ChainConfig] = None) -> None:
        self.config = config or load_config()
        self._lock = threading.RLock()
        self._accounts: Dict[str, Account] = {}
        self._storage: Dict[str, Dict[bytes, bytes]] = {}
        self.journal = Journal(self._accounts, self._storage)
        self._code: Dict[bytes, Type["Contract"]] = {}
        self._frames: List[Msg] = []
        self._static_depth = 0
        self._events: List[Event] = []
        self._snapshots: List[_Snapshot] = []
        self.receipts: List[Receipt] = []

        self.height = 0
        self.timestamp = self.config.genesis_timestamp
        self._pending_time = 0
        self._next_timestamp: Optional[int] = None

        self.signers: List[str] = [signer_address(i) for i in range(self.config.accounts)]
        for s in self.signers:
            self._accounts[s] = Account(balance=self.config.initial_balance)
        log.debug(
            "local chain %s (id=%d) genesis ts=%d with %d signers",
            self.config.network,
            self.config.chain_id,
            self.timestamp,
            len(self.signers),
        )

    # ------------------------------------------------------------------ #
    # Clock
    # ------------------------------------------------------------------ #

    def latest_timestamp(self) -> int:
        return self.timestamp

    def block_env(self) -> BlockEnv:
        return BlockEnv(height=self.height, timestamp=self.timestamp, chain_id=self.config.chain_id)

    def increase_time(self, seconds: int) -> int:
        """Add `seconds` to the next block's timestamp. Returns the total pending offset."""
        if seconds < 0:
            raise ValueError("cannot move time backwards")
        with self._lock:
            self._pending_time += int(seconds)
            return self._pending_time

    def set_next_block_timestamp(self, timestamp: int) -> None:
        with self._lock:
            if timestamp <= self.timestamp:
                raise ValueError(
                    f"timestamp {timestamp} is lower than or equal to previous block's timestamp {self.timestamp}"
                )
            self._next_timestamp = int(timestamp)

    def mine(self, blocks: int = 1) -> BlockEnv:
        """Mine `blocks` empty blocks and return the latest block env."""
        with self._lock:
            for _ in range(blocks):
                self._next_block()
            return self.block_env()

    def _next_block(self) -> None:
        if self._next_timestamp is not None:
            ts = self._next_timestamp
        else:
            ts = self.timestamp + self._pending_time + self.config.block_time
        self.height += 1
        self.timestamp = ts
        self._pending_time = 0
        self._next_timestamp = None

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #

    def balance_of(self, address: AddressLike) -> int:
        acc = self.journal.get_account(normalize_address(address))
        return 0 if acc is None else acc.balance

    def nonce_of(self, address: AddressLike) -> int:
        acc = self.journal.get_account(normalize_address(address))
        return 0 if acc is None else acc.nonce

    def set_balance(self, address: AddressLike, value: int) -> None:
        with self._lock:
            acc = self.journal.ensure_account_for_write(normalize_address(address))
            acc.balance = int(value)
            self.journal.flush()

    def is_contract(self, address: AddressLike) -> bool:
        acc = self.journal.get_account(normalize_address(address))
        return acc is not None and acc.is_contract

    def code_at(self, address: AddressLike) -> Type["Contract"]:
        addr = normalize_address(address)
        acc = self.journal.get_account(addr)
        if acc is None or acc.code_hash == EMPTY_CODE_HASH:
            raise InvalidAccess("no contract at address", address=addr)
        return self._code[acc.code_hash]

    def at(self, address: AddressLike) -> "ContractHandle":
        addr = normalize_address(address)
        return ContractHandle(self, addr, self.code_at(addr))

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def events(self, address: Optional[AddressLike] = None, name: Optional[str] = None) -> List[Event]:
        addr = normalize_address(address) if address is not None else None
        return [
            e
            for e in self._events
            if (addr is None or e.address == addr) and (name is None or e.name == name)
        ]

    def emit(self, address: str, name: str, args: Dict[str, Any]) -> Event:
        ev = Event(
            address=address,
            name=name,
            args=dict(args),
            block_height=self.height,
            tx_index=len(self.receipts),
            log_index=len(self._events),
        )
        self._events.append(ev)
        return ev

    # ------------------------------------------------------------------ #
    # Snapshots (evm_snapshot / evm_revert)
    # ------------------------------------------------------------------ #

    def snapshot(self) -> int:
        with self._lock:
            self._snapshots.append(
                _Snapshot(
                    accounts={a: acc.copy() for a, acc in self._accounts.items()},
                    storage={a: dict(s) for a, s in self._storage.items()},
                    height=self.height,
                    timestamp=self.timestamp,
                    receipts=len(self.receipts),
                    events=len(self._events),
                )
            )
            return len(self._snapshots) - 1

    def revert_snapshot(self, snapshot_id: int) -> None:
        """Restore the state captured by `snapshot_id`; later snapshots are dropped."""
        with self._lock:
            if not 0 <= snapshot_id < len(self._snapshots):
                raise ValueError(f"unknown snapshot {snapshot_id}")
            snap = self._snapshots[snapshot_id]
            del self._snapshots[snapshot_id:]
            self._accounts.clear()
            self._accounts.update(snap.accounts)
            self._storage.clear()
            self._storage.update(snap.storage)
            self.journal = Journal(self._accounts, self._storage)
            self.height = snap.height
            self.timestamp = snap.timestamp
            self._pending_time = 0
            self._next_timestamp = None
            del self.receipts[snap.receipts:]
            del self._events[snap.events:]

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def deploy(
        self,
        sender: AddressLike,
        contract_cls: Type["Contract"],
        *args: Any,
        value: int = 0,
        **kwargs: Any,
    ) -> "ContractHandle":
        """Deploy `contract_cls`, running its constructor with `args`."""
        frm = normalize_address(sender)
        with self._lock:
            receipt = self._execute(
                frm,
                None,
                "constructor",
                lambda nonce: self.create(frm, contract_cls, args, kwargs, value=value, nonce=nonce),
            )
            address = receipt.return_value
            receipt.contract_address = address
            log.info("deployed %s at %s (deployer %s)", contract_cls.__name__, address, short(frm))
            return ContractHandle(self, address, contract_cls, receipt=receipt)

    def transact(
        self,
        sender: AddressLike,
        address: AddressLike,
        method: str,
        *args: Any,
        value: int = 0,
        **kwargs: Any,
    ) -> Receipt:
        frm = normalize_address(sender)
        to = normalize_address(address)
        with self._lock:
            return self._execute(
                frm,
                to,
                method,
                lambda _nonce: self.call_frame(frm, to, method, args, kwargs, value=value),
            )

    def send_value(self, sender: AddressLike, to: AddressLike, value: int) -> Receipt:
        """Plain native transfer; a contract recipient must expose a payable `receive`."""
        frm = normalize_address(sender)
        dst = normalize_address(to)
        with self._lock:
            return self._execute(frm, dst, "receive", lambda _nonce: self.send_native(frm, dst, value))

    def call(
        self,
        address: AddressLike,
        method: str,
        *args: Any,
        sender: Optional[AddressLike] = None,
        **kwargs: Any,
    ) -> Any:
        """Run a view method against the latest block; state is never kept."""
        frm = normalize_address(sender) if sender is not None else ZERO_ADDRESS
        to = normalize_address(address)
        with self._lock:
            marker = self.journal.begin()
            ev_start = len(self._events)
            try:
                return self.call_frame(frm, to, method, args, kwargs, static=True)
            finally:
                self.journal.revert_to(marker - 1)
                del self._events[ev_start:]

    def _execute(
        self,
        sender: str,
        to: Optional[str],
        method: str,
        body: Callable[[int], Any],
    ) -> Receipt:
        self._next_block()
        tx_index = len(self.receipts)
        ev_start = len(self._events)
        sender_acc = self.journal.ensure_account_for_write(sender)
        nonce = sender_acc.nonce
        sender_acc.increment_nonce()
        marker = self.journal.begin()

        def _receipt(**fields: Any) -> Receipt:
            r = Receipt(
                tx_index=tx_index,
                block_height=self.height,
                timestamp=self.timestamp,
                sender=sender,
                to=to,
                method=method,
                **fields,
            )
            self.receipts.append(r)
            return r

        try:
            result = body(nonce)
        except ExecError as err:
            self.journal.revert_to(marker - 1)
            self.journal.flush()
            del self._events[ev_start:]
            _receipt(status=error_to_receipt_fields(err)["status"], error=err)
            log.info("tx %d %s from %s failed: %s", tx_index, method, short(sender), err.message)
            raise
        except Exception as exc:
            # Not a contract-level failure; still a mined, failed transaction.
            self.journal.revert_to(marker - 1)
            self.journal.flush()
            del self._events[ev_start:]
            err = ExecError(f"{type(exc).__name__}: {exc}", code="INTERNAL_ERROR")
            _receipt(status="ERROR", error=err)
            log.warning("tx %d %s from %s crashed: %s", tx_index, method, short(sender), err.message)
            raise
        self.journal.flush()
        receipt = _receipt(return_value=result, events=list(self._events[ev_start:]))
        log.debug(
            "tx %d %s from %s ok (block %d, ts %d, %d events)",
            tx_index,
            method,
            short(sender),
            self.height,
            self.timestamp,
            len(receipt.events),
        )
        return receipt

    # ------------------------------------------------------------------ #
    # Frames (used by transactions and by contracts calling each other)
    # ------------------------------------------------------------------ #

    @property
    def msg(self) -> Msg:
        if not self._frames:
            raise RuntimeError("no active call frame")
        return self._frames[-1]

    @property
    def in_static_frame(self) -> bool:
        return self._static_depth > 0

    def _register_code(self, contract_cls: Type["Contract"]) -> bytes:
        code_hash = compute_code_hash(f"{contract_cls.__module__}.{contract_cls.__qualname__}")
        self._code.setdefault(code_hash, contract_cls)
        return code_hash

    def _run_frame(self, msg: Msg, static: bool, body: Callable[[], Any]) -> Any:
        marker = self.journal.begin()
        ev_start = len(self._events)
        self._frames.append(msg)
        if static:
            self._static_depth += 1
        try:
            result = body()
        except Exception:
            self.journal.revert_to(marker - 1)
            del self._events[ev_start:]
            raise
        else:
            self.journal.commit_to(marker - 1)
            return result
        finally:
            self._frames.pop()
            if static:
                self._static_depth -= 1

    def _move_native(self, frm: str, to: str, value: int) -> None:
        if value == 0:
            return
        self.journal.ensure_account_for_write(frm).debit(value)
        self.journal.ensure_account_for_write(to).credit(value)

    def create(
        self,
        sender: str,
        contract_cls: Type["Contract"],
        args: Tuple[Any, ...] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        *,
        value: int = 0,
        nonce: Optional[int] = None,
    ) -> str:
        """Create a contract from `sender`; returns its address."""
        if self.in_static_frame:
            raise InvalidAccess("contract creation inside a read-only call")
        if nonce is None:
            acc = self.journal.ensure_account_for_write(sender)
            nonce = acc.nonce
            acc.increment_nonce()
        address = contract_address(sender, nonce)
        code_hash = self._register_code(contract_cls)
        if value and abi_kind(contract_cls.constructor) != PAYABLE:
            raise Revert("non-payable constructor cannot accept value")

        def body() -> str:
            self.journal.create_account(address, code_hash=code_hash)
            self._move_native(sender, address, value)
            contract_cls(self, address).constructor(*args, **(kwargs or {}))
            return address

        return self._run_frame(Msg(sender, value), False, body)

    def call_frame(
        self,
        sender: str,
        address: str,
        method: str,
        args: Tuple[Any, ...] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        *,
        value: int = 0,
        static: bool = False,
    ) -> Any:
        contract_cls = self.code_at(address)
        fn = getattr(contract_cls, method, None)
        kind = abi_kind(fn)
        if kind is None:
            raise InvalidAccess("method is not callable externally", method=method, address=address)
        static = static or self.in_static_frame
        if static and kind != VIEW:
            raise InvalidAccess("state-changing method in a read-only call", method=method, address=address)
        if value and kind != PAYABLE:
            raise Revert("non-payable method cannot accept value")

        def body() -> Any:
            self._move_native(sender, address, value)
            return getattr(contract_cls(self, address), method)(*args, **(kwargs or {}))

        return self._run_frame(Msg(sender, value), static, body)

    def send_native(self, sender: str, to: str, value: int) -> None:
        """Transfer native value, invoking a contract recipient's payable `receive`."""
        if self.is_contract(to):
            contract_cls = self.code_at(to)
            if abi_kind(getattr(contract_cls, "receive", None)) != PAYABLE:
                raise Revert("contract does not accept native value")
            self.call_frame(sender, to, "receive", value=value)
            return
        self._move_native(sender, to, value)


class _Bound:
    """Attribute access → chain call (see ContractHandle.transact / .call)."""

    def __init__(self, fn: Callable[..., Any]) -> None:
        self._fn = fn

    def __getattr__(self, method: str) -> Callable[..., Any]:
        if method.startswith("_"):
            raise AttributeError(method)

        def invoke(*args: Any, **kwargs: Any) -> Any:
            return self._fn(method, *args, **kwargs)

        invoke.__name__ = method
        return invoke


class ContractHandle:
    """
    Client-side reference to a deployed contract.

        token.transact(owner).transfer(alice, 5)   # → Receipt
        token.call().balance_of(alice)             # → int
    """

    def __init__(
        self,
        chain: LocalChain,
        address: str,
        contract_cls: Type["Contract"],
        *,
        receipt: Optional[Receipt] = None,
    ) -> None:
        self.chain = chain
        self.address = address
        self.contract_cls = contract_cls
        self.deploy_receipt = receipt

    def transact(self, sender: AddressLike, *, value: int = 0) -> _Bound:
        return _Bound(lambda m, *a, **kw: self.chain.transact(sender, self.address, m, *a, value=value, **kw))

    def call(self, sender: Optional[AddressLike] = None) -> _Bound:
        return _Bound(lambda m, *a, **kw: self.chain.call(self.address, m, *a, sender=sender, **kw))

    def events(self, name: Optional[str] = None) -> List[Event]:
        return self.chain.events(self.address, name)

    def __repr__(self) -> str:
        return f"<{self.contract_cls.__name__} at {self.address}>"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ContractHandle):
            return other.address == self.address
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.address)


__all__ = ["LocalChain", "ContractHandle"]

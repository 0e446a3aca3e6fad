"""
meetcap.chain.accounts — Account records.

An Account holds three fields:

- nonce:      u256 transaction/create counter (monotonically increasing)
- balance:    u256 native currency amount (wei)
- code_hash:  32-byte hash of the contract class (all-zero for EOAs)

All arithmetic is u256-bounded and deterministic.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from meetcap.errors import ExecError, Revert

U256_MAX = (1 << 256) - 1

EMPTY_CODE_HASH: bytes = b"\x00" * 32


def _ensure_u256(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    if value > U256_MAX:
        raise OverflowError(f"{name} exceeds u256")
    return value


def compute_code_hash(code_id: str) -> bytes:
    """
    Code hash (SHA3-256) for a contract identified by its import path,
    e.g. ``"meetcap.contracts.token.MeetcapToken"``.
    """
    if not code_id:
        return EMPTY_CODE_HASH
    return hashlib.sha3_256(code_id.encode("utf-8")).digest()


@dataclass(slots=True)
class Account:
    """
    A minimal, deterministic account record.

    Invariants:
    - nonce and balance are u256
    - code_hash is exactly 32 bytes
    """
    nonce: int = 0
    balance: int = 0
    code_hash: bytes = EMPTY_CODE_HASH

    def __post_init__(self) -> None:
        self.nonce = _ensure_u256("nonce", int(self.nonce))
        self.balance = _ensure_u256("balance", int(self.balance))
        ch = bytes(self.code_hash)
        if len(ch) != 32:
            raise ValueError("code_hash must be 32 bytes")
        self.code_hash = ch

    @property
    def is_contract(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, balance=self.balance, code_hash=self.code_hash)

    def increment_nonce(self) -> None:
        if self.nonce == U256_MAX:
            raise ExecError("nonce overflow (u256 max)")
        self.nonce += 1

    def credit(self, amount: int) -> None:
        amt = _ensure_u256("amount", int(amount))
        if self.balance + amt > U256_MAX:
            raise Revert("balance overflow")
        self.balance += amt

    def debit(self, amount: int) -> None:
        """Decrease balance by `amount`; reverts if insufficient."""
        amt = _ensure_u256("amount", int(amount))
        if self.balance < amt:
            raise Revert("insufficient native balance")
        self.balance -= amt

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "balance": self.balance,
            "code_hash": self.code_hash.hex(),
        }


__all__ = ["Account", "EMPTY_CODE_HASH", "U256_MAX", "compute_code_hash"]

"""
meetcap.chain.storage — typed view over one contract's journaled storage.

Values are stored as bytes in the journal. This handle adds the encodings the
contracts need:

- u256 integers (big-endian, minimal width; zero is b"\\x00")
- 20-byte addresses (stored raw, read back as 0x-hex; unset → zero address)
- UTF-8 strings
- dynamic lists of integers / addresses (length at ``key#len``, items at
  ``key#<i>``)

Keys are built with :func:`skey`: ``skey("bal", holder)`` → ``b"bal|0xab…"``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence, Union

from meetcap.errors import Revert

from .accounts import U256_MAX
from .address import ZERO_ADDRESS, normalize_address, to_bytes, to_hex

if TYPE_CHECKING:  # pragma: no cover
    from .journal import Journal

KeyPart = Union[str, bytes, int]


def skey(*parts: KeyPart) -> bytes:
    """Join key parts with '|' (str → UTF-8, int → decimal)."""
    out: List[bytes] = []
    for p in parts:
        if isinstance(p, bytes):
            out.append(p)
        elif isinstance(p, int):
            out.append(str(p).encode("ascii"))
        else:
            out.append(p.encode("utf-8"))
    return b"|".join(out)


def encode_u256(value: int) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError("u256 value must be int")
    # Solidity 0.8 checked arithmetic: out-of-range writes revert the call.
    if value < 0 or value > U256_MAX:
        raise Revert("arithmetic underflow or overflow")
    if value == 0:
        return b"\x00"
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def decode_u256(raw: bytes) -> int:
    return int.from_bytes(raw, "big", signed=False) if raw else 0


class ContractStorage:
    def __init__(self, journal: "Journal", address: str) -> None:
        self._journal = journal
        self.address = address

    # ---- raw ---- #

    def get(self, key: bytes) -> bytes:
        return self._journal.storage_get(self.address, key)

    def set(self, key: bytes, value: bytes) -> None:
        self._journal.storage_set(self.address, key, value)

    def delete(self, key: bytes) -> None:
        self._journal.storage_delete(self.address, key)

    # ---- ints ---- #

    def get_int(self, key: bytes) -> int:
        return decode_u256(self.get(key))

    def set_int(self, key: bytes, value: int) -> None:
        if value == 0:
            self.delete(key)
        else:
            self.set(key, encode_u256(value))

    def add_int(self, key: bytes, delta: int) -> int:
        """Add a signed delta; reverts on u256 underflow/overflow."""
        new = self.get_int(key) + delta
        self.set(key, encode_u256(new))
        return new

    # ---- addresses ---- #

    def get_address(self, key: bytes) -> str:
        raw = self.get(key)
        return to_hex(raw) if raw else ZERO_ADDRESS

    def set_address(self, key: bytes, address: str) -> None:
        self.set(key, to_bytes(normalize_address(address)))

    # ---- dynamic arrays ---- #

    def length(self, key: bytes) -> int:
        return self.get_int(key + b"#len")

    def get_int_list(self, key: bytes) -> List[int]:
        return [self.get_int(key + b"#" + str(i).encode()) for i in range(self.length(key))]

    def set_int_list(self, key: bytes, values: Sequence[int]) -> None:
        for i, v in enumerate(values):
            self.set_int(key + b"#" + str(i).encode(), v)
        self.set_int(key + b"#len", len(values))

    def get_int_at(self, key: bytes, index: int) -> int:
        return self.get_int(key + b"#" + str(index).encode())

    def set_int_at(self, key: bytes, index: int, value: int) -> None:
        if index >= self.length(key):
            raise Revert("array index out of bounds")
        self.set_int(key + b"#" + str(index).encode(), value)

    def get_address_list(self, key: bytes) -> List[str]:
        return [self.get_address(key + b"#" + str(i).encode()) for i in range(self.length(key))]

    def get_address_at(self, key: bytes, index: int) -> str:
        return self.get_address(key + b"#" + str(index).encode())

    def push_address(self, key: bytes, address: str) -> int:
        n = self.length(key)
        self.set_address(key + b"#" + str(n).encode(), address)
        self.set_int(key + b"#len", n + 1)
        return n


__all__ = ["ContractStorage", "skey", "encode_u256", "decode_u256"]

"""
meetcap.chain.address — 20-byte account addresses.

Addresses travel through the codebase as 0x-prefixed lowercase hex strings
(the form users paste into .env files and CLI flags). Helpers accept bytes or
hex (with or without "0x") and normalize.

Signer and contract addresses are derived deterministically with SHA3-256 so
every run of the local chain produces the same accounts:

    signer_address(i)          = sha3_256(b"meetcap/signer|" || i)[:20]
    contract_address(d, nonce) = sha3_256(b"meetcap/create|" || d || nonce)[:20]
"""

from __future__ import annotations

import hashlib
from typing import Union

ADDRESS_LEN = 20
ZERO_ADDRESS = "0x" + "00" * ADDRESS_LEN

AddressLike = Union[str, bytes, bytearray, memoryview]


class AddressError(ValueError):
    """Malformed address input."""


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: AddressLike) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise AddressError(f"hex string must have even length, got {len(h)}")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise AddressError(f"invalid hex string: {value!r}") from e
    raise AddressError(f"cannot convert type {type(value).__name__} to bytes")


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def normalize_address(value: AddressLike) -> str:
    raw = to_bytes(value)
    if len(raw) != ADDRESS_LEN:
        raise AddressError(f"address must be {ADDRESS_LEN} bytes, got {len(raw)}")
    return to_hex(raw)


def signer_address(index: int) -> str:
    if index < 0:
        raise AddressError("signer index must be non-negative")
    h = hashlib.sha3_256(b"meetcap/signer|" + index.to_bytes(8, "big")).digest()
    return to_hex(h[:ADDRESS_LEN])


def contract_address(deployer: AddressLike, nonce: int) -> str:
    h = hashlib.sha3_256()
    h.update(b"meetcap/create|")
    h.update(to_bytes(normalize_address(deployer)))
    h.update(int(nonce).to_bytes(8, "big"))
    return to_hex(h.digest()[:ADDRESS_LEN])


def short(address: AddressLike) -> str:
    """0x1234…abcd style rendering for logs."""
    a = normalize_address(address)
    return f"{a[:6]}…{a[-4:]}"


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "AddressError",
    "AddressLike",
    "to_bytes",
    "to_hex",
    "normalize_address",
    "signer_address",
    "contract_address",
    "short",
]

"""
meetcap.chain.abi — method exposure markers.

Only methods marked with one of these decorators are callable from outside a
contract (transactions, read-only calls, cross-contract calls):

- ``@external``  state-changing, rejects attached native value
- ``@payable``   state-changing, accepts native value
- ``@view``      read-only; the only kind reachable through ``LocalChain.call``

Usage:
    class Counter(Contract):
        @external
        def inc(self) -> None: ...

        @view
        def get(self) -> int: ...
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from meetcap.errors import Revert

from .address import AddressError, normalize_address

F = TypeVar("F", bound=Callable[..., Any])

ABI_ATTR = "__meetcap_abi__"

EXTERNAL = "external"
PAYABLE = "payable"
VIEW = "view"


def _mark(kind: str) -> Callable[[F], F]:
    def deco(fn: F) -> F:
        setattr(fn, ABI_ATTR, kind)
        return fn

    return deco


external = _mark(EXTERNAL)
payable = _mark(PAYABLE)
view = _mark(VIEW)


def abi_kind(fn: Any) -> Optional[str]:
    return getattr(fn, ABI_ATTR, None)


U256_MAX = (1 << 256) - 1


def uint256(value: Any, name: str = "value") -> int:
    """ABI-style check for a uint256 argument; rejects bools, negatives and overflow."""
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U256_MAX:
        raise Revert(f"{name} is not a uint256: {value!r}")
    return value


def checked_address(value: Any, name: str = "address") -> str:
    """ABI-style check for an address argument; returns the normalized form."""
    try:
        return normalize_address(value)
    except AddressError:
        raise Revert(f"invalid {name}: {value!r}") from None


__all__ = ["external", "payable", "view", "abi_kind", "uint256", "checked_address", "EXTERNAL", "PAYABLE", "VIEW"]

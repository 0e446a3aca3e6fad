"""
meetcap.chain.context — BlockEnv/Msg passed to contracts (deterministic)

These lightweight environments are what contract code sees as ``self.block``
and ``self.msg``. They contain only pure data and perform strict validation.
`timestamp` is the chain's simulated block time, never the wall clock.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .address import ZERO_ADDRESS, normalize_address


def _require_non_negative_int(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise TypeError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ValueError(f"{name} must be non-negative, got {v}")
    return v


@dataclass(frozen=True)
class BlockEnv:
    """
    Fields
    ------
    height:     Block height (0 is genesis).
    timestamp:  Block timestamp in seconds.
    chain_id:   Integer chain identifier.
    coinbase:   Block producer address.
    """
    height: int
    timestamp: int
    chain_id: int
    coinbase: str = ZERO_ADDRESS

    def __post_init__(self) -> None:
        object.__setattr__(self, "height", _require_non_negative_int("height", self.height))
        object.__setattr__(self, "timestamp", _require_non_negative_int("timestamp", self.timestamp))
        object.__setattr__(self, "chain_id", _require_non_negative_int("chain_id", self.chain_id))
        object.__setattr__(self, "coinbase", normalize_address(self.coinbase))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Msg:
    """Per-call frame: the immediate caller and the native value attached."""
    sender: str
    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", normalize_address(self.sender))
        object.__setattr__(self, "value", _require_non_negative_int("value", self.value))


__all__ = ["BlockEnv", "Msg"]

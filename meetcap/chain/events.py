"""
meetcap.chain.events — emitted contract events and receipts.

Event args keep their insertion order (the order the contract declared them),
which is how tests and the CLI render them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from meetcap.errors import ExecError, error_to_receipt_fields


@dataclass(frozen=True)
class Event:
    address: str
    name: str
    args: Dict[str, Any]
    block_height: int
    tx_index: int
    log_index: int

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "args": dict(self.args),
            "block_height": self.block_height,
            "tx_index": self.tx_index,
            "log_index": self.log_index,
        }


@dataclass
class Receipt:
    """Outcome of one transaction (call, deploy or native transfer)."""

    tx_index: int
    block_height: int
    timestamp: int
    sender: str
    to: Optional[str]
    method: str
    status: str = "SUCCESS"
    return_value: Any = None
    contract_address: Optional[str] = None
    events: List[Event] = field(default_factory=list)
    error: Optional[ExecError] = None

    @property
    def ok(self) -> bool:
        return self.status == "SUCCESS"

    def event(self, name: str) -> Event:
        """The single event called `name` in this receipt."""
        found = [e for e in self.events if e.name == name]
        if len(found) != 1:
            raise LookupError(f"expected exactly one {name!r} event, found {len(found)}")
        return found[0]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "tx_index": self.tx_index,
            "block_height": self.block_height,
            "timestamp": self.timestamp,
            "from": self.sender,
            "to": self.to,
            "method": self.method,
            "status": self.status,
            "events": [e.to_dict() for e in self.events],
        }
        if self.contract_address is not None:
            out["contract_address"] = self.contract_address
        if self.error is not None:
            out.update(error_to_receipt_fields(self.error))
        return out


__all__ = ["Event", "Receipt"]

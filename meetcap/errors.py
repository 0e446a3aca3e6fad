"""
meetcap.errors — execution exceptions for the local chain and its contracts.

Contract failures are communicated via *typed exceptions* that the chain turns
into receipts and that callers (tests, deploy runner, CLI) catch by type.

Hierarchy
---------
ExecError (base)
 ├─ Revert          : Contract-triggered revert carrying a reason string
 ├─ InvalidAccess   : Calling something that is not callable (unknown address,
 │                    non-exposed method, mutating a view)
 └─ ConfigError     : Bad environment / configuration values

Notes
-----
* Raising `Revert` is a *semantic* failure of the transaction: the chain rolls
  back every state change the transaction made and records a REVERT receipt.
* `InvalidAccess` is raised for calls that never reach contract code.
* Reason strings are part of the contract ABI; tests match on them verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'REVERT').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts/logs/CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Revert(ExecError):
    """
    Contract-triggered revert.

    The reason defaults to the message, so contracts simply write
    ``raise Revert("ERC20: insufficient allowance")``.

    Optional fields:
        reason:  overrides the textual reason stored in ``data["reason"]``.
        data:    extra structured details (merged).
    """
    def __init__(
        self,
        message: str = "reverted",
        *,
        reason: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        d.setdefault("reason", message if reason is None else reason)
        super().__init__(message=message, code="REVERT", data=d)

    @property
    def reason(self) -> str:
        return str((self.data or {}).get("reason", self.message))


class InvalidAccess(ExecError):
    """
    Illegal call that never reaches contract logic.

    Examples:
      - Unknown contract address
      - Method not decorated as external/view
      - Mutating method invoked through a read-only call
    """
    def __init__(
        self,
        message: str = "invalid access",
        *,
        method: Optional[str] = None,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if method is not None:
            d.setdefault("method", method)
        if address is not None:
            d.setdefault("address", address)
        super().__init__(message=message, code="INVALID_ACCESS", data=d or None)


class ConfigError(ExecError):
    """Invalid configuration value (environment variable, .env entry, preset name)."""
    def __init__(self, message: str = "invalid configuration", *, key: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFIG_ERROR",
            data={"key": key} if key is not None else None,
        )


# -------- helper utilities ---------------------------------------------------


def error_to_receipt_fields(err: ExecError) -> Dict[str, Any]:
    """
    Map an ExecError to canonical receipt-like fields.

    Returns:
        {
          "status": "REVERT" | "ERROR",
          "error":  {code, message, data?}
        }
    """
    status = "REVERT" if isinstance(err, Revert) else "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
    "ExecError",
    "Revert",
    "InvalidAccess",
    "ConfigError",
    "error_to_receipt_fields",
]

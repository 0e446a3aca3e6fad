"""
meetcap.contracts.base — Contract base class and the Ownable mixin.

A contract is a thin stateless wrapper around its journaled storage. The chain
builds a fresh instance for every call frame; anything that must persist goes
through ``self.storage``. Contract code sees:

- ``self.msg``     immediate caller and attached native value
- ``self.block``   height / timestamp / chain id of the executing block
- ``self.require(cond, reason)`` / ``self.revert(reason)``
- ``self.emit(name, **args)``
- ``self.call_contract(address, method, *args)`` for cross-contract calls
- ``self.create(cls, *args)`` to deploy a child contract
- ``self.send_value(to, amount)`` / ``self.native_balance()``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

from meetcap.chain.abi import checked_address, external, view
from meetcap.chain.address import ZERO_ADDRESS
from meetcap.chain.context import BlockEnv, Msg
from meetcap.chain.storage import ContractStorage, skey
from meetcap.errors import Revert

if TYPE_CHECKING:  # pragma: no cover
    from meetcap.chain.local import LocalChain


class Contract:
    def __init__(self, chain: "LocalChain", address: str) -> None:
        self._chain = chain
        self.address = address
        self.storage = ContractStorage(chain.journal, address)

    def constructor(self) -> None:
        """Runs once at deployment; override (and mark @payable to accept value)."""

    # ---- environment ---- #

    @property
    def msg(self) -> Msg:
        return self._chain.msg

    @property
    def block(self) -> BlockEnv:
        return self._chain.block_env()

    # ---- control flow ---- #

    @staticmethod
    def require(cond: bool, reason: str) -> None:
        if not cond:
            raise Revert(reason)

    @staticmethod
    def revert(reason: str) -> NoReturn:
        raise Revert(reason)

    def emit(self, name: str, **args: Any) -> None:
        self._chain.emit(self.address, name, args)

    # ---- interaction ---- #

    def call_contract(self, address: str, method: str, *args: Any, value: int = 0, **kwargs: Any) -> Any:
        return self._chain.call_frame(self.address, checked_address(address), method, args, kwargs, value=value)

    def create(self, contract_cls: type, *args: Any, value: int = 0, **kwargs: Any) -> str:
        return self._chain.create(self.address, contract_cls, args, kwargs, value=value)

    def send_value(self, to: str, amount: int) -> None:
        self._chain.send_native(self.address, checked_address(to), amount)

    def native_balance(self) -> int:
        return self._chain.balance_of(self.address)


OWNER_KEY = skey("access", "owner")


class Ownable(Contract):
    """
    Single-owner access control with the OpenZeppelin reason strings.

    Events:
        OwnershipTransferred(previous_owner, new_owner)
    """

    def _init_owner(self, owner: str) -> None:
        self._set_owner(owner)

    def _set_owner(self, new_owner: str) -> None:
        previous = self.storage.get_address(OWNER_KEY)
        self.storage.set_address(OWNER_KEY, new_owner)
        self.emit("OwnershipTransferred", previous_owner=previous, new_owner=checked_address(new_owner))

    def _only_owner(self) -> None:
        self.require(self.msg.sender == self.storage.get_address(OWNER_KEY), "Ownable: caller is not the owner")

    @view
    def owner(self) -> str:
        return self.storage.get_address(OWNER_KEY)

    @external
    def transfer_ownership(self, new_owner: str) -> None:
        self._only_owner()
        self.require(checked_address(new_owner) != ZERO_ADDRESS, "Ownable: new owner is the zero address")
        self._set_owner(new_owner)

    @external
    def renounce_ownership(self) -> None:
        self._only_owner()
        self._set_owner(ZERO_ADDRESS)


__all__ = ["Contract", "Ownable", "OWNER_KEY"]

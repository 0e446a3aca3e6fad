"""
meetcap.contracts.token — the Meetcap (MCAP) ERC-20 token.

Fixed supply of 10,000,000,000 MCAP (18 decimals) minted to the deployer, who
also becomes the owner. Holders can burn their own tokens, and approved
spenders can burn on a holder's behalf.

Storage layout
--------------
- ``token|supply``              → u256
- ``token|bal|<holder>``        → u256
- ``token|allow|<owner>|<sp>``  → u256

Events
------
- ``Transfer``  {"from", "to", "value"}   (mint: from = zero, burn: to = zero)
- ``Approval``  {"owner", "spender", "value"}

Reason strings are the OpenZeppelin ones (``ERC20: ...``) so existing client
tooling and tests can match on them.
"""

from __future__ import annotations

from meetcap.chain.abi import checked_address, external, uint256, view
from meetcap.chain.address import ZERO_ADDRESS
from meetcap.chain.storage import skey

from .base import Ownable

NAME = "Meetcap"
SYMBOL = "MCAP"
DECIMALS = 18
TOTAL_SUPPLY = 10_000_000_000 * 10**DECIMALS

MAX_ALLOWANCE = (1 << 256) - 1

_SUPPLY = skey("token", "supply")


def _bal(holder: str) -> bytes:
    return skey("token", "bal", holder)


def _allow(owner: str, spender: str) -> bytes:
    return skey("token", "allow", owner, spender)


class MeetcapToken(Ownable):
    def constructor(self) -> None:
        self._init_owner(self.msg.sender)
        self._mint(self.msg.sender, TOTAL_SUPPLY)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @view
    def name(self) -> str:
        return NAME

    @view
    def symbol(self) -> str:
        return SYMBOL

    @view
    def decimals(self) -> int:
        return DECIMALS

    @view
    def total_supply(self) -> int:
        return self.storage.get_int(_SUPPLY)

    @view
    def balance_of(self, account: str) -> int:
        return self.storage.get_int(_bal(checked_address(account)))

    @view
    def allowance(self, owner: str, spender: str) -> int:
        return self.storage.get_int(_allow(checked_address(owner), checked_address(spender)))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    @external
    def transfer(self, to: str, amount: int) -> bool:
        self._transfer(self.msg.sender, checked_address(to), uint256(amount, "amount"))
        return True

    @external
    def approve(self, spender: str, amount: int) -> bool:
        self._approve(self.msg.sender, checked_address(spender), uint256(amount, "amount"))
        return True

    @external
    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        frm = checked_address(sender)
        uint256(amount, "amount")
        self._spend_allowance(frm, self.msg.sender, amount)
        self._transfer(frm, checked_address(to), amount)
        return True

    @external
    def increase_allowance(self, spender: str, added_value: int) -> bool:
        sp = checked_address(spender)
        owner = self.msg.sender
        self._approve(owner, sp, self.storage.get_int(_allow(owner, sp)) + uint256(added_value, "added_value"))
        return True

    @external
    def decrease_allowance(self, spender: str, subtracted_value: int) -> bool:
        sp = checked_address(spender)
        owner = self.msg.sender
        current = self.storage.get_int(_allow(owner, sp))
        uint256(subtracted_value, "subtracted_value")
        self.require(current >= subtracted_value, "ERC20: decreased allowance below zero")
        self._approve(owner, sp, current - subtracted_value)
        return True

    @external
    def burn(self, amount: int) -> None:
        self._burn(self.msg.sender, uint256(amount, "amount"))

    @external
    def burn_from(self, account: str, amount: int) -> None:
        holder = checked_address(account)
        uint256(amount, "amount")
        self._spend_allowance(holder, self.msg.sender, amount)
        self._burn(holder, amount)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _transfer(self, frm: str, to: str, amount: int) -> None:
        self.require(frm != ZERO_ADDRESS, "ERC20: transfer from the zero address")
        self.require(to != ZERO_ADDRESS, "ERC20: transfer to the zero address")
        from_balance = self.storage.get_int(_bal(frm))
        self.require(from_balance >= amount, "ERC20: transfer amount exceeds balance")
        self.storage.set_int(_bal(frm), from_balance - amount)
        self.storage.add_int(_bal(to), amount)
        self.emit("Transfer", **{"from": frm, "to": to, "value": amount})

    def _mint(self, account: str, amount: int) -> None:
        self.require(account != ZERO_ADDRESS, "ERC20: mint to the zero address")
        self.storage.add_int(_SUPPLY, amount)
        self.storage.add_int(_bal(account), amount)
        self.emit("Transfer", **{"from": ZERO_ADDRESS, "to": account, "value": amount})

    def _burn(self, account: str, amount: int) -> None:
        self.require(account != ZERO_ADDRESS, "ERC20: burn from the zero address")
        balance = self.storage.get_int(_bal(account))
        self.require(balance >= amount, "ERC20: burn amount exceeds balance")
        self.storage.set_int(_bal(account), balance - amount)
        self.storage.add_int(_SUPPLY, -amount)
        self.emit("Transfer", **{"from": account, "to": ZERO_ADDRESS, "value": amount})

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        self.require(owner != ZERO_ADDRESS, "ERC20: approve from the zero address")
        self.require(spender != ZERO_ADDRESS, "ERC20: approve to the zero address")
        self.storage.set_int(_allow(owner, spender), amount)
        self.emit("Approval", owner=owner, spender=spender, value=amount)

    def _spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.storage.get_int(_allow(owner, spender))
        if current != MAX_ALLOWANCE:
            self.require(current >= amount, "ERC20: insufficient allowance")
            self._approve(owner, spender, current - amount)


__all__ = ["MeetcapToken", "NAME", "SYMBOL", "DECIMALS", "TOTAL_SUPPLY", "MAX_ALLOWANCE"]

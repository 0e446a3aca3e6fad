"""
meetcap.contracts.presale — fixed-rate token presale paid in native coin.

Buyers send native value to ``buy_tokens(beneficiary)`` (or plainly to the
contract, which buys for the sender) and receive ``value * rate`` token base
units from the presale's own token balance. The owner forwards raised funds to
the admin and finally ends the sale, which sweeps the remaining funds and the
unsold tokens to the admin.

Events
------
- ``TokensPurchased`` {"purchaser", "beneficiary", "value", "amount"}
- ``FundsForwarded``  {"to", "amount"}
- ``PresaleEnded``    {"admin", "funds", "tokens"}
"""

from __future__ import annotations

from typing import Optional

from meetcap.chain.abi import checked_address, external, payable, uint256, view
from meetcap.chain.address import ZERO_ADDRESS
from meetcap.chain.storage import skey

from .base import Ownable

ERR_BENEFICIARY_ZERO = "Beneficiary address cannot be the zero address."
ERR_ZERO_VALUE = "You cannot buy with 0 BNB."
ERR_EXCEEDS_BALANCE = "Token amount exceeds the presale balance."
ERR_INSUFFICIENT_FUNDS = "Insufficient balance"

_RATE = skey("presale", "rate")
_TOKEN = skey("presale", "token")
_ADMIN = skey("presale", "admin")
_RAISED = skey("presale", "raised")


class MeetcapPresale(Ownable):
    def constructor(self, rate: int, token: str, admin: Optional[str] = None) -> None:
        self.require(uint256(rate, "rate") > 0, "Presale: rate is 0")
        token = checked_address(token)
        self.require(token != ZERO_ADDRESS, "Presale: token is the zero address")
        admin = checked_address(admin) if admin is not None else self.msg.sender
        self.require(admin != ZERO_ADDRESS, "Presale: admin is the zero address")

        self._init_owner(self.msg.sender)
        self.storage.set_int(_RATE, rate)
        self.storage.set_address(_TOKEN, token)
        self.storage.set_address(_ADMIN, admin)

    # ---- views ---- #

    @view
    def rate(self) -> int:
        return self.storage.get_int(_RATE)

    @view
    def token(self) -> str:
        return self.storage.get_address(_TOKEN)

    @view
    def admin_address(self) -> str:
        return self.storage.get_address(_ADMIN)

    @view
    def wei_raised(self) -> int:
        return self.storage.get_int(_RAISED)

    @view
    def token_balance(self) -> int:
        return self.call_contract(self.token(), "balance_of", self.address)

    # ---- purchases ---- #

    @payable
    def buy_tokens(self, beneficiary: str) -> int:
        beneficiary = checked_address(beneficiary)
        wei = self.msg.value
        self.require(beneficiary != ZERO_ADDRESS, ERR_BENEFICIARY_ZERO)
        self.require(wei != 0, ERR_ZERO_VALUE)

        tokens = wei * self.rate()
        self.require(tokens <= self.token_balance(), ERR_EXCEEDS_BALANCE)

        self.storage.add_int(_RAISED, wei)
        self.call_contract(self.token(), "transfer", beneficiary, tokens)
        self.emit(
            "TokensPurchased",
            purchaser=self.msg.sender,
            beneficiary=beneficiary,
            value=wei,
            amount=tokens,
        )
        return tokens

    @payable
    def receive(self) -> int:
        return self.buy_tokens(self.msg.sender)

    # ---- owner ---- #

    @external
    def forward_funds(self, amount: int) -> None:
        self._only_owner()
        uint256(amount, "amount")
        balance = self.native_balance()
        self.require(balance > 0 and balance >= amount, ERR_INSUFFICIENT_FUNDS)
        admin = self.admin_address()
        self.send_value(admin, amount)
        self.emit("FundsForwarded", to=admin, amount=amount)

    @external
    def end_presale(self) -> None:
        self._only_owner()
        admin = self.admin_address()
        funds = self.native_balance()
        tokens = self.token_balance()
        if funds:
            self.send_value(admin, funds)
        if tokens:
            self.call_contract(self.token(), "transfer", admin, tokens)
        self.emit("PresaleEnded", admin=admin, funds=funds, tokens=tokens)


__all__ = [
    "MeetcapPresale",
    "ERR_BENEFICIARY_ZERO",
    "ERR_ZERO_VALUE",
    "ERR_EXCEEDS_BALANCE",
    "ERR_INSUFFICIENT_FUNDS",
]

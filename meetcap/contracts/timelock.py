"""
meetcap.contracts.timelock — MeetcapTimeLock, a phased vesting lock.

The lock holds a fixed allocation of an ERC-20 token for one beneficiary and
hands it out in percentage phases measured from a start date. Anyone may call
``release()``; the tokens always go to the beneficiary. One call releases every
phase that has unlocked since the previous release.

Constructor
-----------
    (user, token, amount, lock_durations, release_percents, start_date, factory=0x0)

Validated once, in this order: user ≠ 0, token ≠ 0, amount ≠ 0, equal lengths,
percents add up to 100. Nothing is checked about ordering of the durations.

Storage layout
--------------
- ``tl|user`` / ``tl|token`` / ``tl|factory``   → address
- ``tl|amount`` / ``tl|released`` / ``tl|start`` / ``tl|next`` → u256
- ``tl|durations`` / ``tl|percents`` / ``tl|dates`` → u256[] (one slot per phase)

Events
------
- ``Released`` {"amount", "released_amount", "from_index", "to_index",
  "next_index", "release_date"}; `release_date` is the unlock date of the last
  phase included.

The lock must be funded (a token transfer to its address) before releases can
succeed; a release that finds fewer tokens than it owes reverts with
``MeetcapTimeLock: insufficient balance`` and changes nothing.
"""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from meetcap.chain.abi import checked_address, external, uint256, view
from meetcap.chain.address import ZERO_ADDRESS
from meetcap.chain.storage import skey
from meetcap.errors import Revert

from .base import Contract
from .schedule import (ERR_AMOUNT_ZERO, ERR_BALANCE, ERR_TOKEN_ZERO,
                       ERR_USER_ZERO, LockSchedule, plan_release)

_USER = skey("tl", "user")
_TOKEN = skey("tl", "token")
_FACTORY = skey("tl", "factory")
_AMOUNT = skey("tl", "amount")
_RELEASED = skey("tl", "released")
_START = skey("tl", "start")
_NEXT = skey("tl", "next")
_DURATIONS = skey("tl", "durations")
_PERCENTS = skey("tl", "percents")
_DATES = skey("tl", "dates")


class LockData(NamedTuple):
    user: str
    token: str
    amount: int
    released_amount: int
    start_date: int
    lock_durations: List[int]
    release_percents: List[int]
    release_dates: List[int]
    next_release_idx: int
    factory: str

    def to_dict(self) -> Dict[str, Any]:
        return self._asdict()


class MeetcapTimeLock(Contract):
    def constructor(
        self,
        user: str,
        token: str,
        amount: int,
        lock_durations: Sequence[int],
        release_percents: Sequence[int],
        start_date: int,
        factory: str = ZERO_ADDRESS,
    ) -> None:
        user = checked_address(user)
        token = checked_address(token)
        factory = checked_address(factory, "factory")
        self.require(user != ZERO_ADDRESS, ERR_USER_ZERO)
        self.require(token != ZERO_ADDRESS, ERR_TOKEN_ZERO)
        self.require(uint256(amount, "amount") != 0, ERR_AMOUNT_ZERO)
        schedule = LockSchedule(tuple(lock_durations), tuple(release_percents))
        schedule.validate()
        uint256(start_date, "start_date")

        self.storage.set_address(_USER, user)
        self.storage.set_address(_TOKEN, token)
        self.storage.set_address(_FACTORY, factory)
        self.storage.set_int(_AMOUNT, amount)
        self.storage.set_int(_START, start_date)
        self.storage.set_int_list(_DURATIONS, schedule.durations)
        self.storage.set_int_list(_PERCENTS, schedule.percents)
        self.storage.set_int_list(_DATES, [0] * len(schedule))

    def _schedule(self) -> LockSchedule:
        return LockSchedule(
            tuple(self.storage.get_int_list(_DURATIONS)),
            tuple(self.storage.get_int_list(_PERCENTS)),
        )

    # ------------------------------------------------------------------ #
    # Release
    # ------------------------------------------------------------------ #

    @external
    def release(self) -> int:
        """Release every unlocked phase to the beneficiary; returns the amount sent."""
        user = self.storage.get_address(_USER)
        token = self.storage.get_address(_TOKEN)
        released = self.storage.get_int(_RELEASED)
        plan = plan_release(
            self._schedule(),
            self.storage.get_int(_AMOUNT),
            released,
            self.storage.get_int(_START),
            self.block.timestamp,
            self.storage.get_int(_NEXT),
        )

        balance = self.call_contract(token, "balance_of", self.address)
        self.require(balance >= plan.amount, ERR_BALANCE)

        for i, date in enumerate(plan.release_dates, start=plan.from_index):
            self.storage.set_int_at(_DATES, i, date)
        self.storage.set_int(_RELEASED, released + plan.amount)
        self.storage.set_int(_NEXT, plan.next_index)

        ok = self.call_contract(token, "transfer", user, plan.amount)
        self.require(ok is not False, "MeetcapTimeLock: token transfer failed")

        self.emit(
            "Released",
            amount=plan.amount,
            released_amount=released + plan.amount,
            from_index=plan.from_index,
            to_index=plan.to_index,
            next_index=plan.next_index,
            release_date=plan.release_dates[-1],
        )
        return plan.amount

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @view
    def user(self) -> str:
        return self.storage.get_address(_USER)

    @view
    def token(self) -> str:
        return self.storage.get_address(_TOKEN)

    @view
    def factory(self) -> str:
        return self.storage.get_address(_FACTORY)

    @view
    def amount(self) -> int:
        return self.storage.get_int(_AMOUNT)

    @view
    def released_amount(self) -> int:
        return self.storage.get_int(_RELEASED)

    @view
    def start_date(self) -> int:
        return self.storage.get_int(_START)

    @view
    def next_release_idx(self) -> int:
        return self.storage.get_int(_NEXT)

    @view
    def lock_durations(self) -> List[int]:
        return self.storage.get_int_list(_DURATIONS)

    @view
    def release_percents(self) -> List[int]:
        return self.storage.get_int_list(_PERCENTS)

    @view
    def release_dates(self) -> List[int]:
        return self.storage.get_int_list(_DATES)

    @view
    def lock_data(self) -> LockData:
        return LockData(
            user=self.user(),
            token=self.token(),
            amount=self.amount(),
            released_amount=self.released_amount(),
            start_date=self.start_date(),
            lock_durations=self.lock_durations(),
            release_percents=self.release_percents(),
            release_dates=self.release_dates(),
            next_release_idx=self.next_release_idx(),
            factory=self.factory(),
        )

    @view
    def releasable(self) -> int:
        """What `release()` would transfer at the current block (0 while locked or exhausted)."""
        try:
            plan = plan_release(
                self._schedule(),
                self.amount(),
                self.released_amount(),
                self.start_date(),
                self.block.timestamp,
                self.next_release_idx(),
            )
        except Revert:
            return 0
        return plan.amount

    @view
    def next_release_date(self) -> Optional[int]:
        return self._schedule().next_release_date(self.start_date(), self.next_release_idx())


__all__ = ["MeetcapTimeLock", "LockData"]

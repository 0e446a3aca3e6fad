"""
meetcap.contracts.factory — TimeLockFactory: create, fund and index vesting locks.

``create_lock`` deploys a :class:`MeetcapTimeLock` whose ``factory`` field is
this contract, then pulls the allocation from the owner with ``transfer_from``
(the owner approves the factory beforehand). Locks are indexed globally and per
beneficiary.

Events
------
- ``LockCreated`` {"lock", "user", "token", "amount"}
"""

from __future__ import annotations

from typing import List, Sequence

from meetcap.chain.abi import checked_address, external, view
from meetcap.chain.storage import skey

from .base import Ownable
from .timelock import MeetcapTimeLock

_ALL = skey("factory", "locks")


def _locks_of(user: str) -> bytes:
    return skey("factory", "user", user)


class TimeLockFactory(Ownable):
    def constructor(self) -> None:
        self._init_owner(self.msg.sender)

    @external
    def create_lock(
        self,
        user: str,
        token: str,
        amount: int,
        lock_durations: Sequence[int],
        release_percents: Sequence[int],
        start_date: int,
    ) -> str:
        self._only_owner()
        user = checked_address(user)
        lock = self.create(
            MeetcapTimeLock,
            user,
            token,
            amount,
            list(lock_durations),
            list(release_percents),
            start_date,
            self.address,
        )
        self.call_contract(token, "transfer_from", self.msg.sender, lock, amount)
        self.storage.push_address(_ALL, lock)
        self.storage.push_address(_locks_of(user), lock)
        self.emit("LockCreated", lock=lock, user=user, token=checked_address(token), amount=amount)
        return lock

    @view
    def lock_count(self) -> int:
        return self.storage.length(_ALL)

    @view
    def lock_at(self, index: int) -> str:
        self.require(0 <= index < self.storage.length(_ALL), "TimeLockFactory: index out of bounds")
        return self.storage.get_address_at(_ALL, index)

    @view
    def locks_of(self, user: str) -> List[str]:
        return self.storage.get_address_list(_locks_of(checked_address(user)))


__all__ = ["TimeLockFactory"]

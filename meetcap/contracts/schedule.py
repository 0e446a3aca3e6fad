"""
meetcap.contracts.schedule — vesting schedules and the pure release computation.

A schedule is an ordered list of phases ``(duration_from_start, percent)``.
Phase ``i`` unlocks at ``start + durations[i]``; the percents add up to 100.

`plan_release` is the whole release decision as a pure function of
``(schedule, total, released, start, now, cursor)``. The timelock contract
applies its result to storage; deploy tooling and the CLI use it to preview
releases without a chain.

Rounding: the amount of a release is computed from the cumulative percentage,
``total * cum_percent // 100 - released``, so the final phase always brings the
released amount to exactly ``total`` regardless of integer flooring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from meetcap.chain.abi import uint256
from meetcap.errors import Revert

PERCENT_TOTAL = 100
SECONDS_PER_DAY = 86_400

ERR_LENGTH = "MeetcapTimeLock: unlock length not match"
ERR_PERCENT = "MeetcapTimeLock: unlock percent not match 100"
ERR_NEXT_PHASE = "MeetcapTimeLock: next phase unavailable"
ERR_ALL_RELEASED = "MeetcapTimeLock: all phases are released"
ERR_BALANCE = "MeetcapTimeLock: insufficient balance"
ERR_USER_ZERO = "MeetcapTimeLock: user address is zero"
ERR_TOKEN_ZERO = "MeetcapTimeLock: token address is zero"
ERR_AMOUNT_ZERO = "MeetcapTimeLock: amount is zero"

# 180-day cliff with nothing, then 5 × 5 % and 25 × 3 % (31 phases, 30 days apart).
MONTHLY_PERCENTS: Tuple[int, ...] = (0,) + (5,) * 5 + (3,) * 25


@dataclass(frozen=True)
class ReleasePlan:
    from_index: int
    next_index: int
    percent: int
    amount: int
    release_dates: Tuple[int, ...]

    @property
    def to_index(self) -> int:
        """Last phase included in this release."""
        return self.next_index - 1


@dataclass(frozen=True)
class LockSchedule:
    durations: Tuple[int, ...]
    percents: Tuple[int, ...]

    @classmethod
    def from_lists(cls, durations: Sequence[int], percents: Sequence[int]) -> "LockSchedule":
        s = cls(tuple(durations), tuple(percents))
        s.validate()
        return s

    def validate(self) -> None:
        """Revert with the contract's reason string on a malformed schedule."""
        for d in self.durations:
            uint256(d, "lock duration")
        for p in self.percents:
            uint256(p, "release percent")
        if len(self.durations) != len(self.percents):
            raise Revert(ERR_LENGTH)
        if sum(self.percents) != PERCENT_TOTAL:
            raise Revert(ERR_PERCENT)

    def __len__(self) -> int:
        return len(self.durations)

    def phase_dates(self, start: int) -> List[int]:
        return [start + d for d in self.durations]

    def cumulative_percent(self, index: int) -> int:
        """Percent unlocked by phases [0, index)."""
        return sum(self.percents[:index])

    def eligible(self, start: int, now: int, from_index: int) -> int:
        """Index one past the last phase unlocked at `now`, scanning from `from_index`."""
        i = from_index
        while i < len(self.durations) and now >= start + self.durations[i]:
            i += 1
        return i

    def next_release_date(self, start: int, cursor: int) -> Optional[int]:
        if cursor >= len(self.durations):
            return None
        return start + self.durations[cursor]

    def rows(self, start: int, total: int = 0) -> List[Dict[str, Any]]:
        """Tabular view (one dict per phase) for reports and the CLI."""
        out: List[Dict[str, Any]] = []
        for i, (d, p) in enumerate(zip(self.durations, self.percents)):
            cum = self.cumulative_percent(i + 1)
            out.append(
                {
                    "index": i,
                    "duration": d,
                    "percent": p,
                    "cumulative_percent": cum,
                    "date": start + d,
                    "unlocked": total * cum // PERCENT_TOTAL,
                }
            )
        return out


def plan_release(
    schedule: LockSchedule,
    total: int,
    released: int,
    start: int,
    now: int,
    cursor: int,
) -> ReleasePlan:
    """
    Decide what a release at `now` transfers.

    Raises Revert(ERR_ALL_RELEASED) once the cursor is past the last phase and
    Revert(ERR_NEXT_PHASE) while the next phase is still locked.
    """
    if cursor >= len(schedule):
        raise Revert(ERR_ALL_RELEASED)
    if now < start + schedule.durations[cursor]:
        raise Revert(ERR_NEXT_PHASE)
    nxt = schedule.eligible(start, now, cursor)
    percent = sum(schedule.percents[cursor:nxt])
    amount = total * schedule.cumulative_percent(nxt) // PERCENT_TOTAL - released
    return ReleasePlan(
        from_index=cursor,
        next_index=nxt,
        percent=percent,
        amount=amount,
        release_dates=tuple(start + schedule.durations[i] for i in range(cursor, nxt)),
    )


def days_to_seconds(days: int) -> int:
    return int(days) * SECONDS_PER_DAY


def stepped_schedule(
    first: int,
    interval: int,
    percents: Sequence[int],
    *,
    unit: int = SECONDS_PER_DAY,
) -> LockSchedule:
    """Phase i unlocks at ``(first + interval * i) * unit`` seconds."""
    return LockSchedule.from_lists(
        [(first + interval * i) * unit for i in range(len(percents))],
        percents,
    )


def monthly_schedule(
    cliff_days: int = 180,
    interval_days: int = 30,
    percents: Sequence[int] = MONTHLY_PERCENTS,
) -> LockSchedule:
    return stepped_schedule(cliff_days, interval_days, percents)


def linear_schedule(step_days: int = 20, phases: int = 5) -> LockSchedule:
    """`phases` equal steps every `step_days`; any remainder percent goes to the last phase."""
    if phases <= 0:
        raise ValueError("phases must be positive")
    each = PERCENT_TOTAL // phases
    percents = [each] * phases
    percents[-1] += PERCENT_TOTAL - each * phases
    return stepped_schedule(step_days, step_days, percents)


__all__ = [
    "LockSchedule",
    "ReleasePlan",
    "plan_release",
    "days_to_seconds",
    "stepped_schedule",
    "monthly_schedule",
    "linear_schedule",
    "MONTHLY_PERCENTS",
    "PERCENT_TOTAL",
    "SECONDS_PER_DAY",
]

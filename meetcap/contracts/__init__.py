"""
meetcap.contracts — the Meetcap token, presale, vesting timelock and factory.
"""

from .base import Contract, Ownable
from .factory import TimeLockFactory
from .presale import MeetcapPresale
from .schedule import LockSchedule, linear_schedule, monthly_schedule, plan_release
from .timelock import LockData, MeetcapTimeLock
from .token import MeetcapToken

__all__ = [
    "Contract",
    "Ownable",
    "MeetcapToken",
    "MeetcapPresale",
    "MeetcapTimeLock",
    "TimeLockFactory",
    "LockData",
    "LockSchedule",
    "plan_release",
    "monthly_schedule",
    "linear_schedule",
]

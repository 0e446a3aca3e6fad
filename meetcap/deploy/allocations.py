"""
meetcap.deploy.allocations — named token allocations and their vesting schedules.

Each allocation locks a fixed number of MCAP for one beneficiary. The
beneficiary is read from an environment variable (``COMMUNITY_ADDRESS`` …),
falling back to a local signer so everything works on a fresh local chain.

==================  =============  ================================  ====================
name                amount (MCAP)  schedule                          beneficiary env var
==================  =============  ================================  ====================
community           800,000,000    180 d cliff, then every 30 d      COMMUNITY_ADDRESS
company-reserve     1,200,000,000  180 d cliff, then every 30 d      COMPANY_RESERVE_ADDRESS
ecosystem           2,000,000,000  180 d cliff, then every 30 d      ECOSYSTEM_ADDRESS
founding-team       1,900,000,000  180 d cliff, then every 30 d      FOUNDING_TEAM_ADDRESS
strategic-partners  600,000,000    180 d cliff, then every 30 d      STRATEGIC_PARTNERS_ADDRESS
public-sale         800,000,000    5 × 20 d, 20 % each               PUBLIC_SALE_ADDRESS
test                800,000,000    120 s, then every 60 s            COMMUNITY_ADDRESS
==================  =============  ================================  ====================
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Sequence

from meetcap.chain.address import AddressError, normalize_address
from meetcap.contracts.schedule import (MONTHLY_PERCENTS, LockSchedule,
                                        linear_schedule, monthly_schedule,
                                        stepped_schedule)
from meetcap.contracts.token import DECIMALS
from meetcap.errors import ConfigError

UNIT = 10**DECIMALS


@dataclass(frozen=True)
class Allocation:
    name: str
    label: str
    tokens: int
    schedule: LockSchedule
    env_var: str
    signer_index: int

    @property
    def amount(self) -> int:
        """Allocation in token base units."""
        return self.tokens * UNIT

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "label": self.label,
            "amount": self.amount,
            "lock_durations": list(self.schedule.durations),
            "release_percents": list(self.schedule.percents),
            "env_var": self.env_var,
        }


ALLOCATIONS: Dict[str, Allocation] = {
    a.name: a
    for a in (
        Allocation("community", "CommunityTimeLock", 800_000_000, monthly_schedule(), "COMMUNITY_ADDRESS", 1),
        Allocation(
            "company-reserve", "CompanyReserveTimeLock", 1_200_000_000, monthly_schedule(),
            "COMPANY_RESERVE_ADDRESS", 2,
        ),
        Allocation("ecosystem", "EcosystemTimeLock", 2_000_000_000, monthly_schedule(), "ECOSYSTEM_ADDRESS", 3),
        Allocation(
            "founding-team", "FoundingTeamTimeLock", 1_900_000_000, monthly_schedule(),
            "FOUNDING_TEAM_ADDRESS", 4,
        ),
        Allocation(
            "strategic-partners", "StrategicPartnersTimeLock", 600_000_000, monthly_schedule(),
            "STRATEGIC_PARTNERS_ADDRESS", 5,
        ),
        Allocation("public-sale", "PublicSaleTimeLock", 800_000_000, linear_schedule(20, 5), "PUBLIC_SALE_ADDRESS", 6),
        Allocation(
            "test", "MeetcapTimeLock", 800_000_000, stepped_schedule(120, 60, MONTHLY_PERCENTS, unit=1),
            "COMMUNITY_ADDRESS", 1,
        ),
    )
}

# `deploy all` locks these; "test" is for manual runs only.
PRODUCTION_ALLOCATIONS: Sequence[str] = (
    "community",
    "company-reserve",
    "ecosystem",
    "founding-team",
    "strategic-partners",
    "public-sale",
)


def get_allocation(name: str) -> Allocation:
    key = name.strip().lower().replace("_", "-")
    try:
        return ALLOCATIONS[key]
    except KeyError:
        known = ", ".join(sorted(ALLOCATIONS))
        raise ConfigError(f"unknown allocation {name!r} (known: {known})", key="allocation") from None


def resolve_beneficiary(allocation: Allocation, signers: Sequence[str]) -> str:
    """Beneficiary from the allocation's env var, else the allocation's local signer."""
    raw = os.getenv(allocation.env_var)
    if raw and raw.strip():
        try:
            return normalize_address(raw.strip())
        except AddressError as e:
            raise ConfigError(f"{allocation.env_var}: {e}", key=allocation.env_var) from None
    return signers[allocation.signer_index % len(signers)]


def allocation_names(include_test: bool = True) -> List[str]:
    names = list(PRODUCTION_ALLOCATIONS)
    if include_test:
        names.append("test")
    return names


__all__ = [
    "Allocation",
    "ALLOCATIONS",
    "PRODUCTION_ALLOCATIONS",
    "UNIT",
    "get_allocation",
    "resolve_beneficiary",
    "allocation_names",
]

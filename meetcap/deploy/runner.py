"""
meetcap.deploy.runner — deploy the token, presale and vesting locks to a chain.

Each function deploys one contract from `deployer` (default: first signer),
performs the follow-up funding transfer the deployment needs, logs what it did
and returns a :class:`~meetcap.deploy.registry.Deployment` record.

Usage:
    chain = LocalChain()
    token = deploy_token(chain)
    lock = deploy_timelock(chain, token.address, get_allocation("community"))
    write_registry(chain.config.deployments_dir, chain.config.network, [token, lock])
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from meetcap.chain.address import normalize_address
from meetcap.chain.local import ContractHandle, LocalChain
from meetcap.contracts.presale import MeetcapPresale
from meetcap.contracts.timelock import MeetcapTimeLock
from meetcap.contracts.token import MeetcapToken

from .allocations import (PRODUCTION_ALLOCATIONS, UNIT, Allocation,
                          get_allocation, resolve_beneficiary)
from .registry import Deployment

log = logging.getLogger(__name__)

PRESALE_RATE = 1000
PRESALE_TOKENS = 300_000_000


def _record(name: str, handle: ContractHandle, args: Sequence[object]) -> Deployment:
    receipt = handle.deploy_receipt
    if receipt is None:
        raise ValueError(f"{handle!r} has no deployment receipt")
    return Deployment(
        name=name,
        contract=handle.contract_cls.__name__,
        address=handle.address,
        deployer=receipt.sender,
        block=receipt.block_height,
        timestamp=receipt.timestamp,
        args=list(args),
    )


def _deployer(chain: LocalChain, deployer: Optional[str]) -> str:
    return normalize_address(deployer) if deployer is not None else chain.signers[0]


def deploy_token(chain: LocalChain, deployer: Optional[str] = None) -> Deployment:
    frm = _deployer(chain, deployer)
    token = chain.deploy(frm, MeetcapToken)
    log.info("Deploying to the network: %s", chain.config.network)
    log.info("Meetcap deployed to: %s", token.address)
    log.info("Deploying contracts with the account: %s", frm)
    return _record("Meetcap", token, [])


def deploy_presale(
    chain: LocalChain,
    token: str,
    deployer: Optional[str] = None,
    *,
    rate: int = PRESALE_RATE,
    admin: Optional[str] = None,
    fund: int = PRESALE_TOKENS * UNIT,
) -> Deployment:
    """Deploy the presale and move `fund` token base units into it from the deployer."""
    frm = _deployer(chain, deployer)
    admin_addr = normalize_address(admin) if admin is not None else frm
    presale = chain.deploy(frm, MeetcapPresale, rate, token, admin_addr)
    if fund:
        chain.transact(frm, token, "transfer", presale.address, fund)
    log.info("Meetcap presale deployed to: %s (rate %d, funded %d)", presale.address, rate, fund)
    return _record("MeetcapPresale", presale, [rate, normalize_address(token), admin_addr])


def deploy_timelock(
    chain: LocalChain,
    token: str,
    allocation: Allocation,
    deployer: Optional[str] = None,
    *,
    beneficiary: Optional[str] = None,
    start: Optional[int] = None,
    fund: bool = True,
) -> Deployment:
    """
    Deploy a lock for `allocation` starting at `start` (default: latest block
    time) and, when `fund` is set, transfer the allocation into it.
    """
    frm = _deployer(chain, deployer)
    user = normalize_address(beneficiary) if beneficiary is not None else resolve_beneficiary(allocation, chain.signers)
    start_date = chain.latest_timestamp() if start is None else int(start)
    args = [
        user,
        normalize_address(token),
        allocation.amount,
        list(allocation.schedule.durations),
        list(allocation.schedule.percents),
        start_date,
    ]
    lock = chain.deploy(frm, MeetcapTimeLock, *args)
    if fund:
        chain.transact(frm, token, "transfer", lock.address, allocation.amount)
    log.info("%s deployed to the address: %s", allocation.label, lock.address)
    log.info("%s beneficiary %s, start time: %d", allocation.label, user, start_date)
    return _record(allocation.label, lock, args)


def deploy_all(
    chain: LocalChain,
    deployer: Optional[str] = None,
    *,
    allocations: Sequence[str] = PRODUCTION_ALLOCATIONS,
    with_presale: bool = True,
    start: Optional[int] = None,
) -> List[Deployment]:
    """Token, then presale, then one funded lock per allocation (same start date)."""
    frm = _deployer(chain, deployer)
    token = deploy_token(chain, frm)
    out = [token]
    if with_presale:
        out.append(deploy_presale(chain, token.address, frm))
    start_date = chain.latest_timestamp() if start is None else start
    for name in allocations:
        out.append(deploy_timelock(chain, token.address, get_allocation(name), frm, start=start_date))
    log.info("deployed %d contracts to %s", len(out), chain.config.network)
    return out


__all__ = [
    "PRESALE_RATE",
    "PRESALE_TOKENS",
    "deploy_token",
    "deploy_presale",
    "deploy_timelock",
    "deploy_all",
]

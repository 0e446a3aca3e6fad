"""
Shared pytest fixtures:
- A fresh deterministic LocalChain per test (10 funded signers)
- Named signers (deployer / alice / bob / carol)
- A deployed Meetcap token and a helper that deploys (and funds) timelocks
- A clean environment: MEETCAP_* / beneficiary variables removed per test

Usage (inside a test file):
    def test_release(chain, token, deploy_lock, alice):
        lock = deploy_lock(alice, amount=100)
        chain.increase_time(DAY)
        lock.transact(alice).release()
        assert token.call().balance_of(alice) == 20
"""
from __future__ import annotations

import os
from typing import Callable, Optional, Sequence

import pytest

from meetcap.chain import ContractHandle, LocalChain
from meetcap.config import ChainConfig, load_config
from meetcap.contracts import MeetcapTimeLock, MeetcapToken

# Stable hash iteration and timezone for every run.
os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")

DAY = 86_400

EXAMPLE_DURATIONS = [1 * DAY, 2 * DAY, 3 * DAY, 4 * DAY, 5 * DAY]
EXAMPLE_PERCENTS = [20, 20, 10, 25, 25]

_ISOLATED_ENV = (
    "MEETCAP_NETWORK",
    "MEETCAP_CHAIN_ID",
    "MEETCAP_GENESIS_TIMESTAMP",
    "MEETCAP_BLOCK_TIME",
    "MEETCAP_ACCOUNTS",
    "MEETCAP_INITIAL_BALANCE",
    "MEETCAP_DEPLOYMENTS_DIR",
    "ENV_FILE",
    "COMMUNITY_ADDRESS",
    "COMPANY_RESERVE_ADDRESS",
    "ECOSYSTEM_ADDRESS",
    "FOUNDING_TEAM_ADDRESS",
    "STRATEGIC_PARTNERS_ADDRESS",
    "PUBLIC_SALE_ADDRESS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def chain() -> LocalChain:
    return LocalChain(ChainConfig(accounts=10))


@pytest.fixture
def deployer(chain: LocalChain) -> str:
    return chain.signers[0]


@pytest.fixture
def alice(chain: LocalChain) -> str:
    return chain.signers[1]


@pytest.fixture
def bob(chain: LocalChain) -> str:
    return chain.signers[2]


@pytest.fixture
def carol(chain: LocalChain) -> str:
    return chain.signers[3]


@pytest.fixture
def token(chain: LocalChain, deployer: str) -> ContractHandle:
    return chain.deploy(deployer, MeetcapToken)


@pytest.fixture
def deploy_lock(chain: LocalChain, deployer: str, token: ContractHandle) -> Callable[..., ContractHandle]:
    """
    Deploy a MeetcapTimeLock starting at the latest block time.

    `fund` defaults to `amount`; pass 0 to leave the lock empty.
    """

    def _deploy(
        user: str,
        *,
        amount: int = 100,
        durations: Sequence[int] = EXAMPLE_DURATIONS,
        percents: Sequence[int] = EXAMPLE_PERCENTS,
        start: Optional[int] = None,
        fund: Optional[int] = None,
    ) -> ContractHandle:
        start_date = chain.latest_timestamp() if start is None else start
        lock = chain.deploy(
            deployer,
            MeetcapTimeLock,
            user,
            token.address,
            amount,
            list(durations),
            list(percents),
            start_date,
        )
        to_fund = amount if fund is None else fund
        if to_fund:
            token.transact(deployer).transfer(lock.address, to_fund)
        return lock

    return _deploy

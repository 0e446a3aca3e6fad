from __future__ import annotations

import pytest

from meetcap.chain.address import ZERO_ADDRESS, contract_address
from meetcap.contracts import MeetcapTimeLock
from meetcap.contracts.schedule import (ERR_ALL_RELEASED, ERR_AMOUNT_ZERO,
                                        ERR_BALANCE, ERR_LENGTH,
                                        ERR_NEXT_PHASE, ERR_PERCENT,
                                        ERR_TOKEN_ZERO, ERR_USER_ZERO,
                                        monthly_schedule)
from meetcap.errors import Revert

DAY = 86_400
DURATIONS = [1 * DAY, 2 * DAY, 3 * DAY, 4 * DAY, 5 * DAY]
PERCENTS = [20, 20, 10, 25, 25]


def test_release_walkthrough(chain, token, deploy_lock, alice):
    start = chain.latest_timestamp()
    lock = deploy_lock(alice, amount=100)
    assert token.call().balance_of(lock.address) == 100

    with pytest.raises(Revert, match=ERR_NEXT_PHASE):
        lock.transact(alice).release()

    chain.increase_time(DAY)
    r = lock.transact(alice).release()
    assert r.return_value == 20
    assert token.call().balance_of(alice) == 20
    assert lock.call().released_amount() == 20
    assert lock.call().next_release_idx() == 1
    assert lock.call().release_dates() == [start + DAY, 0, 0, 0, 0]

    # nothing new has unlocked yet
    with pytest.raises(Revert, match=ERR_NEXT_PHASE):
        lock.transact(alice).release()

    chain.increase_time(4 * DAY)
    r = lock.transact(alice).release()
    assert r.return_value == 80
    assert token.call().balance_of(alice) == 100
    assert token.call().balance_of(lock.address) == 0
    assert lock.call().released_amount() == 100
    assert lock.call().next_release_idx() == 5
    assert lock.call().release_dates() == [start + d for d in DURATIONS]

    with pytest.raises(Revert, match=ERR_ALL_RELEASED):
        lock.transact(alice).release()


def test_released_event(chain, deploy_lock, alice):
    start = chain.latest_timestamp()
    lock = deploy_lock(alice, amount=1_000)
    chain.increase_time(3 * DAY)
    ev = lock.transact(alice).release().event("Released")
    assert ev.address == lock.address
    assert ev.args == {
        "amount": 500,
        "released_amount": 500,
        "from_index": 0,
        "to_index": 2,
        "next_index": 3,
        "release_date": start + 3 * DAY,
    }


def test_unlock_boundary_is_inclusive(chain, deploy_lock, alice):
    start = chain.latest_timestamp()
    lock = deploy_lock(alice)
    chain.set_next_block_timestamp(start + DAY - 1)
    with pytest.raises(Revert, match=ERR_NEXT_PHASE):
        lock.transact(alice).release()
    chain.set_next_block_timestamp(start + DAY)
    assert lock.transact(alice).release().return_value == 20


def test_anyone_can_release_to_the_beneficiary(chain, token, deploy_lock, alice, bob):
    lock = deploy_lock(alice)
    chain.increase_time(2 * DAY)
    lock.transact(bob).release()
    assert token.call().balance_of(alice) == 40
    assert token.call().balance_of(bob) == 0


def test_unfunded_lock_reverts_without_changes(chain, deploy_lock, alice):
    lock = deploy_lock(alice, fund=0)
    chain.increase_time(DAY)
    with pytest.raises(Revert, match=ERR_BALANCE):
        lock.transact(alice).release()
    data = lock.call().lock_data()
    assert data.released_amount == 0
    assert data.next_release_idx == 0
    assert data.release_dates == [0] * 5


def test_partially_funded_lock(chain, token, deployer, deploy_lock, alice):
    lock = deploy_lock(alice, amount=100, fund=30)
    chain.increase_time(DAY)
    assert lock.transact(alice).release().return_value == 20
    chain.increase_time(DAY)
    with pytest.raises(Revert, match=ERR_BALANCE):
        lock.transact(alice).release()
    token.transact(deployer).transfer(lock.address, 70)
    assert lock.transact(alice).release().return_value == 20


def test_excess_funding_stays_in_the_lock(chain, token, deploy_lock, alice):
    lock = deploy_lock(alice, amount=100, fund=150)
    chain.increase_time(10 * DAY)
    assert lock.transact(alice).release().return_value == 100
    assert token.call().balance_of(lock.address) == 50


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"user": ZERO_ADDRESS}, ERR_USER_ZERO),
        ({"token": ZERO_ADDRESS}, ERR_TOKEN_ZERO),
        ({"amount": 0}, ERR_AMOUNT_ZERO),
        ({"percents": [20, 20, 10, 50]}, ERR_LENGTH),
        ({"percents": [20, 20, 10, 25, 24]}, ERR_PERCENT),
        ({"percents": [20, 20, 10, 25, 26]}, ERR_PERCENT),
    ],
)
def test_constructor_validation(chain, token, deployer, alice, overrides, reason):
    args = {
        "user": alice,
        "token": token.address,
        "amount": 100,
        "durations": DURATIONS,
        "percents": PERCENTS,
    }
    args.update(overrides)
    expected = contract_address(deployer, chain.nonce_of(deployer))
    with pytest.raises(Revert, match=reason):
        chain.deploy(
            deployer,
            MeetcapTimeLock,
            args["user"],
            args["token"],
            args["amount"],
            args["durations"],
            args["percents"],
            chain.latest_timestamp(),
        )
    assert not chain.is_contract(expected)


def test_user_is_checked_before_schedule(chain, token, deployer):
    with pytest.raises(Revert, match=ERR_USER_ZERO):
        chain.deploy(deployer, MeetcapTimeLock, ZERO_ADDRESS, token.address, 0, [DAY], [1], 0)


def test_lock_data(chain, token, deploy_lock, alice):
    start = chain.latest_timestamp()
    lock = deploy_lock(alice, amount=500)
    data = lock.call().lock_data()
    assert data.user == alice
    assert data.token == token.address
    assert data.amount == 500
    assert data.released_amount == 0
    assert data.start_date == start
    assert data.lock_durations == DURATIONS
    assert data.release_percents == PERCENTS
    assert data.release_dates == [0, 0, 0, 0, 0]
    assert data.next_release_idx == 0
    assert data.factory == ZERO_ADDRESS
    assert data.to_dict()["user"] == alice


def test_releasable_and_next_release_date(chain, deploy_lock, alice):
    start = chain.latest_timestamp()
    lock = deploy_lock(alice)
    assert lock.call().releasable() == 0
    assert lock.call().next_release_date() == start + DAY

    # views read the latest mined block
    chain.increase_time(2 * DAY)
    chain.mine()
    assert lock.call().releasable() == 40

    lock.transact(alice).release()
    assert lock.call().releasable() == 0
    assert lock.call().next_release_date() == start + 3 * DAY

    chain.increase_time(3 * DAY)
    lock.transact(alice).release()
    assert lock.call().next_release_date() is None
    assert lock.call().releasable() == 0


def test_start_in_the_past_releases_immediately(chain, token, deploy_lock, alice):
    lock = deploy_lock(alice, start=chain.latest_timestamp() - 10 * DAY)
    assert lock.transact(alice).release().return_value == 100
    assert token.call().balance_of(alice) == 100


def test_monthly_preset(chain, token, deploy_lock, alice):
    schedule = monthly_schedule()
    amount = 1_000_000
    lock = deploy_lock(alice, amount=amount, durations=schedule.durations, percents=schedule.percents)

    chain.increase_time(180 * DAY)
    # the cliff phase carries 0 %
    r = lock.transact(alice).release()
    assert r.return_value == 0
    assert r.event("Released")["next_index"] == 1

    chain.increase_time(30 * DAY)
    assert lock.transact(alice).release().return_value == amount * 5 // 100

    chain.increase_time(10_000 * DAY)
    r = lock.transact(alice).release()
    assert r.event("Released")["to_index"] == 30
    assert token.call().balance_of(alice) == amount
    assert lock.call().next_release_idx() == 31

from __future__ import annotations

import threading

import pytest

from meetcap.chain import LocalChain, external, payable, view
from meetcap.chain.address import ZERO_ADDRESS, contract_address, signer_address
from meetcap.config import ChainConfig
from meetcap.contracts import MeetcapToken
from meetcap.contracts.base import Contract
from meetcap.errors import InvalidAccess, Revert

N = b"counter|n"


class Counter(Contract):
    def constructor(self, initial: int = 0) -> None:
        self.require(initial < 1000, "Counter: too large")
        self.storage.set_int(N, initial)

    @external
    def inc(self, by: int = 1) -> int:
        n = self.storage.add_int(N, by)
        self.emit("Inc", by=by, n=n)
        return n

    @external
    def inc_then_fail(self) -> None:
        self.inc()
        self.revert("Counter: failed on purpose")

    @view
    def get(self) -> int:
        return self.storage.get_int(N)

    @view
    def now(self) -> int:
        return self.block.timestamp

    @external
    def boom(self) -> None:
        self.storage.set_int(N, 999)
        raise ValueError("boom")

    def hidden(self) -> int:
        return 42


class Caller(Contract):
    """Calls a Counter and survives the callee's revert."""

    @external
    def poke(self, counter: str) -> str:
        self.call_contract(counter, "inc")
        try:
            self.call_contract(counter, "inc_then_fail")
        except Revert as e:
            self.emit("Caught", reason=e.reason)
            return e.reason
        return "no revert"


class Vault(Contract):
    @payable
    def constructor(self) -> None:
        pass

    @payable
    def receive(self) -> None:
        self.emit("Received", sender=self.msg.sender, value=self.msg.value)

    @external
    def withdraw(self, to: str, amount: int) -> None:
        self.send_value(to, amount)


def test_signers_are_deterministic_and_funded():
    chain = LocalChain(ChainConfig(accounts=3, initial_balance=123))
    assert chain.signers == [signer_address(i) for i in range(3)]
    assert all(chain.balance_of(s) == 123 for s in chain.signers)
    assert LocalChain(ChainConfig(accounts=3)).signers == chain.signers


def test_deploy_and_call(chain, deployer, alice):
    counter = chain.deploy(deployer, Counter, 5)
    assert counter.address == contract_address(deployer, 0)
    assert chain.nonce_of(deployer) == 1
    receipt = counter.transact(alice).inc(3)
    assert receipt.ok
    assert receipt.return_value == 8
    assert receipt.event("Inc").args == {"by": 3, "n": 8}
    assert counter.call().get() == 8


def test_each_transaction_mines_a_block(chain, deployer):
    t0 = chain.latest_timestamp()
    counter = chain.deploy(deployer, Counter)
    r = counter.transact(deployer).inc()
    assert counter.deploy_receipt.timestamp == t0 + 1
    assert r.timestamp == t0 + 2
    assert r.block_height == 2


def test_time_travel(chain, deployer):
    counter = chain.deploy(deployer, Counter)
    t = chain.latest_timestamp()
    chain.increase_time(3600)
    chain.mine()
    assert chain.latest_timestamp() == t + 3600 + 1
    assert counter.call().now() == t + 3601

    chain.set_next_block_timestamp(t + 10_000)
    r = counter.transact(deployer).inc()
    assert r.timestamp == t + 10_000
    with pytest.raises(ValueError):
        chain.set_next_block_timestamp(t + 10_000)
    with pytest.raises(ValueError):
        chain.increase_time(-1)


def test_revert_rolls_back_and_records_receipt(chain, deployer):
    counter = chain.deploy(deployer, Counter, 1)
    nonce = chain.nonce_of(deployer)
    with pytest.raises(Revert) as excinfo:
        counter.transact(deployer).inc_then_fail()
    assert excinfo.value.reason == "Counter: failed on purpose"
    assert counter.call().get() == 1
    assert chain.events(counter.address, "Inc") == []
    # the nonce bump survives the revert
    assert chain.nonce_of(deployer) == nonce + 1
    last = chain.receipts[-1]
    assert last.status == "REVERT"
    assert last.to_dict()["error"]["data"]["reason"] == "Counter: failed on purpose"


def test_failed_deploy_leaves_no_contract(chain, deployer):
    expected = contract_address(deployer, chain.nonce_of(deployer))
    with pytest.raises(Revert, match="Counter: too large"):
        chain.deploy(deployer, Counter, 5000)
    assert not chain.is_contract(expected)
    with pytest.raises(InvalidAccess):
        chain.at(expected)


def test_nested_revert_only_unwinds_callee_frame(chain, deployer):
    counter = chain.deploy(deployer, Counter)
    caller = chain.deploy(deployer, Caller)
    r = caller.transact(deployer).poke(counter.address)
    assert r.return_value == "Counter: failed on purpose"
    # first inc kept, the one inside the failed frame discarded
    assert counter.call().get() == 1
    assert [e.name for e in r.events] == ["Inc", "Caught"]


def test_only_exposed_methods_are_callable(chain, deployer):
    counter = chain.deploy(deployer, Counter)
    with pytest.raises(InvalidAccess):
        counter.transact(deployer).hidden()
    with pytest.raises(InvalidAccess):
        counter.call().inc()
    with pytest.raises(InvalidAccess):
        chain.transact(deployer, ZERO_ADDRESS, "inc")


def test_call_never_keeps_state(chain, deployer):
    counter = chain.deploy(deployer, Counter, 7)
    height = chain.height
    assert counter.call().get() == 7
    assert chain.height == height
    assert len(chain.receipts) == 1


def test_value_to_non_payable_reverts(chain, deployer):
    counter = chain.deploy(deployer, Counter)
    before = chain.balance_of(deployer)
    with pytest.raises(Revert, match="non-payable"):
        chain.transact(deployer, counter.address, "inc", value=10)
    assert chain.balance_of(deployer) == before
    with pytest.raises(Revert, match="does not accept native value"):
        chain.send_value(deployer, counter.address, 10)


def test_native_transfers(chain, deployer, alice):
    vault = chain.deploy(deployer, Vault, value=50)
    assert chain.balance_of(vault.address) == 50

    r = chain.send_value(alice, vault.address, 25)
    assert r.event("Received").args == {"sender": alice, "value": 25}
    assert chain.balance_of(vault.address) == 75

    before = chain.balance_of(alice)
    vault.transact(deployer).withdraw(alice, 70)
    assert chain.balance_of(alice) == before + 70

    with pytest.raises(Revert, match="insufficient native balance"):
        vault.transact(deployer).withdraw(alice, 6)


def test_send_value_between_accounts(chain, alice, bob):
    a0, b0 = chain.balance_of(alice), chain.balance_of(bob)
    chain.send_value(alice, bob, 1000)
    assert chain.balance_of(alice) == a0 - 1000
    assert chain.balance_of(bob) == b0 + 1000


def test_snapshot_and_revert(chain, deployer):
    counter = chain.deploy(deployer, Counter)
    snap = chain.snapshot()
    ts = chain.latest_timestamp()
    counter.transact(deployer).inc(5)
    chain.increase_time(100)
    chain.mine()
    chain.revert_snapshot(snap)
    assert counter.call().get() == 0
    assert chain.latest_timestamp() == ts
    assert len(chain.receipts) == 1
    with pytest.raises(ValueError):
        chain.revert_snapshot(snap)


def test_events_filter(chain, deployer):
    a = chain.deploy(deployer, Counter)
    b = chain.deploy(deployer, Counter)
    a.transact(deployer).inc()
    b.transact(deployer).inc()
    b.transact(deployer).inc()
    assert len(chain.events(name="Inc")) == 3
    assert len(b.events("Inc")) == 2
    assert [e.log_index for e in chain.events()] == [0, 1, 2]


def test_bad_address_argument_reverts_and_mines(chain, token, deployer):
    height, receipts = chain.height, len(chain.receipts)
    nonce = chain.nonce_of(deployer)
    with pytest.raises(Revert, match="invalid address"):
        token.transact(deployer).transfer("0x1234", 5)
    assert chain.height == height + 1
    assert len(chain.receipts) == receipts + 1
    assert chain.receipts[-1].status == "REVERT"
    assert chain.nonce_of(deployer) == nonce + 1


def test_crash_records_error_receipt_and_propagates(chain, deployer):
    counter = chain.deploy(deployer, Counter, 1)
    height, nonce = chain.height, chain.nonce_of(deployer)
    with pytest.raises(ValueError, match="boom"):
        counter.transact(deployer).boom()
    assert counter.call().get() == 1
    assert chain.height == height + 1
    assert chain.nonce_of(deployer) == nonce + 1
    last = chain.receipts[-1]
    assert last.status == "ERROR"
    assert last.error.code == "INTERNAL_ERROR"
    assert last.block_height == chain.height
    # the chain keeps working after a crash
    assert counter.transact(deployer).inc().return_value == 2
    assert len(chain.receipts) == chain.height


def test_set_balance(chain, alice):
    chain.set_balance(alice, 7)
    assert chain.balance_of(alice) == 7
    fresh = "0x" + "ef" * 20
    chain.set_balance(fresh, 5)
    assert chain.balance_of(fresh) == 5
    assert chain.nonce_of(fresh) == 0
    snap = chain.snapshot()
    chain.set_balance(alice, 0)
    chain.revert_snapshot(snap)
    assert chain.balance_of(alice) == 7


def test_concurrent_transactions_are_serialised(chain, deployer, alice):
    token = chain.deploy(deployer, MeetcapToken)
    nonce = chain.nonce_of(deployer)
    threads_n, per_thread = 8, 25
    errors = []

    def worker():
        try:
            for _ in range(per_thread):
                token.transact(deployer).transfer(alice, 1)
        except Exception as exc:  # surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    total = threads_n * per_thread
    assert errors == []
    assert token.call().balance_of(alice) == total
    assert chain.nonce_of(deployer) == nonce + total
    assert len(chain.receipts) == chain.height == total + 1
    assert [r.tx_index for r in chain.receipts] == list(range(total + 1))
    assert [r.block_height for r in chain.receipts] == list(range(1, total + 2))
    assert len(token.events("Transfer")) == total + 1

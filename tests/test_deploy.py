from __future__ import annotations

import json

import pytest

from meetcap.deploy import (ALLOCATIONS, Deployment, deploy_all,
                            deploy_presale, deploy_timelock, deploy_token,
                            get_allocation, read_registry, resolve_beneficiary,
                            write_registry)
from meetcap.deploy.allocations import (PRODUCTION_ALLOCATIONS, UNIT,
                                        allocation_names)
from meetcap.deploy.registry import canonical_json_str, registry_path
from meetcap.deploy.runner import _record
from meetcap.errors import ConfigError

DAY = 86_400
OUTSIDER = "0x" + "ab" * 20


def test_allocation_amounts_cover_the_supply():
    total = sum(ALLOCATIONS[n].tokens for n in PRODUCTION_ALLOCATIONS)
    assert total == 7_300_000_000
    assert all(sum(a.schedule.percents) == 100 for a in ALLOCATIONS.values())
    assert ALLOCATIONS["community"].amount == 800_000_000 * UNIT


def test_get_allocation_is_forgiving_about_case_and_separators():
    assert get_allocation("Founding_Team").name == "founding-team"
    assert get_allocation(" public-sale ").label == "PublicSaleTimeLock"
    with pytest.raises(ConfigError, match="unknown allocation"):
        get_allocation("marketing")


def test_allocation_names():
    assert allocation_names()[-1] == "test"
    assert "test" not in allocation_names(include_test=False)


def test_resolve_beneficiary(chain, monkeypatch):
    alloc = get_allocation("ecosystem")
    assert resolve_beneficiary(alloc, chain.signers) == chain.signers[3]
    monkeypatch.setenv("ECOSYSTEM_ADDRESS", OUTSIDER.upper().replace("0X", "0x"))
    assert resolve_beneficiary(alloc, chain.signers) == OUTSIDER
    monkeypatch.setenv("ECOSYSTEM_ADDRESS", "0x1234")
    with pytest.raises(ConfigError, match="ECOSYSTEM_ADDRESS"):
        resolve_beneficiary(alloc, chain.signers)


def test_deploy_all(chain, deployer):
    records = deploy_all(chain)
    names = [r.name for r in records]
    assert names == [
        "Meetcap",
        "MeetcapPresale",
        "CommunityTimeLock",
        "CompanyReserveTimeLock",
        "EcosystemTimeLock",
        "FoundingTeamTimeLock",
        "StrategicPartnersTimeLock",
        "PublicSaleTimeLock",
    ]
    token = chain.at(records[0].address)
    assert token.call().balance_of(deployer) == 2_400_000_000 * UNIT
    assert token.call().balance_of(records[1].address) == 300_000_000 * UNIT

    starts = set()
    for rec in records[2:]:
        lock = chain.at(rec.address)
        data = lock.call().lock_data()
        alloc = next(a for a in ALLOCATIONS.values() if a.label == rec.name)
        assert token.call().balance_of(rec.address) == alloc.amount == data.amount
        assert data.user == resolve_beneficiary(alloc, chain.signers)
        starts.add(data.start_date)
    assert len(starts) == 1


def test_deploy_all_without_presale(chain):
    records = deploy_all(chain, allocations=["public-sale"], with_presale=False, start=0)
    assert [r.name for r in records] == ["Meetcap", "PublicSaleTimeLock"]
    assert records[1].args[-1] == 0


def test_deploy_timelock_uses_env_beneficiary(chain, monkeypatch):
    monkeypatch.setenv("PUBLIC_SALE_ADDRESS", OUTSIDER)
    token = deploy_token(chain)
    rec = deploy_timelock(chain, token.address, get_allocation("public-sale"))
    assert rec.args[0] == OUTSIDER
    lock = chain.at(rec.address)

    chain.increase_time(20 * DAY)
    lock.transact(chain.signers[5]).release()
    assert chain.at(token.address).call().balance_of(OUTSIDER) == 160_000_000 * UNIT


def test_deploy_timelock_unfunded(chain):
    token = deploy_token(chain)
    rec = deploy_timelock(chain, token.address, get_allocation("test"), fund=False, beneficiary=OUTSIDER)
    assert chain.at(token.address).call().balance_of(rec.address) == 0
    assert rec.contract == "MeetcapTimeLock"


def test_deploy_presale_record(chain, carol):
    token = deploy_token(chain)
    rec = deploy_presale(chain, token.address, rate=5, admin=carol, fund=0)
    assert rec.args == [5, token.address, carol]
    presale = chain.at(rec.address)
    assert presale.call().admin_address() == carol
    assert presale.call().token_balance() == 0


def test_registry_merges_by_name(tmp_path):
    a = Deployment("Meetcap", "MeetcapToken", OUTSIDER, OUTSIDER, 1, 100)
    b = Deployment("MeetcapPresale", "MeetcapPresale", OUTSIDER, OUTSIDER, 2, 101, [1000])
    path = write_registry(tmp_path, "hardhat", [a])
    assert path == registry_path(tmp_path, "hardhat") == tmp_path / "hardhat.json"

    a2 = Deployment("Meetcap", "MeetcapToken", "0x" + "cd" * 20, OUTSIDER, 9, 200)
    write_registry(tmp_path, "hardhat", [a2, b])
    data = read_registry(path)
    assert sorted(data) == ["Meetcap", "MeetcapPresale"]
    assert data["Meetcap"]["block"] == 9
    assert data["MeetcapPresale"]["args"] == [1000]
    # canonical form on disk
    assert path.read_text(encoding="utf-8") == canonical_json_str(json.loads(path.read_text(encoding="utf-8")))
    assert read_registry(tmp_path / "missing.json") == {}


def test_record_needs_a_deployment_receipt(chain):
    rec = deploy_token(chain)
    attached = chain.at(rec.address)
    assert attached.deploy_receipt is None
    with pytest.raises(ValueError, match="no deployment receipt"):
        _record("Meetcap", attached, [])

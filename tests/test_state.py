import json

import pytest

from conftest import ACCOUNT2, ACCOUNT3, ONE_DAY_IN_SECS, OWNER, ether
from fyte_token.errors import ClaimTooSoon, StateError
from fyte_token.state import deploy, env_to_dict, load_state, save_state


def test_snapshot_preserves_ledger(env, tmp_path):
    fyte = env.ledger
    env.registry.safe_mint(fyte.v1_address, ACCOUNT2)
    fyte.buy(ACCOUNT3, 2, ether(20))
    fyte.claim(ACCOUNT2)
    fyte.release(OWNER)
    fyte.set_v2_claim_amount(OWNER, 7)
    fyte.set_paused(OWNER, True)

    path = tmp_path / "state.json"
    save_state(str(path), env)
    restored = load_state(str(path))
    r = restored.ledger

    assert r.balance_of(ACCOUNT3) == 2
    assert r.balance_of(ACCOUNT2) == 10
    assert r.last_claim_of(ACCOUNT2) == fyte.last_claim_of(ACCOUNT2)
    assert r.params == fyte.params
    assert r.released_to(OWNER) == ether(16)
    assert r.releasable(ACCOUNT2) == ether(4)
    assert r.contract_funds == fyte.contract_funds
    assert restored.bank.balance_of(ACCOUNT3) == env.bank.balance_of(ACCOUNT3)
    assert restored.registry.owns(fyte.v1_address, ACCOUNT2)
    assert restored.clock.now() == env.clock.now()


def test_restored_ledger_keeps_cooldown(env, tmp_path):
    env.ledger.claim(OWNER)
    path = tmp_path / "state.json"
    save_state(str(path), env)

    restored = load_state(str(path))
    with pytest.raises(ClaimTooSoon):
        restored.ledger.claim(OWNER)
    restored.clock.increase(ONE_DAY_IN_SECS)
    restored.ledger.claim(OWNER)


def test_big_amounts_stored_as_strings(env):
    data = env_to_dict(env)
    assert data["contract"]["fyte_cost"] == str(ether(10))
    assert all(isinstance(v, str) for v in data["native_balances"].values())


def test_missing_file(tmp_path):
    with pytest.raises(StateError, match="fyte deploy"):
        load_state(str(tmp_path / "nope.json"))


def test_not_json(tmp_path):
    p = tmp_path / "state.json"
    p.write_text("{oops", encoding="utf-8")
    with pytest.raises(StateError, match="not valid JSON"):
        load_state(str(p))


def test_wrong_format(env, tmp_path):
    data = env_to_dict(env)
    data["format"] = 99
    p = tmp_path / "state.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(StateError, match="Unsupported state format"):
        load_state(str(p))


def test_missing_section(env, tmp_path):
    data = env_to_dict(env)
    del data["splitter"]
    p = tmp_path / "state.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(StateError, match="Malformed state"):
        load_state(str(p))


def test_tier_policy_survives_snapshot(bank, clock, tmp_path):
    env = deploy([OWNER], [1], "highest", bank=bank, clock=clock)
    path = tmp_path / "state.json"
    save_state(str(path), env)

    restored = load_state(str(path))
    assert restored.ledger.tier_policy == "highest"
    restored.registry.safe_mint(restored.ledger.v1_address, ACCOUNT2)
    restored.registry.safe_mint(restored.ledger.v2_address, ACCOUNT2)
    assert restored.ledger.claim(ACCOUNT2) == 10


def test_state_without_tier_policy_is_malformed(env, tmp_path):
    data = env_to_dict(env)
    del data["contract"]["tier_policy"]
    p = tmp_path / "state.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(StateError, match="Malformed state"):
        load_state(str(p))


def test_mixed_case_account_keys_are_normalized(env, tmp_path):
    env.ledger.buy(ACCOUNT2, 1, ether(10))
    env.ledger.claim(ACCOUNT2)
    data = env_to_dict(env)
    for a in data["accounts"]:
        a["address"] = ACCOUNT2
    p = tmp_path / "state.json"
    p.write_text(json.dumps(data), encoding="utf-8")

    restored = load_state(str(p)).ledger
    assert restored.balance_of(ACCOUNT2.lower()) == 1
    with pytest.raises(ClaimTooSoon):
        restored.claim(ACCOUNT2)

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Union

from .clock import ManualClock, SystemClock
from .errors import StateError
from .ledger import AccountRecord, FyteLedger
from .ownership import CollectibleRegistry
from .payments import NativeBank, normalize_address
from .project_constants import STATE_FORMAT


@dataclass
class LedgerEnv:
    """A ledger plus the world it runs in: native balances, NFTs and time."""

    ledger: FyteLedger
    bank: NativeBank
    registry: CollectibleRegistry
    clock: Union[ManualClock, SystemClock]


def deploy(
    payees,
    shares,
    tier_policy: str,
    bank: NativeBank | None = None,
    clock: Union[ManualClock, SystemClock, None] = None,
    v1_address: str | None = None,
    v2_address: str | None = None,
) -> LedgerEnv:
    """
    Deploys a ledger. A collection given by address is an existing contract
    (e.g. on a live chain); a missing one is deployed locally.
    """
    bank = bank or NativeBank()
    clock = clock or ManualClock()
    registry = CollectibleRegistry()
    v1 = registry.add_collection(v1_address) if v1_address else registry.deploy()
    v2 = registry.add_collection(v2_address) if v2_address else registry.deploy()
    ledger = FyteLedger(payees, shares, v1, v2, registry, bank, clock, tier_policy)
    return LedgerEnv(ledger=ledger, bank=bank, registry=registry, clock=clock)


def env_to_dict(env: LedgerEnv) -> Dict[str, Any]:
    ledger = env.ledger
    p = ledger.params
    if isinstance(env.clock, ManualClock):
        clock = {"mode": "manual", "now": env.clock.now()}
    else:
        clock = {"mode": "system"}
    return {
        "format": STATE_FORMAT,
        "saved_at_utc": datetime.now(timezone.utc).isoformat(),
        "contract": {
            "address": ledger.address,
            "owner": p.owner,
            "paused": p.paused,
            "fyte_cost": str(p.fyte_cost),  # wei; big int as string
            "v1_claim_amount": p.v1_claim_amount,
            "v2_claim_amount": p.v2_claim_amount,
            "v1_address": p.v1_address,
            "v2_address": p.v2_address,
            "tier_policy": ledger.tier_policy,
        },
        "splitter": {
            "payees": [
                {
                    "address": a,
                    "shares": ledger.splitter.shares[a],
                    "released": str(ledger.released_to(a)),
                }
                for a in ledger.splitter.payees
            ],
        },
        # Deterministic ordering keeps snapshots diffable
        "accounts": [
            {"address": r.address, "balance": r.balance, "last_claim": r.last_claim}
            for r in sorted(ledger.accounts.values(), key=lambda r: r.address)
        ],
        "native_balances": {a: str(b) for a, b in env.bank.to_dict().items()},
        "collections": env.registry.to_dict(),
        "clock": clock,
    }


def env_from_dict(data: Dict[str, Any]) -> LedgerEnv:
    if not isinstance(data, dict) or data.get("format") != STATE_FORMAT:
        raise StateError(
            f"Unsupported state format: {data.get('format') if isinstance(data, dict) else data!r}"
        )
    try:
        c = data["contract"]
        clock_cfg = data["clock"]
        if clock_cfg["mode"] == "manual":
            clock: Union[ManualClock, SystemClock] = ManualClock(int(clock_cfg["now"]))
        elif clock_cfg["mode"] == "system":
            clock = SystemClock()
        else:
            raise StateError(f"Unknown clock mode: {clock_cfg['mode']}")

        bank = NativeBank({a: int(b) for a, b in data["native_balances"].items()})
        registry = CollectibleRegistry.from_dict(data["collections"])
        payees = data["splitter"]["payees"]
        ledger = FyteLedger(
            [e["address"] for e in payees],
            [int(e["shares"]) for e in payees],
            c["v1_address"],
            c["v2_address"],
            registry,
            bank,
            clock,
            c["tier_policy"],
            owner=c["owner"],
            contract_address=c["address"],
        )
        ledger.params.paused = bool(c["paused"])
        ledger.params.fyte_cost = int(c["fyte_cost"])
        ledger.params.v1_claim_amount = int(c["v1_claim_amount"])
        ledger.params.v2_claim_amount = int(c["v2_claim_amount"])
        for addr, e in zip(ledger.splitter.payees, payees):
            released = int(e["released"])
            if released:
                ledger.splitter.released[addr] = released
        for a in data["accounts"]:
            rec = AccountRecord(
                address=normalize_address(a["address"]),
                balance=int(a["balance"]),
                last_claim=int(a["last_claim"]),
            )
            ledger.accounts[rec.address] = rec
    except (KeyError, TypeError, ValueError) as e:
        raise StateError(f"Malformed state: {e!r}")

    return LedgerEnv(ledger=ledger, bank=bank, registry=registry, clock=clock)


def save_state(path: str, env: LedgerEnv) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(env_to_dict(env), f, indent=2)


def load_state(path: str) -> LedgerEnv:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise StateError(f"No ledger state at {path}. Run `fyte deploy` first.")
    except json.JSONDecodeError as e:
        raise StateError(f"State file {path} is not valid JSON: {e}")
    return env_from_dict(data)

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from .clock import ManualClock, SystemClock
from .config import Settings
from .errors import StateError
from .ownership import RpcOwnership, load_holders_file
from .project_constants import TIER_POLICIES, WEI_PER_ETHER
from .rpc import RpcClient
from .state import LedgerEnv, deploy, load_state, save_state

log = logging.getLogger("fyte.cli")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def parse_ether(text: str) -> int:
    """'10.5' -> wei."""
    try:
        wei = Decimal(text) * WEI_PER_ETHER
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Not an ether amount: {text}")
    if not wei.is_finite() or wei < 0 or wei != wei.to_integral_value():
        raise argparse.ArgumentTypeError(f"Not an ether amount: {text}")
    return int(wei)


def parse_bool(text: str) -> bool:
    t = text.strip().lower()
    if t in ("1", "true", "yes", "on"):
        return True
    if t in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Not a boolean: {text}")


def to_ether(wei: int) -> str:
    return f"{Decimal(wei) / WEI_PER_ETHER:f}"


def _wei_arg(args: argparse.Namespace) -> int:
    return args.wei if args.wei is not None else args.ether


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(state_file_override=args.state, rpc_url_override=args.rpc_url)


def _mutate(args: argparse.Namespace, op) -> int:
    """Load state, apply one operation, save state."""
    settings = _settings(args)
    env = load_state(settings.state_file)
    result = op(env, settings)
    save_state(settings.state_file, env)
    return result


def _chain_timestamp(settings: Settings, timeout: float) -> int:
    rpc = RpcClient(settings.require_rpc_url(), timeout_s=timeout)
    try:
        return rpc.block_timestamp("latest")
    finally:
        rpc.close()


def cmd_deploy(args: argparse.Namespace) -> int:
    settings = _settings(args)
    if os.path.exists(settings.state_file) and not args.force:
        raise StateError(f"{settings.state_file} already exists (use --force to replace).")
    if args.system_clock:
        clock = SystemClock()
    elif args.start_from_chain:
        clock = ManualClock(_chain_timestamp(settings, args.timeout))
    else:
        clock = ManualClock(args.start)
    env = deploy(
        args.payee,
        args.share,
        args.tier_policy,
        clock=clock,
        v1_address=args.v1_address,
        v2_address=args.v2_address,
    )
    save_state(settings.state_file, env)

    print("========================================")
    print("FYTE DEPLOYED")
    print("========================================")
    print(f"Contract      : {env.ledger.address}")
    print(f"Owner         : {env.ledger.owner}")
    print(f"V1 collection : {env.ledger.v1_address}")
    print(f"V2 collection : {env.ledger.v2_address}")
    print(f"Tier policy   : {env.ledger.tier_policy}")
    print(f"FYTE cost     : {to_ether(env.ledger.fyte_cost)} ETH")
    print(f"State         : {settings.state_file}")
    return 0


def cmd_fund(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        bal = env.bank.fund(args.to, _wei_arg(args))
        print(f"{args.to}: {to_ether(bal)} ETH")
        return 0

    return _mutate(args, op)


def cmd_mint_nft(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        collection = env.ledger.v1_address if args.tier == "v1" else env.ledger.v2_address
        token_id = env.registry.safe_mint(collection, args.to)
        print(f"Minted {args.tier.upper()} #{token_id} to {args.to}")
        return 0

    return _mutate(args, op)


def cmd_buy(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        value = _wei_arg(args)
        if value is None:
            value = args.amount * env.ledger.fyte_cost
        bal = env.ledger.buy(args.sender, args.amount, value)
        print(f"Bought {args.amount} FYTE for {to_ether(value)} ETH; balance {bal}")
        return 0

    return _mutate(args, op)


def cmd_claim(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, settings: Settings) -> int:
        if args.holders_file:
            env.ledger.ownership = load_holders_file(args.holders_file)
            return _claim(env)
        if args.rpc_ownership:
            rpc = RpcClient(settings.require_rpc_url(), timeout_s=args.timeout)
            try:
                env.ledger.ownership = RpcOwnership(rpc)
                return _claim(env)
            finally:
                rpc.close()
        return _claim(env)

    def _claim(env: LedgerEnv) -> int:
        reward = env.ledger.claim(args.sender)
        print(f"Claimed {reward} FYTE; balance {env.ledger.balance_of(args.sender)}")
        return 0

    return _mutate(args, op)


def cmd_time_to_claim(args: argparse.Namespace) -> int:
    env = load_state(_settings(args).state_file)
    hours = env.ledger.time_to_claim(args.account)
    secs = env.ledger.seconds_to_claim(args.account)
    print(f"Time to claim : {hours} h ({secs} s)")
    return 0


def cmd_balance(args: argparse.Namespace) -> int:
    env = load_state(_settings(args).state_file)
    print(f"FYTE          : {env.ledger.balance_of(args.account)}")
    print(f"ETH           : {to_ether(env.bank.balance_of(args.account))}")
    return 0


def summarize(env: LedgerEnv) -> Dict[str, Any]:
    ledger = env.ledger
    return {
        "contract": ledger.address,
        "owner": ledger.owner,
        "paused": ledger.paused,
        "fyte_cost_wei": str(ledger.fyte_cost),
        "v1_claim_amount": ledger.v1_claim_amount,
        "v2_claim_amount": ledger.v2_claim_amount,
        "v1_address": ledger.v1_address,
        "v2_address": ledger.v2_address,
        "tier_policy": ledger.tier_policy,
        "total_supply": ledger.total_supply,
        "contract_funds_wei": str(ledger.contract_funds),
        "payees": [
            {
                "address": p,
                "shares": ledger.shares_of(p),
                "released_wei": str(ledger.released_to(p)),
                "releasable_wei": str(ledger.releasable(p)),
            }
            for p in ledger.splitter.payees
        ],
        "now": env.clock.now(),
    }


def cmd_show(args: argparse.Namespace) -> int:
    env = load_state(_settings(args).state_file)
    print(json.dumps(summarize(env), indent=2))
    return 0


def cmd_set_paused(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        env.ledger.set_paused(args.sender, args.paused)
        print(f"Paused        : {env.ledger.paused}")
        return 0

    return _mutate(args, op)


def cmd_set_v1_claim_amount(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        env.ledger.set_v1_claim_amount(args.sender, args.amount)
        print(f"V1ClaimAmount : {env.ledger.v1_claim_amount}")
        return 0

    return _mutate(args, op)


def cmd_set_v2_claim_amount(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        env.ledger.set_v2_claim_amount(args.sender, args.amount)
        print(f"V2ClaimAmount : {env.ledger.v2_claim_amount}")
        return 0

    return _mutate(args, op)


def cmd_set_fyte_cost(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        env.ledger.set_fyte_cost(args.sender, _wei_arg(args))
        print(f"FYTECost      : {to_ether(env.ledger.fyte_cost)} ETH")
        return 0

    return _mutate(args, op)


def cmd_transfer_ownership(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        env.ledger.transfer_ownership(args.sender, args.to)
        print(f"Owner         : {env.ledger.owner}")
        return 0

    return _mutate(args, op)


def cmd_release(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, _settings: Settings) -> int:
        paid = env.ledger.release(args.account)
        print(f"Released {to_ether(paid)} ETH to {args.account}")
        return 0

    return _mutate(args, op)


def cmd_advance(args: argparse.Namespace) -> int:
    def op(env: LedgerEnv, settings: Settings) -> int:
        if not isinstance(env.clock, ManualClock):
            raise StateError("This ledger follows the system clock; time cannot be advanced.")
        if args.to_chain:
            now = env.clock.increase_to(_chain_timestamp(settings, args.timeout))
        elif args.to is not None:
            now = env.clock.increase_to(args.to)
        else:
            now = env.clock.increase(args.seconds)
        print(f"Now           : {now}")
        return 0

    return _mutate(args, op)


def cmd_check_nft(args: argparse.Namespace) -> int:
    settings = _settings(args)
    rpc = RpcClient(settings.require_rpc_url(), timeout_s=args.timeout)
    try:
        block = rpc.block_number()
        bal = rpc.erc721_balance_of(args.collection, args.account)
    finally:
        rpc.close()
    print(f"Block         : {block}")
    print(f"balanceOf     : {bal}")
    print(f"Owns          : {bal > 0}")
    return 0


def _add_wei_args(p: argparse.ArgumentParser, required: bool) -> None:
    g = p.add_mutually_exclusive_group(required=required)
    g.add_argument("--ether", type=parse_ether, default=None, help="Amount in ether.")
    g.add_argument("--wei", type=int, default=None, help="Amount in wei.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="fyte",
        description="FYTE token ledger: buy with ETH, claim daily by NFT ownership.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--state", default=None, help="Ledger state JSON (else FYTE_STATE_FILE).")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    d = sub.add_parser("deploy", help="Create a new ledger state file.")
    d.add_argument("--payee", action="append", required=True, help="Payee address (repeat).")
    d.add_argument("--share", action="append", type=int, required=True, help="Payee shares (repeat).")
    d.add_argument(
        "--tier-policy",
        choices=TIER_POLICIES,
        required=True,
        help="Claim pay for holders of both collections: sum of both or highest only.",
    )
    d.add_argument("--v1-address", default=None, help="Existing V1 collection contract.")
    d.add_argument("--v2-address", default=None, help="Existing V2 collection contract.")
    clk = d.add_mutually_exclusive_group()
    clk.add_argument("--start", type=int, default=None, help="Manual clock start timestamp.")
    clk.add_argument("--start-from-chain", action="store_true", help="Start at the latest block time.")
    clk.add_argument("--system-clock", action="store_true", help="Follow wall-clock time.")
    d.add_argument("--force", action="store_true", help="Replace an existing state file.")
    d.set_defaults(func=cmd_deploy)

    f = sub.add_parser("fund", help="Give an account native currency.")
    f.add_argument("--to", required=True)
    _add_wei_args(f, required=True)
    f.set_defaults(func=cmd_fund)

    m = sub.add_parser("mint-nft", help="Mint a V1 or V2 collectible to an account.")
    m.add_argument("--tier", choices=["v1", "v2"], required=True)
    m.add_argument("--to", required=True)
    m.set_defaults(func=cmd_mint_nft)

    b = sub.add_parser("buy", help="Buy FYTE with native currency.")
    b.add_argument("--from", dest="sender", required=True)
    b.add_argument("--amount", type=int, required=True)
    _add_wei_args(b, required=False)
    b.set_defaults(func=cmd_buy)

    c = sub.add_parser("claim", help="Claim the daily FYTE reward.")
    c.add_argument("--from", dest="sender", required=True)
    src = c.add_mutually_exclusive_group()
    src.add_argument("--holders-file", default=None, help="'collection,address' lines.")
    src.add_argument("--rpc-ownership", action="store_true", help="Check NFTs over RPC.")
    c.set_defaults(func=cmd_claim)

    t = sub.add_parser("time-to-claim", help="Hours until the account can claim.")
    t.add_argument("--account", required=True)
    t.set_defaults(func=cmd_time_to_claim)

    bal = sub.add_parser("balance", help="FYTE and ETH balance of an account.")
    bal.add_argument("--account", required=True)
    bal.set_defaults(func=cmd_balance)

    s = sub.add_parser("show", help="Print contract parameters as JSON.")
    s.set_defaults(func=cmd_show)

    sp = sub.add_parser("set-paused", help="Pause or unpause buy and claim (owner).")
    sp.add_argument("--from", dest="sender", required=True)
    sp.add_argument("--paused", type=parse_bool, required=True)
    sp.set_defaults(func=cmd_set_paused)

    s1 = sub.add_parser("set-v1-claim-amount", help="Set the V1 claim reward (owner).")
    s1.add_argument("--from", dest="sender", required=True)
    s1.add_argument("--amount", type=int, required=True)
    s1.set_defaults(func=cmd_set_v1_claim_amount)

    s2 = sub.add_parser("set-v2-claim-amount", help="Set the V2 claim reward (owner).")
    s2.add_argument("--from", dest="sender", required=True)
    s2.add_argument("--amount", type=int, required=True)
    s2.set_defaults(func=cmd_set_v2_claim_amount)

    sc = sub.add_parser("set-fyte-cost", help="Set the FYTE price (owner).")
    sc.add_argument("--from", dest="sender", required=True)
    _add_wei_args(sc, required=True)
    sc.set_defaults(func=cmd_set_fyte_cost)

    to = sub.add_parser("transfer-ownership", help="Hand the contract to a new owner.")
    to.add_argument("--from", dest="sender", required=True)
    to.add_argument("--to", required=True)
    to.set_defaults(func=cmd_transfer_ownership)

    r = sub.add_parser("release", help="Pay a payee its share of contract funds.")
    r.add_argument("--account", required=True)
    r.set_defaults(func=cmd_release)

    a = sub.add_parser("advance", help="Move the manual clock forward.")
    when = a.add_mutually_exclusive_group(required=True)
    when.add_argument("--seconds", type=int, default=None)
    when.add_argument("--to", type=int, default=None, help="Absolute timestamp.")
    when.add_argument("--to-chain", action="store_true", help="Jump to the latest block time.")
    a.set_defaults(func=cmd_advance)

    n = sub.add_parser("check-nft", help="Query ERC-721 balanceOf over RPC.")
    n.add_argument("--collection", required=True)
    n.add_argument("--account", required=True)
    n.set_defaults(func=cmd_check_nft)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except (RuntimeError, httpx.HTTPError, OSError, ValueError, KeyError) as e:
        log.debug("Command %s failed", args.cmd, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        code = 1
    raise SystemExit(code)

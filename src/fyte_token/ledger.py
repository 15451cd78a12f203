from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .errors import (
    ClaimTooSoon,
    FunctionalityPaused,
    InsufficientPayment,
    LedgerError,
    Unauthorized,
)
from .payments import NativeBank, normalize_address
from .project_constants import (
    CLAIM_COOLDOWN_SECONDS,
    CONTRACT_ADDRESS,
    DEFAULT_FYTE_COST,
    DEFAULT_V1_CLAIM_AMOUNT,
    DEFAULT_V2_CLAIM_AMOUNT,
    SECONDS_PER_HOUR,
    TIER_POLICIES,
    TIER_POLICY_HIGHEST,
    TOKEN_NAME,
    TOKEN_SYMBOL,
)

log = logging.getLogger("fyte.ledger")

NOT_OWNER = "Ownable: caller is not the owner"


@dataclass
class AccountRecord:
    address: str
    balance: int = 0
    last_claim: int = 0  # 0 = never claimed


@dataclass
class LedgerParams:
    owner: str
    v1_address: str
    v2_address: str
    fyte_cost: int = DEFAULT_FYTE_COST
    v1_claim_amount: int = DEFAULT_V1_CLAIM_AMOUNT
    v2_claim_amount: int = DEFAULT_V2_CLAIM_AMOUNT
    paused: bool = False


@dataclass
class Splitter:
    payees: List[str]
    shares: Dict[str, int]
    released: Dict[str, int] = field(default_factory=dict)

    @property
    def total_shares(self) -> int:
        return sum(self.shares.values())

    @property
    def total_released(self) -> int:
        return sum(self.released.values())


def _check_uint(name: str, value: int, positive: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or (positive and value == 0):
        raise ValueError(f"{name} must be {'positive' if positive else 'non-negative'}")
    return value


def build_splitter(payees: Sequence[str], shares: Sequence[int]) -> Splitter:
    if len(payees) != len(shares):
        raise ValueError("PaymentSplitter: payees and shares length mismatch")
    if not payees:
        raise ValueError("PaymentSplitter: no payees")
    order: List[str] = []
    share_map: Dict[str, int] = {}
    for p, s in zip(payees, shares):
        addr = normalize_address(p)
        if addr in share_map:
            raise ValueError(f"PaymentSplitter: account {addr} already has shares")
        share_map[addr] = _check_uint("shares", s, positive=True)
        order.append(addr)
    return Splitter(payees=order, shares=share_map)


class FyteLedger:
    """
    The FYTE token: bought with native currency, claimed once per cooldown
    by holders of the V1/V2 collections. Native funds received are split
    between the payees by share.

    Every operation checks everything before it changes anything.
    """

    name = TOKEN_NAME
    symbol = TOKEN_SYMBOL

    def __init__(
        self,
        payees: Sequence[str],
        shares: Sequence[int],
        v1_address: str,
        v2_address: str,
        ownership,
        bank: NativeBank,
        clock,
        tier_policy: str,
        owner: Optional[str] = None,
        contract_address: str = CONTRACT_ADDRESS,
    ) -> None:
        if tier_policy not in TIER_POLICIES:
            raise ValueError(
                f"tier_policy must be one of {', '.join(TIER_POLICIES)}, got {tier_policy!r}"
            )
        self.splitter = build_splitter(payees, shares)
        self.params = LedgerParams(
            owner=normalize_address(owner or self.splitter.payees[0]),
            v1_address=normalize_address(v1_address),
            v2_address=normalize_address(v2_address),
        )
        self.address = normalize_address(contract_address)
        self.ownership = ownership
        self.bank = bank
        self.clock = clock
        self.tier_policy = tier_policy
        self.cooldown = CLAIM_COOLDOWN_SECONDS
        self.accounts: Dict[str, AccountRecord] = {}

    @property
    def owner(self) -> str:
        return self.params.owner

    @property
    def paused(self) -> bool:
        return self.params.paused

    @property
    def fyte_cost(self) -> int:
        return self.params.fyte_cost

    @property
    def v1_claim_amount(self) -> int:
        return self.params.v1_claim_amount

    @property
    def v2_claim_amount(self) -> int:
        return self.params.v2_claim_amount

    @property
    def v1_address(self) -> str:
        return self.params.v1_address

    @property
    def v2_address(self) -> str:
        return self.params.v2_address

    @property
    def total_supply(self) -> int:
        return sum(a.balance for a in self.accounts.values())

    @property
    def contract_funds(self) -> int:
        return self.bank.balance_of(self.address)

    def _record(self, addr: str) -> AccountRecord:
        key = normalize_address(addr)
        rec = self.accounts.get(key)
        if rec is None:
            rec = AccountRecord(address=key)
            self.accounts[key] = rec
        return rec

    def balance_of(self, account: str) -> int:
        rec = self.accounts.get(normalize_address(account))
        return rec.balance if rec else 0

    def last_claim_of(self, account: str) -> int:
        rec = self.accounts.get(normalize_address(account))
        return rec.last_claim if rec else 0

    def seconds_to_claim(self, account: str) -> int:
        last = self.last_claim_of(account)
        if last == 0:
            return 0
        return max(0, last + self.cooldown - self.clock.now())

    def time_to_claim(self, account: str) -> int:
        """Hours until the account may claim again, rounded up; 0 if it can claim now."""
        remaining = self.seconds_to_claim(account)
        return -(-remaining // SECONDS_PER_HOUR)

    def claim_reward(self, account: str) -> int:
        """
        FYTE due to a claim by `account`. Each held tier qualifies its amount;
        "sum" pays every qualifying amount, "highest" only the largest one.
        """
        amounts = []
        if self.ownership.owns(self.v1_address, account):
            amounts.append(self.v1_claim_amount)
        if self.ownership.owns(self.v2_address, account):
            amounts.append(self.v2_claim_amount)
        if not amounts:
            return 0
        if self.tier_policy == TIER_POLICY_HIGHEST:
            return max(amounts)
        return sum(amounts)

    def buy(self, caller: str, amount: int, value: int) -> int:
        _check_uint("amount", amount, positive=True)
        _check_uint("value", value)
        if self.paused:
            raise FunctionalityPaused("Buy Functionality Paused")
        price = amount * self.fyte_cost
        if value < price:
            raise InsufficientPayment("Not enough ETH sent")

        # The bank raises before moving anything if the caller is short.
        self.bank.transfer(caller, self.address, value)
        rec = self._record(caller)
        rec.balance += amount
        log.info("%s bought %d FYTE for %d wei", rec.address, amount, value)
        return rec.balance

    def claim(self, caller: str) -> int:
        if self.paused:
            raise FunctionalityPaused("Claim Functionality Paused")
        now = self.clock.now()
        key = normalize_address(caller)
        last = self.last_claim_of(key)
        if last != 0 and now - last < self.cooldown:
            raise ClaimTooSoon("Claim attempt to soon.")

        reward = self.claim_reward(key)
        rec = self._record(key)
        rec.balance += reward
        rec.last_claim = now
        log.info("%s claimed %d FYTE at %d", key, reward, now)
        return reward

    def _only_owner(self, caller: str) -> None:
        if normalize_address(caller) != self.owner:
            raise Unauthorized(NOT_OWNER)

    def set_paused(self, caller: str, paused: bool) -> None:
        self._only_owner(caller)
        if not isinstance(paused, bool):
            raise ValueError(f"paused must be a bool, got {paused!r}")
        self.params.paused = paused
        log.info("Paused set to %s", paused)

    def set_v1_claim_amount(self, caller: str, amount: int) -> None:
        self._only_owner(caller)
        self.params.v1_claim_amount = _check_uint("v1_claim_amount", amount)
        log.info("V1ClaimAmount set to %d", amount)

    def set_v2_claim_amount(self, caller: str, amount: int) -> None:
        self._only_owner(caller)
        self.params.v2_claim_amount = _check_uint("v2_claim_amount", amount)
        log.info("V2ClaimAmount set to %d", amount)

    def set_fyte_cost(self, caller: str, cost: int) -> None:
        self._only_owner(caller)
        self.params.fyte_cost = _check_uint("fyte_cost", cost, positive=True)
        log.info("FYTECost set to %d wei", cost)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        new = normalize_address(new_owner)
        log.info("Ownership transferred %s -> %s", self.owner, new)
        self.params.owner = new

    def shares_of(self, account: str) -> int:
        return self.splitter.shares.get(normalize_address(account), 0)

    def released_to(self, account: str) -> int:
        return self.splitter.released.get(normalize_address(account), 0)

    def releasable(self, account: str) -> int:
        key = normalize_address(account)
        shares = self.splitter.shares.get(key, 0)
        if shares == 0:
            return 0
        total_received = self.contract_funds + self.splitter.total_released
        due = total_received * shares // self.splitter.total_shares
        return due - self.released_to(key)

    def release(self, account: str) -> int:
        key = normalize_address(account)
        if self.shares_of(key) == 0:
            raise LedgerError("PaymentSplitter: account has no shares")
        payment = self.releasable(key)
        if payment == 0:
            raise LedgerError("PaymentSplitter: account is not due payment")

        self.bank.transfer(self.address, key, payment)
        self.splitter.released[key] = self.released_to(key) + payment
        log.info("Released %d wei to %s", payment, key)
        return payment

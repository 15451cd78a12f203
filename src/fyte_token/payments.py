from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict

from .errors import InsufficientBalance

log = logging.getLogger("fyte.payments")


def normalize_address(addr: str) -> str:
    """Hex addresses compare case-insensitively; anything else is kept as given."""
    if not isinstance(addr, str) or not addr.strip():
        raise ValueError(f"Invalid address: {addr!r}")
    a = addr.strip()
    if a[:2].lower() == "0x":
        return "0x" + a[2:].lower()
    return a


class NativeBank:
    """Native-currency balances, in wei."""

    def __init__(self, balances: Dict[str, int] | None = None) -> None:
        self._balances: Dict[str, int] = defaultdict(int)
        for addr, bal in (balances or {}).items():
            self.fund(addr, bal)

    def balance_of(self, addr: str) -> int:
        return self._balances.get(normalize_address(addr), 0)

    def fund(self, addr: str, amount: int) -> int:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Invalid amount: {amount!r}")
        key = normalize_address(addr)
        self._balances[key] += amount
        return self._balances[key]

    def transfer(self, src: str, dst: str, amount: int) -> None:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Invalid amount: {amount!r}")
        s = normalize_address(src)
        d = normalize_address(dst)
        have = self._balances.get(s, 0)
        if have < amount:
            raise InsufficientBalance(
                f"Insufficient balance: {s} has {have}, needs {amount}"
            )
        self._balances[s] = have - amount
        self._balances[d] += amount
        log.debug("Moved %d wei %s -> %s", amount, s, d)

    def to_dict(self) -> Dict[str, int]:
        # Deterministic ordering keeps snapshots diffable
        return {a: b for a, b in sorted(self._balances.items()) if b}

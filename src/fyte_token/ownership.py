from __future__ import annotations

import hashlib
import logging
from collections import defaultdict
from typing import Dict, List

from .payments import normalize_address
from .rpc import RpcClient

log = logging.getLogger("fyte.ownership")


def collection_address(index: int) -> str:
    digest = hashlib.sha256(f"fyte-collection:{index}".encode("utf-8")).hexdigest()
    return "0x" + digest[:40]


class CollectibleRegistry:
    """
    Local NFT collections, enough to answer ownership questions.

    Token ids start at 0 per collection and are minted in order.
    """

    def __init__(self) -> None:
        self._owners: Dict[str, List[str]] = {}

    @property
    def collections(self) -> List[str]:
        return list(self._owners)

    def deploy(self) -> str:
        addr = collection_address(len(self._owners))
        self._owners[addr] = []
        log.debug("Deployed collection %s", addr)
        return addr

    def add_collection(self, collection: str) -> str:
        key = normalize_address(collection)
        self._owners.setdefault(key, [])
        return key

    def _tokens(self, collection: str) -> List[str]:
        key = normalize_address(collection)
        if key not in self._owners:
            raise KeyError(f"Unknown collection: {collection}")
        return self._owners[key]

    def safe_mint(self, collection: str, to: str) -> int:
        tokens = self._tokens(collection)
        tokens.append(normalize_address(to))
        token_id = len(tokens) - 1
        log.info("Minted %s #%d to %s", collection, token_id, to)
        return token_id

    def owner_of(self, collection: str, token_id: int) -> str:
        tokens = self._tokens(collection)
        if token_id < 0 or token_id >= len(tokens):
            raise KeyError(f"{collection}: no token #{token_id}")
        return tokens[token_id]

    def balance_of(self, collection: str, owner: str) -> int:
        who = normalize_address(owner)
        return sum(1 for t in self._tokens(collection) if t == who)

    def owns(self, collection: str, account: str) -> bool:
        key = normalize_address(collection)
        if key not in self._owners:
            return False
        return self.balance_of(key, account) > 0

    def to_dict(self) -> Dict[str, List[str]]:
        return {c: list(t) for c, t in self._owners.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, List[str]]) -> "CollectibleRegistry":
        reg = cls()
        for collection, owners in data.items():
            key = reg.add_collection(collection)
            reg._owners[key] = [normalize_address(o) for o in owners]
        return reg


class RpcOwnership:
    """Answers ownership by calling ERC-721 balanceOf on a live node."""

    def __init__(self, rpc: RpcClient) -> None:
        self.rpc = rpc

    def owns(self, collection: str, account: str) -> bool:
        bal = self.rpc.erc721_balance_of(collection, account)
        log.debug("balanceOf(%s) on %s = %d", account, collection, bal)
        return bal > 0


def load_holders_file(path: str) -> CollectibleRegistry:
    """
    Reads `collection,address` lines into a registry, one token per line.
    Blank lines and lines starting with '#' are skipped.
    """
    holders: Dict[str, List[str]] = defaultdict(list)
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            w = line.strip()
            if not w or w.startswith("#"):
                continue
            parts = [p.strip() for p in w.split(",")]
            if len(parts) != 2 or not all(parts):
                raise ValueError(f"{path}:{lineno}: expected 'collection,address'")
            holders[parts[0]].append(parts[1])
    return CollectibleRegistry.from_dict(holders)

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .errors import RpcError

# keccak256("balanceOf(address)")[:4]
BALANCE_OF_SELECTOR = "0x70a08231"


def encode_address_arg(addr: str) -> str:
    """ABI-encode an address as a left-padded 32 byte word (hex, no 0x)."""
    a = addr.lower()
    if a.startswith("0x"):
        a = a[2:]
    if len(a) != 40:
        raise ValueError(f"Not a 20 byte hex address: {addr}")
    try:
        int(a, 16)
    except ValueError:
        raise ValueError(f"Not a 20 byte hex address: {addr}")
    return a.rjust(64, "0")


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._next_id = 1

    def close(self) -> None:
        self.client.close()

    def _post(self, method: str, params: List[Any]) -> Dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params,
        }
        self._next_id += 1
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RpcError(f"RPC error: {data['error']}")
        return data

    def block_number(self) -> int:
        """Returns the latest block number."""
        data = self._post("eth_blockNumber", [])
        return int(data["result"], 16)

    def block_timestamp(self, tag: str = "latest") -> int:
        """Returns the Unix timestamp of a block ("latest" or a hex number)."""
        data = self._post("eth_getBlockByNumber", [tag, False])
        result = data.get("result")
        if not result or "timestamp" not in result:
            raise RpcError(f"Block {tag}: no timestamp returned.")
        return int(result["timestamp"], 16)

    def eth_call(self, to: str, data: str, tag: str = "latest") -> str:
        resp = self._post("eth_call", [{"to": to, "data": data}, tag])
        result = resp.get("result")
        if not isinstance(result, str):
            raise RpcError(f"eth_call to {to} returned no data.")
        return result

    def erc721_balance_of(self, contract: str, owner: str) -> int:
        data = BALANCE_OF_SELECTOR + encode_address_arg(owner)
        raw = self.eth_call(contract, data)
        # An empty result means no contract code at that address
        if raw in ("0x", ""):
            raise RpcError(f"No contract at {contract}.")
        return int(raw, 16)

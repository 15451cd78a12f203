import json

import httpx
import pytest

from conftest import OWNER
from fyte_token.errors import RpcError
from fyte_token.rpc import BALANCE_OF_SELECTOR, RpcClient, encode_address_arg

NFT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def make_client(handler):
    return RpcClient("http://node.test", timeout_s=5.0, transport=httpx.MockTransport(handler))


def test_encode_address_arg():
    word = encode_address_arg(OWNER)
    assert len(word) == 64
    assert word.startswith("0" * 24)
    assert word.endswith(OWNER[2:].lower())


@pytest.mark.parametrize("bad", ["0x1234", "0x" + "zz" * 20, "not-an-address"])
def test_encode_address_arg_rejects(bad):
    with pytest.raises(ValueError):
        encode_address_arg(bad)


def test_erc721_balance_of_builds_eth_call():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x" + "0" * 63 + "3"})

    client = make_client(handler)
    try:
        assert client.erc721_balance_of(NFT, OWNER) == 3
    finally:
        client.close()

    assert seen["method"] == "eth_call"
    call, tag = seen["params"]
    assert tag == "latest"
    assert call["to"] == NFT
    assert call["data"] == BALANCE_OF_SELECTOR + encode_address_arg(OWNER)


def test_rpc_error_object():
    def handler(request):
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}}
        )

    client = make_client(handler)
    try:
        with pytest.raises(RpcError, match="execution reverted"):
            client.erc721_balance_of(NFT, OWNER)
    finally:
        client.close()


def test_empty_result_means_no_contract():
    client = make_client(lambda r: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x"}))
    try:
        with pytest.raises(RpcError, match="No contract"):
            client.erc721_balance_of(NFT, OWNER)
    finally:
        client.close()


def test_http_error_propagates():
    client = make_client(lambda r: httpx.Response(503))
    try:
        with pytest.raises(httpx.HTTPStatusError):
            client.block_number()
    finally:
        client.close()


def test_block_number_and_timestamp():
    def handler(request):
        body = json.loads(request.content)
        if body["method"] == "eth_blockNumber":
            result = "0x10"
        else:
            assert body["params"] == ["latest", False]
            result = {"number": "0x10", "timestamp": hex(1_700_000_000)}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    client = make_client(handler)
    try:
        assert client.block_number() == 16
        assert client.block_timestamp() == 1_700_000_000
    finally:
        client.close()


def test_request_ids_increase():
    ids = []

    def handler(request):
        body = json.loads(request.content)
        ids.append(body["id"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x1"})

    client = make_client(handler)
    try:
        client.block_number()
        client.block_number()
    finally:
        client.close()
    assert ids == [1, 2]

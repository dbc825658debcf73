import pytest
from aiohttp import ClientError
from eth_abi import encode

from soulwallet_sdk.bundler.bundler import Bundler, UserOperationGasEstimate
from soulwallet_sdk.chain.chain_reader import ChainReader
from soulwallet_sdk.exceptions import RpcError, UserOpErrorCode
from soulwallet_sdk.result import Err, Ok
from soulwallet_sdk.utils import eth_client_utils
from soulwallet_sdk.utils.eth_client_utils import rpc_request

from conftest import ENTRY_POINT, WALLET_LOGIC

NODE_URL = "http://127.0.0.1:8545"
BUNDLER_URL = "http://127.0.0.1:3000/rpc"


def patch_transport(monkeypatch, module, responses):
    """
    answer each json-rpc method with a canned value, recording the requests
    """
    requests = []

    async def fake_rpc_request(node_url, method, params=None):
        requests.append((node_url, method, params))
        response = responses[method]
        if isinstance(response, RpcError):
            return Err(response)
        return Ok(response)

    monkeypatch.setattr(module, "rpc_request", fake_rpc_request)
    return requests


@pytest.mark.asyncio
async def test_rpc_request_result(monkeypatch):
    async def fake_send(node_url, method, params=None):
        return {"jsonrpc": "2.0", "id": 1, "result": "0x539"}

    monkeypatch.setattr(
        eth_client_utils, "send_rpc_request_to_eth_client", fake_send)
    assert await rpc_request(NODE_URL, "eth_chainId", []) == Ok("0x539")


@pytest.mark.asyncio
async def test_rpc_request_error(monkeypatch):
    async def fake_send(node_url, method, params=None):
        return {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {
                "code": -32500,
                "message": "AA20 account not deployed",
                "data": "0x",
            },
        }

    monkeypatch.setattr(
        eth_client_utils, "send_rpc_request_to_eth_client", fake_send)
    ret = await rpc_request(BUNDLER_URL, "eth_estimateUserOperationGas", [])
    assert ret == Err(
        RpcError(
            "eth_estimateUserOperationGas",
            -32500,
            "AA20 account not deployed",
            "0x",
        )
    )


@pytest.mark.asyncio
async def test_rpc_request_transport_failure(monkeypatch):
    async def fake_send(node_url, method, params=None):
        raise ClientError("connection refused")

    monkeypatch.setattr(
        eth_client_utils, "send_rpc_request_to_eth_client", fake_send)
    ret = await rpc_request(NODE_URL, "eth_chainId", [])
    assert isinstance(ret, Err)
    assert ret.error.code is None
    assert "connection refused" in ret.error.message


@pytest.mark.asyncio
async def test_chain_reader_call(monkeypatch):
    from soulwallet_sdk.chain import chain_reader

    requests = patch_transport(
        monkeypatch,
        chain_reader,
        {"eth_call": "0x" + encode(["address"], [ENTRY_POINT.lower()]).hex()},
    )
    ret = await ChainReader(NODE_URL).call(
        WALLET_LOGIC, "entryPoint()", [], [], ["address"])

    assert isinstance(ret, Ok)
    assert ret.value[0].lower() == ENTRY_POINT.lower()
    _, method, params = requests[0]
    assert method == "eth_call"
    # keccak("entryPoint()")[:4]
    assert params[0] == {"to": WALLET_LOGIC, "data": "0xb0d691fe"}
    assert params[1] == "latest"


@pytest.mark.asyncio
async def test_chain_reader_call_undecodable(monkeypatch):
    from soulwallet_sdk.chain import chain_reader

    patch_transport(monkeypatch, chain_reader, {"eth_call": "0x"})
    ret = await ChainReader(NODE_URL).call(
        WALLET_LOGIC, "entryPoint()", [], [], ["address"])
    assert isinstance(ret, Err)
    assert ret.error.method == "eth_call"


@pytest.mark.asyncio
async def test_chain_reader_chain_id_and_code(monkeypatch):
    from soulwallet_sdk.chain import chain_reader

    patch_transport(
        monkeypatch,
        chain_reader,
        {"eth_chainId": "0x539", "eth_getCode": "0x6080"},
    )
    reader = ChainReader(NODE_URL)
    assert await reader.get_chain_id() == Ok(1337)
    assert await reader.get_code(WALLET_LOGIC) == Ok(b"\x60\x80")


@pytest.mark.asyncio
async def test_bundler_supported_entry_points(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    patch_transport(
        monkeypatch,
        bundler,
        {"eth_supportedEntryPoints": [ENTRY_POINT]},
    )
    assert await Bundler(BUNDLER_URL).supported_entry_points() == Ok([ENTRY_POINT])


@pytest.mark.asyncio
async def test_bundler_supported_entry_points_invalid(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    patch_transport(
        monkeypatch, bundler, {"eth_supportedEntryPoints": ["0x1234"]})
    ret = await Bundler(BUNDLER_URL).supported_entry_points()
    assert isinstance(ret, Err)


@pytest.mark.asyncio
async def test_bundler_estimate_user_operation_gas(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    requests = patch_transport(
        monkeypatch,
        bundler,
        {
            "eth_estimateUserOperationGas": {
                "preVerificationGas": "0xc350",
                "verificationGasLimit": "0x61a80",
                "callGasLimit": 100_001,
            }
        },
    )
    user_operation_json = {"sender": WALLET_LOGIC}
    ret = await Bundler(BUNDLER_URL).estimate_user_operation_gas(
        ENTRY_POINT, user_operation_json)

    assert ret == Ok(
        UserOperationGasEstimate(
            pre_verification_gas=50_000,
            verification_gas_limit=400_000,
            call_gas_limit=100_001,
        )
    )
    assert requests[0][2] == [user_operation_json, ENTRY_POINT]


@pytest.mark.asyncio
async def test_bundler_estimate_error_code(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    patch_transport(
        monkeypatch,
        bundler,
        {
            "eth_estimateUserOperationGas": RpcError(
                "eth_estimateUserOperationGas", -32507, "invalid signature")
        },
    )
    ret = await Bundler(BUNDLER_URL).estimate_user_operation_gas(
        ENTRY_POINT, {})
    assert isinstance(ret, Err)
    assert ret.error.code == UserOpErrorCode.InvalidSignature
    assert ret.error.message == "invalid signature"


@pytest.mark.asyncio
async def test_bundler_send_user_operation_invalid_hash(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    patch_transport(
        monkeypatch, bundler, {"eth_sendUserOperation": "0x1234"})
    ret = await Bundler(BUNDLER_URL).send_user_operation(ENTRY_POINT, {})
    assert isinstance(ret, Err)
    assert ret.error.code == UserOpErrorCode.UnknownError


@pytest.mark.asyncio
async def test_bundler_user_operation_lookups(monkeypatch):
    from soulwallet_sdk.bundler import bundler

    user_operation_hash = "0x" + "12" * 32
    requests = patch_transport(
        monkeypatch,
        bundler,
        {
            "eth_getUserOperationByHash": None,
            "eth_getUserOperationReceipt": {
                "userOpHash": user_operation_hash,
                "success": True,
            },
        },
    )
    client = Bundler(BUNDLER_URL)

    assert await client.get_user_operation_by_hash(user_operation_hash) == Ok(None)
    receipt = await client.get_user_operation_receipt(user_operation_hash)
    assert receipt.is_ok()
    assert receipt.value["success"]
    assert requests[1][2] == [user_operation_hash]

"""
Tests for the JSON-RPC client and the bundler / paymaster wrappers.
"""

import json

import httpx
import pytest

from gasless_relay.adapters.evm.constants import ENTRY_POINT_V06
from gasless_relay.adapters.evm.schemas import UserOperationModel
from gasless_relay.clients.bundler import BundlerClient, PaymasterClient
from gasless_relay.clients.jsonrpc_client import JsonRpcClient
from gasless_relay.engine.exceptions import BundlerError, JsonRpcError, PaymasterError, ProviderRpcError

from test_mocks import (
    MOCK_BUNDLER_URL,
    MOCK_PAYMASTER,
    MOCK_PAYMASTER_URL,
    MOCK_SMART_ACCOUNT,
    MOCK_TX_HASH,
    MOCK_USER_OP_HASH,
    jsonrpc_transport,
)


def sample_user_op() -> UserOperationModel:
    return UserOperationModel(sender=MOCK_SMART_ACCOUNT, nonce=0, callData="0x")


# ==================== JsonRpcClient ====================

@pytest.mark.asyncio
async def test_call_unwraps_result_and_numbers_requests():
    payloads = []

    def handle(request):
        payload = json.loads(request.content)
        payloads.append(payload)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x1"})

    async with JsonRpcClient("https://rpc.test", transport=httpx.MockTransport(handle)) as rpc:
        assert await rpc.call("eth_chainId") == "0x1"
        assert await rpc.call("eth_getCode", ["0x0", "latest"]) == "0x1"

    assert [p["id"] for p in payloads] == [1, 2]
    assert payloads[0]["params"] == []
    assert payloads[1]["params"] == ["0x0", "latest"]
    assert all(p["jsonrpc"] == "2.0" for p in payloads)


@pytest.mark.asyncio
async def test_error_object_raises_configured_error_class():
    transport = jsonrpc_transport({})
    async with JsonRpcClient("https://rpc.test", error_class=ProviderRpcError, transport=transport) as rpc:
        with pytest.raises(ProviderRpcError) as exc_info:
            await rpc.call("eth_unknown")

    assert exc_info.value.code == -32601
    assert "eth_unknown" in exc_info.value.rpc_message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>bad gateway</html>"),
        httpx.Response(200, json=[1, 2]),
        httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}),
    ],
)
async def test_malformed_payload_raises_json_rpc_error(response):
    transport = httpx.MockTransport(lambda request: response)
    async with JsonRpcClient("https://rpc.test", transport=transport) as rpc:
        with pytest.raises(JsonRpcError):
            await rpc.call("eth_chainId")


@pytest.mark.asyncio
async def test_http_status_errors_propagate_as_httpx_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async with JsonRpcClient("https://rpc.test", transport=transport) as rpc:
        with pytest.raises(httpx.HTTPStatusError):
            await rpc.call("eth_chainId")


# ==================== Bundler ====================

@pytest.mark.asyncio
async def test_bundler_queries():
    sent = []

    def send(params):
        sent.append(params)
        return MOCK_USER_OP_HASH

    transport = jsonrpc_transport({
        "eth_chainId": lambda params: "0x89",
        "eth_supportedEntryPoints": lambda params: [ENTRY_POINT_V06],
        "eth_estimateUserOperationGas": lambda params: {
            "callGasLimit": "0x1000",
            "verificationGasLimit": "0x2000",
            "preVerificationGas": "0x3000",
        },
        "eth_sendUserOperation": send,
    })
    bundler = BundlerClient(MOCK_BUNDLER_URL, ENTRY_POINT_V06, transport=transport)

    assert await bundler.chain_id() == 137
    assert await bundler.supported_entry_points() == [ENTRY_POINT_V06]
    estimate = await bundler.estimate_user_operation_gas(sample_user_op())
    assert estimate.verificationGasLimit == 0x2000
    assert await bundler.send_user_operation(sample_user_op()) == MOCK_USER_OP_HASH
    assert sent[0][1] == ENTRY_POINT_V06
    assert sent[0][0]["nonce"] == "0x0"
    await bundler.close()


@pytest.mark.asyncio
async def test_bundler_receipt_is_none_until_included():
    answers = [None, {"success": True, "receipt": {"transactionHash": MOCK_TX_HASH}}]
    transport = jsonrpc_transport({"eth_getUserOperationReceipt": lambda params: answers.pop(0)})
    bundler = BundlerClient(MOCK_BUNDLER_URL, ENTRY_POINT_V06, transport=transport)

    assert await bundler.get_user_operation_receipt(MOCK_USER_OP_HASH) is None
    receipt = await bundler.get_user_operation_receipt(MOCK_USER_OP_HASH)
    assert receipt.success
    assert receipt.tx_hash == MOCK_TX_HASH
    assert receipt.user_op_hash == MOCK_USER_OP_HASH


@pytest.mark.asyncio
async def test_bundler_rejection_is_bundler_error():
    def reject(params):
        raise ProviderRpcError("AA21 didn't pay prefund", code=-32500)

    transport = jsonrpc_transport({"eth_sendUserOperation": reject, "eth_estimateUserOperationGas": lambda p: {}})
    bundler = BundlerClient(MOCK_BUNDLER_URL, ENTRY_POINT_V06, transport=transport)

    with pytest.raises(BundlerError) as exc_info:
        await bundler.send_user_operation(sample_user_op())
    assert exc_info.value.code == -32500

    with pytest.raises(BundlerError, match="gas estimate"):
        await bundler.estimate_user_operation_gas(sample_user_op())


# ==================== Paymaster ====================

@pytest.mark.asyncio
async def test_paymaster_sponsorship_with_context():
    received = []

    def sponsor(params):
        received.append(params)
        return {"paymasterAndData": MOCK_PAYMASTER, "preVerificationGas": "0xc350"}

    transport = jsonrpc_transport({"pm_sponsorUserOperation": sponsor})
    paymaster = PaymasterClient(
        MOCK_PAYMASTER_URL,
        ENTRY_POINT_V06,
        context={"type": "payg"},
        transport=transport,
    )

    sponsorship = await paymaster.sponsor_user_operation(sample_user_op())

    assert sponsorship == {"paymasterAndData": MOCK_PAYMASTER, "preVerificationGas": 50_000}
    assert received[0][1:] == [ENTRY_POINT_V06, {"type": "payg"}]
    await paymaster.close()


@pytest.mark.asyncio
async def test_paymaster_plain_string_answer():
    transport = jsonrpc_transport({"pm_sponsorUserOperation": lambda params: MOCK_PAYMASTER})
    paymaster = PaymasterClient(MOCK_PAYMASTER_URL, ENTRY_POINT_V06, transport=transport)
    assert await paymaster.sponsor_user_operation(sample_user_op()) == {"paymasterAndData": MOCK_PAYMASTER}


@pytest.mark.asyncio
async def test_paymaster_refusal_and_malformed_answers():
    def refuse(params):
        raise ProviderRpcError("policy rejected", code=-32602)

    paymaster = PaymasterClient(
        MOCK_PAYMASTER_URL, ENTRY_POINT_V06, transport=jsonrpc_transport({"pm_sponsorUserOperation": refuse})
    )
    with pytest.raises(PaymasterError, match="policy rejected"):
        await paymaster.sponsor_user_operation(sample_user_op())

    paymaster = PaymasterClient(
        MOCK_PAYMASTER_URL,
        ENTRY_POINT_V06,
        transport=jsonrpc_transport({"pm_sponsorUserOperation": lambda params: {"foo": 1}}),
    )
    with pytest.raises(PaymasterError, match="paymasterAndData"):
        await paymaster.sponsor_user_operation(sample_user_op())

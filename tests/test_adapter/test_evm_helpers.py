"""
Tests for ABI helpers and ERC-4337 schema models.
"""

import pytest
from eth_abi import decode
from eth_abi.exceptions import EncodingError

from gasless_relay.adapters.evm.ERC20_ABI import (
    decode_address,
    decode_uint256,
    encode_balance_of,
    encode_create_account,
    encode_execute,
    encode_transfer,
)
from gasless_relay.adapters.evm.constants import ENTRY_POINT_V06
from gasless_relay.adapters.evm.schemas import (
    UserOperationGasEstimate,
    UserOperationModel,
    UserOperationReceipt,
    parse_quantity,
)

from test_mocks import MOCK_OWNER_ADDRESS, MOCK_RECIPIENT, MOCK_SMART_ACCOUNT, MOCK_TX_HASH


def test_transfer_call_data_layout():
    data = encode_transfer(MOCK_RECIPIENT, 100_000_000)

    assert data[:4].hex() == "a9059cbb"
    assert len(data) == 4 + 64
    recipient, amount = decode(["address", "uint256"], data[4:])
    assert recipient.lower() == MOCK_RECIPIENT.lower()
    assert amount == 100_000_000


def test_balance_of_call_data_layout():
    data = encode_balance_of(MOCK_OWNER_ADDRESS)
    assert data[:4].hex() == "70a08231"
    assert data[-20:].hex() == MOCK_OWNER_ADDRESS[2:].lower()


def test_execute_wraps_inner_call():
    inner = encode_transfer(MOCK_RECIPIENT, 1)
    data = encode_execute(MOCK_SMART_ACCOUNT, 0, inner)

    assert data[:4].hex() == "b61d27f6"
    dest, value, payload = decode(["address", "uint256", "bytes"], data[4:])
    assert dest.lower() == MOCK_SMART_ACCOUNT.lower()
    assert value == 0
    assert payload == inner


def test_create_account_selector():
    assert encode_create_account(MOCK_OWNER_ADDRESS, 0)[:4].hex() == "5fbfb9cf"


def test_encode_transfer_rejects_invalid_values():
    with pytest.raises(ValueError):
        encode_transfer("0x1234", 1)
    with pytest.raises(EncodingError):
        encode_transfer(MOCK_RECIPIENT, -1)


def test_decode_helpers_require_one_word():
    assert decode_uint256((5).to_bytes(32, "big")) == 5
    assert decode_address(bytes(12) + bytes.fromhex(MOCK_SMART_ACCOUNT[2:])) == MOCK_SMART_ACCOUNT
    with pytest.raises(ValueError):
        decode_uint256(b"")
    with pytest.raises(ValueError):
        decode_address(b"\x00" * 31)


def test_parse_quantity():
    assert parse_quantity("0x10") == 16
    assert parse_quantity("16") == 16
    assert parse_quantity(7) == 7
    assert parse_quantity(None) is None
    with pytest.raises(ValueError):
        parse_quantity(True)
    with pytest.raises(ValueError):
        parse_quantity("0xzz")


def _user_op(**overrides) -> UserOperationModel:
    fields = dict(
        sender=MOCK_SMART_ACCOUNT,
        nonce=3,
        callData="0x" + encode_transfer(MOCK_RECIPIENT, 1).hex(),
        callGasLimit=100_000,
        verificationGasLimit=200_000,
        preVerificationGas=50_000,
        maxFeePerGas=20,
        maxPriorityFeePerGas=1,
    )
    fields.update(overrides)
    return UserOperationModel(**fields)


def test_user_operation_rpc_dict_uses_hex_quantities():
    rpc = _user_op().to_rpc_dict()
    assert rpc["nonce"] == "0x3"
    assert rpc["callGasLimit"] == hex(100_000)
    assert rpc["initCode"] == "0x"
    assert rpc["paymasterAndData"] == "0x"
    assert set(rpc) == set(UserOperationModel.model_fields)


def test_user_operation_hash_binds_chain_and_entry_point():
    op = _user_op()
    digest = op.hash(ENTRY_POINT_V06, 1)

    assert len(digest) == 32
    assert op.hash(ENTRY_POINT_V06, 1) == digest
    assert op.hash(ENTRY_POINT_V06, 56) != digest
    assert op.hash(MOCK_SMART_ACCOUNT, 1) != digest
    assert _user_op(nonce=4).hash(ENTRY_POINT_V06, 1) != digest
    # The signature is not part of the signed payload
    assert _user_op(signature="0x1234").hash(ENTRY_POINT_V06, 1) == digest


def test_gas_estimate_requires_every_limit():
    estimate = UserOperationGasEstimate.from_rpc(
        {"callGasLimit": "0x10", "verificationGasLimit": "0x20", "preVerificationGas": 48}
    )
    assert (estimate.callGasLimit, estimate.verificationGasLimit, estimate.preVerificationGas) == (16, 32, 48)

    with pytest.raises(ValueError):
        UserOperationGasEstimate.from_rpc({"callGasLimit": "0x10"})


def test_receipt_from_rpc():
    receipt = UserOperationReceipt.from_rpc(
        "0xop",
        {
            "userOpHash": "0xop",
            "success": True,
            "actualGasUsed": "0x5208",
            "receipt": {"transactionHash": MOCK_TX_HASH, "blockNumber": "0x10", "status": "0x1"},
        },
    )
    assert receipt.success
    assert receipt.tx_hash == MOCK_TX_HASH
    assert receipt.block_number == 16
    assert receipt.gas_used == 21000


def test_receipt_falls_back_to_transaction_status():
    receipt = UserOperationReceipt.from_rpc(
        "0xop",
        {"receipt": {"transactionHash": MOCK_TX_HASH, "status": "0x0"}, "reason": "AA23 reverted"},
    )
    assert not receipt.success
    assert receipt.reason == "AA23 reverted"

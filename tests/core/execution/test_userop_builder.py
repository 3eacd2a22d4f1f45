"""
Tests for ERC-4337 UserOperation calldata builders.
"""

import pytest

from stakebridge.core.execution.encoding import selector
from stakebridge.core.execution.models import Call
from stakebridge.core.execution.userop import UserOperation, UserOpGasEstimate, UserOpReceipt
from stakebridge.core.execution.userop_builder import (
    build_execute_batch_call_data,
    build_factory_get_address_call,
    build_init_code,
    decode_address_word,
)


FACTORY = "0x9406Cc6185a346906296840746125a0E44976454"
OWNER = "0x1111111111111111111111111111111111111111"


def test_execute_batch_call_data_layout() -> None:
    calls = [
        Call(to="0x2222222222222222222222222222222222222222", data="0x1234"),
        Call(to="0x3333333333333333333333333333333333333333", data="0xabcdef"),
    ]

    call_data = build_execute_batch_call_data(calls)
    sel = selector("executeBatch(address[],bytes[])")
    assert call_data.startswith(sel)

    words = call_data[len(sel):]

    def word(index: int) -> str:
        return words[index * 64:(index + 1) * 64]

    # head: offset of address[] then offset of bytes[]
    assert int(word(0), 16) == 64
    assert int(word(1), 16) == 64 + 32 * 3
    # address[]: length + two targets, in call order
    assert int(word(2), 16) == 2
    assert word(3).endswith("2" * 40)
    assert word(4).endswith("3" * 40)
    # bytes[]: length, two offsets, then each length-prefixed item
    assert int(word(5), 16) == 2
    assert int(word(6), 16) == 64
    assert int(word(7), 16) == 128
    assert int(word(8), 16) == 2
    assert word(9).startswith("1234")
    assert int(word(10), 16) == 3
    assert word(11).startswith("abcdef")
    assert len(words) == 64 * 12


def test_execute_batch_requires_calls() -> None:
    with pytest.raises(ValueError):
        build_execute_batch_call_data([])


def test_init_code_prefixes_factory() -> None:
    init_code = build_init_code(FACTORY, OWNER, 0)

    assert init_code.startswith("0x" + FACTORY[2:].lower())
    assert init_code[42:50] == selector("createAccount(address,uint256)")[2:]


def test_factory_get_address_and_decode() -> None:
    data = build_factory_get_address_call(OWNER, 5)
    assert data.startswith(selector("getAddress(address,uint256)"))
    assert int(data[-64:], 16) == 5

    word = "0x" + "0" * 24 + "ab" * 20
    assert decode_address_word(word) == "0x" + "ab" * 20


def test_user_operation_cost_and_hash_are_stable() -> None:
    user_op = UserOperation(
        sender=OWNER,
        nonce=0,
        init_code="0x",
        call_data="0x",
        call_gas_limit=0,
        verification_gas_limit=0,
        pre_verification_gas=0,
        max_fee_per_gas=100,
        max_priority_fee_per_gas=1,
    )
    estimated = user_op.with_gas(UserOpGasEstimate.from_rpc({
        "callGasLimit": "0x10",
        "verificationGasLimit": "0x20",
        "preVerificationGas": "0x30",
    }))

    assert estimated.total_gas == 0x60
    assert estimated.max_cost == 0x60 * 100
    assert estimated.to_rpc_dict()["callGasLimit"] == "0x10"

    digest = estimated.hash("0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789", 137)
    assert digest.startswith("0x") and len(digest) == 66
    assert digest == estimated.hash("0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789", 137)
    assert digest != estimated.hash("0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789", 1)


def test_user_op_receipt_from_rpc() -> None:
    receipt = UserOpReceipt.from_rpc("0xop", {
        "success": True,
        "actualGasCost": "0x64",
        "receipt": {"transactionHash": "0xtx", "blockNumber": "0x10"},
    })

    assert receipt.success is True
    assert receipt.transaction_hash == "0xtx"
    assert receipt.block_number == 16
    assert receipt.actual_gas_cost == 100

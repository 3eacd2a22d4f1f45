"""
UserOperation calldata builders for a SimpleAccount-style smart account.
"""

from __future__ import annotations

from typing import Sequence

from .encoding import (
    encode_address,
    encode_address_array,
    encode_bytes_array,
    encode_uint,
    selector,
    strip_0x,
)
from .models import Call


EXECUTE_BATCH_SIGNATURE = "executeBatch(address[],bytes[])"


def build_execute_batch_call_data(calls: Sequence[Call]) -> str:
    """
    Build calldata for executeBatch(address[],bytes[]).

    Calls execute in sequence order inside one transaction; any revert undoes all of them.
    """
    if not calls:
        raise ValueError("Batch must contain at least one call")

    targets = encode_address_array([call.to for call in calls])
    payloads = encode_bytes_array([call.data for call in calls])
    # two dynamic params: offsets come first, then the encoded arrays
    head = encode_uint(64) + encode_uint(64 + len(targets) // 2)
    return selector(EXECUTE_BATCH_SIGNATURE) + head + targets + payloads


def build_entrypoint_get_nonce_call(sender: str, key: int = 0) -> str:
    """
    Build calldata for EntryPoint.getNonce(address,uint192).
    """
    return selector("getNonce(address,uint192)") + encode_address(sender) + encode_uint(key)


def build_factory_get_address_call(owner: str, salt: int) -> str:
    """
    Build calldata for SimpleAccountFactory.getAddress(address,uint256).
    """
    return selector("getAddress(address,uint256)") + encode_address(owner) + encode_uint(salt)


def build_init_code(factory: str, owner: str, salt: int) -> str:
    """
    initCode for an undeployed account: factory address followed by createAccount calldata.
    """
    create_call = selector("createAccount(address,uint256)") + encode_address(owner) + encode_uint(salt)
    return "0x" + strip_0x(factory).lower() + strip_0x(create_call)


def decode_address_word(word: str) -> str:
    hex_word = strip_0x(word)
    if len(hex_word) < 64:
        raise ValueError(f"Expected a 32-byte word, got {word!r}")
    return "0x" + hex_word[24:64]

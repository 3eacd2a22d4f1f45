"""
Minimal ABI encoding helpers for the handful of calls we build.
"""

from __future__ import annotations

from typing import List, Sequence

from eth_utils import keccak

MAX_UINT256 = 2**256 - 1


def strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def encode_uint(value: int) -> str:
    """Encode a uint256 as a 32-byte hex word (no 0x prefix)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int amount, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"Value out of uint256 range: {value}")
    return format(value, "064x")


def encode_address(address: str) -> str:
    if not isinstance(address, str):
        raise TypeError(f"Expected address string, got {type(address).__name__}")
    addr = strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    int(addr, 16)
    return addr.rjust(64, "0")


def encode_bytes(data: str) -> str:
    """Length-prefixed, right-padded dynamic bytes (no 0x prefix)."""
    hex_data = strip_0x(data)
    if len(hex_data) % 2 != 0:
        raise ValueError("Byte data must have an even-length hex string")
    data_len = len(hex_data) // 2
    padded_len = ((data_len + 31) // 32) * 32
    padding = "0" * ((padded_len - data_len) * 2)
    return encode_uint(data_len) + hex_data + padding


def encode_address_array(addresses: Sequence[str]) -> str:
    return encode_uint(len(addresses)) + "".join(encode_address(a) for a in addresses)


def encode_bytes_array(items: Sequence[str]) -> str:
    """Encode bytes[]: length, per-item offsets, then each item's body."""
    bodies: List[str] = [encode_bytes(item) for item in items]
    offsets: List[str] = []
    cursor = 32 * len(bodies)
    for body in bodies:
        offsets.append(encode_uint(cursor))
        cursor += len(body) // 2
    return encode_uint(len(bodies)) + "".join(offsets) + "".join(bodies)


def selector(signature: str) -> str:
    """4-byte function selector as 0x-prefixed hex."""
    return "0x" + keccak(text=signature)[:4].hex()


def keccak_hex(data: str) -> str:
    return keccak(hexstr=strip_0x(data) or "0x").hex()

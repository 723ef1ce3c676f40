"""
Minimal BCS (Binary Canonical Serialization) writer.

Covers what Sui transaction data needs: ULEB128 lengths and enum tags,
little-endian fixed-width integers, length-prefixed byte strings, 32-byte
addresses and Move type tags.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from pyth_sui.types import StructTag, TypeTag, VectorTag, address_bytes

T = TypeVar("T")

_PRIMITIVE_TAGS = {
    "bool": 0,
    "u8": 1,
    "u64": 2,
    "u128": 3,
    "address": 4,
    "signer": 5,
    "u16": 8,
    "u32": 9,
    "u256": 10,
}
_VECTOR_TAG = 6
_STRUCT_TAG = 7


class BcsWriter:
    def __init__(self) -> None:
        self._buf = bytearray()

    def uleb128(self, n: int) -> BcsWriter:
        if n < 0:
            raise ValueError(f"ULEB128 cannot encode negative value {n}")
        while True:
            byte = n & 0x7F
            n >>= 7
            if n:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return self

    def _uint(self, n: int, size: int) -> BcsWriter:
        if n < 0 or n >= 1 << (8 * size):
            raise ValueError(f"{n} does not fit in u{8 * size}")
        self._buf += n.to_bytes(size, "little")
        return self

    def u8(self, n: int) -> BcsWriter:
        return self._uint(n, 1)

    def u16(self, n: int) -> BcsWriter:
        return self._uint(n, 2)

    def u64(self, n: int) -> BcsWriter:
        return self._uint(n, 8)

    def boolean(self, value: bool) -> BcsWriter:
        self._buf.append(1 if value else 0)
        return self

    def fixed_bytes(self, data: bytes) -> BcsWriter:
        self._buf += data
        return self

    def byte_vector(self, data: bytes) -> BcsWriter:
        return self.uleb128(len(data)).fixed_bytes(data)

    def string(self, s: str) -> BcsWriter:
        return self.byte_vector(s.encode("utf-8"))

    def address(self, addr: str) -> BcsWriter:
        return self.fixed_bytes(address_bytes(addr))

    def sequence(self, items: Iterable[T], write_item: Callable[[T], object]) -> BcsWriter:
        items = list(items)
        self.uleb128(len(items))
        for item in items:
            write_item(item)
        return self

    def type_tag(self, tag: TypeTag) -> BcsWriter:
        if isinstance(tag, str):
            if tag not in _PRIMITIVE_TAGS:
                raise ValueError(f"Unknown primitive type {tag!r}")
            return self.uleb128(_PRIMITIVE_TAGS[tag])
        if isinstance(tag, VectorTag):
            self.uleb128(_VECTOR_TAG)
            return self.type_tag(tag.element)
        if isinstance(tag, StructTag):
            self.uleb128(_STRUCT_TAG)
            self.address(tag.address).string(tag.module).string(tag.name)
            return self.sequence(tag.type_params, self.type_tag)
        raise TypeError(f"Not a type tag: {tag!r}")

    def finish(self) -> bytes:
        return bytes(self._buf)


def encode_pure_bool(value: bool) -> bytes:
    return BcsWriter().boolean(value).finish()


def encode_pure_byte_vector(data: bytes) -> bytes:
    return BcsWriter().byte_vector(data).finish()


_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def b58decode(s: str) -> bytes:
    """Decode a Base58 (Bitcoin alphabet) string, as used for Sui object digests."""
    n = 0
    for ch in s:
        idx = _B58_ALPHABET.find(ch)
        if idx < 0:
            raise ValueError(f"Invalid base58 character {ch!r} in {s!r}")
        n = n * 58 + idx
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    leading = len(s) - len(s.lstrip("1"))
    return b"\x00" * leading + body

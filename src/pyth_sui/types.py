"""
Sui address and Move type-string handling.

Addresses and type strings coming back from the fullnode are canonicalised so
that comparisons (e.g. `<pkg>::price::Price`) do not depend on leading-zero
elision. `parse_type_tag` turns a type string into the structured tag that
BCS encoding needs for `type_arguments`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

PRIMITIVE_TYPES = frozenset({"bool", "u8", "u16", "u32", "u64", "u128", "u256", "address", "signer"})

_HEX_RE = re.compile(r"^[0-9a-fA-F]{1,64}$")
_ADDR_RE = re.compile(r"0x[0-9a-fA-F]{1,64}")
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def normalize_address(addr: str) -> str:
    """
    Canonicalize an address as 32-byte (64 hex) lowercase with 0x prefix.
    """
    s = addr.strip().lower()
    if not s.startswith("0x"):
        return addr
    h = s[2:]
    if not h:
        return "0x" + "0" * 64
    if len(h) > 64:
        return s
    return "0x" + h.rjust(64, "0")


def is_sui_address(addr: str) -> bool:
    s = addr.strip()
    return s[:2].lower() == "0x" and bool(_HEX_RE.match(s[2:]))


def address_bytes(addr: str) -> bytes:
    """
    Strictly decode an address into its 32 raw bytes.

    Raises:
        ValueError: If the value is not a 0x-prefixed hex address of at most 32 bytes.
    """
    if not is_sui_address(addr):
        raise ValueError(f"Invalid Sui address: {addr!r}")
    return bytes.fromhex(normalize_address(addr)[2:])


def normalize_type_string(type_str: str) -> str:
    """
    Canonicalize all `0x...` address literals inside a Sui type string by padding to 32 bytes.

    Examples:
      - "0x2::coin::Coin<0x2::sui::SUI>" -> "0x000...0002::coin::Coin<0x000...0002::sui::SUI>"
    """
    s = type_str.strip()

    def _sub(m: re.Match[str]) -> str:
        return normalize_address(m.group(0))

    return _ADDR_RE.sub(_sub, s)


def same_type(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return normalize_type_string(a).replace(" ", "") == normalize_type_string(b).replace(" ", "")


@dataclass(frozen=True)
class VectorTag:
    element: TypeTag

    def __str__(self) -> str:
        return f"vector<{self.element}>"


@dataclass(frozen=True)
class StructTag:
    address: str
    module: str
    name: str
    type_params: tuple[TypeTag, ...] = ()

    def __str__(self) -> str:
        base = f"{self.address}::{self.module}::{self.name}"
        if not self.type_params:
            return base
        return base + "<" + ", ".join(str(t) for t in self.type_params) + ">"


# Primitive tags are kept as their plain names ("bool", "u64", ...)
TypeTag = Union[str, VectorTag, StructTag]


class _TypeParser:
    def __init__(self, text: str) -> None:
        self.text = "".join(text.split())
        self.pos = 0

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _expect(self, ch: str) -> None:
        if self._peek() != ch:
            raise ValueError(f"Expected {ch!r} at position {self.pos} in type {self.text!r}")
        self.pos += 1

    def _path(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in "<>,":
            self.pos += 1
        return self.text[start : self.pos]

    def parse(self) -> TypeTag:
        path = self._path()
        if path in PRIMITIVE_TYPES:
            return path
        if path == "vector":
            self._expect("<")
            inner = self.parse()
            self._expect(">")
            return VectorTag(inner)

        parts = path.split("::")
        if len(parts) != 3 or not is_sui_address(parts[0]):
            raise ValueError(f"Invalid struct type {path!r} in {self.text!r}")
        if not (_IDENT_RE.match(parts[1]) and _IDENT_RE.match(parts[2])):
            raise ValueError(f"Invalid identifier in struct type {path!r}")

        params: list[TypeTag] = []
        if self._peek() == "<":
            self.pos += 1
            params.append(self.parse())
            while self._peek() == ",":
                self.pos += 1
                params.append(self.parse())
            self._expect(">")
        return StructTag(normalize_address(parts[0]), parts[1], parts[2], tuple(params))

    def parse_all(self) -> TypeTag:
        tag = self.parse()
        if self.pos != len(self.text):
            raise ValueError(f"Trailing characters in type {self.text!r} at position {self.pos}")
        return tag


def parse_type_tag(type_str: str) -> TypeTag:
    """
    Parse a Move type string such as `0x2::coin::Coin<0x2::sui::SUI>`.

    Raises:
        ValueError: If the string is not a well-formed type.
    """
    return _TypeParser(type_str).parse_all()


def parse_target(target: str) -> tuple[str, str, str]:
    """Split `package::module::function` into its normalized parts."""
    parts = target.split("::")
    if len(parts) != 3 or not is_sui_address(parts[0]):
        raise ValueError(f"Invalid move call target: {target!r}")
    if not (_IDENT_RE.match(parts[1]) and _IDENT_RE.match(parts[2])):
        raise ValueError(f"Invalid identifier in move call target: {target!r}")
    return normalize_address(parts[0]), parts[1], parts[2]

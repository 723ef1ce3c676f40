"""
Typed decoding of ledger objects returned by the Sui fullnode.

The JSON-RPC `content` payload is a loosely typed tree of `{"type", "fields"}`
nodes. Instead of handing that tree to callers, objects are decoded into a
small discriminated union (`MoveObject` | `MovePackage`) and nested structs are
read through `MoveStruct` accessors that raise `UnparsableError` on any missing
or mis-shaped field.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from pyth_sui.errors import UnparsableError
from pyth_sui.types import is_sui_address, normalize_address, same_type


@dataclass(frozen=True)
class ObjectRef:
    object_id: str
    version: int
    digest: str


@dataclass(frozen=True)
class ObjectOwner:
    kind: str  # "address" | "object" | "shared" | "immutable"
    address: str | None = None
    initial_shared_version: int | None = None

    @property
    def is_shared(self) -> bool:
        return self.kind == "shared"

    @classmethod
    def decode(cls, raw: Any) -> ObjectOwner:
        if raw == "Immutable":
            return cls(kind="immutable")
        if isinstance(raw, dict):
            if "AddressOwner" in raw:
                return cls(kind="address", address=normalize_address(str(raw["AddressOwner"])))
            if "ObjectOwner" in raw:
                return cls(kind="object", address=normalize_address(str(raw["ObjectOwner"])))
            shared = raw.get("Shared")
            if isinstance(shared, dict) and "initial_shared_version" in shared:
                return cls(kind="shared", initial_shared_version=_to_int(shared["initial_shared_version"], "owner"))
        raise UnparsableError(f"Unrecognised object owner: {raw!r}")


def _to_int(value: Any, context: str) -> int:
    if isinstance(value, bool):
        raise UnparsableError(f"Expected integer for {context}, found bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise UnparsableError(f"Expected integer for {context}, found {value!r}")


@dataclass(frozen=True)
class MoveStruct:
    """A decoded Move struct value: its declared type plus raw field map."""

    type: str | None
    fields: Mapping[str, Any]
    context: str = field(default="", compare=False)

    @classmethod
    def decode(cls, raw: Any, *, context: str = "") -> MoveStruct:
        if not isinstance(raw, dict) or not isinstance(raw.get("fields"), dict):
            raise UnparsableError(f"Expected a Move struct at {context or '<root>'}, found {type(raw).__name__}")
        t = raw.get("type")
        return cls(type=t if isinstance(t, str) else None, fields=raw["fields"], context=context)

    def _path(self, name: str) -> str:
        return f"{self.context}.{name}" if self.context else name

    def has(self, name: str) -> bool:
        return name in self.fields

    def is_type(self, expected: str) -> bool:
        return same_type(self.type, expected)

    def raw(self, name: str) -> Any:
        if name not in self.fields:
            raise UnparsableError(f"Missing field {self._path(name)}", data={"field": self._path(name)})
        return self.fields[name]

    def struct(self, name: str) -> MoveStruct:
        return MoveStruct.decode(self.raw(name), context=self._path(name))

    def structs(self, name: str) -> list[MoveStruct]:
        value = self.raw(name)
        if not isinstance(value, list):
            raise UnparsableError(f"Expected a vector at {self._path(name)}")
        return [MoveStruct.decode(v, context=f"{self._path(name)}[{i}]") for i, v in enumerate(value)]

    def u64(self, name: str) -> int:
        value = _to_int(self.raw(name), self._path(name))
        if value < 0:
            raise UnparsableError(f"Expected unsigned integer at {self._path(name)}, found {value}")
        return value

    def boolean(self, name: str) -> bool:
        value = self.raw(name)
        if not isinstance(value, bool):
            raise UnparsableError(f"Expected bool at {self._path(name)}, found {value!r}")
        return value

    def address(self, name: str) -> str:
        """Read an `address` or `ID` field, accepting the `{"id": ...}` UID form."""
        value = self.raw(name)
        if isinstance(value, dict) and "id" in value:
            value = value["id"]
        if not isinstance(value, str) or not is_sui_address(value):
            raise UnparsableError(f"Expected an address at {self._path(name)}, found {value!r}")
        return normalize_address(value)

    def byte_vector(self, name: str) -> bytes:
        value = self.raw(name)
        if not isinstance(value, list):
            raise UnparsableError(f"Expected vector<u8> at {self._path(name)}")
        try:
            return bytes(value)
        except (TypeError, ValueError) as e:
            raise UnparsableError(f"Invalid vector<u8> at {self._path(name)}: {e}") from e


@dataclass(frozen=True)
class MoveObject:
    ref: ObjectRef
    owner: ObjectOwner | None
    content: MoveStruct

    @property
    def object_id(self) -> str:
        return self.ref.object_id

    @property
    def type(self) -> str | None:
        return self.content.type


@dataclass(frozen=True)
class MovePackage:
    ref: ObjectRef
    owner: ObjectOwner | None

    @property
    def object_id(self) -> str:
        return self.ref.object_id


LedgerObject = Union[MoveObject, MovePackage]


def decode_object(data: Any) -> LedgerObject:
    """
    Decode the `data` member of a `sui_getObject` / `suix_getDynamicFieldObject` response.

    Raises:
        UnparsableError: If identity fields or content are missing, or the
            content discriminant is unknown.
    """
    if not isinstance(data, dict):
        raise UnparsableError(f"Expected object data, found {type(data).__name__}")
    try:
        ref = ObjectRef(
            object_id=normalize_address(str(data["objectId"])),
            version=_to_int(data["version"], "version"),
            digest=str(data["digest"]),
        )
    except KeyError as e:
        raise UnparsableError(f"Object data missing {e.args[0]}") from e

    owner = ObjectOwner.decode(data["owner"]) if data.get("owner") is not None else None

    content = data.get("content")
    if not isinstance(content, dict):
        raise UnparsableError(f"Object {ref.object_id} returned without content")

    data_type = content.get("dataType")
    if data_type == "moveObject":
        return MoveObject(ref=ref, owner=owner, content=MoveStruct.decode(content, context=ref.object_id))
    if data_type == "package":
        return MovePackage(ref=ref, owner=owner)
    raise UnparsableError(f"Unknown dataType {data_type!r} for object {ref.object_id}")

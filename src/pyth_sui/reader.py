"""Object and dynamic-field reads on top of `SuiRpcClient`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pyth_sui.errors import NotFoundError, TransportError, TypeMismatchError, UnparsableError
from pyth_sui.rpc import SuiRpcClient
from pyth_sui.values import MoveObject, MovePackage, decode_object

logger = logging.getLogger(__name__)

# Ledger error codes that mean "legitimately absent" rather than a failed call
_OBJECT_ABSENT_CODES = frozenset({"notExists", "deleted"})
_FIELD_ABSENT_CODES = frozenset({"dynamicFieldNotFound", "notExists", "deleted"})


@dataclass(frozen=True)
class DynamicFieldName:
    """Typed key of a dynamic field: a Move type tag plus its JSON-encoded value."""

    type: str
    value: Any

    @classmethod
    def byte_string(cls, tag: str) -> DynamicFieldName:
        """Key of type `vector<u8>` holding the UTF-8 bytes of `tag`."""
        return cls(type="vector<u8>", value=tag)

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value}


def _error_code(result: Any) -> str | None:
    if isinstance(result, dict) and isinstance(result.get("error"), dict):
        code = result["error"].get("code")
        return str(code) if code is not None else "unknown"
    return None


class ObjectReader:
    def __init__(self, client: SuiRpcClient) -> None:
        self.client = client

    async def fetch(self, object_id: str) -> MoveObject:
        """
        Fetch a Move object with content and owner.

        Raises:
            NotFoundError: Object does not exist (or was deleted).
            TypeMismatchError: Object is a package rather than a Move object.
            UnparsableError: Response lacks the expected fields.
        """
        result = await self.client.get_object(object_id)
        code = _error_code(result)
        if code is not None:
            if code in _OBJECT_ABSENT_CODES:
                raise NotFoundError(f"Object {object_id} not found ({code})", data={"objectId": object_id})
            raise TransportError(f"Unexpected ledger error {code} fetching {object_id}", code=code)

        if not isinstance(result, dict) or result.get("data") is None:
            raise NotFoundError(f"Object {object_id} not found", data={"objectId": object_id})

        obj = decode_object(result["data"])
        if isinstance(obj, MovePackage):
            raise TypeMismatchError(
                f"Expected {object_id} to be a moveObject",
                expected="moveObject",
                found="package",
            )
        return obj

    async def fetch_dynamic_field(self, parent_id: str, name: DynamicFieldName) -> MoveObject | None:
        """
        Look up a dynamic field of `parent_id` keyed by a typed `name`.

        Returns None only when the ledger reports the key as absent; any other
        failure propagates.
        """
        result = await self.client.get_dynamic_field_object(parent_id, name.to_json())
        code = _error_code(result)
        if code is not None:
            if code in _FIELD_ABSENT_CODES:
                logger.debug(f"dynamic field {name.type}={name.value!r} absent under {parent_id}")
                return None
            raise TransportError(f"Unexpected ledger error {code} reading dynamic field of {parent_id}", code=code)

        if not isinstance(result, dict):
            raise UnparsableError(f"Malformed dynamic field response for {parent_id}")
        data = result.get("data")
        if data is None:
            return None
        if not isinstance(data, dict) or data.get("content") is None:
            return None

        obj = decode_object(data)
        if isinstance(obj, MovePackage):
            raise TypeMismatchError(
                f"Dynamic field {name.value!r} of {parent_id} is not a moveObject",
                expected="moveObject",
                found="package",
            )
        return obj

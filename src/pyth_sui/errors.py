"""Adapter error type definitions.

Every failure the adapter surfaces derives from `AdapterError`, so callers can
catch one base class and still branch on `kind`. Absence of a price feed is not
an error; it is returned as `None` by the read accessors.
"""

from __future__ import annotations

from typing import Any


class AdapterError(Exception):
    """Base class for adapter errors."""

    kind = "adapter_error"

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        self.message = message
        self.data = data or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a JSON-serializable dictionary."""
        return {
            "kind": self.kind,
            "message": self.message,
            "data": self.data,
        }


class NotFoundError(AdapterError):
    """Object or dynamic field does not exist on the ledger."""

    kind = "not_found"


class TypeMismatchError(AdapterError):
    """On-chain data discriminant or Move type differs from what was expected."""

    kind = "type_mismatch"

    def __init__(self, message: str, *, expected: str, found: str | None):
        super().__init__(message, data={"expected": expected, "found": found})
        self.expected = expected
        self.found = found


class UnparsableError(AdapterError):
    """A required field is missing or has the wrong shape."""

    kind = "unparsable"


class UpgradeCapabilityMissingError(AdapterError):
    """State object carries no `upgrade_cap.package` reference."""

    kind = "upgrade_capability_missing"

    def __init__(self, object_id: str):
        super().__init__(f"upgrade_cap not found on object {object_id}", data={"objectId": object_id})
        self.object_id = object_id


class UnimplementedError(AdapterError):
    """Operation intentionally not supported."""

    kind = "unimplemented"


class TransportError(AdapterError):
    """Network failure or ledger-level rejection, passed through with the endpoint's message."""

    kind = "transport_failure"

    def __init__(self, message: str, *, code: int | str | None = None, url: str | None = None):
        super().__init__(message, data={"code": code, "url": url})
        self.code = code
        self.url = url


class InvalidVaaError(AdapterError):
    """Signed message bytes are structurally malformed."""

    kind = "invalid_vaa"


class WitnessMismatchError(AdapterError):
    """Governance witness type is not scoped to the oracle package."""

    kind = "witness_mismatch"

    def __init__(self, witness_type: str, expected: str):
        super().__init__(
            f"Governance witness {witness_type} does not match {expected}",
            data={"witnessType": witness_type, "expected": expected},
        )


class ConsumedValueError(AdapterError):
    """A transaction-scoped value was passed to more than one command."""

    kind = "consumed_value"


class UnconsumedValueError(AdapterError):
    """A transaction-scoped value was produced but never consumed."""

    kind = "unconsumed_value"


class DryRunFailedError(AdapterError):
    """The dry run aborted, so no budget can be derived and nothing is signed."""

    kind = "dry_run_failed"

    def __init__(self, error: str | None, status: str | None = None):
        super().__init__(
            f"Dry run failed, could not determine a gas budget: {error}",
            data={"status": status, "error": error},
        )
        self.error = error
        self.status = status

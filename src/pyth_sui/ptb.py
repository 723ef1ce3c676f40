"""
Programmable transaction block (PTB) builder.

Values produced inside a transaction (decree ticket, verified VAA, decree
receipt, upgrade ticket and receipt) have no identity outside it and must be
consumed exactly once. `TransactionResult` enforces that at build time:
passing a result to a second command raises `ConsumedValueError`, and sealing a
transaction that still holds an unconsumed result raises `UnconsumedValueError`.

`to_spec()` renders the block in the JSON call-spec shape used for logging:

    {"calls": [{"target": "0x..::m::f", "type_args": [...],
                "args": [{"object": {...}}, {"bool": false}, {"nested_result": [0, 0]}]}],
     "gas_budget": 123}
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union, cast

from pyth_sui.bcs import encode_pure_bool, encode_pure_byte_vector
from pyth_sui.errors import ConsumedValueError, UnconsumedValueError
from pyth_sui.types import TypeTag, normalize_address, parse_target, parse_type_tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GasCoin:
    pass


@dataclass(frozen=True)
class Input:
    index: int


@dataclass(frozen=True)
class NestedResult:
    command: int
    result: int = 0


Argument = Union[GasCoin, Input, NestedResult]


@dataclass
class ObjectCallArg:
    object_id: str
    mutable: bool


@dataclass(frozen=True)
class PureCallArg:
    value: bytes
    spec: dict[str, Any]


CallArg = Union[ObjectCallArg, PureCallArg]


@dataclass(frozen=True)
class MoveCall:
    package: str
    module: str
    function: str
    type_arguments: tuple[TypeTag, ...]
    arguments: tuple[Argument, ...]

    @property
    def target(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"


@dataclass(frozen=True)
class Upgrade:
    modules: tuple[bytes, ...]
    dependencies: tuple[str, ...]
    package: str
    ticket: Argument


Command = Union[MoveCall, Upgrade]


class TransactionResult:
    """Move-once handle to the single value returned by a command."""

    def __init__(self, command: int, label: str, owner: ProgrammableTransaction) -> None:
        self.command = command
        self.label = label
        self.owner = owner
        self.consumed_by: int | None = None

    @property
    def consumed(self) -> bool:
        return self.consumed_by is not None

    def __repr__(self) -> str:
        state = f"consumed by #{self.consumed_by}" if self.consumed else "live"
        return f"TransactionResult({self.label} from #{self.command}, {state})"


class ProgrammableTransaction:
    def __init__(self) -> None:
        self.inputs: list[CallArg] = []
        self.commands: list[Command] = []
        self.gas_budget: int | None = None
        self._results: list[TransactionResult] = []
        self._object_inputs: dict[str, int] = {}
        self._sealed = False

    # -- inputs ---------------------------------------------------------------

    def object(self, object_id: str, *, mutable: bool = True) -> Input:
        """Reference an on-chain object; repeated references share one input."""
        oid = normalize_address(object_id)
        idx = self._object_inputs.get(oid)
        if idx is not None:
            existing = cast(ObjectCallArg, self.inputs[idx])
            existing.mutable = existing.mutable or mutable
            return Input(idx)
        self.inputs.append(ObjectCallArg(object_id=oid, mutable=mutable))
        self._object_inputs[oid] = len(self.inputs) - 1
        return Input(len(self.inputs) - 1)

    def pure_bool(self, value: bool) -> Input:
        self.inputs.append(PureCallArg(value=encode_pure_bool(value), spec={"bool": value}))
        return Input(len(self.inputs) - 1)

    def pure_bytes(self, data: bytes) -> Input:
        """A `vector<u8>` argument."""
        self.inputs.append(PureCallArg(value=encode_pure_byte_vector(data), spec={"vector_u8_hex": "0x" + data.hex()}))
        return Input(len(self.inputs) - 1)

    # -- commands -------------------------------------------------------------

    def _check_open(self) -> None:
        if self._sealed:
            raise RuntimeError("Transaction is sealed; no further commands may be added")

    def _take(self, args: Sequence[Argument | TransactionResult]) -> tuple[Argument, ...]:
        command = len(self.commands)
        seen: set[int] = set()
        for a in args:
            if not isinstance(a, TransactionResult):
                continue
            if a.owner is not self:
                raise ValueError(f"{a.label} belongs to a different transaction")
            if a.consumed or id(a) in seen:
                raise ConsumedValueError(
                    f"{a.label} (result of command #{a.command}) was already consumed by command "
                    f"#{command if a.consumed_by is None else a.consumed_by}",
                    data={"label": a.label, "command": a.command, "consumedBy": a.consumed_by},
                )
            seen.add(id(a))
        out: list[Argument] = []
        for a in args:
            if isinstance(a, TransactionResult):
                a.consumed_by = command
                out.append(NestedResult(a.command, 0))
            elif isinstance(a, (GasCoin, Input, NestedResult)):
                out.append(a)
            else:
                raise TypeError(f"Not a transaction argument: {a!r}")
        return tuple(out)

    def _produce(self, label: str) -> TransactionResult:
        result = TransactionResult(len(self.commands) - 1, label, self)
        self._results.append(result)
        return result

    def move_call(
        self,
        target: str,
        arguments: Sequence[Argument | TransactionResult] = (),
        type_arguments: Sequence[str] = (),
        *,
        returns: str | None = None,
    ) -> TransactionResult | None:
        """
        Append `package::module::function(arguments)`.

        If `returns` names the produced value, a move-once handle to it is returned.
        """
        self._check_open()
        package, module, function = parse_target(target)
        type_tags = tuple(parse_type_tag(t) for t in type_arguments)
        args = self._take(arguments)
        self.commands.append(
            MoveCall(package=package, module=module, function=function, type_arguments=type_tags, arguments=args)
        )
        return self._produce(returns) if returns else None

    def upgrade(
        self,
        *,
        modules: Sequence[bytes],
        dependencies: Sequence[str],
        package_id: str,
        ticket: TransactionResult,
    ) -> TransactionResult:
        """Ledger-level package upgrade; yields the upgrade receipt."""
        self._check_open()
        (ticket_arg,) = self._take([ticket])
        self.commands.append(
            Upgrade(
                modules=tuple(bytes(m) for m in modules),
                dependencies=tuple(normalize_address(d) for d in dependencies),
                package=normalize_address(package_id),
                ticket=ticket_arg,
            )
        )
        return self._produce("upgrade_receipt")

    # -- finalisation ---------------------------------------------------------

    def set_gas_budget(self, budget: int) -> None:
        if budget < 0:
            raise ValueError(f"gas budget must be >= 0, got {budget}")
        self.gas_budget = budget

    def seal(self) -> None:
        """Close the block to new commands after checking every produced value was consumed."""
        dangling = [r for r in self._results if not r.consumed]
        if dangling:
            raise UnconsumedValueError(
                "Transaction leaves values unconsumed: " + ", ".join(repr(r) for r in dangling),
                data={"labels": [r.label for r in dangling]},
            )
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def targets(self) -> list[str]:
        return [c.target if isinstance(c, MoveCall) else "upgrade" for c in self.commands]

    def _arg_spec(self, arg: Argument) -> dict[str, Any]:
        if isinstance(arg, GasCoin):
            return {"gas_coin": True}
        if isinstance(arg, NestedResult):
            return {"nested_result": [arg.command, arg.result]}
        call_arg = self.inputs[arg.index]
        if isinstance(call_arg, ObjectCallArg):
            return {"object": {"id": call_arg.object_id, "mutable": call_arg.mutable}}
        return call_arg.spec

    def to_spec(self) -> dict[str, Any]:
        calls: list[dict[str, Any]] = []
        for c in self.commands:
            if isinstance(c, MoveCall):
                calls.append(
                    {
                        "target": c.target,
                        "type_args": [str(t) for t in c.type_arguments],
                        "args": [self._arg_spec(a) for a in c.arguments],
                    }
                )
            else:
                calls.append(
                    {
                        "upgrade": {
                            "package": c.package,
                            "modules": len(c.modules),
                            "dependencies": list(c.dependencies),
                            "ticket": self._arg_spec(c.ticket),
                        }
                    }
                )
        return {"calls": calls, "gas_budget": self.gas_budget}

"""
BCS encoding of Sui `TransactionData` for a programmable transaction.

    TransactionData::V1 {
        kind: TransactionKind::ProgrammableTransaction { inputs, commands },
        sender, gas_data: { payment, owner, price, budget },
        expiration: None,
    }

Object inputs must be resolved first: shared objects need their
`initial_shared_version`, owned/immutable ones a full object reference.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union

from pyth_sui.bcs import BcsWriter, b58decode
from pyth_sui.ptb import (
    Argument,
    GasCoin,
    Input,
    MoveCall,
    NestedResult,
    ObjectCallArg,
    ProgrammableTransaction,
    PureCallArg,
    Upgrade,
)
from pyth_sui.values import ObjectRef

# enum variant indices
_TX_DATA_V1 = 0
_KIND_PROGRAMMABLE = 0
_CALL_ARG_PURE = 0
_CALL_ARG_OBJECT = 1
_OBJECT_ARG_IMM_OR_OWNED = 0
_OBJECT_ARG_SHARED = 1
_COMMAND_MOVE_CALL = 0
_COMMAND_UPGRADE = 6
_ARG_GAS_COIN = 0
_ARG_INPUT = 1
_ARG_NESTED_RESULT = 3
_EXPIRATION_NONE = 0


@dataclass(frozen=True)
class SharedObjectArg:
    object_id: str
    initial_shared_version: int
    mutable: bool


@dataclass(frozen=True)
class OwnedObjectArg:
    ref: ObjectRef


ResolvedObjectArg = Union[SharedObjectArg, OwnedObjectArg]


@dataclass(frozen=True)
class GasData:
    payment: tuple[ObjectRef, ...]
    owner: str
    price: int
    budget: int


def _object_ref(w: BcsWriter, ref: ObjectRef) -> None:
    digest = b58decode(ref.digest)
    if len(digest) != 32:
        raise ValueError(f"Object digest for {ref.object_id} must decode to 32 bytes, got {len(digest)}")
    w.address(ref.object_id).u64(ref.version).byte_vector(digest)


def _argument(w: BcsWriter, arg: Argument) -> None:
    if isinstance(arg, GasCoin):
        w.uleb128(_ARG_GAS_COIN)
    elif isinstance(arg, Input):
        w.uleb128(_ARG_INPUT).u16(arg.index)
    elif isinstance(arg, NestedResult):
        w.uleb128(_ARG_NESTED_RESULT).u16(arg.command).u16(arg.result)
    else:
        raise TypeError(f"Unknown argument {arg!r}")


def _call_arg(w: BcsWriter, index: int, arg: ObjectCallArg | PureCallArg, resolved: Mapping[int, ResolvedObjectArg]) -> None:
    if isinstance(arg, PureCallArg):
        w.uleb128(_CALL_ARG_PURE).byte_vector(arg.value)
        return
    obj = resolved.get(index)
    if obj is None:
        raise ValueError(f"Object input #{index} ({arg.object_id}) has not been resolved")
    w.uleb128(_CALL_ARG_OBJECT)
    if isinstance(obj, SharedObjectArg):
        w.uleb128(_OBJECT_ARG_SHARED).address(obj.object_id).u64(obj.initial_shared_version).boolean(obj.mutable)
    else:
        w.uleb128(_OBJECT_ARG_IMM_OR_OWNED)
        _object_ref(w, obj.ref)


def _command(w: BcsWriter, cmd: MoveCall | Upgrade) -> None:
    if isinstance(cmd, MoveCall):
        w.uleb128(_COMMAND_MOVE_CALL)
        w.address(cmd.package).string(cmd.module).string(cmd.function)
        w.sequence(cmd.type_arguments, w.type_tag)
        w.sequence(cmd.arguments, lambda a: _argument(w, a))
    elif isinstance(cmd, Upgrade):
        w.uleb128(_COMMAND_UPGRADE)
        w.sequence(cmd.modules, w.byte_vector)
        w.sequence(cmd.dependencies, w.address)
        w.address(cmd.package)
        _argument(w, cmd.ticket)
    else:
        raise TypeError(f"Unknown command {cmd!r}")


def encode_transaction_data(
    tx: ProgrammableTransaction,
    resolved: Mapping[int, ResolvedObjectArg],
    *,
    sender: str,
    gas: GasData,
) -> bytes:
    w = BcsWriter()
    w.uleb128(_TX_DATA_V1)
    w.uleb128(_KIND_PROGRAMMABLE)
    w.uleb128(len(tx.inputs))
    for i, arg in enumerate(tx.inputs):
        _call_arg(w, i, arg, resolved)
    w.sequence(tx.commands, lambda c: _command(w, c))
    w.address(sender)
    w.sequence(gas.payment, lambda r: _object_ref(w, r))
    w.address(gas.owner).u64(gas.price).u64(gas.budget)
    w.uleb128(_EXPIRATION_NONE)
    return w.finish()

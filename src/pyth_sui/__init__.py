"""Pyth oracle contract adapter for Sui."""

from pyth_sui.contract import ContractIdentity, SuiChain, SuiContract
from pyth_sui.errors import (
    AdapterError,
    ConsumedValueError,
    DryRunFailedError,
    InvalidVaaError,
    NotFoundError,
    TransportError,
    TypeMismatchError,
    UnconsumedValueError,
    UnimplementedError,
    UnparsableError,
    UpgradeCapabilityMissingError,
    WitnessMismatchError,
)
from pyth_sui.executor import ExecutionResult, TransactionExecutor
from pyth_sui.keys import Ed25519Keypair
from pyth_sui.price import PriceFeed, PriceRecord
from pyth_sui.state import DataSource

__all__ = [
    "AdapterError",
    "ConsumedValueError",
    "ContractIdentity",
    "DataSource",
    "DryRunFailedError",
    "Ed25519Keypair",
    "ExecutionResult",
    "InvalidVaaError",
    "NotFoundError",
    "PriceFeed",
    "PriceRecord",
    "SuiChain",
    "SuiContract",
    "TransactionExecutor",
    "TransportError",
    "TypeMismatchError",
    "UnconsumedValueError",
    "UnimplementedError",
    "UnparsableError",
    "UpgradeCapabilityMissingError",
    "WitnessMismatchError",
]

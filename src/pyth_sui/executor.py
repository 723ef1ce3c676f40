"""
Sign and submit programmable transactions.

The flow mirrors a wallet's `signAndExecute` with an explicit budget:

1. seal the transaction (every transaction-scoped value consumed)
2. resolve object inputs to shared / owned references
3. pick the sender's SUI coins for gas payment
4. dry-run to estimate gas, declare `GAS_BUDGET_SAFETY_FACTOR` x estimate
5. BCS-encode, sign and execute

There are no retries. A dry run that aborts raises `DryRunFailedError` before
anything is signed. A transaction that executed but aborted comes back as an
`ExecutionResult` with `succeeded == False`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, cast

import httpx

from pyth_sui.constants import (
    DEFAULT_RPC_URL,
    DRY_RUN_GAS_BUDGET,
    GAS_BUDGET_SAFETY_FACTOR,
    MAX_GAS_PAYMENT_OBJECTS,
)
from pyth_sui.errors import DryRunFailedError, NotFoundError, UnparsableError
from pyth_sui.keys import Ed25519Keypair
from pyth_sui.logging import TransactionLog
from pyth_sui.ptb import ObjectCallArg, ProgrammableTransaction
from pyth_sui.reader import ObjectReader
from pyth_sui.rpc import SuiRpcClient
from pyth_sui.transaction import (
    GasData,
    OwnedObjectArg,
    ResolvedObjectArg,
    SharedObjectArg,
    encode_transaction_data,
)
from pyth_sui.types import normalize_address
from pyth_sui.values import ObjectRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    digest: str | None
    effects: dict[str, Any] = field(default_factory=dict)
    events: list[Any] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, raw: Any) -> ExecutionResult:
        if not isinstance(raw, dict):
            raise UnparsableError(f"Unexpected execution response: {raw!r}")
        return cls(
            digest=raw.get("digest"),
            effects=raw.get("effects") or {},
            events=raw.get("events") or [],
            raw=raw,
        )

    @property
    def status(self) -> str | None:
        status = self.effects.get("status")
        return status.get("status") if isinstance(status, dict) else None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @property
    def error(self) -> str | None:
        status = self.effects.get("status")
        return status.get("error") if isinstance(status, dict) else None


@dataclass(frozen=True)
class _GasCoins:
    refs: tuple[ObjectRef, ...]
    balance: int


def gas_budget_for(estimate: int) -> int:
    return estimate * GAS_BUDGET_SAFETY_FACTOR


def gas_estimate_from_effects(effects: dict[str, Any]) -> int:
    """Upper bound of a dry run's gas: computation + storage, rebate ignored."""
    gas_used = effects.get("gasUsed")
    if not isinstance(gas_used, dict):
        raise UnparsableError("Dry run effects carry no gasUsed")
    try:
        return int(gas_used["computationCost"]) + int(gas_used["storageCost"])
    except (KeyError, TypeError, ValueError) as e:
        raise UnparsableError(f"Malformed gasUsed in dry run: {gas_used!r}") from e


class TransactionExecutor:
    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: TransactionLog | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.transport = transport
        self.log = log

    def _session(self) -> SuiRpcClient:
        return SuiRpcClient(self.rpc_url, transport=self.transport)

    async def _resolve_inputs(self, reader: ObjectReader, tx: ProgrammableTransaction) -> dict[int, ResolvedObjectArg]:
        resolved: dict[int, ResolvedObjectArg] = {}
        for i, arg in enumerate(tx.inputs):
            if not isinstance(arg, ObjectCallArg):
                continue
            obj = await reader.fetch(arg.object_id)
            owner = obj.owner
            if owner is not None and owner.is_shared:
                resolved[i] = SharedObjectArg(
                    object_id=arg.object_id,
                    initial_shared_version=cast(int, owner.initial_shared_version),
                    mutable=arg.mutable,
                )
            else:
                resolved[i] = OwnedObjectArg(ref=obj.ref)
            logger.debug(f"input #{i} {arg.object_id} resolved as {resolved[i]}")
        return resolved

    async def _gas_coins(self, client: SuiRpcClient, owner: str) -> _GasCoins:
        refs: list[ObjectRef] = []
        balance = 0
        cursor: str | None = None
        while len(refs) < MAX_GAS_PAYMENT_OBJECTS:
            page = await client.get_coins(owner, cursor=cursor)
            for coin in page.get("data") or []:
                try:
                    refs.append(
                        ObjectRef(
                            object_id=normalize_address(coin["coinObjectId"]),
                            version=int(coin["version"]),
                            digest=str(coin["digest"]),
                        )
                    )
                    balance += int(coin["balance"])
                except (KeyError, TypeError, ValueError) as e:
                    raise UnparsableError(f"Malformed coin entry for {owner}: {coin!r}") from e
                if len(refs) >= MAX_GAS_PAYMENT_OBJECTS:
                    break
            if not page.get("hasNextPage"):
                break
            cursor = page.get("nextCursor")
        if not refs:
            raise NotFoundError(f"No SUI coins available for gas payment owned by {owner}", data={"owner": owner})
        return _GasCoins(refs=tuple(refs), balance=balance)

    async def _estimate(
        self,
        client: SuiRpcClient,
        tx: ProgrammableTransaction,
        resolved: dict[int, ResolvedObjectArg],
        sender: str,
        coins: _GasCoins,
        gas_price: int,
    ) -> int:
        provisional = GasData(
            payment=coins.refs,
            owner=sender,
            price=gas_price,
            budget=min(DRY_RUN_GAS_BUDGET, coins.balance),
        )
        dry_run = await client.dry_run_transaction_block(
            encode_transaction_data(tx, resolved, sender=sender, gas=provisional)
        )
        effects = dry_run.get("effects") if isinstance(dry_run, dict) else None
        if not isinstance(effects, dict):
            raise UnparsableError("Dry run response carries no effects")
        status = effects.get("status") or {}
        if status.get("status") != "success":
            logger.warning(f"Dry run did not succeed: {status.get('error', status)}")
            raise DryRunFailedError(status.get("error"), status=status.get("status"))
        estimate = gas_estimate_from_effects(effects)
        logger.debug(f"gas estimate {estimate} at price {gas_price}")
        return estimate

    async def estimate_gas(self, tx: ProgrammableTransaction, sender: str) -> int:
        """Dry-run `tx` as `sender` and return computation + storage cost."""
        sender = normalize_address(sender)
        async with self._session() as client:
            resolved = await self._resolve_inputs(ObjectReader(client), tx)
            gas_price = await client.get_reference_gas_price()
            coins = await self._gas_coins(client, sender)
            return await self._estimate(client, tx, resolved, sender, coins, gas_price)

    async def execute(self, tx: ProgrammableTransaction, keypair: Ed25519Keypair) -> ExecutionResult:
        """
        Seal, budget, sign and submit `tx`.

        Raises:
            UnconsumedValueError: A produced value was never consumed.
            NotFoundError: An input object or the sender's gas coins are missing.
            DryRunFailedError: The dry run aborted; nothing was signed or submitted.
            TransportError: The node rejected the request.
        """
        if not tx.sealed:
            tx.seal()
        sender = keypair.address()

        async with self._session() as client:
            resolved = await self._resolve_inputs(ObjectReader(client), tx)
            gas_price = await client.get_reference_gas_price()
            coins = await self._gas_coins(client, sender)
            estimate = await self._estimate(client, tx, resolved, sender, coins, gas_price)
            budget = gas_budget_for(estimate)
            tx.set_gas_budget(budget)

            tx_bytes = encode_transaction_data(
                tx,
                resolved,
                sender=sender,
                gas=GasData(payment=coins.refs, owner=sender, price=gas_price, budget=budget),
            )
            signature = keypair.sign_transaction(tx_bytes)

            logger.info(f"Submitting transaction from {sender}: {' -> '.join(tx.targets)} (budget {budget})")
            if self.log is not None:
                self.log.tx_submitted(sender=sender, gas_budget=budget, gas_price=gas_price, spec=tx.to_spec())

            raw = await client.execute_transaction_block(tx_bytes, [signature])

        result = ExecutionResult.from_response(raw)
        if self.log is not None:
            self.log.tx_executed(digest=result.digest, status=result.status, error=result.error)
        if result.succeeded:
            logger.info(f"Transaction {result.digest} executed")
        else:
            logger.warning(f"Transaction {result.digest} finished with status {result.status}: {result.error}")
        return result

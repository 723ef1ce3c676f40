"""
`SuiContract`: the Pyth oracle deployment on one Sui chain.

A contract is identified by its chain plus two shared objects, the Pyth state
and the Wormhole state it binds to. Package ids are derived from those states
on every call. Each public method opens its own RPC session and closes it
before returning.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from pyth_sui.constants import CONTRACT_TYPE, DEFAULT_RPC_URL
from pyth_sui.errors import UnimplementedError
from pyth_sui.executor import ExecutionResult, TransactionExecutor
from pyth_sui.governance import GovernancePipeline
from pyth_sui.keys import Ed25519Keypair
from pyth_sui.logging import TransactionLog
from pyth_sui.packages import PackageResolver
from pyth_sui.price import PriceFeed
from pyth_sui.reader import ObjectReader
from pyth_sui.rpc import SuiRpcClient
from pyth_sui.state import DataSource, StateAccessor

logger = logging.getLogger(__name__)

CHAIN_TYPE = "SuiChain"


@dataclass(frozen=True)
class SuiChain:
    id: str
    rpc_url: str = DEFAULT_RPC_URL
    mainnet: bool = True

    def get_id(self) -> str:
        return self.id

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "mainnet": self.mainnet, "rpcUrl": self.rpc_url, "type": CHAIN_TYPE}

    @classmethod
    def from_json(cls, parsed: dict[str, Any]) -> SuiChain:
        if parsed.get("type") != CHAIN_TYPE:
            raise ValueError(f"Invalid chain type {parsed.get('type')!r}")
        return cls(id=parsed["id"], rpc_url=parsed["rpcUrl"], mainnet=bool(parsed.get("mainnet", True)))


@dataclass(frozen=True, eq=False)
class ContractIdentity:
    """Chain id plus state ids; equal whenever `get_id()` is equal."""

    chain_id: str
    state_id: str
    wormhole_state_id: str

    def get_id(self) -> str:
        return f"{self.chain_id}_{self.state_id}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContractIdentity):
            return NotImplemented
        return self.get_id() == other.get_id()

    def __hash__(self) -> int:
        return hash(self.get_id())


def _as_keypair(key: Ed25519Keypair | str) -> Ed25519Keypair:
    if isinstance(key, Ed25519Keypair):
        return key
    return Ed25519Keypair.from_secret_key_hex(key)


class SuiContract:
    type = CONTRACT_TYPE

    def __init__(
        self,
        chain: SuiChain,
        state_id: str,
        wormhole_state_id: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: TransactionLog | None = None,
    ) -> None:
        """
        Args:
            chain: Chain the contract is deployed on.
            state_id: Id of the Pyth state object.
            wormhole_state_id: Id of the Wormhole state object Pyth binds to.
            transport: Optional httpx transport (tests mount a fake fullnode here).
            log: Optional JSONL record of submitted transactions.
        """
        self.chain = chain
        self.identity = ContractIdentity(chain.get_id(), state_id, wormhole_state_id)
        self.transport = transport
        self.executor = TransactionExecutor(chain.rpc_url, transport=transport, log=log)

    @property
    def state_id(self) -> str:
        return self.identity.state_id

    @property
    def wormhole_state_id(self) -> str:
        return self.identity.wormhole_state_id

    # -- descriptor -----------------------------------------------------------

    @classmethod
    def from_json(cls, chain: SuiChain, parsed: dict[str, Any], **kwargs: Any) -> SuiContract:
        if parsed.get("type") != CONTRACT_TYPE:
            raise ValueError("Invalid type")
        if not isinstance(chain, SuiChain):
            raise ValueError(f"Wrong chain type {chain!r}")
        return cls(chain, parsed["stateId"], parsed["wormholeStateId"], **kwargs)

    def to_json(self) -> dict[str, Any]:
        return {
            "chain": self.chain.get_id(),
            "stateId": self.state_id,
            "wormholeStateId": self.wormhole_state_id,
            "type": CONTRACT_TYPE,
        }

    def get_id(self) -> str:
        return self.identity.get_id()

    def get_type(self) -> str:
        return CONTRACT_TYPE

    def get_chain(self) -> SuiChain:
        return self.chain

    def __repr__(self) -> str:
        return f"SuiContract({self.get_id()})"

    # -- sessions -------------------------------------------------------------

    def _session(self) -> SuiRpcClient:
        return SuiRpcClient(self.chain.rpc_url, transport=self.transport)

    # -- package ids ----------------------------------------------------------

    async def get_package_id(self, object_id: str) -> str:
        """Package that owns `object_id`, read from its `upgrade_cap`."""
        async with self._session() as client:
            return await PackageResolver(ObjectReader(client)).resolve_package(object_id)

    async def get_pyth_package_id(self) -> str:
        return await self.get_package_id(self.state_id)

    async def get_wormhole_package_id(self) -> str:
        return await self.get_package_id(self.wormhole_state_id)

    # -- reads ----------------------------------------------------------------

    async def get_price_table_id(self) -> str:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).price_table_id()

    async def get_price_feed(self, feed_id: str | bytes) -> PriceFeed | None:
        """Current price and EMA price, or None if the feed is not registered."""
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).price_feed(feed_id)

    async def get_price_feeds(self, feed_ids: Sequence[str | bytes]) -> list[PriceFeed | None]:
        """
        Read several feeds concurrently; results follow the order of `feed_ids`.

        If any lookup fails, the others are cancelled (closing their sessions)
        before the first error is raised.
        """
        logger.debug(f"reading {len(feed_ids)} price feeds from {self.get_id()}")
        tasks = [asyncio.ensure_future(self.get_price_feed(f)) for f in feed_ids]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def get_valid_time_period(self) -> int:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).valid_time_period()

    async def get_data_sources(self) -> frozenset[DataSource]:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).data_sources()

    async def get_governance_data_source(self) -> DataSource:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).governance_data_source()

    async def get_base_update_fee(self) -> int:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).base_update_fee()

    async def get_last_executed_governance_sequence(self) -> int:
        async with self._session() as client:
            return await StateAccessor(self.state_id, ObjectReader(client)).last_executed_governance_sequence()

    # -- writes ---------------------------------------------------------------

    def _pipeline(self) -> GovernancePipeline:
        return GovernancePipeline(self.state_id, self.wormhole_state_id)

    async def execute_migrate_instruction(self, vaa: bytes, keypair: Ed25519Keypair | str) -> ExecutionResult:
        async with self._session() as client:
            tx = await self._pipeline().build_migrate(ObjectReader(client), vaa)
        return await self.executor.execute(tx, _as_keypair(keypair))

    async def execute_update_price_feed(self, keypair: Ed25519Keypair | str, vaas: Sequence[bytes]) -> ExecutionResult:
        raise UnimplementedError("Not implemented", data={"contract": self.get_id(), "vaas": len(vaas)})

    async def execute_governance_instruction(self, vaa: bytes, keypair: Ed25519Keypair | str) -> ExecutionResult:
        async with self._session() as client:
            tx = await self._pipeline().build_governance_instruction(ObjectReader(client), vaa)
        return await self.executor.execute(tx, _as_keypair(keypair))

    async def execute_upgrade_instruction(
        self,
        vaa: bytes,
        keypair: Ed25519Keypair | str,
        modules: Sequence[bytes],
        dependencies: Sequence[str],
    ) -> ExecutionResult:
        async with self._session() as client:
            tx = await self._pipeline().build_upgrade(ObjectReader(client), vaa, modules, dependencies)
        return await self.executor.execute(tx, _as_keypair(keypair))

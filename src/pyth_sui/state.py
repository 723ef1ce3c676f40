"""
Read-only accessors over the Pyth state object.

Each accessor re-reads the state object (and re-resolves the package id when it
needs one), so no accessor can observe a package id from before an upgrade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pyth_sui.constants import DATA_SOURCES_FIELD, PRICE_INFO_FIELD
from pyth_sui.errors import NotFoundError
from pyth_sui.packages import PackageResolver
from pyth_sui.price import PriceCodec, PriceFeed
from pyth_sui.reader import DynamicFieldName, ObjectReader
from pyth_sui.utils import hex_to_bytes
from pyth_sui.values import MoveStruct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataSource:
    emitter_chain: int
    emitter_address: str  # 32 bytes, lowercase hex without 0x

    @classmethod
    def decode(cls, raw: MoveStruct) -> DataSource:
        # emitter_address: ExternalAddress { value: Bytes32 { data: vector<u8> } }
        address = raw.struct("emitter_address").struct("value").byte_vector("data")
        return cls(emitter_chain=raw.u64("emitter_chain"), emitter_address=address.hex())

    def to_json(self) -> dict[str, Any]:
        return {"emitterChain": self.emitter_chain, "emitterAddress": self.emitter_address}


def parse_feed_id(feed_id: str | bytes) -> bytes:
    """Accept a 32-byte feed id as raw bytes or hex (with or without 0x)."""
    if isinstance(feed_id, bytes):
        if len(feed_id) != 32:
            raise ValueError(f"feed id must be 32 bytes, got {len(feed_id)}")
        return feed_id
    return hex_to_bytes(feed_id, length=32, name="feed id")


def price_identifier_key(package_id: str, feed_id: bytes) -> DynamicFieldName:
    return DynamicFieldName(
        type=f"{package_id}::price_identifier::PriceIdentifier",
        value={"bytes": list(feed_id)},
    )


class StateAccessor:
    def __init__(self, state_id: str, reader: ObjectReader) -> None:
        self.state_id = state_id
        self.reader = reader
        self.packages = PackageResolver(reader)

    async def _state_fields(self) -> MoveStruct:
        state = await self.reader.fetch(self.state_id)
        return state.content

    async def valid_time_period(self) -> int:
        """Staleness threshold in seconds."""
        return (await self._state_fields()).u64("stale_price_threshold")

    async def base_update_fee(self) -> int:
        return (await self._state_fields()).u64("base_update_fee")

    async def governance_data_source(self) -> DataSource:
        return DataSource.decode((await self._state_fields()).struct("governance_data_source"))

    async def last_executed_governance_sequence(self) -> int:
        # Reported only; ordering is enforced on-chain.
        return (await self._state_fields()).u64("last_executed_governance_sequence")

    async def data_sources(self) -> frozenset[DataSource]:
        field = await self.reader.fetch_dynamic_field(self.state_id, DynamicFieldName.byte_string(DATA_SOURCES_FIELD))
        if field is None:
            raise NotFoundError(
                "Data Sources not found, contract may not be initialized", data={"stateId": self.state_id}
            )
        keys = field.content.struct("value").structs("keys")
        return frozenset(DataSource.decode(k) for k in keys)

    async def price_table_id(self) -> str:
        field = await self.reader.fetch_dynamic_field(self.state_id, DynamicFieldName.byte_string(PRICE_INFO_FIELD))
        if field is None:
            raise NotFoundError("Price Table not found, contract may not be initialized", data={"stateId": self.state_id})
        return field.object_id

    async def price_feed(self, feed_id: str | bytes) -> PriceFeed | None:
        """
        Decode the current price and EMA price of a feed.

        Returns None when the feed id is not registered in the price table.
        """
        feed = parse_feed_id(feed_id)
        table_id = await self.price_table_id()
        package_id = await self.packages.resolve_package(self.state_id)

        entry = await self.reader.fetch_dynamic_field(table_id, price_identifier_key(package_id, feed))
        if entry is None:
            logger.debug(f"price feed {feed.hex()} not in table {table_id}")
            return None

        price_info_id = entry.content.address("value")
        try:
            info = await self.reader.fetch(price_info_id)
        except NotFoundError as e:
            raise NotFoundError(
                f"Price feed ID {price_info_id} in price table but object not found",
                data={"objectId": price_info_id, "feedId": feed.hex()},
            ) from e

        price_feed = info.content.struct("price_info").struct("price_feed")
        codec = PriceCodec(package_id)
        return PriceFeed(
            price=codec.decode(price_feed.struct("price")),
            ema_price=codec.decode(price_feed.struct("ema_price")),
        )

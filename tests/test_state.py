"""Tests for package resolution, price decoding and state accessors."""

from __future__ import annotations

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pyth_sui.errors import NotFoundError, TypeMismatchError, UpgradeCapabilityMissingError
from pyth_sui.packages import PackageResolver
from pyth_sui.price import PriceCodec, PriceRecord, decode_signed
from pyth_sui.reader import ObjectReader
from pyth_sui.rpc import SuiRpcClient
from pyth_sui.state import DataSource, StateAccessor, parse_feed_id
from pyth_sui.values import MoveStruct

from .conftest import (
    DATA_SOURCE_EMITTER,
    FEED_ID,
    GOVERNANCE_EMITTER,
    PRICE_INFO_ID,
    PRICE_TABLE_ID,
    PYTH_PACKAGE_ID,
    STATE_ID,
    WORMHOLE_PACKAGE_ID,
    WORMHOLE_STATE_ID,
    FakeSuiNode,
    move_object,
    price_struct,
    state_fields,
)

RPC_URL = "https://fullnode.testnet.example/"


# ---------------------------------------------------------------------------
# PackageResolver
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_resolve_both_packages_independently(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        resolver = PackageResolver(ObjectReader(client))
        assert await resolver.resolve_package(STATE_ID) == PYTH_PACKAGE_ID
        assert await resolver.resolve_package(WORMHOLE_STATE_ID) == WORMHOLE_PACKAGE_ID


@pytest.mark.anyio
async def test_resolve_without_upgrade_cap(fake_node: FakeSuiNode):
    fake_node.add_object(move_object(STATE_ID, "0x1::state::State", state_fields(with_upgrade_cap=False)))
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        with pytest.raises(UpgradeCapabilityMissingError) as exc_info:
            await PackageResolver(ObjectReader(client)).resolve_package(STATE_ID)
    assert exc_info.value.object_id == STATE_ID


@pytest.mark.anyio
async def test_resolve_is_not_cached(fake_node: FakeSuiNode):
    upgraded = "0x" + "77" * 32
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        resolver = PackageResolver(ObjectReader(client))
        assert await resolver.resolve_package(STATE_ID) == PYTH_PACKAGE_ID
        fake_node.add_object(move_object(STATE_ID, "0x1::state::State", state_fields(package_id=upgraded)))
        assert await resolver.resolve_package(STATE_ID) == upgraded


# ---------------------------------------------------------------------------
# PriceCodec
# ---------------------------------------------------------------------------


def test_price_codec_materialises_sign():
    raw = MoveStruct.decode(price_struct(-1234, 56, -5, 1_700_000_000))
    record = PriceCodec(PYTH_PACKAGE_ID).decode(raw)
    assert record == PriceRecord(price=-1234, conf=56, expo=-5, publish_time=1_700_000_000)
    assert record.to_decimal() == Decimal("-0.01234")


@given(st.booleans(), st.integers(min_value=0, max_value=2**64 - 1))
def test_signed_magnitude_round_trip(negative: bool, magnitude: int):
    raw = MoveStruct.decode({"type": "0x1::i64::I64", "fields": {"negative": negative, "magnitude": str(magnitude)}})
    assert decode_signed(raw) == (-magnitude if negative else magnitude)


def test_price_codec_rejects_other_package():
    raw = MoveStruct.decode(price_struct(1, 1, 0, 1, package_id="0x" + "77" * 32))
    with pytest.raises(TypeMismatchError, match="Price type mismatch"):
        PriceCodec(PYTH_PACKAGE_ID).decode(raw)


def test_price_codec_accepts_short_address_form():
    raw = MoveStruct.decode(price_struct(5, 0, 2, 9, package_id="0xabc"))
    assert PriceCodec("0x" + "0" * 61 + "abc").decode(raw).to_decimal() == Decimal(500)


def test_price_record_json_shape():
    record = PriceRecord(price=-7, conf=3, expo=-2, publish_time=11)
    assert record.to_json() == {"price": "-7", "conf": "3", "expo": "-2", "publishTime": "11"}


# ---------------------------------------------------------------------------
# StateAccessor
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_state_config_fields(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        state = StateAccessor(STATE_ID, ObjectReader(client))
        assert await state.valid_time_period() == 60
        assert await state.base_update_fee() == 1
        assert await state.last_executed_governance_sequence() == 42
        assert await state.governance_data_source() == DataSource(1, GOVERNANCE_EMITTER)
        assert await state.price_table_id() == PRICE_TABLE_ID


@pytest.mark.anyio
async def test_each_accessor_refetches_state(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        state = StateAccessor(STATE_ID, ObjectReader(client))
        await state.valid_time_period()
        await state.base_update_fee()
    assert fake_node.methods().count("sui_getObject") == 2


@pytest.mark.anyio
async def test_data_sources(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        sources = await StateAccessor(STATE_ID, ObjectReader(client)).data_sources()
    assert sources == frozenset({DataSource(emitter_chain=1, emitter_address=DATA_SOURCE_EMITTER)})


@pytest.mark.anyio
async def test_uninitialised_contract(fake_node: FakeSuiNode):
    fake_node.dynamic_fields.clear()
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        state = StateAccessor(STATE_ID, ObjectReader(client))
        with pytest.raises(NotFoundError, match="Data Sources not found"):
            await state.data_sources()
        with pytest.raises(NotFoundError, match="Price Table not found"):
            await state.price_table_id()


@pytest.mark.anyio
async def test_price_feed_decoded(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        feed = await StateAccessor(STATE_ID, ObjectReader(client)).price_feed("0x" + FEED_ID)
    assert feed is not None
    assert feed.price == PriceRecord(price=2_651_234_567, conf=1_200_000, expo=-8, publish_time=1_700_000_000)
    assert feed.ema_price.price == 2_650_000_000
    assert feed.price.to_decimal() == Decimal("26.51234567")


@pytest.mark.anyio
async def test_price_feed_absent(fake_node: FakeSuiNode):
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        assert await StateAccessor(STATE_ID, ObjectReader(client)).price_feed("ab" * 32) is None


@pytest.mark.anyio
async def test_price_feed_entry_without_object(fake_node: FakeSuiNode):
    del fake_node.objects[PRICE_INFO_ID]
    async with SuiRpcClient(RPC_URL, transport=fake_node.transport) as client:
        with pytest.raises(NotFoundError, match="in price table but object not found"):
            await StateAccessor(STATE_ID, ObjectReader(client)).price_feed(FEED_ID)


@pytest.mark.parametrize("bad", ["", "0x1234", "zz" * 32, "ab" * 33])
def test_parse_feed_id_rejects(bad: str):
    with pytest.raises(ValueError):
        parse_feed_id(bad)


def test_parse_feed_id_accepts_bytes_and_hex():
    raw = bytes.fromhex(FEED_ID)
    assert parse_feed_id(raw) == raw
    assert parse_feed_id("0x" + FEED_ID.upper()) == raw

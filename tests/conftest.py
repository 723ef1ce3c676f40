"""
Shared pytest fixtures for the Pyth Sui adapter tests.

This module provides:
- FakeSuiNode: an in-process Sui fullnode served through httpx.MockTransport
- Builders for Move object payloads in the fullnode's JSON shape
- A populated Pyth + Wormhole deployment and a funded signing key
"""

from __future__ import annotations

import json
import struct
from typing import Any

import httpx
import pytest

from pyth_sui.constants import SUI_CLOCK_OBJECT_ID
from pyth_sui.contract import SuiChain, SuiContract
from pyth_sui.keys import Ed25519Keypair
from pyth_sui.types import normalize_address

# ---------------------------------------------------------------------------
# Deployment Constants
# ---------------------------------------------------------------------------

PYTH_PACKAGE_ID = normalize_address("0x8d97f1cd6ac663735be08d1d2b6d02a159e711586461306ce60a2b7a6a565a9e")
WORMHOLE_PACKAGE_ID = normalize_address("0x5306f64e312b581766351c07af79c72fcb1cd25147157fdc2f8ad76de9a3fb6a")
STATE_ID = normalize_address("0x1f9310238ee9298fb703c3419030b35b22bb1cc37113e3bb5007c99aec79e5b8")
WORMHOLE_STATE_ID = normalize_address("0xaeab97f96cf9877fee2883315d459552b2b921edc16d7ceac6eab944dd88919c")
PRICE_TABLE_ID = normalize_address("0x14b4697477d24c30c8eecc31dd1bd49a3115a9fe0db6bd4fd570cf14640b79a0")
PRICE_INFO_ID = normalize_address("0x801dbc2f0053d34734814b2d6df491ce7807a725fe9a01ad74a07e9c51396c37")
FEED_ID = "23d7315113f5b1d3ba7a83604c44b94d79f4fd69af77f804fc7f920a6dc65744"

GOVERNANCE_EMITTER = "63278d271099bfd491951b3e648f08b1c71631e4a53674ad43e8f9f98068c385"
DATA_SOURCE_EMITTER = "11" * 32

SENDER_SECRET = "01" * 32
GAS_PRICE = 750

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def b58encode(data: bytes) -> str:
    n = int.from_bytes(data, "big")
    out = ""
    while n:
        n, rem = divmod(n, 58)
        out = _B58_ALPHABET[rem] + out
    leading = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading + out


def digest_for(seed: int) -> str:
    return b58encode(bytes([seed % 256]) * 32)


# ---------------------------------------------------------------------------
# Move Object Builders
# ---------------------------------------------------------------------------


def shared_owner(initial_shared_version: int = 1) -> dict[str, Any]:
    return {"Shared": {"initial_shared_version": initial_shared_version}}


def move_struct(type_: str, fields: dict[str, Any]) -> dict[str, Any]:
    return {"type": type_, "fields": fields}


def move_object(
    object_id: str,
    type_: str,
    fields: dict[str, Any],
    *,
    owner: Any = None,
    version: int = 7,
) -> dict[str, Any]:
    """`data` member of a sui_getObject response for a Move object."""
    return {
        "objectId": object_id,
        "version": str(version),
        "digest": digest_for(version),
        "type": type_,
        "owner": owner if owner is not None else shared_owner(),
        "content": {"dataType": "moveObject", "type": type_, "hasPublicTransfer": False, "fields": fields},
    }


def i64(value: int) -> dict[str, Any]:
    return move_struct(
        f"{PYTH_PACKAGE_ID}::i64::I64",
        {"negative": value < 0, "magnitude": str(abs(value))},
    )


def price_struct(price: int, conf: int, expo: int, timestamp: int, *, package_id: str = PYTH_PACKAGE_ID) -> dict:
    return move_struct(
        f"{package_id}::price::Price",
        {"price": i64(price), "conf": str(conf), "expo": i64(expo), "timestamp": str(timestamp)},
    )


def data_source_struct(emitter_chain: int, emitter_hex: str) -> dict[str, Any]:
    return move_struct(
        f"{PYTH_PACKAGE_ID}::data_source::DataSource",
        {
            "emitter_chain": emitter_chain,
            "emitter_address": move_struct(
                f"{WORMHOLE_PACKAGE_ID}::external_address::ExternalAddress",
                {
                    "value": move_struct(
                        f"{WORMHOLE_PACKAGE_ID}::bytes32::Bytes32",
                        {"data": list(bytes.fromhex(emitter_hex))},
                    )
                },
            ),
        },
    )


def upgrade_cap(package_id: str) -> dict[str, Any]:
    return move_struct(
        "0x2::package::UpgradeCap",
        {"id": {"id": "0x" + "ab" * 32}, "package": package_id, "policy": 0, "version": "3"},
    )


def state_fields(*, package_id: str = PYTH_PACKAGE_ID, with_upgrade_cap: bool = True) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "id": {"id": STATE_ID},
        "stale_price_threshold": "60",
        "base_update_fee": "1",
        "governance_data_source": data_source_struct(1, GOVERNANCE_EMITTER),
        "last_executed_governance_sequence": "42",
    }
    if with_upgrade_cap:
        fields["upgrade_cap"] = upgrade_cap(package_id)
    return fields


def build_vaa(*, payload: bytes = b"PTGM\x01\x00", num_signatures: int = 1, version: int = 1) -> bytes:
    """Structurally valid VAA bytes; signatures are filler."""
    out = struct.pack(">BIB", version, 3, num_signatures)
    for i in range(num_signatures):
        out += bytes([i]) + bytes([0x5A]) * 65
    out += struct.pack(">IIH", 1_700_000_000, 0, 1)
    out += bytes.fromhex(GOVERNANCE_EMITTER)
    out += struct.pack(">QB", 43, 0)
    return out + payload


def dynamic_field_key(parent_id: str, name: dict[str, Any]) -> tuple[str, str]:
    return normalize_address(parent_id), json.dumps(name, sort_keys=True)


# ---------------------------------------------------------------------------
# Fake Fullnode
# ---------------------------------------------------------------------------


class FakeSuiNode:
    """
    JSON-RPC 2.0 fullnode double.

    Objects and dynamic fields are plain dicts in the fullnode's wire shape.
    Every request is recorded in `calls` as `(method, params)`.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.dynamic_fields: dict[tuple[str, str], dict[str, Any]] = {}
        self.coins: dict[str, list[dict[str, Any]]] = {}
        self.gas_price = GAS_PRICE
        self.dry_run_effects: dict[str, Any] = {
            "status": {"status": "success"},
            "gasUsed": {"computationCost": "1000000", "storageCost": "2500000", "storageRebate": "900000"},
        }
        self.execute_response: dict[str, Any] = {
            "digest": "8Vb2x1sG3z5a6QpZkN7yRbYh5s3d3s1n3D8Jd9K7aQvM",
            "effects": {"status": {"status": "success"}},
            "events": [],
        }
        self.errors: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, list[Any]]] = []

    # -- population -----------------------------------------------------------

    def add_object(self, data: dict[str, Any]) -> None:
        self.objects[normalize_address(data["objectId"])] = data

    def add_dynamic_field(self, parent_id: str, name: dict[str, Any], data: dict[str, Any]) -> None:
        self.dynamic_fields[dynamic_field_key(parent_id, name)] = data

    def fund(self, owner: str, *, balance: int = 10_000_000_000, count: int = 1) -> None:
        self.coins[normalize_address(owner)] = [
            {
                "coinType": "0x2::sui::SUI",
                "coinObjectId": normalize_address(hex(0xC0 + i)),
                "version": str(11 + i),
                "digest": digest_for(0xC0 + i),
                "balance": str(balance),
            }
            for i in range(count)
        ]

    # -- inspection -----------------------------------------------------------

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]

    def last_params(self, method: str) -> list[Any]:
        for m, params in reversed(self.calls):
            if m == method:
                return params
        raise AssertionError(f"{method} was never called")

    # -- dispatch -------------------------------------------------------------

    def _result(self, method: str, params: list[Any]) -> Any:
        if method == "sui_getObject":
            data = self.objects.get(normalize_address(params[0]))
            if data is None:
                return {"error": {"code": "notExists", "object_id": params[0]}}
            return {"data": data}
        if method == "suix_getDynamicFieldObject":
            data = self.dynamic_fields.get(dynamic_field_key(params[0], params[1]))
            if data is None:
                return {"error": {"code": "dynamicFieldNotFound", "parent_object_id": params[0]}}
            return {"data": data}
        if method == "suix_getReferenceGasPrice":
            return str(self.gas_price)
        if method == "suix_getCoins":
            return {"data": self.coins.get(normalize_address(params[0]), []), "nextCursor": None, "hasNextPage": False}
        if method == "sui_dryRunTransactionBlock":
            return {"effects": self.dry_run_effects, "events": []}
        if method == "sui_executeTransactionBlock":
            return self.execute_response
        raise AssertionError(f"Unexpected RPC method {method}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        if method in self.errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": self._result(method, params)})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def install_pyth_deployment(node: FakeSuiNode) -> None:
    """Pyth state, Wormhole state, clock, price table with one feed, data sources."""
    node.add_object(move_object(STATE_ID, f"{PYTH_PACKAGE_ID}::state::State", state_fields(), owner=shared_owner(3)))
    node.add_object(
        move_object(
            WORMHOLE_STATE_ID,
            f"{WORMHOLE_PACKAGE_ID}::state::State",
            {"id": {"id": WORMHOLE_STATE_ID}, "upgrade_cap": upgrade_cap(WORMHOLE_PACKAGE_ID)},
            owner=shared_owner(5),
        )
    )
    node.add_object(
        move_object(
            SUI_CLOCK_OBJECT_ID,
            "0x2::clock::Clock",
            {"id": {"id": SUI_CLOCK_OBJECT_ID}, "timestamp_ms": "1700000000000"},
            owner=shared_owner(1),
        )
    )

    node.add_dynamic_field(
        STATE_ID,
        {"type": "vector<u8>", "value": "price_info"},
        move_object(
            PRICE_TABLE_ID,
            f"0x2::dynamic_field::Field<vector<u8>, {PYTH_PACKAGE_ID}::price_info::PriceInfo>",
            {"id": {"id": PRICE_TABLE_ID}, "name": list(b"price_info"), "value": {}},
            owner={"ObjectOwner": STATE_ID},
        ),
    )
    node.add_dynamic_field(
        STATE_ID,
        {"type": "vector<u8>", "value": "data_sources"},
        move_object(
            "0x" + "d5" * 32,
            f"0x2::dynamic_field::Field<vector<u8>, {PYTH_PACKAGE_ID}::set::Set<{PYTH_PACKAGE_ID}::data_source::DataSource>>",
            {
                "id": {"id": "0x" + "d5" * 32},
                "name": list(b"data_sources"),
                "value": move_struct(
                    f"{PYTH_PACKAGE_ID}::set::Set<{PYTH_PACKAGE_ID}::data_source::DataSource>",
                    {"keys": [data_source_struct(1, DATA_SOURCE_EMITTER)], "elems": {}},
                ),
            },
            owner={"ObjectOwner": STATE_ID},
        ),
    )
    node.add_dynamic_field(
        PRICE_TABLE_ID,
        {"type": f"{PYTH_PACKAGE_ID}::price_identifier::PriceIdentifier", "value": {"bytes": list(bytes.fromhex(FEED_ID))}},
        move_object(
            "0x" + "e1" * 32,
            f"0x2::dynamic_field::Field<{PYTH_PACKAGE_ID}::price_identifier::PriceIdentifier, 0x2::object::ID>",
            {"id": {"id": "0x" + "e1" * 32}, "name": {}, "value": PRICE_INFO_ID},
            owner={"ObjectOwner": PRICE_TABLE_ID},
        ),
    )
    node.add_object(
        move_object(
            PRICE_INFO_ID,
            f"{PYTH_PACKAGE_ID}::price_info::PriceInfoObject",
            {
                "id": {"id": PRICE_INFO_ID},
                "price_info": move_struct(
                    f"{PYTH_PACKAGE_ID}::price_info::PriceInfo",
                    {
                        "arrival_time": "1700000001",
                        "attestation_time": "1700000000",
                        "price_feed": move_struct(
                            f"{PYTH_PACKAGE_ID}::price_feed::PriceFeed",
                            {
                                "price_identifier": move_struct(
                                    f"{PYTH_PACKAGE_ID}::price_identifier::PriceIdentifier",
                                    {"bytes": list(bytes.fromhex(FEED_ID))},
                                ),
                                "price": price_struct(2_651_234_567, 1_200_000, -8, 1_700_000_000),
                                "ema_price": price_struct(2_650_000_000, 1_100_000, -8, 1_700_000_000),
                            },
                        ),
                    },
                ),
            },
        )
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_node() -> FakeSuiNode:
    node = FakeSuiNode()
    install_pyth_deployment(node)
    return node


@pytest.fixture
def chain() -> SuiChain:
    return SuiChain(id="sui_testnet", rpc_url="https://fullnode.testnet.example/", mainnet=False)


@pytest.fixture
def contract(chain: SuiChain, fake_node: FakeSuiNode) -> SuiContract:
    return SuiContract(chain, STATE_ID, WORMHOLE_STATE_ID, transport=fake_node.transport)


@pytest.fixture
def keypair(fake_node: FakeSuiNode) -> Ed25519Keypair:
    kp = Ed25519Keypair.from_secret_key_hex(SENDER_SECRET)
    fake_node.fund(kp.address())
    return kp

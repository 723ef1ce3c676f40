"""
Pyth price records as stored on Sui.

On-chain, signed values (`price`, `expo`) are `i64::I64 { negative, magnitude }`
structs: an unsigned magnitude plus a sign flag. `PriceCodec.decode` folds the
flag into a Python int, so `price * 10**expo` is the real value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pyth_sui.errors import TypeMismatchError
from pyth_sui.types import normalize_address
from pyth_sui.values import MoveStruct


@dataclass(frozen=True)
class PriceRecord:
    price: int
    conf: int
    expo: int
    publish_time: int

    def to_decimal(self) -> Decimal:
        """Exact value `price * 10**expo`."""
        return Decimal(self.price).scaleb(self.expo)

    def conf_decimal(self) -> Decimal:
        return Decimal(self.conf).scaleb(self.expo)

    def to_json(self) -> dict[str, str]:
        return {
            "price": str(self.price),
            "conf": str(self.conf),
            "expo": str(self.expo),
            "publishTime": str(self.publish_time),
        }


@dataclass(frozen=True)
class PriceFeed:
    price: PriceRecord
    ema_price: PriceRecord

    def to_json(self) -> dict[str, dict[str, str]]:
        return {"price": self.price.to_json(), "emaPrice": self.ema_price.to_json()}


def decode_signed(value: MoveStruct) -> int:
    magnitude = value.u64("magnitude")
    return -magnitude if value.boolean("negative") else magnitude


class PriceCodec:
    """Decodes `<package>::price::Price` structs for one oracle package id."""

    def __init__(self, package_id: str) -> None:
        self.package_id = normalize_address(package_id)

    @property
    def expected_type(self) -> str:
        return f"{self.package_id}::price::Price"

    def decode(self, raw: MoveStruct) -> PriceRecord:
        """
        Raises:
            TypeMismatchError: If the struct is not this package's `price::Price`
                (stale package id or unexpected layout).
            UnparsableError: If a field is missing or mis-shaped.
        """
        if not raw.is_type(self.expected_type):
            raise TypeMismatchError(
                f"Price type mismatch, expected {self.expected_type} but found {raw.type}",
                expected=self.expected_type,
                found=raw.type,
            )
        return PriceRecord(
            price=decode_signed(raw.struct("price")),
            conf=raw.u64("conf"),
            expo=decode_signed(raw.struct("expo")),
            publish_time=raw.u64("timestamp"),
        )

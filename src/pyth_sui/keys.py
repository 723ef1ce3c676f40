"""
Ed25519 signing keys for Sui transactions.

A Sui transaction signature is over the Blake2b-256 digest of the intent
message `[scope=0, version=0, app_id=0] || tx_bytes`, serialized as
`base64(flag || signature || public_key)` with flag 0x00 for Ed25519.
"""

from __future__ import annotations

import base64
import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from pyth_sui.utils import hex_to_bytes

ED25519_FLAG = 0x00
TRANSACTION_INTENT = bytes([0, 0, 0])


def transaction_digest(tx_bytes: bytes) -> bytes:
    return hashlib.blake2b(TRANSACTION_INTENT + tx_bytes, digest_size=32).digest()


class Ed25519Keypair:
    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key

    @classmethod
    def generate(cls) -> Ed25519Keypair:
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_secret_key_hex(cls, secret: str) -> Ed25519Keypair:
        """Build from a 32-byte seed given as hex (with or without 0x)."""
        seed = hex_to_bytes(secret, length=32, name="secret key")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._private_key.public_key()

    def public_key_bytes(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def address(self) -> str:
        """Sui address: Blake2b-256 of `flag || public_key`."""
        pk = self.public_key_bytes()
        return "0x" + hashlib.blake2b(bytes([ED25519_FLAG]) + pk, digest_size=32).hexdigest()

    def sign_transaction(self, tx_bytes: bytes) -> str:
        signature = self._private_key.sign(transaction_digest(tx_bytes))
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self.public_key_bytes()).decode("ascii")

    def __repr__(self) -> str:
        return f"Ed25519Keypair(address={self.address()})"


def verify_transaction_signature(tx_bytes: bytes, serialized: str) -> bool:
    """Check a serialized signature against `tx_bytes` using the embedded public key."""
    raw = base64.b64decode(serialized)
    if len(raw) != 1 + 64 + 32 or raw[0] != ED25519_FLAG:
        return False
    public_key = Ed25519PublicKey.from_public_bytes(raw[65:])
    try:
        public_key.verify(raw[1:65], transaction_digest(tx_bytes))
    except InvalidSignature:
        return False
    return True

"""
Structural parsing of Wormhole VAAs.

Signature verification happens on-chain in `wormhole::vaa::parse_and_verify`;
this module only rejects byte strings that cannot possibly be a VAA, so a
malformed message fails before a transaction is built and paid for.

Layout (big-endian):

    header: version u8 | guardian_set_index u32 | num_signatures u8
            | num_signatures * (guardian_index u8 | signature [65])
    body:   timestamp u32 | nonce u32 | emitter_chain u16 | emitter_address [32]
            | sequence u64 | consistency_level u8 | payload [..]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from pyth_sui.errors import InvalidVaaError

VAA_VERSION = 1
SIGNATURE_LENGTH = 66
HEADER_LENGTH = 6
BODY_FIXED_LENGTH = 51


@dataclass(frozen=True)
class GuardianSignature:
    guardian_index: int
    signature: bytes


@dataclass(frozen=True)
class Vaa:
    version: int
    guardian_set_index: int
    signatures: tuple[GuardianSignature, ...]
    timestamp: int
    nonce: int
    emitter_chain: int
    emitter_address: str  # lowercase hex, no 0x
    sequence: int
    consistency_level: int
    payload: bytes
    raw: bytes


def parse_vaa(data: bytes) -> Vaa:
    """
    Raises:
        InvalidVaaError: If the bytes are truncated or the version is unsupported.
    """
    data = bytes(data)
    if len(data) < HEADER_LENGTH:
        raise InvalidVaaError(f"VAA too short: {len(data)} bytes", data={"length": len(data)})

    version, guardian_set_index, num_signatures = struct.unpack_from(">BIB", data, 0)
    if version != VAA_VERSION:
        raise InvalidVaaError(f"Unsupported VAA version {version}", data={"version": version})
    if num_signatures == 0:
        raise InvalidVaaError("VAA carries no guardian signatures")

    body_offset = HEADER_LENGTH + num_signatures * SIGNATURE_LENGTH
    if len(data) < body_offset + BODY_FIXED_LENGTH:
        raise InvalidVaaError(
            f"VAA truncated: {len(data)} bytes for {num_signatures} signatures",
            data={"length": len(data), "signatures": num_signatures},
        )

    signatures = []
    for i in range(num_signatures):
        off = HEADER_LENGTH + i * SIGNATURE_LENGTH
        signatures.append(GuardianSignature(guardian_index=data[off], signature=data[off + 1 : off + SIGNATURE_LENGTH]))

    timestamp, nonce, emitter_chain = struct.unpack_from(">IIH", data, body_offset)
    emitter_address = data[body_offset + 10 : body_offset + 42]
    sequence, consistency_level = struct.unpack_from(">QB", data, body_offset + 42)

    return Vaa(
        version=version,
        guardian_set_index=guardian_set_index,
        signatures=tuple(signatures),
        timestamp=timestamp,
        nonce=nonce,
        emitter_chain=emitter_chain,
        emitter_address=emitter_address.hex(),
        sequence=sequence,
        consistency_level=consistency_level,
        payload=data[body_offset + BODY_FIXED_LENGTH :],
        raw=data,
    )

"""Shared helpers for configuration parsing and hex handling."""

from __future__ import annotations

import logging
import sys
from typing import Any

logger = logging.getLogger(__name__)


def safe_parse_float(
    val: Any, default: float, min_val: float = -float("inf"), max_val: float = float("inf"), name: str = "value"
) -> float:
    """
    Safe float parsing with range validation.
    """
    try:
        f = float(val)
    except (ValueError, TypeError):
        logger.warning(f"Invalid {name}={val!r}, using default {default}")
        return default

    if f < min_val or f > max_val:
        logger.warning(f"{name}={f} out of range [{min_val}, {max_val}], clamping")
        return max(min_val, min(max_val, f))
    return f


def safe_parse_int(
    val: Any, default: int, min_val: int = -sys.maxsize, max_val: int = sys.maxsize, name: str = "value"
) -> int:
    """
    Safe integer parsing with range validation.
    """
    try:
        i = int(val)
    except (ValueError, TypeError):
        logger.warning(f"Invalid {name}={val!r}, using default {default}")
        return default

    if i < min_val or i > max_val:
        logger.warning(f"{name}={i} out of range [{min_val}, {max_val}], clamping")
        return max(min_val, min(max_val, i))
    return i


def strip_hex_prefix(s: str) -> str:
    s = s.strip()
    if s.startswith(("0x", "0X")):
        return s[2:]
    return s


def hex_to_bytes(s: str, *, length: int | None = None, name: str = "value") -> bytes:
    """
    Decode a hex string (with or without 0x prefix), optionally enforcing a byte length.

    Raises:
        ValueError: If the string is not valid hex or has the wrong length.
    """
    try:
        raw = bytes.fromhex(strip_hex_prefix(s))
    except ValueError as e:
        raise ValueError(f"Invalid hex for {name}: {s!r}") from e
    if length is not None and len(raw) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(raw)}")
    return raw

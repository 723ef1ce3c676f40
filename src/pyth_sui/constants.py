"""
Centralized constants for the Pyth Sui contract adapter.

Environment variable overrides:
- PYTH_SUI_RPC_URL: Override the default Sui fullnode endpoint
- PYTH_SUI_RPC_TIMEOUT_SECONDS: Override the per-request RPC timeout
- PYTH_SUI_GAS_COIN_PAGE_SIZE: Override the suix_getCoins page size
"""

from __future__ import annotations

import os

from pyth_sui.utils import safe_parse_float, safe_parse_int

# Default Sui RPC endpoint
# Public mainnet fullnode; set PYTH_SUI_RPC_URL for a dedicated provider.
DEFAULT_RPC_URL = os.environ.get(
    "PYTH_SUI_RPC_URL",
    "https://fullnode.mainnet.sui.io:443",
)

# RPC request timeout (seconds)
RPC_REQUEST_TIMEOUT_SECONDS = safe_parse_float(
    os.environ.get("PYTH_SUI_RPC_TIMEOUT_SECONDS", "30"),
    30.0,
    min_val=1.0,
    max_val=600.0,
    name="PYTH_SUI_RPC_TIMEOUT_SECONDS",
)

# =============================================================================
# Contract Layout
# =============================================================================

CONTRACT_TYPE = "SuiContract"

# Dynamic field names (vector<u8>) attached to the Pyth state object
PRICE_INFO_FIELD = "price_info"
DATA_SOURCES_FIELD = "data_sources"

# Shared clock object, passed to wormhole::vaa::parse_and_verify
SUI_CLOCK_OBJECT_ID = "0x0000000000000000000000000000000000000000000000000000000000000006"

SUI_COIN_TYPE = "0x2::sui::SUI"

# =============================================================================
# Gas Budget Defaults
# =============================================================================

# Declared budget = estimate * factor
GAS_BUDGET_SAFETY_FACTOR = 2

# Provisional budget used only for the dry run that produces the estimate
# (50 SUI in MIST, the protocol maximum)
DRY_RUN_GAS_BUDGET = 50_000_000_000

# Page size for suix_getCoins when selecting gas payment
GAS_COIN_PAGE_SIZE = safe_parse_int(
    os.environ.get("PYTH_SUI_GAS_COIN_PAGE_SIZE", "50"),
    50,
    min_val=1,
    max_val=200,
    name="PYTH_SUI_GAS_COIN_PAGE_SIZE",
)

# Sui caps the number of gas payment objects per transaction
MAX_GAS_PAYMENT_OBJECTS = 256

# =============================================================================
# CLI
# =============================================================================

# Hex-encoded 32-byte Ed25519 seed used by `pyth-sui execute`
SECRET_KEY_ENV = "PYTH_SUI_SECRET_KEY"

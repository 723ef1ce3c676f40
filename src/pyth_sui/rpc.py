"""
Async Sui JSON-RPC client.

One `SuiRpcClient` is one session: it is opened with `async with`, used for the
calls of a single public operation, and closed on exit. Transport problems and
JSON-RPC error envelopes are raised as `TransportError` carrying the
endpoint's message. Per-object "not found" results are *not* errors at this
layer; they come back inside `result` and are interpreted by `ObjectReader`.
"""

from __future__ import annotations

import base64
import itertools
import logging
from typing import Any

import httpx

from pyth_sui.constants import GAS_COIN_PAGE_SIZE, RPC_REQUEST_TIMEOUT_SECONDS, SUI_COIN_TYPE
from pyth_sui.errors import TransportError

logger = logging.getLogger(__name__)


class SuiRpcClient:
    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_s: float = RPC_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> SuiRpcClient:
        self._client = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, params: list[Any]) -> Any:
        """
        Issue a JSON-RPC request and return its `result` member.

        Raises:
            TransportError: On timeout, connection failure, non-200 status,
                malformed body, or a JSON-RPC `error` envelope.
        """
        if self._client is None:
            raise RuntimeError("SuiRpcClient must be used inside 'async with'")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug(f"rpc {method} -> {self.rpc_url}")
        try:
            resp = await self._client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"RPC timeout: method={method}, url={self.rpc_url}, error={e}")
            raise TransportError(
                f"Sui RPC timeout after {self.timeout_s}s: {self.rpc_url}", url=self.rpc_url
            ) from e
        except httpx.RequestError as e:
            logger.error(f"RPC request error: method={method}, url={self.rpc_url}, error={e}")
            raise TransportError(f"Failed to connect to Sui RPC {self.rpc_url}: {e}", url=self.rpc_url) from e

        if resp.status_code != 200:
            logger.error(f"RPC request failed: status={resp.status_code}, method={method}, url={self.rpc_url}")
            raise TransportError(
                f"Sui RPC returned status {resp.status_code} for {method}",
                code=resp.status_code,
                url=self.rpc_url,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise TransportError(f"Sui RPC returned invalid JSON for {method}: {e}", url=self.rpc_url) from e

        if not isinstance(body, dict):
            raise TransportError(f"Sui RPC returned non-object JSON for {method}", url=self.rpc_url)

        if "error" in body:
            error = body.get("error") or {}
            message = error.get("message", error) if isinstance(error, dict) else error
            code = error.get("code") if isinstance(error, dict) else None
            logger.error(f"RPC error response: {error}, method={method}, url={self.rpc_url}")
            raise TransportError(f"Sui RPC error: {message}", code=code, url=self.rpc_url)

        if "result" not in body:
            raise TransportError(f"Sui RPC response for {method} has no result", url=self.rpc_url)
        return body["result"]

    async def get_object(self, object_id: str) -> dict[str, Any]:
        return await self.call(
            "sui_getObject",
            [object_id, {"showContent": True, "showOwner": True, "showType": True}],
        )

    async def get_dynamic_field_object(self, parent_id: str, name: dict[str, Any]) -> dict[str, Any]:
        return await self.call("suix_getDynamicFieldObject", [parent_id, name])

    async def get_reference_gas_price(self) -> int:
        return int(await self.call("suix_getReferenceGasPrice", []))

    async def get_coins(
        self,
        owner: str,
        *,
        coin_type: str = SUI_COIN_TYPE,
        cursor: str | None = None,
        limit: int = GAS_COIN_PAGE_SIZE,
    ) -> dict[str, Any]:
        return await self.call("suix_getCoins", [owner, coin_type, cursor, limit])

    async def dry_run_transaction_block(self, tx_bytes: bytes) -> dict[str, Any]:
        return await self.call("sui_dryRunTransactionBlock", [base64.b64encode(tx_bytes).decode("ascii")])

    async def execute_transaction_block(
        self,
        tx_bytes: bytes,
        signatures: list[str],
        *,
        show_effects: bool = True,
        show_events: bool = True,
    ) -> dict[str, Any]:
        return await self.call(
            "sui_executeTransactionBlock",
            [
                base64.b64encode(tx_bytes).decode("ascii"),
                signatures,
                {"showEffects": show_effects, "showEvents": show_events},
                "WaitForLocalExecution",
            ],
        )

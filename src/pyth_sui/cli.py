"""
Pyth Sui contract CLI.

Usage:
    pyth-sui --state-id 0x.. --wormhole-state-id 0x.. info
    pyth-sui --state-id 0x.. --wormhole-state-id 0x.. price <feed-id> [<feed-id> ...]
    PYTH_SUI_SECRET_KEY=<hex seed> pyth-sui ... execute migrate --vaa <hex>
    PYTH_SUI_SECRET_KEY=<hex seed> pyth-sui ... execute upgrade --vaa <hex> --module a.mv --dependency 0x1

The signing key is only ever read from the environment.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from pyth_sui.constants import DEFAULT_RPC_URL, SECRET_KEY_ENV
from pyth_sui.contract import SuiChain, SuiContract
from pyth_sui.errors import AdapterError
from pyth_sui.executor import ExecutionResult
from pyth_sui.keys import Ed25519Keypair
from pyth_sui.logging import TransactionLog, default_run_id
from pyth_sui.utils import hex_to_bytes

logger = logging.getLogger(__name__)

console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def show_info(contract: SuiContract) -> None:
    table = Table(title=f"Pyth contract {contract.get_id()}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    governance = await contract.get_governance_data_source()
    table.add_row("pyth package", await contract.get_pyth_package_id())
    table.add_row("wormhole package", await contract.get_wormhole_package_id())
    table.add_row("price table", await contract.get_price_table_id())
    table.add_row("valid time period (s)", str(await contract.get_valid_time_period()))
    table.add_row("base update fee", str(await contract.get_base_update_fee()))
    table.add_row("governance source", f"{governance.emitter_chain}:{governance.emitter_address}")
    table.add_row("last governance sequence", str(await contract.get_last_executed_governance_sequence()))
    for source in sorted(await contract.get_data_sources(), key=lambda s: (s.emitter_chain, s.emitter_address)):
        table.add_row("data source", f"{source.emitter_chain}:{source.emitter_address}")
    console.print(table)


async def show_prices(contract: SuiContract, feed_ids: list[str]) -> None:
    feeds = await contract.get_price_feeds(feed_ids)

    table = Table(title="Price feeds", show_header=True)
    table.add_column("Feed", style="cyan", overflow="fold")
    table.add_column("Price")
    table.add_column("Conf", style="dim")
    table.add_column("EMA")
    table.add_column("Publish time", style="dim")
    for feed_id, feed in zip(feed_ids, feeds):
        if feed is None:
            table.add_row(feed_id, "[yellow]not found[/yellow]", "", "", "")
            continue
        table.add_row(
            feed_id,
            str(feed.price.to_decimal()),
            str(feed.price.conf_decimal()),
            str(feed.ema_price.to_decimal()),
            str(feed.price.publish_time),
        )
    console.print(table)


async def execute(contract: SuiContract, args: argparse.Namespace, keypair: Ed25519Keypair) -> ExecutionResult:
    vaa = hex_to_bytes(args.vaa, name="vaa")
    if args.action == "migrate":
        return await contract.execute_migrate_instruction(vaa, keypair)
    if args.action == "governance":
        return await contract.execute_governance_instruction(vaa, keypair)
    modules = [Path(p).read_bytes() for p in args.module or []]
    return await contract.execute_upgrade_instruction(vaa, keypair, modules, args.dependency or [])


def print_result(result: ExecutionResult) -> None:
    if result.succeeded:
        console.print(f"[green]✓[/green] {result.digest}")
    else:
        console.print(f"[red]✗[/red] {result.digest}: {result.status} {result.error or ''}")


# ---------------------------------------------------------------------------
# Entry Point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pyth oracle contract on Sui")
    parser.add_argument("--chain-id", type=str, default="sui_mainnet")
    parser.add_argument("--rpc-url", type=str, default=DEFAULT_RPC_URL)
    parser.add_argument("--testnet", action="store_true", help="Mark the chain as non-mainnet")
    parser.add_argument("--state-id", type=str, required=True, help="Pyth state object id")
    parser.add_argument("--wormhole-state-id", type=str, required=True, help="Wormhole state object id")
    parser.add_argument("-v", "--verbose", action="store_true")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("info", help="Show contract configuration")

    p_price = subparsers.add_parser("price", help="Show current price feeds")
    p_price.add_argument("feed_ids", nargs="+", help="32-byte feed ids (hex)")

    p_exec = subparsers.add_parser("execute", help=f"Submit a governance VAA (key from ${SECRET_KEY_ENV})")
    p_exec.add_argument("action", choices=["migrate", "governance", "upgrade"])
    p_exec.add_argument("--vaa", type=str, required=True, help="Signed VAA bytes (hex)")
    p_exec.add_argument("--module", action="append", help="Compiled module (.mv) for upgrade; repeatable")
    p_exec.add_argument("--dependency", action="append", help="Dependency package id for upgrade; repeatable")
    p_exec.add_argument("--log-dir", type=Path, help="Append submission events to <log-dir>/<run-id>/events.jsonl")
    return parser


def _load_keypair() -> Ed25519Keypair:
    secret = os.environ.get(SECRET_KEY_ENV)
    if not secret:
        console.print(f"[red]{SECRET_KEY_ENV} is not set[/red]")
        sys.exit(2)
    return Ed25519Keypair.from_secret_key_hex(secret)


async def run(args: argparse.Namespace, keypair: Ed25519Keypair | None = None) -> int:
    chain = SuiChain(id=args.chain_id, rpc_url=args.rpc_url, mainnet=not args.testnet)
    log = None
    if args.command == "execute" and args.log_dir:
        log = TransactionLog(base_dir=args.log_dir, run_id=default_run_id(prefix=args.action))
        log.write_run_metadata({"contract": f"{args.chain_id}_{args.state_id}", "action": args.action})
    contract = SuiContract(chain, args.state_id, args.wormhole_state_id, log=log)

    if args.command == "info":
        await show_info(contract)
        return 0
    if args.command == "price":
        await show_prices(contract, args.feed_ids)
        return 0

    if keypair is None:
        raise ValueError(f"execute requires a signing key in ${SECRET_KEY_ENV}")
    result = await execute(contract, args, keypair)
    print_result(result)
    return 0 if result.succeeded else 1


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        keypair = _load_keypair() if args.command == "execute" else None
        code = asyncio.run(run(args, keypair))
    except (AdapterError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()

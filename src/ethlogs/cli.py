import asyncio
import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ethlogs.core.config import RPC_URL_ENV, WS_URL_ENV, NodeConfig, QueryConfig, SubscribeConfig
from ethlogs.core.errors import EthLogsError
from ethlogs.core.models import DecodedEvent
from ethlogs.decoding.abi import load_schema
from ethlogs.decoding.registries import make_erc20_schema, make_store_schema
from ethlogs.decoding.registry_builder import event_spec_from_signature, function_spec_from_signature
from ethlogs.decoding.specs import InterfaceSchema
from ethlogs.decoding.types import bytes32_to_text
from ethlogs.storage.export import render_value, write_jsonl, write_parquet

console = Console()
log = logging.getLogger("ethlogs")

BUILTIN_SCHEMAS = {
    "store": make_store_schema,
    "erc20": make_erc20_schema,
}


def _parse_block(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def _load_schema(abi_path: str | None, builtin: str | None, signatures: tuple[str, ...]) -> InterfaceSchema:
    schema = InterfaceSchema()
    try:
        if abi_path:
            schema = schema.merge(load_schema(Path(abi_path)))
        if builtin:
            schema = schema.merge(BUILTIN_SCHEMAS[builtin]())
        if signatures:
            schema = schema.merge(InterfaceSchema([event_spec_from_signature(s) for s in signatures]))
    except EthLogsError as e:
        raise click.ClickException(str(e)) from e
    if not schema.events:
        raise click.UsageError("Pass --abi, --builtin or at least one --signature")
    return schema


def _fmt(value: Any) -> str:
    if isinstance(value, bytes) and len(value) == 32:
        text = bytes32_to_text(value)
        return f"0x{value.hex()}" + (f" ({text!r})" if text else "")
    return str(render_value(value))


def _print_event(ev: DecodedEvent, idx: int | None = None) -> None:
    title = f"[bold]{ev.name}[/]" + (f" #{idx}" if idx is not None else "")
    console.rule(title)
    console.print(f"block     {ev.log.block_number}  {ev.log.block_hash or ''}")
    console.print(f"tx        {ev.log.transaction_hash}  log #{ev.log.log_index}")
    console.print(f"contract  {ev.log.address}")
    if ev.log.removed:
        console.print("[yellow]removed by reorg[/]")
    for name, value in ev.fields.items():
        console.print(f"  [cyan]{name}[/] = {_fmt(value)}")


def _events_table(events: list[DecodedEvent]) -> Table:
    table = Table(show_lines=False)
    table.add_column("block", justify="right")
    table.add_column("log", justify="right")
    table.add_column("event")
    table.add_column("fields")
    for ev in events:
        fields = ", ".join(f"{k}={_fmt(v)}" for k, v in ev.fields.items())
        table.add_row(str(ev.log.block_number), str(ev.log.log_index), ev.name, fields)
    return table


schema_options = [
    click.option("--abi", "abi_path", type=click.Path(exists=True, dir_okay=False), help="JSON ABI file"),
    click.option("--builtin", type=click.Choice(sorted(BUILTIN_SCHEMAS)), help="Built-in interface"),
    click.option("--signature", "signatures", multiple=True, help="Event signature; repeat to add"),
    click.option("--event", "events", multiple=True, help="Only these event names; repeat to OR"),
]


def with_schema_options(f):
    for option in reversed(schema_options):
        f = option(f)
    return f


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """ethlogs: decode, query and watch EVM contract event logs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


@cli.command("query-events")
@click.option("--rpc", envvar=RPC_URL_ENV, required=True, help=f"HTTP RPC endpoint (env {RPC_URL_ENV})")
@click.option("--address", "addresses", multiple=True, required=True, help="Emitter contract; repeat to OR")
@with_schema_options
@click.option("--from-block", default="earliest", show_default=True, help="Block number or tag")
@click.option("--to-block", default="latest", show_default=True, help="Block number or tag")
@click.option("--skip-errors/--fail-fast", default=False, show_default=True, help="Skip logs that do not decode")
@click.option("--timeout", "timeout_s", type=int, default=20, show_default=True)
@click.option("--parquet-out", type=click.Path(dir_okay=False), default=None, help="Write events to Parquet")
@click.option("--jsonl-out", type=click.Path(dir_okay=False), default=None, help="Write events as JSON lines")
def query_events_cmd(
    rpc: str,
    addresses: tuple[str, ...],
    abi_path: str | None,
    builtin: str | None,
    signatures: tuple[str, ...],
    events: tuple[str, ...],
    from_block: str,
    to_block: str,
    skip_errors: bool,
    timeout_s: int,
    parquet_out: str | None,
    jsonl_out: str | None,
) -> None:
    """Fetch and decode historical events with one eth_getLogs request."""
    from ethlogs.clients.rpc import RPC
    from ethlogs.engine.query import run_query

    schema = _load_schema(abi_path, builtin, signatures)
    node = NodeConfig.from_env(rpc_url=rpc, timeout_s=timeout_s)
    config = QueryConfig(
        addresses=list(addresses),
        from_block=_parse_block(from_block),
        to_block=_parse_block(to_block),
        events=list(events),
        on_error="skip" if skip_errors else "raise",
    )

    async def run():
        async with RPC(node.rpc_url, timeout_s=node.timeout_s, max_connections=node.max_connections) as rpc_client:
            return await run_query(rpc_client, schema, config)

    try:
        result = asyncio.run(run())
    except (EthLogsError, KeyError) as e:
        raise click.ClickException(str(e)) from e

    console.print(_events_table(result.events))
    console.print(
        f"[bold]done[/]: [green]decoded[/]={len(result.events)}  "
        f"[red]skipped[/]={len(result.errors)}  logs={result.total_logs}"
    )
    if parquet_out:
        write_parquet(result.events, Path(parquet_out))
    if jsonl_out:
        write_jsonl(result.events, Path(jsonl_out))


@cli.command("watch-events")
@click.option("--ws", "ws_url", envvar=WS_URL_ENV, required=True, help=f"WebSocket endpoint (env {WS_URL_ENV})")
@click.option("--address", "addresses", multiple=True, required=True, help="Emitter contract; repeat to OR")
@with_schema_options
@click.option("--strict", is_flag=True, help="Stop on the first log that does not decode")
def watch_events_cmd(
    ws_url: str,
    addresses: tuple[str, ...],
    abi_path: str | None,
    builtin: str | None,
    signatures: tuple[str, ...],
    events: tuple[str, ...],
    strict: bool,
) -> None:
    """Subscribe to new events and print them as they are mined (Ctrl+C to stop)."""
    from ethlogs.clients.ws import WSSubscriber
    from ethlogs.engine.subscription import DecodeFailure, EventDelivery, Terminated, run_subscription

    schema = _load_schema(abi_path, builtin, signatures)
    node = NodeConfig.from_env(ws_url=ws_url)
    config = SubscribeConfig(
        addresses=list(addresses),
        events=list(events),
        on_decode_error="fail" if strict else "report",
    )

    async def run() -> None:
        subscriber = WSSubscriber(node.ws_url, open_timeout=node.timeout_s, max_size=node.max_message_bytes)
        sub = await run_subscription(subscriber, schema, config)
        console.print(f"[bold]watching[/] {', '.join(addresses)} for {', '.join(schema.events)}")
        shown = 0
        async with sub:
            async for item in sub.deliveries():
                match item:
                    case EventDelivery():
                        shown += 1
                        _print_event(item.event, shown)
                    case DecodeFailure():
                        console.print(f"[yellow]undecodable log[/] in block {item.log.block_number}: {item.error}")
                    case Terminated(error=None):
                        console.print("[bold]subscription closed[/]")
                    case Terminated():
                        raise item.error

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[bold]stopped[/]")
    except (EthLogsError, KeyError) as e:
        raise click.ClickException(str(e)) from e


@cli.command("signature")
@click.argument("signature")
@click.option("--function", "is_function", is_flag=True, help="Treat as a function and print its selector")
def signature_cmd(signature: str, is_function: bool) -> None:
    """Print the topic0 of an event signature (or a function selector)."""
    try:
        if is_function:
            spec = function_spec_from_signature(signature)
            console.print(f"{spec.signature}  {spec.selector}")
        else:
            ev = event_spec_from_signature(signature)
            console.print(f"{ev.signature}  {ev.topic0}")
    except EthLogsError as e:
        raise click.ClickException(str(e)) from e


@cli.command("code-at")
@click.option("--rpc", envvar=RPC_URL_ENV, required=True, help=f"HTTP RPC endpoint (env {RPC_URL_ENV})")
@click.argument("address")
@click.option("--block", default="latest", show_default=True)
def code_at_cmd(rpc: str, address: str, block: str) -> None:
    """Check whether a contract is deployed at ADDRESS."""
    from ethlogs.clients.rpc import RPC

    async def run() -> bytes:
        async with RPC(rpc) as rpc_client:
            return await rpc_client.get_code(address, _parse_block(block))

    try:
        code = asyncio.run(run())
    except EthLogsError as e:
        raise click.ClickException(str(e)) from e
    if code:
        console.print(f"[green]contract[/] at {address}: {len(code)} bytes of code")
    else:
        console.print(f"[yellow]no code[/] at {address}")
        raise SystemExit(1)


if __name__ == "__main__":
    cli()

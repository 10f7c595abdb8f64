"""CLI entrypoint for the token aggregator."""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from .domain import RawTransaction
from .errors import AggregatorError, TransactionError
from .logger import get_logger, setup_logging
from .settings import AggregatorSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Query supported tokens, balances, prices and allowances across providers.",
)


class ReadOnlySender:
    """Transaction sender for commands that must never submit anything."""

    async def send_transaction(self, transaction: RawTransaction) -> object:
        raise TransactionError("refusing to submit a transaction from a read-only command")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(_json_default(v) for v in value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _echo(payload: Any) -> None:
    if isinstance(payload, list):
        payload = [asdict(item) if is_dataclass(item) else item for item in payload]
    elif is_dataclass(payload) and not isinstance(payload, type):
        payload = asdict(payload)
    typer.echo(json.dumps(payload, indent=2, default=_json_default))


@app.callback()
def configure(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [token_aggregator] table).",
        ),
    ] = None,
    chain_id: Annotated[
        int | None,
        typer.Option("--chain-id", help="Network to query (1, 250, 1337, 42161)."),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option("--rpc-url", help="RPC endpoint for on-chain reads."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
):
    """Load configuration: CLI flags over environment over config file."""
    if config_path:
        os.environ["TOKEN_AGGREGATOR_CONFIG"] = str(config_path)

    init_kwargs: dict[str, int | str] = {}
    if chain_id is not None:
        init_kwargs["chain_id"] = chain_id
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = AggregatorSettings(**init_kwargs)
    setup_logging(settings.log_level)
    ctx.obj = AppState(settings=settings, logger=get_logger("token_aggregator"))


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except AggregatorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command("show-config")
def show_config(ctx: typer.Context):
    """Print effective config (with secrets redacted)."""
    state: AppState = ctx.obj
    _echo(state.settings.as_safe_dict())


@app.command()
def supported(
    ctx: typer.Context,
    with_prices: Annotated[
        bool,
        typer.Option("--with-prices/--no-prices", help="Resolve missing USD prices."),
    ] = False,
):
    """List tokens supported on the configured network.

    Only the router provider is wired from the command line, so networks
    without the router (250, 42161) report no tokens.
    """
    state: AppState = ctx.obj
    engine = state.engine(with_prices=with_prices)
    _echo(_run(engine.supported_entities()))


@app.command()
def balances(
    ctx: typer.Context,
    account: Annotated[str, typer.Argument(help="Owner address.")],
    tokens: Annotated[
        list[str] | None,
        typer.Option("--token", "-t", help="Only report these token addresses."),
    ] = None,
):
    """List non-zero balances of supported tokens held by ACCOUNT.

    Only router-supported tokens are covered from the command line.
    """
    state: AppState = ctx.obj
    engine = state.engine()
    _echo(_run(engine.balances_of(account, tokens or None)))


@app.command()
def prices(
    ctx: typer.Context,
    tokens: Annotated[list[str], typer.Argument(help="Token addresses to price.")],
):
    """Resolve USD prices; tokens that cannot be priced are omitted."""
    state: AppState = ctx.obj
    resolver = state.price_resolver()
    _echo(_run(resolver.price_of_many(tokens)))


@app.command()
def allowance(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(help="Vault receiving the deposit.")],
    underlying: Annotated[str, typer.Argument(help="The vault's underlying token.")],
    token: Annotated[str, typer.Argument(help="Token being deposited.")],
    account: Annotated[str, typer.Argument(help="Depositing account.")],
):
    """Show the current allowance for depositing TOKEN into TARGET."""
    state: AppState = ctx.obj
    workflow = state.approvals(ReadOnlySender())
    _echo(_run(workflow.allowance(target, underlying, token, account)))


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable
from typing import Any, TypeVar

import click
from hexbytes import HexBytes
from loguru import logger

from v4_arbitrage.adapters.swap_adapter import SwapAdapter, WalletContext
from v4_arbitrage.core.clients.PriceFeedClient import PriceFeedClient
from v4_arbitrage.core.clients.StateViewClient import StateViewClient
from v4_arbitrage.core.config import (
    get_chain_id,
    get_private_key,
    get_registry_config,
    load_config,
)
from v4_arbitrage.core.errors import ArbitrageError
from v4_arbitrage.core.registry import PoolRegistry, load_registries
from v4_arbitrage.reporting.volume import get_swap_volume_from_tx
from v4_arbitrage.strategies.deviation_arb import DeviationArbStrategy, PoolReport

T = TypeVar("T")


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except ArbitrageError as exc:
        raise click.ClickException(str(exc)) from exc


def _registries() -> PoolRegistry:
    try:
        _, pools = load_registries(get_registry_config())
    except (KeyError, ValueError) as exc:
        raise click.ClickException(f"Invalid pool configuration: {exc}") from exc
    if not len(pools):
        raise click.ClickException("No pools configured")
    return pools


def _hex(value: Any) -> str:
    return "0x" + HexBytes(value).hex().removeprefix("0x")


def _format_report(report: PoolReport) -> str:
    if report.error is not None:
        return f"{report.pool.name:<14} {report.pool_id}  skipped: {report.error}"
    result = report.result
    if not result.available:
        deviation = "unavailable"
    else:
        deviation = f"{result.deviation_percent:+.4f}%"
    return (
        f"{report.pool.name:<14} {report.pool_id}  "
        f"onchain={result.on_chain_sqrt_price} market={result.market_sqrt_price} "
        f"deviation={deviation} direction={result.direction.value}"
    )


@click.group(name="v4-arbitrage", help="Uniswap v4 price deviation monitor.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to config.json (defaults to the project config).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
)
def cli(config_path: str | None, log_level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=str(log_level).upper())
    if config_path:
        try:
            load_config(config_path, require_exists=True)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc


@cli.command(name="scan", help="Compare every pool against reference prices.")
def scan_cmd() -> None:
    pools = _registries()

    async def _scan() -> list[PoolReport]:
        async with PriceFeedClient() as feed:
            strategy = DeviationArbStrategy(
                pools, price_feed=feed, state_view=StateViewClient()
            )
            return await strategy.run_pass()

    for report in _run(_scan()):
        click.echo(_format_report(report))


@cli.command(name="swap", help="Swap in POOL toward the reference price.")
@click.argument("pool")
@click.option(
    "--amount",
    required=True,
    help="Exact input amount in human units of the input token.",
)
@click.option(
    "--sqrt-price-limit",
    type=int,
    default=None,
    help="Explicit sqrtPriceX96 limit; skips the price feed.",
)
@click.option(
    "--zero-for-one/--one-for-zero",
    default=None,
    help="Swap direction; required with --sqrt-price-limit.",
)
@click.option("--gas-limit", type=int, default=None)
@click.option("--timeout", type=float, default=None, help="Receipt wait in seconds.")
def swap_cmd(
    pool: str,
    amount: str,
    sqrt_price_limit: int | None,
    zero_for_one: bool | None,
    gas_limit: int | None,
    timeout: float | None,
) -> None:
    if sqrt_price_limit is not None and zero_for_one is None:
        raise click.UsageError(
            "--sqrt-price-limit requires --zero-for-one or --one-for-zero"
        )

    pools = _registries()
    try:
        pools.get(pool)
    except KeyError as exc:
        raise click.ClickException(exc.args[0]) from exc

    private_key = get_private_key()
    if not private_key:
        raise click.ClickException(
            "No wallet key configured (wallet.private_key or V4_ARBITRAGE_PRIVATE_KEY)"
        )
    wallet = WalletContext.from_private_key(private_key)

    async def _swap() -> dict[str, Any] | None:
        async with PriceFeedClient() as feed:
            strategy = DeviationArbStrategy(
                pools,
                price_feed=feed,
                state_view=StateViewClient(),
                swap_adapter=SwapAdapter(
                    {"chain_id": get_chain_id()}, pools=pools, wallet=wallet
                ),
            )
            if sqrt_price_limit is not None:
                intent = strategy.plan_with_limit(
                    pool,
                    amount,
                    sqrt_price_limit=sqrt_price_limit,
                    zero_for_one=zero_for_one,
                )
            else:
                intent = await strategy.plan_swap(pool, amount)
            if intent is None:
                return None
            click.echo(
                f"Swapping {amount} {intent.input_symbol} -> {intent.output_symbol} "
                f"(zeroForOne={intent.zero_for_one}, "
                f"sqrtPriceLimitX96={intent.sqrt_price_limit})"
            )
            kwargs: dict[str, Any] = {"gas_limit": gas_limit}
            if timeout is not None:
                kwargs["timeout"] = timeout
            return await strategy.execute(intent, **kwargs)

    try:
        receipt = _run(_swap())
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if receipt is None:
        click.echo(f"No swap planned for {pool}: deviation unavailable or zero")
        return
    click.echo(
        f"Swap confirmed: {_hex(receipt['transactionHash'])} "
        f"(block {receipt.get('blockNumber')}, gas {receipt.get('gasUsed')})"
    )


@cli.command(name="track-volume", help="Show the swap volume of a transaction.")
@click.argument("tx_hash")
def track_volume_cmd(tx_hash: str) -> None:
    pools = _registries()
    click.echo(f"Tracking volume for transaction: {tx_hash}")
    volume = _run(get_swap_volume_from_tx(tx_hash, pools.tokens, get_chain_id()))
    if volume is None:
        raise click.ClickException(f"No swap volume found in {tx_hash}")
    click.echo("Swap found:")
    click.echo(
        f"  From: {volume.sold.amount} {volume.sold.symbol} ({volume.sold.address})"
    )
    click.echo(
        f"  To:   {volume.bought.amount} {volume.bought.symbol} "
        f"({volume.bought.address})"
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

"""Command line entry point: serve the pipeline or print simulated quotes."""

from __future__ import annotations

import json
import random
import sys

import click
from rich.console import Console
from rich.table import Table

from .domain.config import GeneratorConfig
from .domain.exceptions import ConfigurationError
from .domain.random_process import evolve, initial_state
from .infrastructure.config_loader import load_pipeline_config
from .infrastructure.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(package_name="quote-pipeline")
def main() -> None:
    """Simulated market quotes, cached and audited."""


@main.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML or JSON pipeline configuration",
)
@click.option("--log-level", "-l", default=None, help="Logging level (default: $LOG_LEVEL or INFO)")
def serve(config_path: str | None, log_level: str | None) -> None:
    """Run the pipeline behind its HTTP query API."""
    import uvicorn

    from .main import create_app

    setup_logging(log_level)
    try:
        config = load_pipeline_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e.message}")
        sys.exit(1)

    uvicorn.run(create_app(config), host=config.http_host, port=config.http_port, log_config=None)


@main.command()
@click.option("--name", "-n", required=True, help="Instrument name")
@click.option("--symbol", "-s", default=None, help="Instrument symbol (default: the name)")
@click.option("--count", "-c", default=10, show_default=True, type=click.IntRange(min=1))
@click.option("--price", default=100.0, show_default=True, type=float)
@click.option("--volume", default=10000, show_default=True, type=int)
@click.option("--seed", default=None, type=int, help="Seed for a reproducible sequence")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON quote per line")
def generate(
    name: str,
    symbol: str | None,
    count: int,
    price: float,
    volume: int,
    seed: int | None,
    as_json: bool,
) -> None:
    """Print COUNT evolved quotes for one instrument, without starting the pipeline."""
    try:
        config = GeneratorConfig.from_mapping(
            {"name": name, "symbol": symbol, "price": price, "volume": volume}
        )
    except ConfigurationError as e:
        raise click.BadParameter(e.message, param_hint=e.field) from e

    rng = random.Random(seed)  # nosec B311 - simulation, not crypto
    state = initial_state(config, rng)
    quotes = []
    for _ in range(count):
        state = evolve(state, rng)
        quotes.append(state.to_quote())

    if as_json:
        for quote in quotes:
            click.echo(json.dumps(quote.model_dump()))
        return

    table = Table(title=f"{config.name} ({config.symbol})")
    for column in ("#", "bid", "ask", "open", "shares", "volume"):
        table.add_column(column, justify="right")
    for index, quote in enumerate(quotes, start=1):
        table.add_row(
            str(index),
            f"{quote.bid:.4f}",
            f"{quote.ask:.4f}",
            f"{quote.open:.4f}",
            str(quote.shares),
            str(quote.volume),
        )
    console.print(table)


if __name__ == "__main__":
    main()

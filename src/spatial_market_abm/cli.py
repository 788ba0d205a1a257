"""Command-line interface for spatial_market_abm."""

import logging
from pathlib import Path
from typing import Annotated

import typer

from spatial_market_abm import __version__

app = typer.Typer(
    name="spatial_market_abm",
    help="Agent-based simulation of a spatial local economy",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"spatial_market_abm version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Agent-based simulation of a spatial local economy."""


@app.command()
def run(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML parameter file (defaults to config/model_parameters.yml).",
        ),
    ] = None,
    ticks: Annotated[
        int | None,
        typer.Option(
            "--ticks",
            "-t",
            help="Number of ticks to run. Omit to run to the horizon.",
        ),
    ] = None,
    seed: Annotated[
        int | None,
        typer.Option("--seed", "-s", help="Override the random seed."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write tick records here (.parquet, or .csv).",
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Logging level, e.g. INFO or DEBUG."),
    ] = "WARNING",
) -> None:
    """Run the simulation and print a summary of the final tick.

    Examples:

    \\b
        # Run one simulated month with the default parameters
        spatial_market_abm run

    \\b
        # Run two simulated days and keep the tick records
        spatial_market_abm run --ticks 48 --output records.parquet
    """
    import dataclasses

    from spatial_market_abm.abm.config import load_config
    from spatial_market_abm.abm.model import Simulation

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if config is not None and not config.exists():
        typer.echo(f"Error: config file not found: {config}", err=True)
        raise typer.Exit(code=1)

    cfg = load_config(config)
    if seed is not None:
        cfg = dataclasses.replace(
            cfg, simulation=dataclasses.replace(cfg.simulation, seed=seed)
        )

    sim = Simulation(cfg)
    try:
        sim.initialize_agents()
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    result = sim.run(ticks=ticks)
    if not result.records:
        typer.echo("No ticks were run.")
        raise typer.Exit()

    last = result.records[-1]
    typer.echo(f"Ticks run: {last.tick}")
    typer.echo(f"Mean price: {last.mean_price:.4f}")
    typer.echo(f"Aggregate demand: {last.aggregate_demand:.1f}")
    typer.echo(f"Aggregate supply: {last.aggregate_supply:.1f}")
    typer.echo(f"Wealth Gini: {last.wealth_gini:.3f}")
    typer.echo(
        "Price expectations (up/stay/down): "
        f"{last.consumers_expect_up}/{last.consumers_expect_stay}"
        f"/{last.consumers_expect_down}"
    )
    typer.echo(
        "Demand expectations (up/stay/down): "
        f"{last.producers_expect_up}/{last.producers_expect_stay}"
        f"/{last.producers_expect_down}"
    )

    if output is not None:
        result.write(output)
        typer.echo(f"Records written to {output}")


if __name__ == "__main__":
    app()

"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from collections.abc import Generator

import pytest

from spatial_market_abm.abm.config import (
    GridConfig,
    ModelConfig,
    PopulationConfig,
    SimulationConfig,
)
from spatial_market_abm.abm.grid import SpatialGrid
from spatial_market_abm.abm.markets.local import Market


@pytest.fixture(autouse=True)
def reset_typer_force_terminal() -> Generator[None]:
    """Reset typer.rich_utils.FORCE_TERMINAL before each test.

    ``typer.rich_utils`` caches ``FORCE_TERMINAL`` at import time from
    ``FORCE_COLOR``.  Resetting it lets each CLI invocation detect terminal
    capabilities from the (possibly patched) environment, so ANSI codes do
    not leak into ``result.stdout`` assertions.
    """
    ru = sys.modules.get("typer.rich_utils")
    old = ru.FORCE_TERMINAL if ru is not None else None
    if ru is not None:
        ru.FORCE_TERMINAL = None
    yield
    if ru is not None:
        ru.FORCE_TERMINAL = old


@pytest.fixture
def small_config() -> ModelConfig:
    """A small, fast model: 4 markets, 12 consumers and 6 producers."""
    return ModelConfig(
        simulation=SimulationConfig(ticks=300, seed=7),
        grid=GridConfig(half_extent=10, search_radius=10.0, region_radius=3),
        population=PopulationConfig(
            num_regions=2,
            num_markets_per_region=2,
            num_households=6,
            num_consumers_per_household=2,
            num_factories=3,
            num_producers_per_factory=2,
        ),
    )


@pytest.fixture
def grid() -> SpatialGrid:
    """A grid with one market on the origin cell."""
    g = SpatialGrid(half_extent=25)
    g.add_market(Market("market_000", (0, 0)))
    return g

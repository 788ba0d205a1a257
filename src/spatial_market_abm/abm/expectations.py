"""Adaptive expectations.

Each tick agents compare their own latest outcome with the population
average and expect a reversal: an outcome below the mean means the
benchmark is expected to go up, one above it means down.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from spatial_market_abm.abm.agents.base import Expectation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from spatial_market_abm.abm.agents.consumer import Consumer
    from spatial_market_abm.abm.agents.producer import Producer
    from spatial_market_abm.abm.grid import SpatialGrid


def classify(value: float, benchmark: float) -> Expectation:
    """Map an outcome relative to *benchmark* to an expectation."""
    if math.isclose(value, benchmark, rel_tol=1e-9, abs_tol=1e-12):
        return Expectation.STAY
    if value < benchmark:
        return Expectation.UP
    return Expectation.DOWN


def count_expectations(values: Sequence[Expectation]) -> dict[str, int]:
    """Count agents in each expectation bucket, zeros included."""
    counts = {e.value: 0 for e in Expectation}
    for value in values:
        counts[value.value] += 1
    return counts


class ExpectationEngine:
    """Updates ``price_expectation`` and ``demand_expectation``."""

    def __init__(self, grid: SpatialGrid) -> None:
        self._grid = grid

    def update(
        self, consumers: Sequence[Consumer], producers: Sequence[Producer]
    ) -> None:
        """Revise every agent's expectation from this tick's outcomes.

        Consumers compare the last price they paid with the mean market
        price; producers compare the last batch they stocked with the mean
        consumer demand.
        """
        mean_price = self._grid.mean_price()
        for consumer in consumers:
            consumer.price_expectation = classify(consumer.last_price_paid, mean_price)

        mean_demand = (
            sum(c.demand for c in consumers) / len(consumers) if consumers else 0.0
        )
        for producer in producers:
            producer.demand_expectation = classify(
                producer.last_demand_supplied, mean_demand
            )

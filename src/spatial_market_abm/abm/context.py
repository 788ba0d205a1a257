"""Run-wide mutable state shared by the per-tick phases."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SimulationContext:
    """Clock and aggregate counters for one run.

    ``aggregate_demand`` (AD) and ``aggregate_supply`` (AS) are cumulative
    volumes.  A fresh context is created at every setup and the
    counters only ever grow during a run.

    Attributes:
        tick: Number of completed ticks; the tick being executed during
            a step.
        aggregate_demand: Cumulative units bought by consumers.
        aggregate_supply: Cumulative units producers set out to supply.
    """

    tick: int = 0
    aggregate_demand: float = 0.0
    aggregate_supply: float = 0.0

    def record_demand(self, quantity: float) -> None:
        """Add consumed units to AD."""
        self.aggregate_demand += max(quantity, 0.0)

    def record_supply(self, quantity: float) -> None:
        """Add supplied units to AS."""
        self.aggregate_supply += max(quantity, 0.0)

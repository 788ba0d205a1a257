"""Agent-Based Model (ABM) module for a spatial local economy.

Consumers and producers live on a bounded grid, travel to market cells,
trade a single good and revise their expectations from what they
experienced.  The module studies how these heterogeneous, backward-looking
expectations aggregate into market prices, wealth distributions and
spatial trading patterns.

Each tick (one simulated hour) runs a fixed sequence of phases:
target selection, movement, supply, demand, price adjustment, return
trips, expectation updates and periodic wage payments.
"""

from __future__ import annotations

from spatial_market_abm.abm.config import ModelConfig, load_config
from spatial_market_abm.abm.context import SimulationContext
from spatial_market_abm.abm.grid import SpatialGrid
from spatial_market_abm.abm.model import Simulation, SimulationResult, TickRecord

__all__ = [
    "ModelConfig",
    "Simulation",
    "SimulationContext",
    "SimulationResult",
    "SpatialGrid",
    "TickRecord",
    "agents",
    "load_config",
    "markets",
]

"""Agent classes for the ABM."""

from __future__ import annotations

from spatial_market_abm.abm.agents.base import (
    Expectation,
    LifecycleState,
    SpatialAgent,
)
from spatial_market_abm.abm.agents.consumer import Consumer
from spatial_market_abm.abm.agents.producer import Producer

__all__ = [
    "Consumer",
    "Expectation",
    "LifecycleState",
    "Producer",
    "SpatialAgent",
]

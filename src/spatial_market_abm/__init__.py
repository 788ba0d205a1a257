"""Agent-based simulation of a spatial local economy."""

__version__ = "0.1.0"

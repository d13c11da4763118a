"""Force-directed layout."""

from notegraph.layout.loop import LayoutLoop
from notegraph.layout.simulation import ForceSimulation, Positions

__all__ = ["ForceSimulation", "LayoutLoop", "Positions"]

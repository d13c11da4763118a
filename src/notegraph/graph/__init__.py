"""Graph construction.

Provides:
- Graph builder (notes + oracle hints -> deduplicated graph)
- Color registry for tags and clusters
- Builder and layout configuration
"""

from notegraph.graph.builder import build_graph
from notegraph.graph.colors import COLOR_PALETTE, UNTAGGED_COLOR, ColorRegistry
from notegraph.graph.config import GraphBuildConfig, LayoutConfig

__all__ = [
    # Config
    "GraphBuildConfig",
    "LayoutConfig",
    # Builder
    "build_graph",
    # Colors
    "ColorRegistry",
    "COLOR_PALETTE",
    "UNTAGGED_COLOR",
]
